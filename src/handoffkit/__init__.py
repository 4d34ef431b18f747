"""HandoffKit - multi-agent handoff orchestration over a single UI stream."""

from handoffkit._version import __version__
from handoffkit.agent import Agent
from handoffkit.context import ExecutionContext
from handoffkit.errors import (
    AgentExecutionError,
    ConfigurationError,
    GuardrailExecutionError,
    GuardrailTripwireTriggered,
    HandoffKitError,
    InputGuardrailTripwireTriggered,
    MemoryGatewayError,
    OutputGuardrailTripwireTriggered,
    ProviderError,
    ToolCallError,
    ToolPermissionDeniedError,
)
from handoffkit.guardrails import (
    GuardrailResult,
    InputGuardrail,
    OutputGuardrail,
)
from handoffkit.memory import (
    ChatsConfig,
    GenerateSuggestionsConfig,
    GenerateTitleConfig,
    HistoryConfig,
    InMemoryMemoryGateway,
    MemoryConfig,
    MemoryGateway,
    WorkingMemoryConfig,
    build_search_messages_tool,
)
from handoffkit.models.chunks import (
    AgentHandoffChunk,
    AgentStatusChunk,
    ChatTitleChunk,
    ErrorChunk,
    FinishChunk,
    StartChunk,
    SuggestionsChunk,
    TextDeltaChunk,
    UIChunk,
    chunk_to_dict,
    parse_chunk,
)
from handoffkit.models.enums import (
    AgentStatus,
    MatchStrategy,
    MemoryScope,
    RoutingStrategy,
    RunPhase,
)
from handoffkit.models.events import (
    AgentCompleteEvent,
    AgentErrorEvent,
    AgentEvent,
    AgentFinishEvent,
    AgentHandoffEvent,
    AgentStartEvent,
    AgentStepEvent,
)
from handoffkit.models.messages import FilePart, TextPart, UserMessage
from handoffkit.orchestration import (
    HANDOFF_TOOL_NAME,
    RECOMMENDED_PROMPT_PREFIX,
    Handoff,
    HandoffInputData,
    RunState,
    default_input_filter,
    handoff,
    keep_last_n_messages,
    prompt_with_handoff_instructions,
    remove_all_tools,
    select_starting_agent,
)
from handoffkit.providers.ai import AIProvider, AIResponse, MockAIProvider
from handoffkit.runtime import AgentRuntime, TurnRequest, TurnResult
from handoffkit.streaming import UI_MESSAGE_STREAM_HEADERS, UIMessageStream, UIMessageStreamWriter
from handoffkit.telemetry import (
    ConsoleTelemetryProvider,
    MockTelemetryProvider,
    NoopTelemetryProvider,
    SpanKind,
    TelemetryProvider,
)
from handoffkit.tools import Tool, ToolCallOptions, ToolPolicy, build_shared_memory_tool, tool

__all__ = [
    "AIProvider",
    "AIResponse",
    "Agent",
    "AgentCompleteEvent",
    "AgentErrorEvent",
    "AgentEvent",
    "AgentExecutionError",
    "AgentFinishEvent",
    "AgentHandoffChunk",
    "AgentHandoffEvent",
    "AgentRuntime",
    "AgentStartEvent",
    "AgentStatus",
    "AgentStatusChunk",
    "AgentStepEvent",
    "ChatTitleChunk",
    "ChatsConfig",
    "ConfigurationError",
    "ConsoleTelemetryProvider",
    "ErrorChunk",
    "ExecutionContext",
    "FilePart",
    "FinishChunk",
    "GenerateSuggestionsConfig",
    "GenerateTitleConfig",
    "GuardrailExecutionError",
    "GuardrailResult",
    "GuardrailTripwireTriggered",
    "HANDOFF_TOOL_NAME",
    "Handoff",
    "HandoffInputData",
    "HandoffKitError",
    "HistoryConfig",
    "InMemoryMemoryGateway",
    "InputGuardrail",
    "InputGuardrailTripwireTriggered",
    "MatchStrategy",
    "MemoryConfig",
    "MemoryGateway",
    "MemoryGatewayError",
    "MemoryScope",
    "MockAIProvider",
    "MockTelemetryProvider",
    "NoopTelemetryProvider",
    "OutputGuardrail",
    "OutputGuardrailTripwireTriggered",
    "ProviderError",
    "RECOMMENDED_PROMPT_PREFIX",
    "RoutingStrategy",
    "RunPhase",
    "RunState",
    "SpanKind",
    "StartChunk",
    "SuggestionsChunk",
    "TelemetryProvider",
    "TextDeltaChunk",
    "TextPart",
    "Tool",
    "ToolCallError",
    "ToolCallOptions",
    "ToolPermissionDeniedError",
    "ToolPolicy",
    "TurnRequest",
    "TurnResult",
    "UIChunk",
    "UIMessageStream",
    "UIMessageStreamWriter",
    "UI_MESSAGE_STREAM_HEADERS",
    "UserMessage",
    "WorkingMemoryConfig",
    "__version__",
    "build_search_messages_tool",
    "build_shared_memory_tool",
    "chunk_to_dict",
    "default_input_filter",
    "handoff",
    "keep_last_n_messages",
    "parse_chunk",
    "prompt_with_handoff_instructions",
    "remove_all_tools",
    "select_starting_agent",
    "tool",
]
