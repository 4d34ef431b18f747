"""Handoff protocol, routing and stream multiplexing.

The round driver lives in :mod:`handoffkit.orchestration.driver`; it
depends on :class:`~handoffkit.agent.Agent` and is imported from there.
"""

from handoffkit.orchestration.filters import (
    default_input_filter,
    keep_last_n_messages,
    remove_all_tools,
)
from handoffkit.orchestration.handoff import (
    HANDOFF_TOOL_NAME,
    RECOMMENDED_PROMPT_PREFIX,
    Handoff,
    HandoffInputData,
    HandoffSignal,
    ToolOutput,
    handoff,
    prompt_with_handoff_instructions,
)
from handoffkit.orchestration.multiplexer import (
    ExtractedSignals,
    StreamMultiplexer,
    is_internal_chunk,
)
from handoffkit.orchestration.routing import RoutingDecision, select_starting_agent
from handoffkit.orchestration.state import RoundRecord, RunState

__all__ = [
    "HANDOFF_TOOL_NAME",
    "RECOMMENDED_PROMPT_PREFIX",
    "ExtractedSignals",
    "Handoff",
    "HandoffInputData",
    "HandoffSignal",
    "RoundRecord",
    "RoutingDecision",
    "RunState",
    "StreamMultiplexer",
    "ToolOutput",
    "default_input_filter",
    "handoff",
    "is_internal_chunk",
    "keep_last_n_messages",
    "prompt_with_handoff_instructions",
    "remove_all_tools",
    "select_starting_agent",
]
