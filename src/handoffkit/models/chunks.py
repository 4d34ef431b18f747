"""UI message stream chunk protocol.

Every chunk written to the outward stream is one of the models below.
Field names are snake_case in Python and camelCase on the wire
(``toolCallId``, ``routingStrategy``); serialize with :func:`chunk_to_dict`.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from handoffkit.models.enums import AgentStatus, RoutingStrategy


class _Chunk(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# -- Message / step framing ---------------------------------------------------


class StartChunk(_Chunk):
    type: Literal["start"] = "start"
    message_id: str | None = None


class FinishChunk(_Chunk):
    type: Literal["finish"] = "finish"


class StartStepChunk(_Chunk):
    type: Literal["start-step"] = "start-step"


class FinishStepChunk(_Chunk):
    type: Literal["finish-step"] = "finish-step"


# -- Text / reasoning -----------------------------------------------------------


class TextStartChunk(_Chunk):
    type: Literal["text-start"] = "text-start"
    id: str


class TextDeltaChunk(_Chunk):
    type: Literal["text-delta"] = "text-delta"
    id: str
    delta: str


class TextEndChunk(_Chunk):
    type: Literal["text-end"] = "text-end"
    id: str


class ReasoningStartChunk(_Chunk):
    type: Literal["reasoning-start"] = "reasoning-start"
    id: str


class ReasoningDeltaChunk(_Chunk):
    type: Literal["reasoning-delta"] = "reasoning-delta"
    id: str
    delta: str


class ReasoningEndChunk(_Chunk):
    type: Literal["reasoning-end"] = "reasoning-end"
    id: str


# -- Tools ----------------------------------------------------------------------


class ToolInputStartChunk(_Chunk):
    type: Literal["tool-input-start"] = "tool-input-start"
    tool_call_id: str
    tool_name: str


class ToolInputDeltaChunk(_Chunk):
    type: Literal["tool-input-delta"] = "tool-input-delta"
    tool_call_id: str
    input_text_delta: str


class ToolInputAvailableChunk(_Chunk):
    type: Literal["tool-input-available"] = "tool-input-available"
    tool_call_id: str
    tool_name: str
    input: dict[str, Any] = Field(default_factory=dict)


class ToolOutputAvailableChunk(_Chunk):
    type: Literal["tool-output-available"] = "tool-output-available"
    tool_call_id: str
    output: Any = None


class ToolOutputErrorChunk(_Chunk):
    type: Literal["tool-output-error"] = "tool-output-error"
    tool_call_id: str
    error_text: str


class ErrorChunk(_Chunk):
    type: Literal["error"] = "error"
    error_text: str


# -- Custom data chunks -----------------------------------------------------------


class AgentHandoffData(_Chunk):
    from_agent: str = Field(alias="from")
    to: str
    reason: str | None = None
    routing_strategy: RoutingStrategy


class AgentHandoffChunk(_Chunk):
    type: Literal["data-agent-handoff"] = "data-agent-handoff"
    data: AgentHandoffData
    transient: bool = True


class AgentStatusData(_Chunk):
    status: AgentStatus
    agent: str


class AgentStatusChunk(_Chunk):
    type: Literal["data-agent-status"] = "data-agent-status"
    data: AgentStatusData
    transient: bool = True


class ChatTitleData(_Chunk):
    chat_id: str
    title: str


class ChatTitleChunk(_Chunk):
    type: Literal["data-chat-title"] = "data-chat-title"
    data: ChatTitleData
    transient: bool = False


class SuggestionsData(_Chunk):
    prompts: list[str] = Field(default_factory=list)


class SuggestionsChunk(_Chunk):
    type: Literal["data-suggestions"] = "data-suggestions"
    data: SuggestionsData
    transient: bool = True


UIChunk = Annotated[
    StartChunk
    | FinishChunk
    | StartStepChunk
    | FinishStepChunk
    | TextStartChunk
    | TextDeltaChunk
    | TextEndChunk
    | ReasoningStartChunk
    | ReasoningDeltaChunk
    | ReasoningEndChunk
    | ToolInputStartChunk
    | ToolInputDeltaChunk
    | ToolInputAvailableChunk
    | ToolOutputAvailableChunk
    | ToolOutputErrorChunk
    | ErrorChunk
    | AgentHandoffChunk
    | AgentStatusChunk
    | ChatTitleChunk
    | SuggestionsChunk,
    Field(discriminator="type"),
]

_chunk_adapter: TypeAdapter[UIChunk] = TypeAdapter(UIChunk)

# Chunks that carry a ``tool_call_id`` and belong to a single tool invocation.
ToolChunk = (
    ToolInputStartChunk
    | ToolInputDeltaChunk
    | ToolInputAvailableChunk
    | ToolOutputAvailableChunk
    | ToolOutputErrorChunk
)


def chunk_to_dict(chunk: UIChunk) -> dict[str, Any]:
    """Serialize a chunk to its camelCase wire form."""
    return chunk.model_dump(mode="json", by_alias=True, exclude_none=True)


def parse_chunk(data: dict[str, Any]) -> UIChunk:
    """Parse a wire-form chunk dict back into its model."""
    return _chunk_adapter.validate_python(data)
