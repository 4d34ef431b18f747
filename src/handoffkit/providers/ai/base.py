"""Model provider boundary.

An :class:`AIProvider` is the execution primitive behind every agent: it
receives an :class:`AIContext` (history, system prompt, tools) and answers
with an :class:`AIResponse` or a stream of structured events.  Vendor SDKs
live behind this interface; the orchestration layer only sees these models.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from typing import Any, Literal

from pydantic import BaseModel, Field

Role = Literal["system", "user", "assistant", "tool"]


# -- Message content ----------------------------------------------------------


class AITextPart(BaseModel):
    type: Literal["text"] = "text"
    text: str


class AIImagePart(BaseModel):
    type: Literal["image"] = "image"
    url: str
    mime_type: str | None = None


class AIThinkingPart(BaseModel):
    """Reasoning carried between steps of one execution."""

    type: Literal["thinking"] = "thinking"
    thinking: str
    signature: str | None = None


class AIToolCallPart(BaseModel):
    """A tool call made by the assistant, as kept in history."""

    type: Literal["tool_call"] = "tool_call"
    id: str
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class AIToolResultPart(BaseModel):
    """The text result of one tool call, sent back to the model."""

    type: Literal["tool_result"] = "tool_result"
    tool_call_id: str
    name: str
    result: str


AIContentPart = AITextPart | AIImagePart | AIThinkingPart | AIToolCallPart | AIToolResultPart


class AIMessage(BaseModel):
    role: Role
    content: str | list[AIContentPart]

    @property
    def text(self) -> str:
        """Text content only; images, reasoning and tool parts are skipped."""
        if isinstance(self.content, str):
            return self.content
        return "".join(p.text for p in self.content if isinstance(p, AITextPart))

    @property
    def tool_calls(self) -> list[AIToolCallPart]:
        if isinstance(self.content, str):
            return []
        return [p for p in self.content if isinstance(p, AIToolCallPart)]

    @property
    def tool_results(self) -> list[AIToolResultPart]:
        if isinstance(self.content, str):
            return []
        return [p for p in self.content if isinstance(p, AIToolResultPart)]


# -- Requests and responses ---------------------------------------------------


class AITool(BaseModel):
    """Function-calling definition offered to the model."""

    name: str
    description: str
    parameters: dict[str, Any] = Field(default_factory=dict)


class AIToolCall(BaseModel):
    id: str
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class AIContext(BaseModel):
    """Everything one model call sees.

    ``tool_choice`` names a tool the model must call on this request.
    ``metadata`` carries request identifiers for providers that log them.
    """

    messages: list[AIMessage] = Field(default_factory=list)
    system_prompt: str | None = None
    temperature: float = 0.7
    max_tokens: int = 1024
    tools: list[AITool] = Field(default_factory=list)
    tool_choice: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class AIResponse(BaseModel):
    content: str = ""
    thinking: str | None = None
    finish_reason: str | None = None
    usage: dict[str, int] = Field(default_factory=dict)
    tool_calls: list[AIToolCall] = Field(default_factory=list)


# -- Structured stream --------------------------------------------------------


class StreamThinkingDelta(BaseModel):
    type: Literal["thinking_delta"] = "thinking_delta"
    thinking: str


class StreamTextDelta(BaseModel):
    type: Literal["text_delta"] = "text_delta"
    text: str


class StreamToolCall(BaseModel):
    """A tool call, complete with parsed arguments."""

    type: Literal["tool_call"] = "tool_call"
    id: str
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class StreamDone(BaseModel):
    """Last event of every stream."""

    type: Literal["done"] = "done"
    finish_reason: str | None = None
    usage: dict[str, int] = Field(default_factory=dict)


StreamEvent = StreamThinkingDelta | StreamTextDelta | StreamToolCall | StreamDone


def response_events(
    response: AIResponse, *, text_chunks: list[str] | None = None
) -> list[StreamEvent]:
    """Replay a complete response as stream events.

    *text_chunks* splits the text into several deltas; by default the whole
    content is one delta.
    """
    events: list[StreamEvent] = []
    if response.thinking:
        events.append(StreamThinkingDelta(thinking=response.thinking))
    if response.content:
        for chunk in text_chunks or [response.content]:
            events.append(StreamTextDelta(text=chunk))
    for tc in response.tool_calls:
        events.append(StreamToolCall(id=tc.id, name=tc.name, arguments=tc.arguments))
    events.append(StreamDone(finish_reason=response.finish_reason, usage=response.usage))
    return events


class AIProvider(ABC):
    """A model that agents run on."""

    @property
    def name(self) -> str:
        return self.__class__.__name__

    @property
    @abstractmethod
    def model_name(self) -> str: ...

    @abstractmethod
    async def generate(self, context: AIContext) -> AIResponse:
        """Produce one complete response.

        Raises:
            ProviderError: The model call failed.
        """
        ...

    async def generate_structured_stream(self, context: AIContext) -> AsyncIterator[StreamEvent]:
        """Stream one response as structured events ending with :class:`StreamDone`.

        The default replays :meth:`generate`; providers with native
        streaming override it.
        """
        for event in response_events(await self.generate(context)):
            yield event

    async def close(self) -> None:  # noqa: B027
        """Release connections held by the provider."""
