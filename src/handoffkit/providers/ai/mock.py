"""Scripted provider for tests and examples."""

from __future__ import annotations

from collections.abc import AsyncIterator

from handoffkit.providers.ai.base import (
    AIContext,
    AIProvider,
    AIResponse,
    AIToolCall,
    StreamEvent,
    response_events,
)


class MockAIProvider(AIProvider):
    """Replays canned responses round-robin and records every request.

    Args:
        responses: Plain text replies.
        ai_responses: Full responses, e.g. with tool calls.  Take precedence
            over *responses*.
        streaming: Stream text word by word instead of as one delta.
        error: Raised from every call instead of answering.
    """

    def __init__(
        self,
        responses: list[str] | None = None,
        *,
        ai_responses: list[AIResponse] | None = None,
        streaming: bool = False,
        error: Exception | None = None,
    ) -> None:
        if ai_responses:
            self._script = list(ai_responses)
        else:
            self._script = [
                AIResponse(
                    content=text,
                    finish_reason="stop",
                    usage={"prompt_tokens": 10, "completion_tokens": 5},
                )
                for text in responses or ["Hello from AI"]
            ]
        self._streaming = streaming
        self._error = error
        self._index = 0
        self.calls: list[AIContext] = []

    @classmethod
    def handing_off(
        cls,
        target: str,
        *,
        text: str = "",
        reason: str | None = None,
        call_id: str = "call_handoff",
    ) -> MockAIProvider:
        """Provider whose every reply signals a handoff to *target*."""
        arguments = {"target_agent": target}
        if reason:
            arguments["reason"] = reason
        call = AIToolCall(id=call_id, name="handoff_to_agent", arguments=arguments)
        return cls(
            ai_responses=[AIResponse(content=text, finish_reason="tool_calls", tool_calls=[call])]
        )

    @property
    def model_name(self) -> str:
        return "mock"

    async def generate(self, context: AIContext) -> AIResponse:
        self.calls.append(context)
        if self._error is not None:
            raise self._error
        response = self._script[self._index % len(self._script)]
        self._index += 1
        return response

    async def generate_structured_stream(self, context: AIContext) -> AsyncIterator[StreamEvent]:
        response = await self.generate(context)
        chunks = None
        if self._streaming and response.content:
            words = response.content.split(" ")
            chunks = [words[0], *(f" {w}" for w in words[1:])]
        for event in response_events(response, text_chunks=chunks):
            yield event
