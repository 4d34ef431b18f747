"""Shared test fixtures and helpers."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine, Sequence
from typing import Any

import pytest

from handoffkit.agent import Agent
from handoffkit.context import ExecutionContext
from handoffkit.memory.config import ChatsConfig, HistoryConfig, MemoryConfig
from handoffkit.memory.mock import MockMemoryGateway
from handoffkit.models.chunks import UIChunk
from handoffkit.orchestration.handoff import HANDOFF_TOOL_NAME
from handoffkit.providers.ai.base import AIResponse, AIToolCall
from handoffkit.providers.ai.mock import MockAIProvider


@pytest.fixture
def advance() -> Callable[[int], Coroutine[Any, Any, None]]:
    """Yield control to let pending tasks run without real delay.

    Replaces ``await asyncio.sleep(0.05)`` patterns with zero-delay
    event loop yields::

        await advance()       # 5 yields (default)
        await advance(10)     # 10 yields for heavier workloads
    """

    async def _advance(n: int = 5) -> None:
        for _ in range(n):
            await asyncio.sleep(0)

    return _advance


@pytest.fixture
def gateway() -> MockMemoryGateway:
    return MockMemoryGateway()


def text_response(text: str) -> AIResponse:
    return AIResponse(
        content=text,
        finish_reason="stop",
        usage={"prompt_tokens": 10, "completion_tokens": 5},
    )


def tool_response(
    name: str,
    arguments: dict[str, Any] | None = None,
    *,
    call_id: str = "call_1",
    text: str = "",
) -> AIResponse:
    return AIResponse(
        content=text,
        finish_reason="tool_calls",
        tool_calls=[AIToolCall(id=call_id, name=name, arguments=arguments or {})],
    )


def handoff_response(
    target: str,
    *,
    text: str = "",
    reason: str | None = None,
    call_id: str = "call_handoff",
) -> AIResponse:
    arguments: dict[str, Any] = {"target_agent": target}
    if reason:
        arguments["reason"] = reason
    return tool_response(HANDOFF_TOOL_NAME, arguments, call_id=call_id, text=text)


def scripted(*responses: AIResponse) -> MockAIProvider:
    """Provider replaying *responses* in order, one per call."""
    return MockAIProvider(ai_responses=list(responses))


def make_agent(
    name: str,
    *,
    reply: str = "ok",
    provider: MockAIProvider | None = None,
    **kwargs: Any,
) -> Agent:
    return Agent(
        name,
        instructions=f"You are {name}.",
        provider=provider or MockAIProvider([reply]),
        **kwargs,
    )


def make_context(**data: Any) -> ExecutionContext:
    return ExecutionContext(data=data)


def memory_config(
    gateway: MockMemoryGateway,
    *,
    history: bool = True,
    chats: bool = True,
    **chat_options: Any,
) -> MemoryConfig:
    return MemoryConfig(
        gateway=gateway,
        history=HistoryConfig(enabled=history),
        chats=ChatsConfig(enabled=chats, **chat_options),
    )


def chunk_types(chunks: Sequence[UIChunk]) -> list[str]:
    return [c.type for c in chunks]


def of_type(chunks: Sequence[UIChunk], chunk_type: str) -> list[Any]:
    return [c for c in chunks if c.type == chunk_type]


def streamed_text(chunks: Sequence[UIChunk]) -> str:
    return "".join(c.delta for c in of_type(chunks, "text-delta"))
