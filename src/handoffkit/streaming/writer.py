"""Queue-backed UI message stream and its writer.

``execute`` runs as its own task once the stream is first iterated and
writes chunks through a :class:`UIMessageStreamWriter`.  The consumer pulls
them in write order.  A consumer that stops iterating never cancels
``execute``; writes simply accumulate until the stream closes.

Two kinds of side tasks hang off the writer:

- **attached** (:meth:`UIMessageStreamWriter.attach`): may still write
  chunks, e.g. a chat title.  The stream waits up to ``drain_timeout``
  seconds for them after ``execute`` returns, then closes regardless.
- **detached** (:meth:`UIMessageStreamWriter.spawn`): side effects such as
  persistence.  The stream never waits for them.

Use :meth:`UIMessageStream.wait_for_background` to await both.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Coroutine
from typing import Any

from handoffkit.core.tasks import BackgroundTasks, ErrorCallback
from handoffkit.models.chunks import (
    AgentHandoffChunk,
    AgentHandoffData,
    AgentStatusChunk,
    AgentStatusData,
    ChatTitleChunk,
    ChatTitleData,
    ErrorChunk,
    SuggestionsChunk,
    SuggestionsData,
    UIChunk,
    chunk_to_dict,
)
from handoffkit.models.enums import AgentStatus, RoutingStrategy

logger = logging.getLogger("handoffkit.streaming.writer")

UI_MESSAGE_STREAM_HEADERS: dict[str, str] = {
    "content-type": "text/event-stream",
    "cache-control": "no-cache",
    "connection": "keep-alive",
    "x-vercel-ai-ui-message-stream": "v1",
    "x-accel-buffering": "no",
}

_CLOSE = object()


class UIMessageStreamWriter:
    """Write handle for a :class:`UIMessageStream`. Single consumer."""

    def __init__(
        self,
        queue: asyncio.Queue[Any],
        *,
        on_background_error: ErrorCallback | None = None,
    ) -> None:
        self._queue = queue
        self._closed = False
        self._attached = BackgroundTasks()
        self._detached = BackgroundTasks(on_error=on_background_error)

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, chunk: UIChunk) -> None:
        if self._closed:
            logger.debug("Dropping %s chunk written after stream close", chunk.type)
            return
        self._queue.put_nowait(chunk)

    def attach(self, coro: Coroutine[Any, Any, Any], *, name: str) -> asyncio.Task[Any]:
        """Run *coro* alongside the stream; it may write until the stream closes."""
        return self._attached.spawn(coro, name=name)

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: str) -> asyncio.Task[Any]:
        """Run *coro* detached from the stream. Errors are only logged."""
        return self._detached.spawn(coro, name=name)

    async def _drain(self, timeout: float) -> None:
        if not await self._attached.wait(timeout):
            logger.debug(
                "Closing stream with %d attached task(s) in flight", self._attached.pending
            )

    def _close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSE)

    async def _wait_background(self) -> None:
        await self._attached.wait()
        await self._detached.wait()


class UIMessageStream:
    """Async-iterable stream of :data:`UIChunk` produced by ``execute``.

    Args:
        execute: Coroutine function driving the stream through a writer.
        on_error: Maps an exception escaping ``execute`` to the text of the
            ``error`` chunk written in its place.
        on_background_error: Receives failures of detached tasks.
        drain_timeout: Seconds to wait for attached tasks before closing.
    """

    def __init__(
        self,
        execute: Callable[[UIMessageStreamWriter], Awaitable[None]],
        *,
        on_error: Callable[[BaseException], str] | None = None,
        on_background_error: ErrorCallback | None = None,
        drain_timeout: float = 2.0,
    ) -> None:
        self._execute = execute
        self._on_error = on_error or str
        self._drain_timeout = drain_timeout
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self.writer = UIMessageStreamWriter(self._queue, on_background_error=on_background_error)
        self._task: asyncio.Task[None] | None = None
        self._consumed = False

    def _ensure_started(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._run(), name="ui-message-stream")

    async def _run(self) -> None:
        try:
            await self._execute(self.writer)
        except Exception as exc:
            logger.exception("Stream execute failed")
            self.writer.write(ErrorChunk(error_text=self._on_error(exc)))
        finally:
            await self.writer._drain(self._drain_timeout)
            self.writer._close()

    async def __aiter__(self) -> AsyncIterator[UIChunk]:
        if self._consumed:
            raise RuntimeError("UIMessageStream can only be consumed once")
        self._consumed = True
        self._ensure_started()
        while True:
            item = await self._queue.get()
            if item is _CLOSE:
                return
            yield item

    async def collect(self) -> list[UIChunk]:
        """Consume the whole stream into a list."""
        return [chunk async for chunk in self]

    async def to_sse(self) -> AsyncIterator[str]:
        """Server-sent-event framing of the stream, ending with ``[DONE]``."""
        async for chunk in self:
            yield f"data: {json.dumps(chunk_to_dict(chunk), separators=(',', ':'))}\n\n"
        yield "data: [DONE]\n\n"

    async def wait_for_background(self) -> None:
        """Await ``execute`` plus every attached and detached task.

        Persistence runs detached, so assertions on stored messages must
        await this rather than assume completion at stream end.
        """
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)
        await self.writer._wait_background()


# -- Helpers ------------------------------------------------------------------


def write_agent_status(writer: UIMessageStreamWriter, status: AgentStatus, agent: str) -> None:
    writer.write(AgentStatusChunk(data=AgentStatusData(status=status, agent=agent)))


def write_agent_handoff(
    writer: UIMessageStreamWriter,
    *,
    from_agent: str,
    to: str,
    routing_strategy: RoutingStrategy,
    reason: str | None = None,
) -> None:
    writer.write(
        AgentHandoffChunk(
            data=AgentHandoffData(
                from_agent=from_agent,
                to=to,
                reason=reason,
                routing_strategy=routing_strategy,
            )
        )
    )


def write_chat_title(writer: UIMessageStreamWriter, chat_id: str, title: str) -> None:
    writer.write(ChatTitleChunk(data=ChatTitleData(chat_id=chat_id, title=title)))


def write_suggestions(writer: UIMessageStreamWriter, prompts: list[str]) -> None:
    writer.write(SuggestionsChunk(data=SuggestionsData(prompts=prompts)))
