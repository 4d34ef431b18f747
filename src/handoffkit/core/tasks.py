"""Detached asyncio tasks with a log-only error channel."""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from collections.abc import Awaitable, Callable, Coroutine
from typing import Any

logger = logging.getLogger("handoffkit.core.tasks")

ErrorCallback = Callable[[BaseException], Any]


async def _await_callback(outcome: Awaitable[Any], task_name: str) -> None:
    try:
        await outcome
    except Exception:
        logger.exception("on_error callback raised for task %s", task_name)


class BackgroundTasks:
    """A set of fire-and-forget tasks.

    Failures never propagate to whoever spawned the task: they are logged
    and, when ``on_error`` is given, reported to it.  ``on_error`` may be a
    coroutine function; its coroutine then runs as one more tracked task.
    Callers that need to observe completion (tests, graceful shutdown) use
    :meth:`wait`.
    """

    def __init__(self, *, on_error: ErrorCallback | None = None) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()
        self._on_error = on_error

    @property
    def pending(self) -> int:
        return sum(1 for t in self._tasks if not t.done())

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: str) -> asyncio.Task[Any]:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        logger.error("Background task %s failed: %s", task.get_name(), exc)
        if self._on_error is None:
            return
        try:
            outcome = self._on_error(exc)
        except Exception:
            logger.exception("on_error callback raised for task %s", task.get_name())
            return
        if inspect.isawaitable(outcome):
            self.spawn(
                _await_callback(outcome, task.get_name()), name=f"{task.get_name()}:on_error"
            )

    async def wait(self, timeout: float | None = None) -> bool:
        """Wait until no task is running, including ones spawned meanwhile.

        Returns ``False`` if *timeout* elapsed with tasks still running.
        Tasks are never cancelled by waiting.
        """
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout
        while True:
            tasks = [t for t in self._tasks if not t.done()]
            if not tasks:
                return True
            remaining = None if deadline is None else deadline - loop.time()
            if remaining is not None and remaining <= 0:
                return False
            _, pending = await asyncio.wait(tasks, timeout=remaining)
            if pending:
                return False

    async def cancel_all(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError, Exception):
                await task
        self._tasks.clear()
