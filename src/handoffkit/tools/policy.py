"""Which tools an agent may call: glob rules plus an optional dynamic check."""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from fnmatch import fnmatch
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

from handoffkit.errors import ToolPermissionDeniedError

if TYPE_CHECKING:
    from handoffkit.context import ExecutionContext

# (tool_name, arguments, context) -> allowed, or a denial reason string
PermissionCheck = Callable[..., Awaitable[bool | str] | bool | str]


class ToolPolicy(BaseModel):
    """Gate on tool calls, evaluated before a tool executes.

    ``deny`` and ``allow`` hold :func:`fnmatch.fnmatch` patterns such as
    ``"delete_*"``.  A name matching any deny pattern is refused.  When
    ``allow`` is non-empty the name must also match one of its patterns.
    Calls passing both are handed to ``check`` (sync or async), which
    returns ``True`` to permit, or ``False`` / a reason string to refuse.

    The handoff tool bypasses the policy.
    """

    allow: list[str] = Field(default_factory=list)
    deny: list[str] = Field(default_factory=list)
    check: PermissionCheck | None = None

    def is_allowed(self, tool_name: str) -> bool:
        """Static glob decision for *tool_name*; ``check`` is not consulted."""
        if any(fnmatch(tool_name, p) for p in self.deny):
            return False
        if not self.allow:
            return True
        return any(fnmatch(tool_name, p) for p in self.allow)

    async def authorize(
        self,
        tool_name: str,
        arguments: dict[str, Any],
        context: ExecutionContext,
    ) -> None:
        """Raise :class:`ToolPermissionDeniedError` unless the call is permitted."""
        if not self.is_allowed(tool_name):
            raise ToolPermissionDeniedError(tool_name)
        if self.check is None:
            return
        decision = self.check(tool_name, arguments, context)
        if inspect.isawaitable(decision):
            decision = await decision
        if decision is True:
            return
        reason = decision if isinstance(decision, str) else None
        raise ToolPermissionDeniedError(tool_name, reason)
