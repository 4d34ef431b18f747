"""Tool definition consumed by the agent executor."""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from handoffkit.providers.ai.base import AITool

if TYPE_CHECKING:
    from handoffkit.context import ExecutionContext


@dataclass(frozen=True)
class ToolCallOptions:
    """Per-call information handed to a tool's ``execute`` function."""

    tool_call_id: str
    context: ExecutionContext


ToolExecute = Callable[[dict[str, Any], ToolCallOptions], Awaitable[Any] | Any]


def _empty_schema() -> dict[str, Any]:
    return {"type": "object", "properties": {}}


@dataclass(frozen=True)
class Tool:
    """A named function the model may call.

    ``execute`` receives the parsed arguments and a :class:`ToolCallOptions`
    and may be sync or async.  Its return value becomes the tool output:
    strings pass through, anything else is JSON-serialized for the model.
    """

    name: str
    description: str
    execute: ToolExecute
    parameters: dict[str, Any] = field(default_factory=_empty_schema)

    def to_ai_tool(self) -> AITool:
        return AITool(name=self.name, description=self.description, parameters=self.parameters)

    async def run(self, arguments: dict[str, Any], options: ToolCallOptions) -> Any:
        result = self.execute(arguments, options)
        if inspect.isawaitable(result):
            result = await result
        return result


def tool(
    name: str,
    description: str,
    parameters: dict[str, Any] | None = None,
) -> Callable[[ToolExecute], Tool]:
    """Decorator form of :class:`Tool`.

    Example::

        @tool("get_weather", "Current weather for a city",
              {"type": "object", "properties": {"city": {"type": "string"}}})
        async def get_weather(args, options):
            return {"city": args["city"], "temp": 21}
    """

    def _wrap(fn: ToolExecute) -> Tool:
        return Tool(
            name=name,
            description=description,
            execute=fn,
            parameters=parameters or _empty_schema(),
        )

    return _wrap
