"""Turn-scoped key/value memory shared by every agent across handoffs."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from handoffkit.tools.base import Tool, ToolCallOptions

if TYPE_CHECKING:
    from handoffkit.context import ExecutionContext

SHARED_MEMORY_TOOL_NAME = "shared_memory"

_METADATA_KEY = "shared_memory"


def _store(context: ExecutionContext) -> dict[str, Any]:
    return context.metadata.setdefault(_METADATA_KEY, {})


def get_shared_memory(context: ExecutionContext, key: str) -> Any:
    return context.metadata.get(_METADATA_KEY, {}).get(key)


def set_shared_memory(context: ExecutionContext, key: str, value: Any) -> None:
    _store(context)[key] = value


def _execute(arguments: dict[str, Any], options: ToolCallOptions) -> dict[str, Any]:
    operation = arguments.get("operation")
    key = str(arguments.get("key", ""))
    store = _store(options.context)
    if operation == "read":
        return {"key": key, "value": store.get(key), "exists": key in store}
    if operation == "write":
        if "value" not in arguments or arguments["value"] is None:
            raise ValueError("Value is required for write operation")
        store[key] = arguments["value"]
        return {"key": key, "value": arguments["value"], "success": True}
    raise ValueError(f"Invalid operation: {operation}")


def build_shared_memory_tool() -> Tool:
    """Tool reading and writing :func:`get_shared_memory` values.

    Values live on the turn's :class:`ExecutionContext`, so a specialist
    sees what an earlier agent of the same turn wrote.
    """
    return Tool(
        name=SHARED_MEMORY_TOOL_NAME,
        description="Read or write shared memory that persists across agent handoffs",
        execute=_execute,
        parameters={
            "type": "object",
            "properties": {
                "operation": {
                    "type": "string",
                    "enum": ["read", "write"],
                    "description": "Operation to perform",
                },
                "key": {"type": "string", "description": "Memory key to read or write"},
                "value": {"description": "Value to write (required for write operation)"},
            },
            "required": ["operation", "key"],
        },
    )
