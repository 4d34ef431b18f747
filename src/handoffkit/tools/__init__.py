"""Tool definitions and access policy."""

from __future__ import annotations

from handoffkit.tools.base import Tool, ToolCallOptions, tool
from handoffkit.tools.policy import ToolPolicy
from handoffkit.tools.shared_memory import (
    SHARED_MEMORY_TOOL_NAME,
    build_shared_memory_tool,
    get_shared_memory,
    set_shared_memory,
)

__all__ = [
    "SHARED_MEMORY_TOOL_NAME",
    "Tool",
    "ToolCallOptions",
    "ToolPolicy",
    "build_shared_memory_tool",
    "get_shared_memory",
    "set_shared_memory",
    "tool",
]
