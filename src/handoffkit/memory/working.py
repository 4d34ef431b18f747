"""Working memory prompt rendering and the ``update_working_memory`` tool."""

from __future__ import annotations

import logging
from typing import Any

from handoffkit.memory.config import MemoryConfig
from handoffkit.models.memory import WorkingMemory
from handoffkit.tools.base import Tool, ToolCallOptions

logger = logging.getLogger("handoffkit.memory.working")

WORKING_MEMORY_TOOL_NAME = "update_working_memory"

DEFAULT_TEMPLATE = """# Working Memory

## Key Facts
- [Important information goes here]

## Current Focus
- [What the user is working on]

## Preferences
- [User preferences and settings]
"""


def format_working_memory(memory: WorkingMemory | None) -> str:
    """Render a record as a system-prompt addition, or ``""`` when empty."""
    if memory is None or not memory.content:
        return ""
    return f"\n## Working Memory\n\n{memory.content}\n"


def working_memory_instructions(template: str | None = None) -> str:
    return f"""## Memory Instructions

You can remember important information using the `{WORKING_MEMORY_TOOL_NAME}` tool.

**When to use it:**
- User shares important facts about themselves
- You learn preferences or patterns
- Context changes that you'll need later

**How to use it:**
- Call `{WORKING_MEMORY_TOOL_NAME}` with updated content
- Follow the template structure below
- Update naturally - don't mention it to users

**Template:**
```
{template or DEFAULT_TEMPLATE}
```

Your memory persists across the conversation. Update it proactively."""


def build_working_memory_tool(config: MemoryConfig) -> Tool:
    """Tool that overwrites the scoped working memory record.

    Never raises into the model loop: problems are returned as text.
    """
    scope = config.working_memory.scope

    async def _execute(arguments: dict[str, Any], options: ToolCallOptions) -> str:
        gateway = config.gateway
        if gateway is None:
            logger.warning("Working memory tool called without a memory gateway")
            return "Memory system not configured"
        ctx = options.context
        chat_id, user_id = ctx.chat_id, ctx.user_id
        if (scope == "chat" and not chat_id) or (scope == "user" and not user_id):
            logger.warning("Working memory update skipped: no %s id in context", scope)
            return f"No {scope} id available"
        try:
            await gateway.update_working_memory(
                scope=scope,
                content=str(arguments.get("content", "")),
                chat_id=chat_id,
                user_id=user_id,
            )
        except Exception:
            logger.exception("Failed to update working memory")
            return "error"
        return "success"

    return Tool(
        name=WORKING_MEMORY_TOOL_NAME,
        description=(
            "Save user information (name, role, company, preferences) to persistent "
            "memory for future conversations."
        ),
        execute=_execute,
        parameters={
            "type": "object",
            "properties": {
                "content": {
                    "type": "string",
                    "description": (
                        "Updated working memory content in markdown format. Include user "
                        "preferences, role, company, and any important facts to remember."
                    ),
                }
            },
            "required": ["content"],
        },
    )
