"""Conversation search and the ``search_messages`` tool."""

from __future__ import annotations

import logging
from typing import Any

from handoffkit.memory.base import MemoryGateway
from handoffkit.models.memory import StoredMessage
from handoffkit.tools.base import Tool, ToolCallOptions

logger = logging.getLogger("handoffkit.memory.search")

SEARCH_MESSAGES_TOOL_NAME = "search_messages"

# Messages scanned when the gateway cannot search natively
FALLBACK_SCAN_LIMIT = 100


async def search_conversation(
    gateway: MemoryGateway,
    query: str,
    *,
    chat_id: str | None = None,
    user_id: str | None = None,
    limit: int = 10,
) -> list[StoredMessage]:
    """Messages containing *query* (case-insensitive).

    Uses the gateway's native search when it has one.  Otherwise, or if the
    native search fails, scans the most recent messages of *chat_id*;
    searching across a user's chats needs native search.
    """
    if gateway.supports_search:
        try:
            return await gateway.search_messages(
                query, chat_id=chat_id, user_id=user_id, limit=limit
            )
        except Exception:
            logger.warning("Native message search failed, scanning history", exc_info=True)
    if chat_id is None:
        return []
    messages = await gateway.get_messages(chat_id, limit=max(limit, FALLBACK_SCAN_LIMIT))
    needle = query.lower()
    return [m for m in messages if needle in m.content.lower()][:limit]


def _describe(message: StoredMessage) -> dict[str, Any]:
    return {
        "content": message.content,
        "role": message.role,
        "timestamp": message.timestamp.isoformat(),
    }


def build_search_messages_tool(gateway: MemoryGateway, default_scope: str = "chat") -> Tool:
    """Tool letting an agent look up earlier messages instead of asking again.

    Scope ``chat`` searches the current chat, ``user`` every chat of the
    current user.  Failures come back as ``{"success": False, "error": ...}``.
    """

    async def _execute(arguments: dict[str, Any], options: ToolCallOptions) -> dict[str, Any]:
        ctx = options.context
        scope = arguments.get("scope") or default_scope
        query = str(arguments.get("query", ""))
        limit = int(arguments.get("limit") or 10)
        if scope == "chat" and not ctx.chat_id:
            return {"success": False, "error": "Chat ID not available in context"}
        if scope == "user" and not ctx.user_id:
            return {"success": False, "error": "User ID not available in context"}
        try:
            found = await search_conversation(
                gateway,
                query,
                chat_id=ctx.chat_id if scope == "chat" else None,
                user_id=ctx.user_id if scope == "user" else None,
                limit=limit,
            )
        except Exception as exc:
            logger.exception("Message search failed")
            return {"success": False, "error": str(exc)}
        return {"success": True, "results": [_describe(m) for m in found], "count": len(found)}

    return Tool(
        name=SEARCH_MESSAGES_TOOL_NAME,
        description=(
            "Search through conversation history to find relevant information from previous "
            "messages. Use this when you need to reference something the user mentioned "
            "earlier or find specific details from past conversations."
        ),
        execute=_execute,
        parameters={
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "The search query to find in conversation history",
                },
                "scope": {
                    "type": "string",
                    "enum": ["chat", "user"],
                    "description": (
                        "Where to search: 'chat' for the current conversation only, "
                        "'user' for all chats by this user"
                    ),
                },
                "limit": {
                    "type": "integer",
                    "description": "Maximum number of results to return",
                },
            },
            "required": ["query"],
        },
    )
