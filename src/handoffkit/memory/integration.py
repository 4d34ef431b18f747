"""Memory gateway integration around a turn.

Before round 0 the turn preloads history, working memory and the chat record
concurrently.  After the stream finishes it persists the user/assistant pair
and bumps the chat session.  Every failure here degrades the feature and is
logged; none of it reaches the visible stream.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime

from handoffkit.context import ExecutionContext
from handoffkit.errors import MemoryGatewayError
from handoffkit.memory.base import MemoryGateway
from handoffkit.memory.config import MemoryConfig
from handoffkit.memory.working import format_working_memory
from handoffkit.models.enums import MemoryScope, MessageRole
from handoffkit.models.memory import ChatSession, StoredMessage
from handoffkit.providers.ai.base import AIMessage
from handoffkit.telemetry.base import Attr, SpanKind, TelemetryProvider
from handoffkit.telemetry.noop import NoopTelemetryProvider

logger = logging.getLogger("handoffkit.memory.integration")


@dataclass
class PreloadedMemory:
    """Everything read from the gateway before round 0."""

    history: list[AIMessage] = field(default_factory=list)
    working_memory: str = ""
    chat: ChatSession | None = None
    chat_loaded: bool = False

    @property
    def is_first_message(self) -> bool:
        """True when the chat record is missing or has no messages yet."""
        return self.chat_loaded and (self.chat is None or self.chat.message_count == 0)


async def load_history(config: MemoryConfig | None, context: ExecutionContext) -> list[AIMessage]:
    """Load up to ``history.limit`` prior messages, oldest first.

    Returns an empty list when history is disabled, the gateway or chat id
    is missing, or the load fails.
    """
    if config is None or not config.history.enabled:
        return []
    gateway = config.gateway
    if gateway is None:
        logger.warning("History enabled but no memory gateway configured")
        return []
    if not gateway.supports_history:
        logger.warning("Memory gateway %s does not support history", gateway.name)
        return []
    chat_id = context.chat_id
    if not chat_id:
        logger.warning("Cannot load history: chat id missing from context")
        return []
    try:
        stored = await gateway.get_messages(chat_id, limit=config.history.limit)
    except Exception:
        logger.exception("Load history failed", extra={"chat_id": chat_id})
        return []
    logger.debug("Loaded %d history messages", len(stored), extra={"chat_id": chat_id})
    return [AIMessage(role=str(m.role), content=m.content) for m in stored]


async def load_working_memory(config: MemoryConfig | None, context: ExecutionContext) -> str:
    """Render the scoped working memory record as a system-prompt addition."""
    if config is None or not config.working_memory.enabled or config.gateway is None:
        return ""
    scope = config.working_memory.scope
    chat_id, user_id = context.chat_id, context.user_id
    if (scope == MemoryScope.CHAT and not chat_id) or (scope == MemoryScope.USER and not user_id):
        logger.warning("Cannot load working memory: no %s id in context", scope)
        return ""
    try:
        record = await config.gateway.get_working_memory(
            scope=scope, chat_id=chat_id, user_id=user_id
        )
    except Exception:
        logger.exception("Failed to load working memory")
        return ""
    return format_working_memory(record)


async def load_chat(config: MemoryConfig | None, context: ExecutionContext) -> ChatSession | None:
    """Fetch the chat record, raising when the lookup cannot be made."""
    if config is None or config.gateway is None or not config.chats.enabled:
        raise LookupError("chats disabled")
    if not config.gateway.supports_chats:
        raise LookupError(f"{config.gateway.name} does not support chats")
    chat_id = context.chat_id
    if not chat_id:
        raise LookupError("chat id missing from context")
    return await config.gateway.get_chat(chat_id)


async def preload(
    config: MemoryConfig | None,
    context: ExecutionContext,
    *,
    telemetry: TelemetryProvider | None = None,
) -> PreloadedMemory:
    """Issue the preload reads concurrently and await them jointly."""
    if config is None or config.gateway is None:
        return PreloadedMemory()
    telemetry = telemetry or NoopTelemetryProvider()
    with telemetry.span(
        SpanKind.MEMORY_LOAD,
        "memory.load",
        attributes={Attr.CHAT_ID: context.chat_id},
    ) as span_id:
        history, working, chat = await asyncio.gather(
            load_history(config, context),
            load_working_memory(config, context),
            load_chat(config, context),
            return_exceptions=True,
        )
        telemetry.set_attribute(
            span_id, Attr.MEMORY_MESSAGE_COUNT, len(history) if isinstance(history, list) else 0
        )

    result = PreloadedMemory(
        history=history if isinstance(history, list) else [],
        working_memory=working if isinstance(working, str) else "",
    )
    if isinstance(chat, LookupError):
        logger.debug("Chat record not loaded: %s", chat)
    elif isinstance(chat, BaseException):
        logger.error("Failed to load chat record: %s", chat)
    else:
        result.chat = chat
        result.chat_loaded = True
    return result


async def update_chat_session(
    gateway: MemoryGateway,
    chat_id: str,
    user_id: str | None,
    increment_by: int,
) -> ChatSession:
    """Increment ``message_count`` on the chat record, creating it if missing."""
    now = datetime.now(UTC)
    existing = await gateway.get_chat(chat_id)
    if existing is not None:
        chat = existing.model_copy(
            update={"message_count": existing.message_count + increment_by, "updated_at": now}
        )
    else:
        chat = ChatSession(
            chat_id=chat_id,
            user_id=user_id,
            message_count=increment_by,
            created_at=now,
            updated_at=now,
        )
    await gateway.save_chat(chat)
    return chat


async def save_conversation(
    config: MemoryConfig | None,
    context: ExecutionContext,
    user_text: str,
    assistant_text: str,
    *,
    telemetry: TelemetryProvider | None = None,
) -> int:
    """Persist the turn's user/assistant pair and update the chat session.

    The two message writes run in parallel.  The assistant message is
    skipped when empty.  Returns the number of messages saved.

    Raises:
        MemoryGatewayError: One of the writes failed.  Messages that did
            save are still counted on the chat record.
    """
    if config is None or config.gateway is None or not config.history.enabled:
        return 0
    gateway = config.gateway
    if not gateway.supports_history:
        return 0
    chat_id, user_id = context.chat_id, context.user_id
    if not chat_id:
        logger.warning("Cannot save messages: chat id missing from context")
        return 0

    now = datetime.now(UTC)
    messages = [
        StoredMessage(
            chat_id=chat_id,
            user_id=user_id,
            role=MessageRole.USER,
            content=user_text,
            timestamp=now,
        )
    ]
    if assistant_text:
        messages.append(
            StoredMessage(
                chat_id=chat_id,
                user_id=user_id,
                role=MessageRole.ASSISTANT,
                content=assistant_text,
                timestamp=now,
            )
        )
    else:
        logger.warning("Skipping assistant message save: empty response")

    telemetry = telemetry or NoopTelemetryProvider()
    with telemetry.span(
        SpanKind.MEMORY_SAVE,
        "memory.save",
        attributes={Attr.CHAT_ID: chat_id, Attr.MEMORY_OPERATION: "save_conversation"},
    ) as span_id:
        results = await asyncio.gather(
            *(gateway.save_message(m) for m in messages), return_exceptions=True
        )
        failures = [r for r in results if isinstance(r, BaseException)]
        saved = len(results) - len(failures)
        telemetry.set_attribute(span_id, Attr.MEMORY_MESSAGE_COUNT, saved)

        if saved and config.chats.enabled and gateway.supports_chats:
            try:
                await update_chat_session(gateway, chat_id, user_id, saved)
            except Exception as exc:
                failures.append(exc)

    logger.debug("Saved %d message(s)", saved, extra={"chat_id": chat_id})
    if failures:
        raise MemoryGatewayError(
            f"Failed to save conversation for chat {chat_id}: {failures[0]}"
        ) from failures[0]
    return saved
