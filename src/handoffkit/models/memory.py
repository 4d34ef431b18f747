"""Durable memory records exchanged with a memory gateway."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field

from handoffkit.models.enums import MessageRole


class WorkingMemory(BaseModel):
    """Small persistent text blob scoped to a chat or a user."""

    content: str
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class StoredMessage(BaseModel):
    """A persisted conversational turn. Append-only."""

    chat_id: str
    user_id: str | None = None
    role: MessageRole
    content: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ChatSession(BaseModel):
    """Chat-level metadata. Created on first save, then incremented."""

    chat_id: str
    user_id: str | None = None
    title: str | None = None
    message_count: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
