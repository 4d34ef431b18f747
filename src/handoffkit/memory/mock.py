"""Mock memory gateway for testing."""

from __future__ import annotations

from dataclasses import dataclass

from handoffkit.memory.in_memory import InMemoryMemoryGateway
from handoffkit.models.enums import MemoryScope
from handoffkit.models.memory import ChatSession, StoredMessage, WorkingMemory


@dataclass
class _WorkingMemoryCall:
    scope: MemoryScope
    chat_id: str | None
    user_id: str | None
    content: str | None = None


@dataclass
class _GetMessagesCall:
    chat_id: str
    limit: int | None


class MockMemoryGateway(InMemoryMemoryGateway):
    """In-memory gateway that records calls and can inject failures.

    ``fail_on`` names methods that raise ``RuntimeError`` instead of running,
    e.g. ``MockMemoryGateway(fail_on={"save_message"})``.
    """

    def __init__(
        self,
        *,
        fail_on: set[str] | None = None,
        supports_history: bool = True,
        supports_chats: bool = True,
        supports_search: bool = True,
    ) -> None:
        super().__init__()
        self.fail_on = fail_on or set()
        self._history = supports_history
        self._chats_enabled = supports_chats
        self._search = supports_search
        self.working_memory_reads: list[_WorkingMemoryCall] = []
        self.working_memory_writes: list[_WorkingMemoryCall] = []
        self.get_messages_calls: list[_GetMessagesCall] = []
        self.search_queries: list[str] = []
        self.saved_messages: list[StoredMessage] = []
        self.saved_chats: list[ChatSession] = []
        self.title_updates: list[tuple[str, str]] = []

    @property
    def supports_history(self) -> bool:
        return self._history

    @property
    def supports_chats(self) -> bool:
        return self._chats_enabled

    @property
    def supports_titles(self) -> bool:
        return self._chats_enabled

    @property
    def supports_search(self) -> bool:
        return self._search

    def _maybe_fail(self, method: str) -> None:
        if method in self.fail_on:
            raise RuntimeError(f"{method} failed")

    async def get_working_memory(
        self,
        *,
        scope: MemoryScope,
        chat_id: str | None = None,
        user_id: str | None = None,
    ) -> WorkingMemory | None:
        self.working_memory_reads.append(_WorkingMemoryCall(scope, chat_id, user_id))
        self._maybe_fail("get_working_memory")
        return await super().get_working_memory(scope=scope, chat_id=chat_id, user_id=user_id)

    async def update_working_memory(
        self,
        *,
        scope: MemoryScope,
        content: str,
        chat_id: str | None = None,
        user_id: str | None = None,
    ) -> None:
        self.working_memory_writes.append(_WorkingMemoryCall(scope, chat_id, user_id, content))
        self._maybe_fail("update_working_memory")
        await super().update_working_memory(
            scope=scope, content=content, chat_id=chat_id, user_id=user_id
        )

    async def save_message(self, message: StoredMessage) -> None:
        self._maybe_fail("save_message")
        self.saved_messages.append(message)
        await super().save_message(message)

    async def get_messages(self, chat_id: str, *, limit: int | None = None) -> list[StoredMessage]:
        self.get_messages_calls.append(_GetMessagesCall(chat_id, limit))
        self._maybe_fail("get_messages")
        return await super().get_messages(chat_id, limit=limit)

    async def search_messages(
        self,
        query: str,
        *,
        chat_id: str | None = None,
        user_id: str | None = None,
        limit: int | None = None,
    ) -> list[StoredMessage]:
        self.search_queries.append(query)
        self._maybe_fail("search_messages")
        return await super().search_messages(
            query, chat_id=chat_id, user_id=user_id, limit=limit
        )

    async def save_chat(self, chat: ChatSession) -> None:
        self._maybe_fail("save_chat")
        self.saved_chats.append(chat)
        await super().save_chat(chat)

    async def get_chat(self, chat_id: str) -> ChatSession | None:
        self._maybe_fail("get_chat")
        return await super().get_chat(chat_id)

    async def update_chat_title(self, chat_id: str, title: str) -> None:
        self._maybe_fail("update_chat_title")
        self.title_updates.append((chat_id, title))
        await super().update_chat_title(chat_id, title)
