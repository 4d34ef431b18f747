"""Process-local memory gateway backed by dicts."""

from __future__ import annotations

from datetime import UTC, datetime

from handoffkit.memory.base import MemoryGateway
from handoffkit.models.enums import MemoryScope
from handoffkit.models.memory import ChatSession, StoredMessage, WorkingMemory


def _scope_key(scope: MemoryScope, chat_id: str | None, user_id: str | None) -> str:
    scoped_id = chat_id if scope == MemoryScope.CHAT else user_id
    if not scoped_id:
        raise ValueError(f"{scope}-scoped working memory requires a {scope} id")
    return f"{scope}:{scoped_id}"


class InMemoryMemoryGateway(MemoryGateway):
    """Keeps everything in memory. Suitable for development and tests."""

    def __init__(self) -> None:
        self._working: dict[str, WorkingMemory] = {}
        self._messages: dict[str, list[StoredMessage]] = {}
        self._chats: dict[str, ChatSession] = {}

    @property
    def supports_history(self) -> bool:
        return True

    @property
    def supports_chats(self) -> bool:
        return True

    @property
    def supports_titles(self) -> bool:
        return True

    @property
    def supports_search(self) -> bool:
        return True

    async def get_working_memory(
        self,
        *,
        scope: MemoryScope,
        chat_id: str | None = None,
        user_id: str | None = None,
    ) -> WorkingMemory | None:
        return self._working.get(_scope_key(scope, chat_id, user_id))

    async def update_working_memory(
        self,
        *,
        scope: MemoryScope,
        content: str,
        chat_id: str | None = None,
        user_id: str | None = None,
    ) -> None:
        self._working[_scope_key(scope, chat_id, user_id)] = WorkingMemory(content=content)

    async def save_message(self, message: StoredMessage) -> None:
        self._messages.setdefault(message.chat_id, []).append(message)

    async def get_messages(self, chat_id: str, *, limit: int | None = None) -> list[StoredMessage]:
        messages = self._messages.get(chat_id, [])
        if limit is not None:
            messages = messages[-limit:] if limit > 0 else []
        return list(messages)

    async def search_messages(
        self,
        query: str,
        *,
        chat_id: str | None = None,
        user_id: str | None = None,
        limit: int | None = None,
    ) -> list[StoredMessage]:
        if chat_id is not None:
            pool = self._messages.get(chat_id, [])
        elif user_id is not None:
            pool = [m for msgs in self._messages.values() for m in msgs if m.user_id == user_id]
        else:
            return []
        needle = query.lower()
        found = [m for m in pool if needle in m.content.lower()]
        return found[:limit] if limit is not None else found

    async def save_chat(self, chat: ChatSession) -> None:
        self._chats[chat.chat_id] = chat

    async def get_chat(self, chat_id: str) -> ChatSession | None:
        return self._chats.get(chat_id)

    async def get_chats(
        self, user_id: str | None = None, *, limit: int | None = None
    ) -> list[ChatSession]:
        chats = [c for c in self._chats.values() if user_id is None or c.user_id == user_id]
        chats.sort(key=lambda c: c.updated_at, reverse=True)
        return chats[:limit] if limit is not None else chats

    async def update_chat_title(self, chat_id: str, title: str) -> None:
        chat = self._chats.get(chat_id)
        if chat is None:
            # Titles can land before the first save creates the record
            self._chats[chat_id] = ChatSession(chat_id=chat_id, title=title)
            return
        self._chats[chat_id] = chat.model_copy(
            update={"title": title, "updated_at": datetime.now(UTC)}
        )

    async def delete_chat(self, chat_id: str) -> None:
        self._chats.pop(chat_id, None)
        self._messages.pop(chat_id, None)
