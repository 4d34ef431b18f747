"""Abstract base class for memory gateways."""

from __future__ import annotations

from abc import ABC, abstractmethod

from handoffkit.models.enums import MemoryScope
from handoffkit.models.memory import ChatSession, StoredMessage, WorkingMemory


class MemoryGateway(ABC):
    """Contract for loading and saving durable conversational memory.

    Only working memory is mandatory.  History (``save_message`` /
    ``get_messages``), chat metadata (``save_chat`` / ``get_chat`` /
    ``update_chat_title``) and ``search_messages`` are optional capabilities
    advertised through the ``supports_*`` properties; their default
    implementations are no-ops so a gateway only overrides what its backend
    can do.  A missing capability degrades the matching feature instead of
    failing the turn.
    """

    @property
    def name(self) -> str:
        """Human-readable gateway name."""
        return type(self).__name__

    @property
    def supports_history(self) -> bool:
        """Whether ``save_message`` / ``get_messages`` are implemented."""
        return False

    @property
    def supports_chats(self) -> bool:
        """Whether ``save_chat`` / ``get_chat`` are implemented."""
        return False

    @property
    def supports_titles(self) -> bool:
        """Whether ``update_chat_title`` is implemented."""
        return False

    @property
    def supports_search(self) -> bool:
        """Whether ``search_messages`` is implemented natively."""
        return False

    @abstractmethod
    async def get_working_memory(
        self,
        *,
        scope: MemoryScope,
        chat_id: str | None = None,
        user_id: str | None = None,
    ) -> WorkingMemory | None:
        """Return the working memory record for the scoped id, if any."""
        ...

    @abstractmethod
    async def update_working_memory(
        self,
        *,
        scope: MemoryScope,
        content: str,
        chat_id: str | None = None,
        user_id: str | None = None,
    ) -> None:
        """Create or overwrite the working memory record for the scoped id."""
        ...

    async def save_message(self, message: StoredMessage) -> None:  # noqa: B027
        """Append a message to the chat's history (optional)."""

    async def get_messages(self, chat_id: str, *, limit: int | None = None) -> list[StoredMessage]:
        """Return the most recent *limit* messages, oldest first (optional)."""
        return []

    async def search_messages(
        self,
        query: str,
        *,
        chat_id: str | None = None,
        user_id: str | None = None,
        limit: int | None = None,
    ) -> list[StoredMessage]:
        """Messages containing *query*, in one chat or across a user's chats (optional)."""
        return []

    async def save_chat(self, chat: ChatSession) -> None:  # noqa: B027
        """Create or replace a chat session record (optional)."""

    async def get_chat(self, chat_id: str) -> ChatSession | None:
        """Return the chat session record, if any (optional)."""
        return None

    async def get_chats(
        self, user_id: str | None = None, *, limit: int | None = None
    ) -> list[ChatSession]:
        """Return chats, most recently updated first (optional)."""
        return []

    async def update_chat_title(self, chat_id: str, title: str) -> None:  # noqa: B027
        """Set the title of an existing chat (optional)."""

    async def delete_chat(self, chat_id: str) -> None:  # noqa: B027
        """Delete a chat and its messages (optional)."""

    async def close(self) -> None:  # noqa: B027
        """Release resources held by the gateway."""
