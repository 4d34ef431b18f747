"""Tests for the memory gateway contract and its in-memory implementations."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from handoffkit.memory.base import MemoryGateway
from handoffkit.memory.in_memory import InMemoryMemoryGateway
from handoffkit.memory.mock import MockMemoryGateway
from handoffkit.models.enums import MemoryScope, MessageRole
from handoffkit.models.memory import ChatSession, StoredMessage, WorkingMemory


class _WorkingOnlyGateway(MemoryGateway):
    def __init__(self) -> None:
        self.record: WorkingMemory | None = None

    async def get_working_memory(self, *, scope, chat_id=None, user_id=None):
        return self.record

    async def update_working_memory(self, *, scope, content, chat_id=None, user_id=None):
        self.record = WorkingMemory(content=content)


def _message(chat_id: str, content: str, role: MessageRole = MessageRole.USER) -> StoredMessage:
    return StoredMessage(chat_id=chat_id, role=role, content=content)


class TestMemoryGatewayDefaults:
    async def test_optional_capabilities_default_off(self) -> None:
        gateway = _WorkingOnlyGateway()

        assert gateway.name == "_WorkingOnlyGateway"
        assert not gateway.supports_history
        assert not gateway.supports_chats
        assert not gateway.supports_titles
        assert await gateway.get_messages("c1") == []
        assert await gateway.get_chat("c1") is None
        await gateway.save_message(_message("c1", "hi"))
        await gateway.update_chat_title("c1", "Title")

    def test_abstract_methods_required(self) -> None:
        with pytest.raises(TypeError):
            MemoryGateway()  # type: ignore[abstract]


class TestInMemoryMemoryGateway:
    async def test_working_memory_is_scoped(self) -> None:
        gateway = InMemoryMemoryGateway()
        await gateway.update_working_memory(scope=MemoryScope.CHAT, content="chat", chat_id="c1")
        await gateway.update_working_memory(scope=MemoryScope.USER, content="user", user_id="u1")

        chat = await gateway.get_working_memory(scope=MemoryScope.CHAT, chat_id="c1")
        user = await gateway.get_working_memory(scope=MemoryScope.USER, user_id="u1")
        other = await gateway.get_working_memory(scope=MemoryScope.CHAT, chat_id="c2")

        assert chat is not None and chat.content == "chat"
        assert user is not None and user.content == "user"
        assert other is None

    async def test_working_memory_requires_scope_id(self) -> None:
        gateway = InMemoryMemoryGateway()
        with pytest.raises(ValueError):
            await gateway.get_working_memory(scope=MemoryScope.USER, chat_id="c1")

    async def test_messages_are_append_only_and_limited(self) -> None:
        gateway = InMemoryMemoryGateway()
        for i in range(5):
            await gateway.save_message(_message("c1", f"m{i}"))

        recent = await gateway.get_messages("c1", limit=2)
        everything = await gateway.get_messages("c1")

        assert [m.content for m in recent] == ["m3", "m4"]
        assert len(everything) == 5
        assert await gateway.get_messages("c1", limit=0) == []

    async def test_chats_sorted_by_recency(self) -> None:
        gateway = InMemoryMemoryGateway()
        older = ChatSession(chat_id="a", user_id="u1", updated_at=datetime(2024, 1, 1, tzinfo=UTC))
        newer = ChatSession(chat_id="b", user_id="u1", updated_at=datetime(2024, 6, 1, tzinfo=UTC))
        await gateway.save_chat(older)
        await gateway.save_chat(newer)
        await gateway.save_chat(ChatSession(chat_id="c", user_id="u2"))

        chats = await gateway.get_chats("u1")

        assert [c.chat_id for c in chats] == ["b", "a"]
        assert len(await gateway.get_chats(limit=1)) == 1

    async def test_title_before_chat_record_creates_it(self) -> None:
        gateway = InMemoryMemoryGateway()
        await gateway.update_chat_title("c1", "Weather talk")

        chat = await gateway.get_chat("c1")

        assert chat is not None
        assert chat.title == "Weather talk"
        assert chat.message_count == 0

    async def test_title_updates_existing_record(self) -> None:
        gateway = InMemoryMemoryGateway()
        await gateway.save_chat(ChatSession(chat_id="c1", message_count=4))
        await gateway.update_chat_title("c1", "New")

        chat = await gateway.get_chat("c1")
        assert chat is not None
        assert chat.title == "New"
        assert chat.message_count == 4

    async def test_delete_chat(self) -> None:
        gateway = InMemoryMemoryGateway()
        await gateway.save_chat(ChatSession(chat_id="c1"))
        await gateway.save_message(_message("c1", "hi"))

        await gateway.delete_chat("c1")

        assert await gateway.get_chat("c1") is None
        assert await gateway.get_messages("c1") == []


class TestMockMemoryGateway:
    async def test_records_calls(self) -> None:
        gateway = MockMemoryGateway()
        await gateway.save_message(_message("c1", "hi"))
        await gateway.get_messages("c1", limit=3)
        await gateway.update_chat_title("c1", "T")

        assert len(gateway.saved_messages) == 1
        assert gateway.get_messages_calls[0].limit == 3
        assert gateway.title_updates == [("c1", "T")]

    async def test_fail_on_injects_errors(self) -> None:
        gateway = MockMemoryGateway(fail_on={"save_message"})
        with pytest.raises(RuntimeError, match="save_message failed"):
            await gateway.save_message(_message("c1", "hi"))
        assert gateway.saved_messages == []

    def test_capabilities_configurable(self) -> None:
        gateway = MockMemoryGateway(supports_history=False, supports_chats=False)
        assert not gateway.supports_history
        assert not gateway.supports_chats
        assert not gateway.supports_titles
