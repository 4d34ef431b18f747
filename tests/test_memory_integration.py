"""Tests for preload, persistence and the working memory tool."""

from __future__ import annotations

import pytest

from handoffkit.errors import MemoryGatewayError
from handoffkit.memory.config import (
    ChatsConfig,
    GenerateSuggestionsConfig,
    GenerateTitleConfig,
    HistoryConfig,
    MemoryConfig,
    WorkingMemoryConfig,
)
from handoffkit.memory.integration import (
    load_history,
    load_working_memory,
    preload,
    save_conversation,
    update_chat_session,
)
from handoffkit.memory.mock import MockMemoryGateway
from handoffkit.memory.working import (
    WORKING_MEMORY_TOOL_NAME,
    build_working_memory_tool,
    format_working_memory,
)
from handoffkit.models.enums import MemoryScope, MessageRole
from handoffkit.models.memory import ChatSession, StoredMessage, WorkingMemory
from handoffkit.telemetry.base import SpanKind
from handoffkit.telemetry.mock import MockTelemetryProvider
from handoffkit.tools.base import ToolCallOptions
from tests.conftest import make_context, memory_config


class TestChatsConfig:
    def test_bool_flags_normalize(self) -> None:
        chats = ChatsConfig(enabled=True, generate_title=True, generate_suggestions=True)
        assert isinstance(chats.title, GenerateTitleConfig)
        assert isinstance(chats.suggestions, GenerateSuggestionsConfig)

    def test_disabled_flags(self) -> None:
        chats = ChatsConfig(generate_title=GenerateTitleConfig(enabled=False))
        assert chats.title is None
        assert chats.suggestions is None

    def test_defaults(self) -> None:
        config = MemoryConfig()
        assert config.history.limit == 10
        assert config.working_memory.scope == MemoryScope.CHAT
        assert config.chats.title_wait_seconds == 2.0
        assert GenerateSuggestionsConfig().min_response_length == 100


class TestLoadHistory:
    async def test_loads_limited_history_in_order(self, gateway: MockMemoryGateway) -> None:
        for i in range(4):
            role = MessageRole.USER if i % 2 == 0 else MessageRole.ASSISTANT
            await gateway.save_message(StoredMessage(chat_id="c1", role=role, content=f"m{i}"))
        config = MemoryConfig(gateway=gateway, history=HistoryConfig(enabled=True, limit=3))

        history = await load_history(config, make_context(chat_id="c1"))

        assert [(m.role, m.content) for m in history] == [
            ("assistant", "m1"),
            ("user", "m2"),
            ("assistant", "m3"),
        ]
        assert gateway.get_messages_calls[-1].limit == 3

    async def test_disabled_or_missing_chat_id(self, gateway: MockMemoryGateway) -> None:
        disabled = MemoryConfig(gateway=gateway)
        enabled = memory_config(gateway)

        assert await load_history(disabled, make_context(chat_id="c1")) == []
        assert await load_history(enabled, make_context()) == []
        assert gateway.get_messages_calls == []

    async def test_failure_degrades_to_empty(self) -> None:
        gateway = MockMemoryGateway(fail_on={"get_messages"})
        assert await load_history(memory_config(gateway), make_context(chat_id="c1")) == []


class TestLoadWorkingMemory:
    async def test_formats_record(self, gateway: MockMemoryGateway) -> None:
        await gateway.update_working_memory(
            scope=MemoryScope.USER, content="Name: Ada", user_id="u1"
        )
        config = MemoryConfig(
            gateway=gateway,
            working_memory=WorkingMemoryConfig(enabled=True, scope=MemoryScope.USER),
        )

        addition = await load_working_memory(config, make_context(userId="u1"))

        assert addition == "\n## Working Memory\n\nName: Ada\n"

    async def test_missing_scope_id(self, gateway: MockMemoryGateway) -> None:
        config = MemoryConfig(gateway=gateway, working_memory=WorkingMemoryConfig(enabled=True))
        assert await load_working_memory(config, make_context()) == ""
        assert gateway.working_memory_reads == []

    def test_format_empty(self) -> None:
        assert format_working_memory(None) == ""
        assert format_working_memory(WorkingMemory(content="")) == ""


class TestPreload:
    async def test_no_config(self) -> None:
        preloaded = await preload(None, make_context())
        assert preloaded.history == []
        assert not preloaded.is_first_message

    async def test_first_message_when_chat_missing(self, gateway: MockMemoryGateway) -> None:
        preloaded = await preload(memory_config(gateway), make_context(chat_id="c1"))
        assert preloaded.chat_loaded
        assert preloaded.is_first_message

    async def test_not_first_message_with_existing_chat(
        self, gateway: MockMemoryGateway
    ) -> None:
        await gateway.save_chat(ChatSession(chat_id="c1", message_count=2))
        preloaded = await preload(memory_config(gateway), make_context(chat_id="c1"))
        assert not preloaded.is_first_message

    async def test_chat_lookup_failure_is_not_first_message(self) -> None:
        gateway = MockMemoryGateway(fail_on={"get_chat"})
        preloaded = await preload(memory_config(gateway), make_context(chat_id="c1"))
        assert not preloaded.chat_loaded
        assert not preloaded.is_first_message

    async def test_records_span(self, gateway: MockMemoryGateway) -> None:
        telemetry = MockTelemetryProvider()
        await preload(memory_config(gateway), make_context(chat_id="c1"), telemetry=telemetry)
        assert len(telemetry.get_spans(SpanKind.MEMORY_LOAD)) == 1


class TestSaveConversation:
    async def test_saves_pair_and_creates_chat(self, gateway: MockMemoryGateway) -> None:
        context = make_context(chat_id="c1", user_id="u1")

        saved = await save_conversation(memory_config(gateway), context, "hi", "hello!")

        assert saved == 2
        roles = sorted(m.role for m in gateway.saved_messages)
        assert roles == [MessageRole.ASSISTANT, MessageRole.USER]
        chat = await gateway.get_chat("c1")
        assert chat is not None
        assert chat.message_count == 2
        assert chat.user_id == "u1"

    async def test_increments_existing_chat(self, gateway: MockMemoryGateway) -> None:
        await gateway.save_chat(ChatSession(chat_id="c1", message_count=2, title="Kept"))

        await save_conversation(memory_config(gateway), make_context(chat_id="c1"), "a", "b")

        chat = await gateway.get_chat("c1")
        assert chat is not None
        assert chat.message_count == 4
        assert chat.title == "Kept"

    async def test_empty_assistant_text_saves_user_only(
        self, gateway: MockMemoryGateway
    ) -> None:
        saved = await save_conversation(
            memory_config(gateway), make_context(chat_id="c1"), "hi", ""
        )
        assert saved == 1
        assert gateway.saved_messages[0].role == MessageRole.USER

    async def test_skips_without_chat_id_or_history(self, gateway: MockMemoryGateway) -> None:
        assert await save_conversation(memory_config(gateway), make_context(), "a", "b") == 0
        assert (
            await save_conversation(
                memory_config(gateway, history=False), make_context(chat_id="c1"), "a", "b"
            )
            == 0
        )
        assert gateway.saved_messages == []

    async def test_skips_when_history_unsupported(self) -> None:
        gateway = MockMemoryGateway(supports_history=False)
        saved = await save_conversation(
            memory_config(gateway), make_context(chat_id="c1"), "a", "b"
        )
        assert saved == 0

    async def test_failure_raises_gateway_error(self) -> None:
        gateway = MockMemoryGateway(fail_on={"save_message"})
        with pytest.raises(MemoryGatewayError):
            await save_conversation(memory_config(gateway), make_context(chat_id="c1"), "a", "b")

    async def test_chat_update_skipped_when_chats_disabled(
        self, gateway: MockMemoryGateway
    ) -> None:
        await save_conversation(
            memory_config(gateway, chats=False), make_context(chat_id="c1"), "a", "b"
        )
        assert gateway.saved_chats == []

    async def test_update_chat_session_creates_record(self, gateway: MockMemoryGateway) -> None:
        chat = await update_chat_session(gateway, "c9", "u1", 2)
        assert chat.message_count == 2
        assert gateway.saved_chats == [chat]


class TestWorkingMemoryTool:
    def _options(self, **data) -> ToolCallOptions:
        return ToolCallOptions(tool_call_id="c1", context=make_context(**data))

    async def test_updates_scoped_record(self, gateway: MockMemoryGateway) -> None:
        config = MemoryConfig(gateway=gateway, working_memory=WorkingMemoryConfig(enabled=True))
        tool = build_working_memory_tool(config)

        result = await tool.run({"content": "Likes tea"}, self._options(chat_id="c1"))

        assert tool.name == WORKING_MEMORY_TOOL_NAME
        assert result == "success"
        record = await gateway.get_working_memory(scope=MemoryScope.CHAT, chat_id="c1")
        assert record is not None and record.content == "Likes tea"

    async def test_no_gateway(self) -> None:
        tool = build_working_memory_tool(MemoryConfig())
        result = await tool.run({"content": "x"}, self._options(chat_id="c1"))
        assert result == "Memory system not configured"

    async def test_missing_scope_id(self, gateway: MockMemoryGateway) -> None:
        config = MemoryConfig(
            gateway=gateway,
            working_memory=WorkingMemoryConfig(enabled=True, scope=MemoryScope.USER),
        )
        result = await build_working_memory_tool(config).run(
            {"content": "x"}, self._options(chat_id="c1")
        )
        assert result == "No user id available"

    async def test_gateway_error_is_returned_as_text(self) -> None:
        gateway = MockMemoryGateway(fail_on={"update_working_memory"})
        config = MemoryConfig(gateway=gateway, working_memory=WorkingMemoryConfig(enabled=True))
        result = await build_working_memory_tool(config).run(
            {"content": "x"}, self._options(chat_id="c1")
        )
        assert result == "error"
