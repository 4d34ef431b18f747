"""Memory gateway contract, configuration and turn integration."""

from handoffkit.memory.base import MemoryGateway
from handoffkit.memory.config import (
    ChatsConfig,
    GenerateSuggestionsConfig,
    GenerateTitleConfig,
    HistoryConfig,
    MemoryConfig,
    WorkingMemoryConfig,
)
from handoffkit.memory.in_memory import InMemoryMemoryGateway
from handoffkit.memory.integration import PreloadedMemory, preload, save_conversation
from handoffkit.memory.mock import MockMemoryGateway
from handoffkit.memory.search import (
    SEARCH_MESSAGES_TOOL_NAME,
    build_search_messages_tool,
    search_conversation,
)
from handoffkit.memory.working import WORKING_MEMORY_TOOL_NAME, build_working_memory_tool

__all__ = [
    "ChatsConfig",
    "GenerateSuggestionsConfig",
    "GenerateTitleConfig",
    "HistoryConfig",
    "InMemoryMemoryGateway",
    "MemoryConfig",
    "MemoryGateway",
    "MockMemoryGateway",
    "PreloadedMemory",
    "SEARCH_MESSAGES_TOOL_NAME",
    "WORKING_MEMORY_TOOL_NAME",
    "WorkingMemoryConfig",
    "build_search_messages_tool",
    "build_working_memory_tool",
    "preload",
    "save_conversation",
    "search_conversation",
]
