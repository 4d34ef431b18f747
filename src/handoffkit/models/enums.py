"""All string enums for HandoffKit."""

from __future__ import annotations

from enum import StrEnum, unique


@unique
class AgentStatus(StrEnum):
    ROUTING = "routing"
    EXECUTING = "executing"
    COMPLETING = "completing"


@unique
class RoutingStrategy(StrEnum):
    """How the starting or next agent was chosen."""

    EXPLICIT = "explicit"
    TOOL_CHOICE = "tool-choice"
    PROGRAMMATIC = "programmatic"
    LLM = "llm"


@unique
class MatchStrategy(StrEnum):
    """Pattern-matching strategy used by the routing selector.

    Any other string value disables pattern matching.
    """

    AUTO = "auto"
    BEST_MATCH = "best-match"


@unique
class MemoryScope(StrEnum):
    CHAT = "chat"
    USER = "user"


@unique
class RunPhase(StrEnum):
    """Phases of the orchestration round driver."""

    ROUTING = "routing"
    EXECUTING = "executing"
    HANDOFF = "handoff"
    DONE = "done"
    ERROR = "error"


@unique
class MessageRole(StrEnum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    TOOL = "tool"
