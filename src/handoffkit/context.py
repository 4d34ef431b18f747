"""Per-turn execution context shared by every agent in a turn."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from handoffkit.streaming.writer import UIMessageStreamWriter

_CHAT_ID_KEYS = ("chat_id", "chatId")
_USER_ID_KEYS = ("user_id", "userId")


def _lookup(data: dict[str, Any], keys: tuple[str, ...]) -> str | None:
    for source in (data, data.get("metadata") or {}):
        if not isinstance(source, dict):
            continue
        for key in keys:
            value = source.get(key)
            if value:
                return str(value)
    return None


@dataclass
class ExecutionContext:
    """User-supplied context bag plus request-scoped additions.

    Passed by reference through the whole turn.  Instructions and tool
    factories receive it; the round driver updates ``agent`` on each switch
    and the memory integration attaches ``memory_addition``.
    """

    data: dict[str, Any] = field(default_factory=dict)
    writer: UIMessageStreamWriter | None = None
    agent: str | None = None
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    memory_addition: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    @property
    def chat_id(self) -> str | None:
        """Chat id from ``chat_id``/``chatId`` at the top level or under ``metadata``."""
        return _lookup(self.data, _CHAT_ID_KEYS)

    @property
    def user_id(self) -> str | None:
        return _lookup(self.data, _USER_ID_KEYS)
