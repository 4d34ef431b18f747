"""Single outward UI message stream."""

from handoffkit.streaming.writer import (
    UI_MESSAGE_STREAM_HEADERS,
    UIMessageStream,
    UIMessageStreamWriter,
    write_agent_handoff,
    write_agent_status,
    write_chat_title,
    write_suggestions,
)

__all__ = [
    "UI_MESSAGE_STREAM_HEADERS",
    "UIMessageStream",
    "UIMessageStreamWriter",
    "write_agent_handoff",
    "write_agent_status",
    "write_chat_title",
    "write_suggestions",
]
