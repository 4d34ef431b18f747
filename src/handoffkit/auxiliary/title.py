"""Chat title generation for the first message of a chat."""

from __future__ import annotations

import logging

from handoffkit.memory.base import MemoryGateway
from handoffkit.memory.config import GenerateTitleConfig
from handoffkit.providers.ai.base import AIContext, AIMessage, AIProvider
from handoffkit.streaming.writer import UIMessageStreamWriter, write_chat_title
from handoffkit.telemetry.base import SpanKind, TelemetryProvider
from handoffkit.telemetry.noop import NoopTelemetryProvider

logger = logging.getLogger("handoffkit.auxiliary.title")

MAX_TITLE_LENGTH = 80


def clean_title(raw: str) -> str:
    """First line of *raw*, quotes and colons removed, capped at 80 chars."""
    line = raw.strip().splitlines()[0] if raw.strip() else ""
    line = line.strip().strip("\"'`").replace(":", "").strip()
    return line[:MAX_TITLE_LENGTH].rstrip()


async def generate_chat_title(
    provider: AIProvider,
    user_text: str,
    *,
    instructions: str,
    working_memory: str = "",
) -> str:
    system = f"{instructions}\n\n{working_memory}" if working_memory else instructions
    response = await provider.generate(
        AIContext(
            messages=[AIMessage(role="user", content=user_text)],
            system_prompt=system,
            temperature=0.3,
            max_tokens=64,
        )
    )
    return clean_title(response.content)


async def run_title_generation(
    *,
    config: GenerateTitleConfig,
    gateway: MemoryGateway,
    provider: AIProvider,
    chat_id: str,
    user_text: str,
    writer: UIMessageStreamWriter,
    working_memory: str = "",
    telemetry: TelemetryProvider | None = None,
) -> None:
    """Generate, store and emit a chat title. Never raises."""
    telemetry = telemetry or NoopTelemetryProvider()
    try:
        with telemetry.span(SpanKind.AUX_GENERATE, "aux.title"):
            title = await generate_chat_title(
                config.provider or provider,
                user_text,
                instructions=config.instructions,
                working_memory=working_memory,
            )
    except Exception:
        logger.exception("Title generation failed", extra={"chat_id": chat_id})
        return
    if not title:
        logger.debug("Title generation returned nothing", extra={"chat_id": chat_id})
        return

    if gateway.supports_titles:
        try:
            await gateway.update_chat_title(chat_id, title)
        except Exception:
            logger.exception("Failed to store chat title", extra={"chat_id": chat_id})
    write_chat_title(writer, chat_id, title)
    logger.debug("Generated title %r", title, extra={"chat_id": chat_id})
