"""Follow-up prompt suggestions after a sufficiently long answer."""

from __future__ import annotations

import logging
import re

from handoffkit.memory.config import GenerateSuggestionsConfig
from handoffkit.providers.ai.base import AIContext, AIMessage, AIProvider
from handoffkit.streaming.writer import UIMessageStreamWriter, write_suggestions
from handoffkit.telemetry.base import SpanKind, TelemetryProvider
from handoffkit.telemetry.noop import NoopTelemetryProvider

logger = logging.getLogger("handoffkit.auxiliary.suggestions")

_LIST_MARKER = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s*")


def parse_suggestions(text: str, limit: int) -> list[str]:
    """One suggestion per non-empty line, list markers and quotes stripped."""
    seen: list[str] = []
    for line in text.splitlines():
        prompt = _LIST_MARKER.sub("", line).strip().strip("\"'")
        if prompt and prompt not in seen:
            seen.append(prompt)
        if len(seen) >= limit:
            break
    return seen


def recent_window(messages: list[AIMessage], exchanges: int) -> list[AIMessage]:
    """Last *exchanges* user/assistant pairs, text only."""
    conversational = [
        AIMessage(role=m.role, content=m.text)
        for m in messages
        if m.role in ("user", "assistant") and m.text
    ]
    return conversational[-exchanges * 2 :]


async def generate_suggestions(
    provider: AIProvider,
    messages: list[AIMessage],
    *,
    instructions: str,
    limit: int,
) -> list[str]:
    response = await provider.generate(
        AIContext(
            messages=messages,
            system_prompt=f"{instructions}\nReturn at most {limit} prompts.",
            temperature=0.7,
            max_tokens=256,
        )
    )
    return parse_suggestions(response.content, limit)


async def run_suggestion_generation(
    *,
    config: GenerateSuggestionsConfig,
    provider: AIProvider,
    conversation: list[AIMessage],
    writer: UIMessageStreamWriter,
    telemetry: TelemetryProvider | None = None,
) -> None:
    """Generate and emit suggestions from a bounded window. Never raises."""
    window = recent_window(conversation, config.context_window)
    if not window:
        return
    telemetry = telemetry or NoopTelemetryProvider()
    try:
        with telemetry.span(SpanKind.AUX_GENERATE, "aux.suggestions"):
            prompts = await generate_suggestions(
                config.provider or provider,
                window,
                instructions=config.instructions,
                limit=config.limit,
            )
    except Exception:
        logger.exception("Suggestion generation failed")
        return
    if prompts:
        write_suggestions(writer, prompts)
