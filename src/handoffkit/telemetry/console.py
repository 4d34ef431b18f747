"""Telemetry provider that writes spans and metrics to the log."""

from __future__ import annotations

import logging
from typing import Any

from handoffkit.telemetry.base import RecordingTelemetryProvider, Span

logger = logging.getLogger("handoffkit.telemetry")


class ConsoleTelemetryProvider(RecordingTelemetryProvider):
    """One log line per span start, span end and metric.

    Useful while developing agents: with ``logging.basicConfig(level=logging.INFO)``
    a turn prints its round and handoff structure::

        AgentRuntime(triage, telemetry=ConsoleTelemetryProvider())
    """

    def __init__(self, *, level: int = logging.INFO) -> None:
        super().__init__()
        self._level = level

    @property
    def name(self) -> str:
        return "console"

    def _span_started(self, span: Span) -> None:
        parent = f" parent={span.parent_id}" if span.parent_id else ""
        logger.log(
            self._level, "[SPAN START] %s %s id=%s%s", span.kind, span.name, span.id, parent
        )

    def _span_ended(self, span: Span) -> None:
        duration = f" {span.duration_ms:.1f}ms" if span.duration_ms is not None else ""
        if span.status == "error":
            logger.log(
                self._level,
                "[SPAN ERROR] %s%s%s error=%s",
                span.name,
                duration,
                span.describe_attributes(),
                span.error_message or "unknown",
            )
            return
        logger.log(
            self._level, "[SPAN END] %s%s%s", span.name, duration, span.describe_attributes()
        )

    def record_metric(
        self,
        name: str,
        value: float,
        *,
        unit: str = "",
        attributes: dict[str, Any] | None = None,
    ) -> None:
        suffix = f" {unit}" if unit else ""
        logger.log(self._level, "[METRIC] %s=%g%s %s", name, value, suffix, attributes or {})

    def close(self) -> None:
        if self._open:
            logger.warning("Closing console telemetry with %d open span(s)", len(self._open))
        self.reset()
