"""Telemetry provider that keeps everything for test assertions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from handoffkit.telemetry.base import RecordingTelemetryProvider, Span, SpanKind


@dataclass
class MetricPoint:
    name: str
    value: float
    unit: str = ""
    attributes: dict[str, Any] = field(default_factory=dict)


class MockTelemetryProvider(RecordingTelemetryProvider):
    """Collects finished spans and metric points in order.

    Example::

        telemetry = MockTelemetryProvider()
        await AgentRuntime(triage, telemetry=telemetry).run_turn("hi")
        [turn] = telemetry.get_spans(SpanKind.TURN)
        rounds = telemetry.get_spans(SpanKind.ROUND)
        assert all(r.parent_id == turn.id for r in rounds)
    """

    def __init__(self) -> None:
        super().__init__()
        self.spans: list[Span] = []
        self.metrics: list[MetricPoint] = []

    @property
    def name(self) -> str:
        return "mock"

    def _span_ended(self, span: Span) -> None:
        self.spans.append(span)

    def get_spans(self, kind: SpanKind) -> list[Span]:
        return [s for s in self.spans if s.kind == kind]

    def get_metrics(self, name: str) -> list[MetricPoint]:
        return [m for m in self.metrics if m.name == name]

    def record_metric(
        self,
        name: str,
        value: float,
        *,
        unit: str = "",
        attributes: dict[str, Any] | None = None,
    ) -> None:
        self.metrics.append(MetricPoint(name, value, unit, dict(attributes or {})))

    def reset(self) -> None:
        super().reset()
        self.spans.clear()
        self.metrics.clear()
