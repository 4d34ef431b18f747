"""Span-based telemetry for turns, rounds and model calls."""

from handoffkit.telemetry.base import (
    Attr,
    Metric,
    RecordingTelemetryProvider,
    Span,
    SpanKind,
    TelemetryProvider,
)
from handoffkit.telemetry.console import ConsoleTelemetryProvider
from handoffkit.telemetry.mock import MetricPoint, MockTelemetryProvider
from handoffkit.telemetry.noop import NoopTelemetryProvider

__all__ = [
    "Attr",
    "ConsoleTelemetryProvider",
    "Metric",
    "MetricPoint",
    "MockTelemetryProvider",
    "NoopTelemetryProvider",
    "RecordingTelemetryProvider",
    "Span",
    "SpanKind",
    "TelemetryProvider",
]
