"""Span and metric model shared by every telemetry provider.

A turn produces one ``orchestration.turn`` span.  Each agent execution is an
``orchestration.round`` child, and model steps, tool calls, memory access,
guardrails and auxiliary generation nest below those.  The parent link
travels through :mod:`handoffkit.telemetry.context`.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from handoffkit.telemetry.context import get_current_span, reset_span, set_current_span


class SpanKind(StrEnum):
    TURN = "orchestration.turn"
    ROUND = "orchestration.round"
    LLM_GENERATE = "llm.generate"
    LLM_TOOL_CALL = "llm.tool_call"
    MEMORY_LOAD = "memory.load"
    MEMORY_SAVE = "memory.save"
    AUX_GENERATE = "aux.generate"
    GUARDRAIL = "guardrail"
    CUSTOM = "custom"


class Attr:
    """Span attribute keys."""

    PROVIDER = "provider"
    MODEL = "model"
    REQUEST_ID = "request_id"
    CHAT_ID = "chat_id"

    AGENT = "agent"
    ROUND = "round"
    HANDOFF_TARGET = "handoff.target"
    TOTAL_ROUNDS = "turn.total_rounds"

    LLM_INPUT_TOKENS = "llm.input_tokens"
    LLM_OUTPUT_TOKENS = "llm.output_tokens"
    LLM_TOOL_COUNT = "llm.tool_count"
    LLM_STEP = "llm.step"

    MEMORY_OPERATION = "memory.operation"
    MEMORY_MESSAGE_COUNT = "memory.message_count"

    GUARDRAIL_NAME = "guardrail.name"
    GUARDRAIL_RESULT = "guardrail.result"


class Metric:
    """Metric names recorded once per turn."""

    TURN_ROUNDS = "handoffkit.turn.rounds"
    TURN_HANDOFFS = "handoffkit.turn.handoffs"
    INPUT_TOKENS = "handoffkit.tokens.input"
    OUTPUT_TOKENS = "handoffkit.tokens.output"


@dataclass
class Span:
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:16])
    kind: SpanKind = SpanKind.CUSTOM
    name: str = ""
    parent_id: str | None = None
    attributes: dict[str, Any] = field(default_factory=dict)
    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    end_time: datetime | None = None
    status: str = "ok"
    error_message: str | None = None

    @property
    def duration_ms(self) -> float | None:
        if self.end_time is None:
            return None
        return (self.end_time - self.start_time).total_seconds() * 1000

    def finish(
        self,
        status: str = "ok",
        error_message: str | None = None,
        attributes: dict[str, Any] | None = None,
    ) -> None:
        self.end_time = datetime.now(UTC)
        self.status = status
        self.error_message = error_message
        if attributes:
            self.attributes.update(attributes)

    def describe_attributes(self) -> str:
        """``" [k=v, ...]"`` or an empty string."""
        if not self.attributes:
            return ""
        return " [" + ", ".join(f"{k}={v}" for k, v in self.attributes.items()) + "]"


class TelemetryProvider(ABC):
    """Collects spans and metrics from turns.

    Span ids are opaque strings; an empty id is valid and means "not
    recorded".  The default :class:`~handoffkit.telemetry.noop.NoopTelemetryProvider`
    records nothing.
    """

    @property
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    def start_span(
        self,
        kind: SpanKind,
        name: str,
        *,
        parent_id: str | None = None,
        attributes: dict[str, Any] | None = None,
    ) -> str: ...

    @abstractmethod
    def end_span(
        self,
        span_id: str,
        *,
        status: str = "ok",
        error_message: str | None = None,
        attributes: dict[str, Any] | None = None,
    ) -> None: ...

    @abstractmethod
    def set_attribute(self, span_id: str, key: str, value: Any) -> None: ...

    @abstractmethod
    def record_metric(
        self,
        name: str,
        value: float,
        *,
        unit: str = "",
        attributes: dict[str, Any] | None = None,
    ) -> None: ...

    def close(self) -> None:  # noqa: B027
        """Flush pending data."""

    def reset(self) -> None:  # noqa: B027
        """Forget recorded data."""

    @contextmanager
    def span(
        self,
        kind: SpanKind,
        name: str,
        *,
        attributes: dict[str, Any] | None = None,
    ) -> Generator[str, None, None]:
        """Run a block inside a span parented to the current one.

        The new span is the current span for the duration of the block.
        An exception ends it with ``status="error"`` and propagates.
        """
        span_id = self.start_span(
            kind, name, parent_id=get_current_span(), attributes=attributes
        )
        token = set_current_span(span_id or get_current_span())
        try:
            yield span_id
        except Exception as exc:
            self.end_span(span_id, status="error", error_message=str(exc))
            raise
        else:
            self.end_span(span_id)
        finally:
            reset_span(token)


class RecordingTelemetryProvider(TelemetryProvider):
    """Keeps open spans in memory and hands finished ones to :meth:`_span_ended`."""

    def __init__(self) -> None:
        self._open: dict[str, Span] = {}

    @property
    def open_spans(self) -> list[Span]:
        return list(self._open.values())

    def _span_started(self, span: Span) -> None:  # noqa: B027
        pass

    @abstractmethod
    def _span_ended(self, span: Span) -> None: ...

    def start_span(
        self,
        kind: SpanKind,
        name: str,
        *,
        parent_id: str | None = None,
        attributes: dict[str, Any] | None = None,
    ) -> str:
        span = Span(kind=kind, name=name, parent_id=parent_id, attributes=dict(attributes or {}))
        self._open[span.id] = span
        self._span_started(span)
        return span.id

    def end_span(
        self,
        span_id: str,
        *,
        status: str = "ok",
        error_message: str | None = None,
        attributes: dict[str, Any] | None = None,
    ) -> None:
        span = self._open.pop(span_id, None)
        if span is None:
            return
        span.finish(status, error_message, attributes)
        self._span_ended(span)

    def set_attribute(self, span_id: str, key: str, value: Any) -> None:
        if span_id in self._open:
            self._open[span_id].attributes[key] = value

    def reset(self) -> None:
        self._open.clear()
