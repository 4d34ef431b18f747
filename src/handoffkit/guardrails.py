"""Input and output guardrails.

A guardrail inspects text and returns a :class:`GuardrailResult`.  Guardrails
run one at a time in declaration order; ``modify`` results chain into the
next guardrail and the first ``block`` stops the chain.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, model_validator

from handoffkit.errors import (
    GuardrailExecutionError,
    GuardrailTripwireTriggered,
    InputGuardrailTripwireTriggered,
    OutputGuardrailTripwireTriggered,
)
from handoffkit.telemetry.base import Attr, SpanKind, TelemetryProvider
from handoffkit.telemetry.noop import NoopTelemetryProvider

if TYPE_CHECKING:
    from handoffkit.context import ExecutionContext

logger = logging.getLogger("handoffkit.guardrails")


class GuardrailResult(BaseModel):
    """Result returned by a guardrail."""

    action: Literal["allow", "block", "modify"]
    content: str | None = None
    message: str | None = None

    @model_validator(mode="after")
    def _validate_action_fields(self) -> GuardrailResult:
        if self.action == "modify" and self.content is None:
            raise ValueError("action='modify' requires 'content' to be set")
        if self.action == "block" and self.message is None:
            raise ValueError("action='block' requires 'message' to be set")
        return self

    @classmethod
    def allow(cls) -> GuardrailResult:
        return cls(action="allow")

    @classmethod
    def block(cls, message: str) -> GuardrailResult:
        """Halt the turn and show *message* to the user."""
        return cls(action="block", message=message)

    @classmethod
    def modify(cls, content: str) -> GuardrailResult:
        """Replace the inspected text with *content* and proceed."""
        return cls(action="modify", content=content)


GuardrailFn = Callable[[str, "ExecutionContext"], Awaitable[GuardrailResult] | GuardrailResult]


@dataclass(frozen=True)
class InputGuardrail:
    """Validates inbound user text before an agent runs."""

    name: str
    execute: GuardrailFn


@dataclass(frozen=True)
class OutputGuardrail:
    """Validates an agent's finalized text before it joins history."""

    name: str
    execute: GuardrailFn


async def _run_chain(
    guardrails: Sequence[InputGuardrail | OutputGuardrail],
    content: str,
    context: ExecutionContext,
    tripwire: type[GuardrailTripwireTriggered],
    telemetry: TelemetryProvider | None,
) -> str:
    telemetry = telemetry or NoopTelemetryProvider()
    for guardrail in guardrails:
        with telemetry.span(
            SpanKind.GUARDRAIL,
            f"guardrail.{guardrail.name}",
            attributes={Attr.GUARDRAIL_NAME: guardrail.name},
        ) as span_id:
            try:
                result = guardrail.execute(content, context)
                if inspect.isawaitable(result):
                    result = await result
            except Exception as exc:
                raise GuardrailExecutionError(guardrail.name, exc) from exc
            telemetry.set_attribute(span_id, Attr.GUARDRAIL_RESULT, result.action)

        if result.action == "block":
            logger.info("Guardrail %s blocked the turn", guardrail.name)
            raise tripwire(guardrail.name, result.message or "")
        if result.action == "modify":
            logger.debug("Guardrail %s modified content", guardrail.name)
            content = result.content or ""
    return content


async def run_input_guardrails(
    guardrails: Sequence[InputGuardrail],
    text: str,
    context: ExecutionContext,
    *,
    telemetry: TelemetryProvider | None = None,
) -> str:
    """Run *guardrails* over inbound *text* and return the (possibly modified) text.

    Raises:
        InputGuardrailTripwireTriggered: A guardrail returned ``block``.
        GuardrailExecutionError: A guardrail raised.
    """
    return await _run_chain(guardrails, text, context, InputGuardrailTripwireTriggered, telemetry)


async def run_output_guardrails(
    guardrails: Sequence[OutputGuardrail],
    text: str,
    context: ExecutionContext,
    *,
    telemetry: TelemetryProvider | None = None,
) -> str:
    """Run *guardrails* over an agent's finalized *text*.

    Raises:
        OutputGuardrailTripwireTriggered: A guardrail returned ``block``.
        GuardrailExecutionError: A guardrail raised.
    """
    return await _run_chain(
        guardrails, text, context, OutputGuardrailTripwireTriggered, telemetry
    )
