"""Turn runtime: the public entry point that streams one multi-agent turn.

``AgentRuntime.stream_turn`` validates the request, then returns a lazy
:class:`UIMessageStream`.  The turn lifecycle, once iterated:

1. ``start`` chunk, entry input guardrails, memory preload.
2. Chat title generation attached when this is the chat's first message.
3. The :class:`RoundDriver` loop (routing, rounds, handoffs, ``finish``).
4. Follow-up suggestions attached when the answer is long enough.
5. Persistence spawned detached; it never delays or alters the stream.
"""

from __future__ import annotations

import inspect
import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from handoffkit.agent import Agent
from handoffkit.auxiliary.suggestions import run_suggestion_generation
from handoffkit.auxiliary.title import run_title_generation
from handoffkit.context import ExecutionContext
from handoffkit.errors import (
    AgentExecutionError,
    ConfigurationError,
    GuardrailTripwireTriggered,
)
from handoffkit.execution.executor import AgentExecutor
from handoffkit.guardrails import run_input_guardrails
from handoffkit.memory.config import MemoryConfig
from handoffkit.memory.integration import preload, save_conversation
from handoffkit.models.chunks import ErrorChunk, FinishChunk, StartChunk
from handoffkit.models.enums import MatchStrategy, RunPhase
from handoffkit.models.events import AgentErrorEvent, AgentEvent
from handoffkit.models.messages import UserMessage
from handoffkit.orchestration.driver import EventCallback, RoundDriver
from handoffkit.orchestration.state import RunState
from handoffkit.providers.ai.base import AIMessage
from handoffkit.streaming.writer import UIMessageStream, UIMessageStreamWriter
from handoffkit.telemetry.base import Attr, Metric, SpanKind, TelemetryProvider
from handoffkit.telemetry.context import get_current_span, reset_span, set_current_span
from handoffkit.telemetry.noop import NoopTelemetryProvider

logger = logging.getLogger("handoffkit.runtime")

BeforeStreamCallback = Callable[[UIMessageStreamWriter, ExecutionContext], Awaitable[None] | None]
FinishCallback = Callable[["TurnResult"], Awaitable[None] | None]
TurnErrorCallback = Callable[[BaseException], Any]


class TurnRequest(BaseModel):
    """Per-turn options for :meth:`AgentRuntime.stream_turn`.

    ``max_steps`` of ``None`` lets each agent use its own ``max_turns``.
    ``tool_choice`` forces that tool on the first step of the first round
    only.  ``on_error`` receives round failures and background failures
    such as persistence errors.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    strategy: str = MatchStrategy.AUTO
    max_rounds: int = Field(default=5, ge=1)
    max_steps: int | None = Field(default=None, ge=1)
    context: dict[str, Any] = Field(default_factory=dict)
    agent_choice: str | None = None
    tool_choice: str | None = None
    before_stream: BeforeStreamCallback | None = None
    on_event: EventCallback | None = None
    on_finish: FinishCallback | None = None
    on_error: TurnErrorCallback | None = None


@dataclass
class TurnResult:
    """Outcome of a turn handed to ``on_finish``."""

    request_id: str
    state: RunState
    text: str = ""
    messages: list[AIMessage] = field(default_factory=list)
    usage: dict[str, int] = field(default_factory=dict)

    @property
    def total_rounds(self) -> int:
        return self.state.round

    @property
    def failed(self) -> bool:
        return self.state.phase == RunPhase.ERROR


async def _maybe_await(result: Any) -> None:
    if inspect.isawaitable(result):
        await result


class AgentRuntime:
    """Runs turns starting at ``orchestrator``.

    The orchestrator's ``memory`` config governs the whole turn: preload,
    title, suggestions and persistence.
    """

    def __init__(
        self,
        orchestrator: Agent,
        *,
        telemetry: TelemetryProvider | None = None,
        executor: AgentExecutor | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._telemetry = telemetry or NoopTelemetryProvider()
        self._executor = executor or AgentExecutor(telemetry=self._telemetry)

    @property
    def orchestrator(self) -> Agent:
        return self._orchestrator

    @property
    def memory(self) -> MemoryConfig | None:
        return self._orchestrator.memory

    def stream_turn(
        self,
        message: UserMessage | str,
        request: TurnRequest | None = None,
    ) -> UIMessageStream:
        """Validate and return the turn's lazy chunk stream.

        Raises:
            ConfigurationError: The message has neither text nor files.
        """
        if isinstance(message, str):
            message = UserMessage.from_text(message)
        if not message.text.strip() and not message.has_files:
            raise ConfigurationError("Message must contain text or files")
        request = request or TurnRequest()
        memory = self.memory
        drain_timeout = memory.chats.title_wait_seconds if memory is not None else 2.0

        async def execute(writer: UIMessageStreamWriter) -> None:
            await self._execute(message, request, writer)

        return UIMessageStream(
            execute,
            on_background_error=request.on_error,
            drain_timeout=drain_timeout,
        )

    async def run_turn(
        self,
        message: UserMessage | str,
        request: TurnRequest | None = None,
    ) -> list[Any]:
        """Consume a whole turn and wait for its background work.

        Returns the streamed chunks.
        """
        stream = self.stream_turn(message, request)
        chunks = await stream.collect()
        await stream.wait_for_background()
        return chunks

    # -- Lifecycle ---------------------------------------------------------

    async def _execute(
        self,
        message: UserMessage,
        request: TurnRequest,
        writer: UIMessageStreamWriter,
    ) -> None:
        context = ExecutionContext(
            data=dict(request.context),
            writer=writer,
            agent=self._orchestrator.name,
        )
        telemetry = self._telemetry
        span_id = telemetry.start_span(
            SpanKind.TURN,
            "orchestration.turn",
            parent_id=get_current_span(),
            attributes={
                Attr.REQUEST_ID: context.request_id,
                Attr.CHAT_ID: context.chat_id,
                Attr.AGENT: self._orchestrator.name,
            },
        )
        token = set_current_span(span_id)
        try:
            result = await self._run_lifecycle(message, request, writer, context)
        except Exception as exc:
            telemetry.end_span(span_id, status="error", error_message=str(exc))
            raise
        finally:
            reset_span(token)
        telemetry.end_span(
            span_id,
            status="error" if result.failed else "ok",
            error_message=result.state.error,
            attributes={Attr.TOTAL_ROUNDS: result.total_rounds},
        )
        self._record_metrics(result)

        if request.on_finish is not None:
            try:
                await _maybe_await(request.on_finish(result))
            except Exception:
                logger.exception("on_finish callback raised")

    def _record_metrics(self, result: TurnResult) -> None:
        tags = {Attr.AGENT: self._orchestrator.name}
        telemetry = self._telemetry
        telemetry.record_metric(Metric.TURN_ROUNDS, result.total_rounds, attributes=tags)
        telemetry.record_metric(Metric.TURN_HANDOFFS, result.state.handoff_count, attributes=tags)
        telemetry.record_metric(
            Metric.INPUT_TOKENS, result.usage.get("prompt_tokens", 0), attributes=tags
        )
        telemetry.record_metric(
            Metric.OUTPUT_TOKENS, result.usage.get("completion_tokens", 0), attributes=tags
        )

    async def _run_lifecycle(
        self,
        message: UserMessage,
        request: TurnRequest,
        writer: UIMessageStreamWriter,
        context: ExecutionContext,
    ) -> TurnResult:
        orchestrator = self._orchestrator
        memory = self.memory
        writer.write(StartChunk(message_id=uuid.uuid4().hex))

        text = message.text
        try:
            if request.before_stream is not None:
                await _maybe_await(request.before_stream(writer, context))
            if orchestrator.input_guardrails:
                text = await run_input_guardrails(
                    orchestrator.input_guardrails, text, context, telemetry=self._telemetry
                )
        except Exception as exc:
            # Blocked before any agent ran: nothing to persist
            if not isinstance(exc, GuardrailTripwireTriggered):
                logger.exception("Turn setup failed", extra={"request_id": context.request_id})
            else:
                logger.info("Input blocked by %s", exc.guardrail)
            writer.write(ErrorChunk(error_text=str(exc)))
            writer.write(FinishChunk())
            state = RunState(request_id=context.request_id).fail(str(exc))
            await self._notify_error(request, exc, orchestrator.name)
            return TurnResult(request_id=context.request_id, state=state)

        preloaded = await preload(memory, context, telemetry=self._telemetry)
        context.memory_addition = preloaded.working_memory or None

        user_message = message.to_ai_message()
        if text != message.text:
            user_message = AIMessage(role="user", content=text)
        messages = [*preloaded.history, user_message]

        title_config = memory.chats.title if memory is not None and memory.chats.enabled else None
        if (
            title_config is not None
            and memory is not None
            and memory.gateway is not None
            and context.chat_id
            and preloaded.is_first_message
        ):
            writer.attach(
                run_title_generation(
                    config=title_config,
                    gateway=memory.gateway,
                    provider=orchestrator.provider,
                    chat_id=context.chat_id,
                    user_text=text,
                    writer=writer,
                    working_memory=preloaded.working_memory,
                    telemetry=self._telemetry,
                ),
                name=f"title:{context.chat_id}",
            )

        driver = RoundDriver(
            orchestrator,
            executor=self._executor,
            telemetry=self._telemetry,
            on_event=request.on_event,
        )
        outcome = await driver.run(
            messages,
            context,
            writer,
            text=text,
            max_rounds=request.max_rounds,
            max_steps=request.max_steps,
            strategy=request.strategy,
            agent_choice=request.agent_choice,
            tool_choice=request.tool_choice,
        )
        result = TurnResult(
            request_id=context.request_id,
            state=outcome.state,
            text=outcome.text,
            messages=outcome.messages,
            usage=outcome.usage,
        )
        if result.failed:
            failure = AgentExecutionError(
                result.state.current_agent or orchestrator.name,
                result.state.error or "turn failed",
            )
            await self._call_on_error(request, failure)

        suggestions = (
            memory.chats.suggestions if memory is not None and memory.chats.enabled else None
        )
        if suggestions is not None and len(result.text) > suggestions.min_response_length:
            writer.attach(
                run_suggestion_generation(
                    config=suggestions,
                    provider=orchestrator.provider,
                    conversation=result.messages,
                    writer=writer,
                    telemetry=self._telemetry,
                ),
                name=f"suggestions:{context.request_id}",
            )

        if memory is not None and memory.gateway is not None and memory.history.enabled:
            writer.spawn(
                save_conversation(
                    memory, context, text, result.text, telemetry=self._telemetry
                ),
                name=f"persist:{context.request_id}",
            )
        return result

    async def _notify_error(self, request: TurnRequest, exc: BaseException, agent: str) -> None:
        if request.on_event is not None:
            event: AgentEvent = AgentErrorEvent(error=str(exc), agent=agent)
            try:
                await _maybe_await(request.on_event(event))
            except Exception:
                logger.exception("on_event callback raised for agent-error")
        await self._call_on_error(request, exc)

    async def _call_on_error(self, request: TurnRequest, exc: BaseException) -> None:
        if request.on_error is None:
            return
        try:
            await _maybe_await(request.on_error(exc))
        except Exception:
            logger.exception("on_error callback raised")
