"""Round driver: the orchestration state machine for one turn.

ROUTING picks the starting agent once.  Each round then EXECUTES the
current agent through the stream multiplexer.  A handoff signal moves to
HANDOFF (filter history, switch agent) and back to EXECUTING; no signal,
a used target, an unknown target or exhausted rounds end in DONE.  Any
exception ends in ERROR with an ``error`` chunk.  Both terminal phases
write exactly one ``finish`` chunk.
"""

from __future__ import annotations

import inspect
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from handoffkit.agent import Agent
from handoffkit.context import ExecutionContext
from handoffkit.execution.executor import AgentExecutor, ExecutionResult, StepResult
from handoffkit.guardrails import run_input_guardrails, run_output_guardrails
from handoffkit.models.chunks import ErrorChunk, FinishChunk
from handoffkit.models.enums import AgentStatus, MatchStrategy, RoutingStrategy
from handoffkit.models.events import (
    AgentCompleteEvent,
    AgentErrorEvent,
    AgentEvent,
    AgentFinishEvent,
    AgentHandoffEvent,
    AgentStartEvent,
    AgentStepEvent,
)
from handoffkit.orchestration.filters import apply_input_filter, default_input_filter
from handoffkit.orchestration.handoff import HandoffInputData, HandoffSignal, ToolOutput
from handoffkit.orchestration.multiplexer import ExtractedSignals, StreamMultiplexer
from handoffkit.orchestration.routing import select_starting_agent
from handoffkit.orchestration.state import RunState
from handoffkit.providers.ai.base import AIMessage
from handoffkit.streaming.writer import (
    UIMessageStreamWriter,
    write_agent_handoff,
    write_agent_status,
)
from handoffkit.telemetry.base import Attr, SpanKind, TelemetryProvider
from handoffkit.telemetry.context import get_current_span, reset_span, set_current_span
from handoffkit.telemetry.noop import NoopTelemetryProvider

logger = logging.getLogger("handoffkit.orchestration.driver")

EventCallback = Callable[[AgentEvent], Awaitable[None] | None]

NO_INTERMEDIATE_TEXT_PROMPT = (
    "CRITICAL: You must NOT generate any text between tool calls. If you need to call "
    "multiple tools, call them ALL at once using parallel tool calling. Do NOT generate "
    "explanatory text about what you're about to do - just call the tools silently and "
    "wait for results."
)

STOP_COMPLETED = "completed"
STOP_TARGET_USED = "target-already-used"
STOP_UNKNOWN_TARGET = "unknown-target"
STOP_MAX_ROUNDS = "max-rounds"


def build_registry(entry: Agent) -> dict[str, Agent]:
    """Every agent reachable from *entry* through handoffs, keyed by name."""
    registry: dict[str, Agent] = {entry.name: entry}
    queue = deque([entry])
    while queue:
        agent = queue.popleft()
        for target in agent.get_handoffs():
            known = registry.get(target.name)
            if known is None:
                registry[target.name] = target
                queue.append(target)
            elif known is not target:
                logger.warning("Two distinct agents named %s; keeping the first", target.name)
    return registry


def evaluate_handoff(
    state: RunState,
    signal: HandoffSignal,
    *,
    max_rounds: int,
    known_agents: set[str] | dict[str, Agent],
) -> str | None:
    """Stop reason for a signalled handoff, or ``None`` if it may proceed."""
    if state.is_used(signal.target_agent):
        return STOP_TARGET_USED
    if signal.target_agent not in known_agents:
        return STOP_UNKNOWN_TARGET
    if state.rounds_exhausted(max_rounds):
        return STOP_MAX_ROUNDS
    return None


def message_window(messages: list[AIMessage], last_messages: int) -> list[AIMessage]:
    """The most recent *last_messages* entries, never empty if *messages* isn't."""
    window = messages[-last_messages:] if last_messages > 0 else []
    if not window and messages:
        window = messages[-1:]
    return window


def _replace_last_user_text(messages: list[AIMessage], text: str) -> list[AIMessage]:
    for i in range(len(messages) - 1, -1, -1):
        if messages[i].role == "user":
            replaced = messages[i].model_copy(update={"content": text})
            return [*messages[:i], replaced, *messages[i + 1 :]]
    return messages


@dataclass
class DriverResult:
    """What a finished turn leaves behind."""

    state: RunState
    text: str = ""
    messages: list[AIMessage] = field(default_factory=list)
    usage: dict[str, int] = field(default_factory=dict)

    @property
    def total_rounds(self) -> int:
        return self.state.round


class RoundDriver:
    """Runs the orchestration loop for one turn.

    Conversation messages and run state are owned by :meth:`run` and never
    shared; exactly one agent executes at a time.
    """

    def __init__(
        self,
        orchestrator: Agent,
        *,
        executor: AgentExecutor | None = None,
        telemetry: TelemetryProvider | None = None,
        on_event: EventCallback | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._telemetry = telemetry or NoopTelemetryProvider()
        self._executor = executor or AgentExecutor(telemetry=self._telemetry)
        self._on_event = on_event
        self.registry = build_registry(orchestrator)

    async def _emit(self, event: AgentEvent) -> None:
        if self._on_event is None:
            return
        try:
            result = self._on_event(event)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("on_event callback raised for %s", event.type)

    async def run(
        self,
        messages: list[AIMessage],
        context: ExecutionContext,
        writer: UIMessageStreamWriter,
        *,
        text: str,
        max_rounds: int = 5,
        max_steps: int | None = None,
        strategy: str = MatchStrategy.AUTO,
        agent_choice: str | None = None,
        tool_choice: str | None = None,
    ) -> DriverResult:
        """Drive the turn and write every visible chunk, ending with ``finish``.

        Never raises for round failures: they end the turn in ERROR.
        """
        orchestrator = self._orchestrator
        state = RunState(
            request_id=context.request_id, used_agents=frozenset({orchestrator.name})
        )
        result = DriverResult(state=state, messages=list(messages))
        final_texts: list[str] = []
        guarded = {orchestrator.name}

        try:
            write_agent_status(writer, AgentStatus.ROUTING, orchestrator.name)
            decision = select_starting_agent(
                orchestrator,
                orchestrator.get_handoffs(),
                text,
                explicit_agent=agent_choice,
                tool_choice=tool_choice,
                strategy=strategy,
                context=context,
            )
            state = state.route(
                decision.agent.name, decision.strategy, from_agent=orchestrator.name
            )
            if decision.strategy is not None:
                write_agent_handoff(
                    writer,
                    from_agent=orchestrator.name,
                    to=decision.agent.name,
                    routing_strategy=decision.strategy,
                )

            while True:
                agent = self.registry[state.current_agent or orchestrator.name]
                state = state.begin_round()
                result.state = state
                context.agent = agent.name
                await self._emit(AgentStartEvent(agent=agent.name, round=state.round))
                write_agent_status(writer, AgentStatus.EXECUTING, agent.name)

                if agent.name not in guarded:
                    guarded.add(agent.name)
                    if agent.input_guardrails:
                        checked = await run_input_guardrails(
                            agent.input_guardrails, text, context, telemetry=self._telemetry
                        )
                        if checked != text:
                            result.messages = _replace_last_user_text(result.messages, checked)

                signals, execution = await self._run_round(
                    agent,
                    result.messages,
                    context,
                    writer,
                    state,
                    max_steps=max_steps,
                    tool_choice=tool_choice if state.round == 1 else None,
                )
                for key, value in execution.usage.items():
                    result.usage[key] = result.usage.get(key, 0) + value
                await self._emit(AgentFinishEvent(agent=agent.name, round=state.round))

                signal = signals.handoff
                if signal is None:
                    await self._finalize_text(agent, signals.text, context, result, final_texts)
                    state = state.complete(STOP_COMPLETED)
                    break

                stop = evaluate_handoff(
                    state, signal, max_rounds=max_rounds, known_agents=self.registry
                )
                if stop is not None:
                    logger.info(
                        "Not handing off %s -> %s: %s",
                        agent.name,
                        signal.target_agent,
                        stop,
                        extra={"request_id": context.request_id, "round": state.round},
                    )
                    # Nothing runs after this agent, so its text is the final answer
                    await self._finalize_text(agent, signals.text, context, result, final_texts)
                    state = state.complete(stop)
                    break

                if signals.text:
                    logger.debug(
                        "Excluding %d chars of intermediate text from %s",
                        len(signals.text),
                        agent.name,
                    )
                write_agent_status(writer, AgentStatus.ROUTING, agent.name)
                target = self.registry[signal.target_agent]
                result.messages = await self._apply_handoff(
                    agent, target, signal, result.messages, signals, execution, context
                )
                state = state.handoff(target.name, signal.reason)
                write_agent_handoff(
                    writer,
                    from_agent=agent.name,
                    to=target.name,
                    reason=signal.reason,
                    routing_strategy=RoutingStrategy.LLM,
                )
                await self._emit(
                    AgentHandoffEvent(from_agent=agent.name, to=target.name, reason=signal.reason)
                )
                logger.info(
                    "Handoff %s -> %s",
                    agent.name,
                    target.name,
                    extra={"request_id": context.request_id, "round": state.round},
                )

            await self._emit(AgentCompleteEvent(total_rounds=state.round))
        except Exception as exc:
            logger.exception(
                "Round %d failed", state.round, extra={"request_id": context.request_id}
            )
            state = state.fail(str(exc))
            writer.write(ErrorChunk(error_text=str(exc)))
            await self._emit(AgentErrorEvent(error=str(exc), agent=state.current_agent))

        writer.write(FinishChunk())
        result.state = state
        result.text = "\n\n".join(final_texts)
        return result

    async def _run_round(
        self,
        agent: Agent,
        messages: list[AIMessage],
        context: ExecutionContext,
        writer: UIMessageStreamWriter,
        state: RunState,
        *,
        max_steps: int | None,
        tool_choice: str | None,
    ) -> tuple[ExtractedSignals, ExecutionResult]:
        window = [
            AIMessage(role="system", content=NO_INTERMEDIATE_TEXT_PROMPT),
            *message_window(messages, agent.last_messages),
        ]

        async def _on_step(step: StepResult) -> None:
            await self._emit(
                AgentStepEvent(agent=agent.name, step=step.step, finish_reason=step.finish_reason)
            )

        telemetry = self._telemetry
        span_id = telemetry.start_span(
            SpanKind.ROUND,
            f"round.{state.round}",
            parent_id=get_current_span(),
            attributes={Attr.AGENT: agent.name, Attr.ROUND: state.round},
        )
        token = set_current_span(span_id)
        try:
            stream = agent.stream(
                window,
                context,
                max_steps=max_steps,
                tool_choice=tool_choice,
                on_step_finish=_on_step,
                executor=self._executor,
            )
            signals = await StreamMultiplexer(agent.name).pump(stream, writer)
            execution = await stream.result()
        except Exception as exc:
            telemetry.end_span(span_id, status="error", error_message=str(exc))
            raise
        finally:
            reset_span(token)
        if signals.handoff is not None:
            telemetry.set_attribute(span_id, Attr.HANDOFF_TARGET, signals.handoff.target_agent)
        telemetry.end_span(span_id)
        return signals, execution

    async def _finalize_text(
        self,
        agent: Agent,
        text: str,
        context: ExecutionContext,
        result: DriverResult,
        final_texts: list[str],
    ) -> None:
        if not text:
            return
        if agent.output_guardrails:
            text = await run_output_guardrails(
                agent.output_guardrails, text, context, telemetry=self._telemetry
            )
        result.messages.append(AIMessage(role="assistant", content=text))
        final_texts.append(text)

    async def _apply_handoff(
        self,
        source: Agent,
        target: Agent,
        signal: HandoffSignal,
        messages: list[AIMessage],
        signals: ExtractedSignals,
        execution: ExecutionResult,
        context: ExecutionContext,
    ) -> list[AIMessage]:
        """Run the target's input filter and ``on_handoff`` callback.

        Filter and callback failures are logged; the unfiltered history is
        kept as the fallback.
        """
        configured = source.find_handoff(target.name) or self._orchestrator.find_handoff(
            target.name
        )
        input_filter = (configured.input_filter if configured else None) or default_input_filter
        data = HandoffInputData(
            input_history=list(messages),
            run_context=context,
            pre_handoff_items=list(execution.response_messages),
            new_items=[ToolOutput(name, value) for name, value in signals.tool_outputs.items()],
        )
        try:
            filtered = await apply_input_filter(input_filter, data)
            messages = list(filtered.input_history)
        except Exception:
            logger.exception("Error applying handoff input filter for %s", target.name)

        if configured is not None and configured.on_handoff is not None:
            try:
                outcome = configured.on_handoff(context)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception:
                logger.exception("Error in on_handoff callback for %s", target.name)
        return messages
