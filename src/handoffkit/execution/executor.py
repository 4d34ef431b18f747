"""Multi-step tool loop over an :class:`AIProvider` structured stream.

Each step streams one provider response, renders it as UI chunks, runs the
requested tools concurrently and feeds their results back for the next
step.  The loop ends when a step calls no tools, after ``max_steps`` steps,
or right after a step that called one of ``stop_after_tools``.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from handoffkit.context import ExecutionContext
from handoffkit.errors import ToolCallError, ToolPermissionDeniedError
from handoffkit.models.chunks import (
    FinishStepChunk,
    ReasoningDeltaChunk,
    ReasoningEndChunk,
    ReasoningStartChunk,
    StartStepChunk,
    TextDeltaChunk,
    TextEndChunk,
    TextStartChunk,
    ToolInputAvailableChunk,
    ToolInputDeltaChunk,
    ToolInputStartChunk,
    ToolOutputAvailableChunk,
    ToolOutputErrorChunk,
    UIChunk,
)
from handoffkit.providers.ai.base import (
    AIContext,
    AIMessage,
    AIProvider,
    AITextPart,
    AIThinkingPart,
    AIToolCall,
    AIToolCallPart,
    AIToolResultPart,
    StreamDone,
    StreamTextDelta,
    StreamThinkingDelta,
    StreamToolCall,
)
from handoffkit.telemetry.base import Attr, SpanKind, TelemetryProvider
from handoffkit.telemetry.context import get_current_span
from handoffkit.telemetry.noop import NoopTelemetryProvider
from handoffkit.tools.base import Tool, ToolCallOptions
from handoffkit.tools.policy import ToolPolicy

logger = logging.getLogger("handoffkit.execution.executor")


@dataclass
class StepResult:
    """Outcome of one provider call plus the tools it triggered."""

    step: int
    text: str
    tool_calls: list[AIToolCall] = field(default_factory=list)
    tool_results: list[AIToolResultPart] = field(default_factory=list)
    finish_reason: str | None = None
    usage: dict[str, int] = field(default_factory=dict)


@dataclass
class ExecutionResult:
    """Summary of a finished execution."""

    text: str
    finish_reason: str | None
    usage: dict[str, int]
    tool_calls: list[AIToolCall]
    steps: list[StepResult]
    response_messages: list[AIMessage]


StepCallback = Callable[[StepResult], Awaitable[None] | None]


@dataclass
class ExecutionRequest:
    provider: AIProvider
    messages: list[AIMessage]
    context: ExecutionContext
    system: str | None = None
    tools: dict[str, Tool] = field(default_factory=dict)
    tool_choice: str | None = None
    max_steps: int = 10
    temperature: float = 0.7
    max_tokens: int = 1024
    stop_after_tools: frozenset[str] = frozenset()
    tool_policy: ToolPolicy | None = None
    unrestricted_tools: frozenset[str] = frozenset()
    on_step_finish: StepCallback | None = None


@dataclass
class _ToolOutcome:
    output: Any = None
    error: str | None = None

    def as_result_text(self) -> str:
        if self.error is not None:
            return self.error
        if isinstance(self.output, str):
            return self.output
        return json.dumps(self.output, default=str)


class ExecutionStream:
    """Async iterator of UI chunks with a deferred :class:`ExecutionResult`."""

    def __init__(
        self,
        produce: Callable[[Callable[[ExecutionResult], None]], AsyncIterator[UIChunk]],
    ) -> None:
        self._result: ExecutionResult | None = None
        self._chunks = produce(self._set_result)

    def __aiter__(self) -> ExecutionStream:
        return self

    async def __anext__(self) -> UIChunk:
        return await self._chunks.__anext__()

    def _set_result(self, result: ExecutionResult) -> None:
        self._result = result

    async def result(self) -> ExecutionResult:
        """Drain any remaining chunks and return the summary."""
        async for _ in self:
            pass
        if self._result is None:
            raise RuntimeError("Execution ended without a result")
        return self._result


class AgentExecutor:
    """Runs the provider tool loop and renders it as UI chunks."""

    def __init__(self, *, telemetry: TelemetryProvider | None = None) -> None:
        self._telemetry = telemetry or NoopTelemetryProvider()

    def stream(self, request: ExecutionRequest) -> ExecutionStream:
        return ExecutionStream(lambda publish: self._run(request, publish))

    async def _run(
        self,
        request: ExecutionRequest,
        publish: Callable[[ExecutionResult], None],
    ) -> AsyncIterator[UIChunk]:
        messages = list(request.messages)
        response_messages: list[AIMessage] = []
        steps: list[StepResult] = []
        all_calls: list[AIToolCall] = []
        usage: dict[str, int] = {}
        ai_tools = [t.to_ai_tool() for t in request.tools.values()]
        telemetry = self._telemetry

        for step in range(request.max_steps):
            # A forced tool choice only applies to the first step
            tool_choice = request.tool_choice if step == 0 else None
            context = AIContext(
                messages=messages,
                system_prompt=request.system,
                temperature=request.temperature,
                max_tokens=request.max_tokens,
                tools=ai_tools,
                tool_choice=tool_choice,
                metadata={
                    "agent": request.context.agent,
                    "request_id": request.context.request_id,
                },
            )
            span_id = telemetry.start_span(
                SpanKind.LLM_GENERATE,
                "llm.generate",
                parent_id=get_current_span(),
                attributes={
                    Attr.PROVIDER: request.provider.name,
                    Attr.MODEL: request.provider.model_name,
                    Attr.AGENT: request.context.agent,
                    Attr.LLM_STEP: step,
                },
            )

            yield StartStepChunk()
            text_parts: list[str] = []
            thinking_parts: list[str] = []
            tool_calls: list[AIToolCall] = []
            done: StreamDone | None = None
            text_id: str | None = None
            reasoning_id: str | None = None

            try:
                async for event in request.provider.generate_structured_stream(context):
                    if isinstance(event, StreamThinkingDelta):
                        if reasoning_id is None:
                            reasoning_id = f"reasoning_{uuid.uuid4().hex[:12]}"
                            yield ReasoningStartChunk(id=reasoning_id)
                        thinking_parts.append(event.thinking)
                        yield ReasoningDeltaChunk(id=reasoning_id, delta=event.thinking)
                    elif isinstance(event, StreamTextDelta):
                        if reasoning_id is not None:
                            yield ReasoningEndChunk(id=reasoning_id)
                            reasoning_id = None
                        if text_id is None:
                            text_id = f"text_{uuid.uuid4().hex[:12]}"
                            yield TextStartChunk(id=text_id)
                        text_parts.append(event.text)
                        yield TextDeltaChunk(id=text_id, delta=event.text)
                    elif isinstance(event, StreamToolCall):
                        tool_calls.append(
                            AIToolCall(id=event.id, name=event.name, arguments=event.arguments)
                        )
                    elif isinstance(event, StreamDone):
                        done = event
            except Exception as exc:
                telemetry.end_span(span_id, status="error", error_message=str(exc))
                raise

            if reasoning_id is not None:
                yield ReasoningEndChunk(id=reasoning_id)
            if text_id is not None:
                yield TextEndChunk(id=text_id)

            step_usage = done.usage if done else {}
            for key, value in step_usage.items():
                usage[key] = usage.get(key, 0) + value
            telemetry.end_span(
                span_id,
                attributes={
                    Attr.LLM_INPUT_TOKENS: step_usage.get("prompt_tokens", 0),
                    Attr.LLM_OUTPUT_TOKENS: step_usage.get("completion_tokens", 0),
                    Attr.LLM_TOOL_COUNT: len(tool_calls),
                },
            )

            for tc in tool_calls:
                yield ToolInputStartChunk(tool_call_id=tc.id, tool_name=tc.name)
                yield ToolInputDeltaChunk(
                    tool_call_id=tc.id, input_text_delta=json.dumps(tc.arguments)
                )
                yield ToolInputAvailableChunk(
                    tool_call_id=tc.id, tool_name=tc.name, input=tc.arguments
                )

            outcomes = await self._execute_tools_parallel(tool_calls, request, span_id)
            result_parts: list[AIToolResultPart] = []
            for tc, outcome in zip(tool_calls, outcomes, strict=True):
                if outcome.error is not None:
                    yield ToolOutputErrorChunk(tool_call_id=tc.id, error_text=outcome.error)
                else:
                    yield ToolOutputAvailableChunk(tool_call_id=tc.id, output=outcome.output)
                result_parts.append(
                    AIToolResultPart(
                        tool_call_id=tc.id, name=tc.name, result=outcome.as_result_text()
                    )
                )

            text = "".join(text_parts)
            parts: list[Any] = []
            if thinking_parts:
                parts.append(AIThinkingPart(thinking="".join(thinking_parts)))
            if text:
                parts.append(AITextPart(text=text))
            for tc in tool_calls:
                parts.append(AIToolCallPart(id=tc.id, name=tc.name, arguments=tc.arguments))
            if parts:
                assistant = AIMessage(role="assistant", content=parts)
                messages.append(assistant)
                response_messages.append(assistant)
            if result_parts:
                tool_message = AIMessage(role="tool", content=list(result_parts))
                messages.append(tool_message)
                response_messages.append(tool_message)

            yield FinishStepChunk()

            step_result = StepResult(
                step=step,
                text=text,
                tool_calls=tool_calls,
                tool_results=result_parts,
                finish_reason=done.finish_reason if done else None,
                usage=dict(step_usage),
            )
            steps.append(step_result)
            all_calls.extend(tool_calls)
            if request.on_step_finish is not None:
                maybe = request.on_step_finish(step_result)
                if inspect.isawaitable(maybe):
                    await maybe

            if not tool_calls:
                break
            if any(tc.name in request.stop_after_tools for tc in tool_calls):
                logger.debug("Stopping after step %d: stop tool called", step)
                break
        else:
            logger.warning("Execution reached max_steps=%d", request.max_steps)

        last = steps[-1] if steps else None
        publish(
            ExecutionResult(
                text=last.text if last else "",
                finish_reason=last.finish_reason if last else None,
                usage=usage,
                tool_calls=all_calls,
                steps=steps,
                response_messages=response_messages,
            )
        )

    async def _execute_tools_parallel(
        self,
        tool_calls: list[AIToolCall],
        request: ExecutionRequest,
        parent_span_id: str | None,
    ) -> list[_ToolOutcome]:
        """Execute tool calls concurrently and return outcomes in call order."""
        telemetry = self._telemetry

        async def _run_one(tc: AIToolCall) -> _ToolOutcome:
            logger.info("Executing tool: %s(%s)", tc.name, tc.id)
            tool = request.tools.get(tc.name)
            if tool is None:
                logger.warning("Model called unknown tool %s", tc.name)
                return _ToolOutcome(error=f"Unknown tool: {tc.name}")

            policy = request.tool_policy
            if policy is not None and tc.name not in request.unrestricted_tools:
                try:
                    await policy.authorize(tc.name, tc.arguments, request.context)
                except ToolPermissionDeniedError as exc:
                    logger.warning("Tool %s blocked by policy", tc.name)
                    return _ToolOutcome(error=str(exc))

            tool_span_id = telemetry.start_span(
                SpanKind.LLM_TOOL_CALL,
                f"tool.{tc.name}",
                parent_id=parent_span_id,
                attributes={"tool.name": tc.name, "tool.id": tc.id},
            )
            try:
                output = await tool.run(
                    tc.arguments, ToolCallOptions(tool_call_id=tc.id, context=request.context)
                )
                telemetry.end_span(tool_span_id)
            except Exception as exc:
                telemetry.end_span(tool_span_id, status="error", error_message=str(exc))
                logger.warning("Tool %s raised %s: %s", tc.name, type(exc).__name__, exc)
                return _ToolOutcome(error=str(ToolCallError(tc.name, exc)))
            return _ToolOutcome(output=output)

        if not tool_calls:
            return []
        return list(await asyncio.gather(*[_run_one(tc) for tc in tool_calls]))
