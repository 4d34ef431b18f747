"""Agent descriptor.

Every agent, the orchestrator included, is the same type: a name,
instructions, a provider, tools, routing patterns and the agents it may
hand off to.  Agents are built once and shared by reference across turns.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from functools import lru_cache
from typing import TYPE_CHECKING, Any

from handoffkit.errors import ConfigurationError
from handoffkit.execution.executor import AgentExecutor, ExecutionRequest, ExecutionStream
from handoffkit.guardrails import InputGuardrail, OutputGuardrail
from handoffkit.memory.config import MemoryConfig
from handoffkit.memory.working import (
    DEFAULT_TEMPLATE,
    build_working_memory_tool,
    working_memory_instructions,
)
from handoffkit.orchestration.handoff import (
    HANDOFF_TOOL_NAME,
    Handoff,
    build_handoff_tool,
    prompt_with_handoff_instructions,
)
from handoffkit.providers.ai.base import AIContext, AIMessage, AIProvider, AIResponse
from handoffkit.tools.base import Tool
from handoffkit.tools.policy import ToolPolicy

if TYPE_CHECKING:
    from handoffkit.context import ExecutionContext
    from handoffkit.execution.executor import StepCallback
    from handoffkit.models.messages import UserMessage
    from handoffkit.orchestration.routing import MatchOn
    from handoffkit.runtime import TurnRequest
    from handoffkit.streaming.writer import UIMessageStream

Instructions = str | Callable[["ExecutionContext"], str]
ToolSet = Mapping[str, Tool] | Sequence[Tool]
ToolsSpec = ToolSet | Callable[["ExecutionContext"], ToolSet]
HandoffsSpec = Sequence["Agent | Handoff"] | Callable[[], Sequence["Agent | Handoff"]]

DEFAULT_MAX_TURNS = 10
SPECIALIST_LAST_MESSAGES = 5
ORCHESTRATOR_LAST_MESSAGES = 10


class _NullAIProvider(AIProvider):
    """Placeholder provider for agents built without one."""

    @property
    def model_name(self) -> str:
        return "_null"

    async def generate(self, context: AIContext) -> AIResponse:
        raise ConfigurationError("This agent has no AI provider")


@lru_cache(maxsize=256)
def compose_system_prompt(
    instructions: str,
    has_handoffs: bool,
    working_memory_template: str | None = None,
    memory_addition: str = "",
) -> str:
    """Compose an agent's system prompt from its parts.

    Pure and memoized on its arguments: the resolved instructions, whether
    the agent owns handoffs, the working-memory template (``None`` when
    working memory is disabled) and the request's working-memory block.
    """
    prompt = prompt_with_handoff_instructions(instructions) if has_handoffs else instructions
    if working_memory_template is not None:
        prompt = f"{prompt}\n\n{working_memory_instructions(working_memory_template)}"
    if memory_addition:
        prompt = f"{prompt}\n{memory_addition}"
    return prompt


def _as_tool_dict(tools: ToolSet) -> dict[str, Tool]:
    if isinstance(tools, Mapping):
        return dict(tools)
    return {t.name: t for t in tools}


class Agent:
    """A named unit with instructions, tools and optional handoff targets.

    Args:
        name: Unique identity, used as handoff target and in the used-set.
        instructions: Static prompt, or a function of the execution context.
        provider: Execution primitive the agent runs on.
        tools: Tools as a mapping, a sequence, or a function of the context
            returning either.
        handoffs: Agents (or :func:`handoff` configs) this agent may transfer
            to, in declaration order.  A zero-argument callable is accepted
            so agents can reference each other.
        handoff_description: Shown to agents that can hand off to this one.
        match_on: Routing patterns (strings, compiled regexes) or a predicate.
        last_messages: How many conversation entries the agent sees.
            Defaults to 10 for agents with handoffs, 5 otherwise.
        max_turns: Step limit for one execution when the turn sets none.

    Example::

        math = Agent("MathTutor", instructions="Solve math.", provider=p,
                     match_on=["math", re.compile(r"\\d+")])
        triage = Agent("Triage", instructions="Route.", provider=p,
                       handoffs=[math, history])
    """

    def __init__(
        self,
        name: str,
        *,
        instructions: Instructions,
        provider: AIProvider | None = None,
        tools: ToolsSpec | None = None,
        handoffs: HandoffsSpec | None = None,
        handoff_description: str | None = None,
        match_on: MatchOn | None = None,
        input_guardrails: Sequence[InputGuardrail] = (),
        output_guardrails: Sequence[OutputGuardrail] = (),
        memory: MemoryConfig | None = None,
        last_messages: int | None = None,
        max_turns: int = DEFAULT_MAX_TURNS,
        temperature: float = 0.7,
        max_tokens: int = 1024,
        tool_policy: ToolPolicy | None = None,
    ) -> None:
        if not name:
            raise ConfigurationError("Agent name must be non-empty")
        self._name = name
        self._instructions = instructions
        self._provider = provider or _NullAIProvider()
        self._tools = tools
        self._handoffs = handoffs
        self.handoff_description = handoff_description
        self._match_on = match_on
        self.input_guardrails = tuple(input_guardrails)
        self.output_guardrails = tuple(output_guardrails)
        self.memory = memory
        self._last_messages = last_messages
        self.max_turns = max_turns
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.tool_policy = tool_policy

    def __repr__(self) -> str:
        return f"Agent({self._name!r})"

    @property
    def name(self) -> str:
        return self._name

    @property
    def provider(self) -> AIProvider:
        return self._provider

    @property
    def match_on(self) -> MatchOn | None:
        return self._match_on

    # -- Handoffs ----------------------------------------------------------

    def get_configured_handoffs(self) -> tuple[Handoff, ...]:
        """Handoff targets with their configuration, in declaration order."""
        spec = self._handoffs
        if spec is None:
            return ()
        items = spec() if callable(spec) else spec
        return tuple(h if isinstance(h, Handoff) else Handoff(agent=h) for h in items)

    def get_handoffs(self) -> tuple[Agent, ...]:
        return tuple(h.agent for h in self.get_configured_handoffs())

    def find_handoff(self, name: str) -> Handoff | None:
        for configured in self.get_configured_handoffs():
            if configured.name == name:
                return configured
        return None

    @property
    def has_handoffs(self) -> bool:
        return bool(self.get_configured_handoffs())

    @property
    def last_messages(self) -> int:
        if self._last_messages is not None:
            return self._last_messages
        return ORCHESTRATOR_LAST_MESSAGES if self.has_handoffs else SPECIALIST_LAST_MESSAGES

    # -- Resolution --------------------------------------------------------

    def resolve_instructions(self, context: ExecutionContext) -> str:
        if callable(self._instructions):
            return self._instructions(context)
        return self._instructions

    def _own_tools(self, context: ExecutionContext | None) -> dict[str, Tool] | None:
        spec = self._tools
        if spec is None:
            return {}
        if callable(spec):
            if context is None:
                return None
            return _as_tool_dict(spec(context))
        return _as_tool_dict(spec)

    def declares_tool(self, tool_name: str, context: ExecutionContext | None = None) -> bool:
        """Whether the agent's own tools include *tool_name*.

        Context-derived tool sets are only inspected when *context* is given.
        """
        tools = self._own_tools(context)
        return bool(tools) and tool_name in tools

    def resolve_tools(self, context: ExecutionContext) -> dict[str, Tool]:
        """Own tools plus the handoff tool and, if enabled, the working memory tool."""
        tools = self._own_tools(context) or {}
        configured = self.get_configured_handoffs()
        if configured:
            tools[HANDOFF_TOOL_NAME] = build_handoff_tool(
                [(h.name, h.agent.handoff_description) for h in configured]
            )
        has_other_tools = any(name != HANDOFF_TOOL_NAME for name in tools)
        pure_orchestrator = bool(configured) and not has_other_tools
        memory = self.memory
        if memory is not None and memory.working_memory.enabled and not pure_orchestrator:
            tool = build_working_memory_tool(memory)
            tools[tool.name] = tool
        return tools

    def system_prompt(self, context: ExecutionContext) -> str:
        memory = self.memory
        template = None
        if memory is not None and memory.working_memory.enabled:
            template = memory.working_memory.template or DEFAULT_TEMPLATE
        return compose_system_prompt(
            self.resolve_instructions(context),
            self.has_handoffs,
            template,
            context.memory_addition or "",
        )

    # -- Execution ---------------------------------------------------------

    def stream(
        self,
        messages: list[AIMessage],
        context: ExecutionContext,
        *,
        max_steps: int | None = None,
        tool_choice: str | None = None,
        on_step_finish: StepCallback | None = None,
        executor: AgentExecutor | None = None,
    ) -> ExecutionStream:
        """Run this agent once over *messages* and stream its UI chunks.

        Stops right after a step that calls the handoff tool.
        """
        tools = self.resolve_tools(context)
        request = ExecutionRequest(
            provider=self._provider,
            messages=messages,
            context=context,
            system=self.system_prompt(context),
            tools=tools,
            tool_choice=tool_choice if tool_choice in tools else None,
            max_steps=max_steps or self.max_turns,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            stop_after_tools=frozenset({HANDOFF_TOOL_NAME}),
            tool_policy=self.tool_policy,
            unrestricted_tools=frozenset({HANDOFF_TOOL_NAME}),
            on_step_finish=on_step_finish,
        )
        return (executor or AgentExecutor()).stream(request)

    def stream_turn(
        self,
        message: UserMessage | str,
        request: TurnRequest | None = None,
        **kwargs: Any,
    ) -> UIMessageStream:
        """Run a whole multi-agent turn with this agent as the entry point.

        Shortcut for ``AgentRuntime(self).stream_turn(...)``.
        """
        from handoffkit.runtime import AgentRuntime

        return AgentRuntime(self, **kwargs).stream_turn(message, request)
