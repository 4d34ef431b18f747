"""Handoff protocol between agents.

An agent hands off by calling the reserved ``handoff_to_agent`` tool.  The
tool's output is a :class:`HandoffSignal`, consumed by the round driver in
the same round and never shown to the user.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from handoffkit.tools.base import Tool, ToolCallOptions

if TYPE_CHECKING:
    from handoffkit.agent import Agent
    from handoffkit.context import ExecutionContext
    from handoffkit.providers.ai.base import AIMessage

logger = logging.getLogger("handoffkit.orchestration.handoff")

HANDOFF_TOOL_NAME = "handoff_to_agent"

RECOMMENDED_PROMPT_PREFIX = """<system_context>
You are part of a multi-agent system designed to make agent coordination and execution easy. \
This system uses two primary abstractions: **Agents** and **Handoffs**. An agent encompasses \
instructions and tools and can hand off a conversation to another agent when appropriate. \
Handoffs are achieved by calling a handoff function, generally named `handoff_to_agent`. \
Transfers between agents are handled seamlessly in the background; do not mention or draw \
attention to these transfers in your conversation with the user.
</system_context>

<tool_calling_guidelines>
When you need to call multiple tools, call them ALL at once using parallel tool calling.
</tool_calling_guidelines>"""


def prompt_with_handoff_instructions(prompt: str) -> str:
    """Prefix *prompt* with the recommended handoff instructions."""
    return f"{RECOMMENDED_PROMPT_PREFIX}\n\n{prompt}"


def is_handoff_tool(tool_name: str | None) -> bool:
    return tool_name == HANDOFF_TOOL_NAME


# -- Models ------------------------------------------------------------------


class HandoffSignal(BaseModel):
    """Instruction to transfer the turn to ``target_agent``."""

    model_config = ConfigDict(populate_by_name=True)

    target_agent: str = Field(alias="targetAgent", min_length=1)
    context: str | None = None
    reason: str | None = None

    @classmethod
    def parse(cls, output: Any) -> HandoffSignal | None:
        """Parse a handoff tool output, or ``None`` if it is not a signal."""
        if isinstance(output, HandoffSignal):
            return output
        if isinstance(output, str):
            try:
                output = json.loads(output)
            except json.JSONDecodeError:
                logger.warning("Handoff tool output is not JSON: %r", output[:200])
                return None
        try:
            return cls.model_validate(output)
        except ValidationError as exc:
            logger.warning("Invalid handoff signal: %s", exc)
            return None

    def to_output(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


@dataclass(frozen=True)
class ToolOutput:
    """A non-handoff tool result captured during the handing-off round."""

    tool_name: str
    result: Any


@dataclass
class HandoffInputData:
    """What a handoff input filter sees and returns.

    Attributes:
        input_history: Conversation messages carried into the next agent.
        pre_handoff_items: Messages the handing-off agent produced this round.
        new_items: Tool outputs captured this round, keyed by tool name.
        run_context: The shared execution context.
    """

    input_history: list[AIMessage]
    run_context: ExecutionContext
    pre_handoff_items: list[AIMessage] = field(default_factory=list)
    new_items: list[AIMessage | ToolOutput] = field(default_factory=list)


InputFilter = Callable[[HandoffInputData], HandoffInputData | Awaitable[HandoffInputData]]
HandoffCallback = Callable[["ExecutionContext"], Awaitable[None] | None]


@dataclass(frozen=True)
class Handoff:
    """A configured handoff target."""

    agent: Agent
    input_filter: InputFilter | None = None
    on_handoff: HandoffCallback | None = None

    @property
    def name(self) -> str:
        return self.agent.name


def handoff(
    agent: Agent,
    *,
    input_filter: InputFilter | None = None,
    on_handoff: HandoffCallback | None = None,
) -> Handoff:
    """Configure a handoff to *agent* with an optional filter and callback."""
    return Handoff(agent=agent, input_filter=input_filter, on_handoff=on_handoff)


# -- Tool definition ----------------------------------------------------------


def build_handoff_tool(targets: list[tuple[str, str | None]]) -> Tool:
    """Build the handoff tool with ``target_agent`` constrained to *targets*.

    Args:
        targets: ``(agent_name, description_or_none)`` pairs in declaration order.
    """
    names = [name for name, _ in targets]
    target_lines = [f"  - {name}: {desc}" if desc else f"  - {name}" for name, desc in targets]
    description = (
        "Transfer the conversation to another specialized agent.\nAvailable agents:\n"
        + "\n".join(target_lines)
    )

    async def _execute(arguments: dict[str, Any], options: ToolCallOptions) -> dict[str, Any]:
        signal = HandoffSignal(
            target_agent=arguments.get("target_agent") or arguments.get("targetAgent") or "",
            context=arguments.get("context"),
            reason=arguments.get("reason"),
        )
        return signal.to_output()

    return Tool(
        name=HANDOFF_TOOL_NAME,
        description=description,
        execute=_execute,
        parameters={
            "type": "object",
            "properties": {
                "target_agent": {
                    "type": "string",
                    "enum": names,
                    "description": "Agent to transfer to",
                },
                "context": {
                    "type": "string",
                    "description": "Context or summary to pass to the target agent",
                },
                "reason": {"type": "string", "description": "Reason for the handoff"},
            },
            "required": ["target_agent"],
        },
    )
