"""Lifecycle events delivered to ``on_event`` callbacks."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field


class _Event(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class AgentStartEvent(_Event):
    type: Literal["agent-start"] = "agent-start"
    agent: str
    round: int


class AgentStepEvent(_Event):
    type: Literal["agent-step"] = "agent-step"
    agent: str
    step: int
    finish_reason: str | None = None


class AgentFinishEvent(_Event):
    type: Literal["agent-finish"] = "agent-finish"
    agent: str
    round: int


class AgentHandoffEvent(_Event):
    type: Literal["agent-handoff"] = "agent-handoff"
    from_agent: str = Field(alias="from")
    to: str
    reason: str | None = None


class AgentCompleteEvent(_Event):
    type: Literal["agent-complete"] = "agent-complete"
    total_rounds: int


class AgentErrorEvent(_Event):
    type: Literal["agent-error"] = "agent-error"
    error: str
    agent: str | None = None


AgentEvent = Annotated[
    AgentStartEvent
    | AgentStepEvent
    | AgentFinishEvent
    | AgentHandoffEvent
    | AgentCompleteEvent
    | AgentErrorEvent,
    Field(discriminator="type"),
]
