"""Per-turn run state for the round driver.

Every transition returns a new :class:`RunState`; the original is never
modified.  ``used_agents`` holds every agent already entered this turn,
the entry agent included, and is the guard against handoff cycles.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field

from handoffkit.models.enums import RoutingStrategy, RunPhase


class RoundRecord(BaseModel):
    """Audit record for one agent switch."""

    from_agent: str | None
    to_agent: str
    strategy: RoutingStrategy | None = None
    reason: str | None = None
    round: int = 0
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class RunState(BaseModel):
    """Round counter, current agent and used-agent set for one turn."""

    request_id: str
    phase: RunPhase = RunPhase.ROUTING
    round: int = 0
    current_agent: str | None = None
    used_agents: frozenset[str] = frozenset()
    switches: list[RoundRecord] = Field(default_factory=list)
    stop_reason: str | None = None
    error: str | None = None

    def is_used(self, agent: str) -> bool:
        return agent in self.used_agents

    def rounds_exhausted(self, max_rounds: int) -> bool:
        return self.round >= max_rounds

    @property
    def handoff_count(self) -> int:
        """Agent switches signalled by a model, initial routing excluded."""
        return sum(1 for s in self.switches if s.strategy == RoutingStrategy.LLM)

    def route(
        self,
        agent: str,
        strategy: RoutingStrategy | None,
        *,
        from_agent: str | None = None,
    ) -> RunState:
        """ROUTING → EXECUTING with the starting agent.

        A delegated choice (any *strategy*) marks *agent* used.
        """
        used = self.used_agents | {agent} if strategy is not None else self.used_agents
        switches = self.switches
        if strategy is not None:
            record = RoundRecord(from_agent=from_agent, to_agent=agent, strategy=strategy)
            switches = [*switches, record]
        return self.model_copy(
            update={
                "phase": RunPhase.EXECUTING,
                "current_agent": agent,
                "used_agents": used,
                "switches": switches,
            }
        )

    def begin_round(self) -> RunState:
        return self.model_copy(update={"phase": RunPhase.EXECUTING, "round": self.round + 1})

    def handoff(self, to_agent: str, reason: str | None = None) -> RunState:
        """HANDOFF: mark *to_agent* used and make it current."""
        record = RoundRecord(
            from_agent=self.current_agent,
            to_agent=to_agent,
            strategy=RoutingStrategy.LLM,
            reason=reason,
            round=self.round,
        )
        return self.model_copy(
            update={
                "phase": RunPhase.HANDOFF,
                "current_agent": to_agent,
                "used_agents": self.used_agents | {to_agent},
                "switches": [*self.switches, record],
            }
        )

    def complete(self, stop_reason: str = "completed") -> RunState:
        return self.model_copy(update={"phase": RunPhase.DONE, "stop_reason": stop_reason})

    def fail(self, error: str) -> RunState:
        return self.model_copy(
            update={"phase": RunPhase.ERROR, "stop_reason": "error", "error": error}
        )
