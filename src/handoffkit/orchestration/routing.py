"""Routing selector: picks the starting agent for a turn.

Priority, first match wins:

1. explicit agent choice naming one of the specialists
2. tool choice declared by exactly one specialist
3. pattern match (``"auto"``: first in declaration order;
   ``"best-match"``: highest score)
4. the orchestrator itself
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from handoffkit.models.enums import MatchStrategy, RoutingStrategy

if TYPE_CHECKING:
    from handoffkit.agent import Agent
    from handoffkit.context import ExecutionContext

logger = logging.getLogger("handoffkit.orchestration.routing")

Pattern = str | re.Pattern[str]
MatchOn = Sequence[Pattern] | Callable[[str], bool]

_PREDICATE_SCORE = 10
_REGEX_SCORE = 2


@dataclass(frozen=True)
class MatchResult:
    matched: bool
    score: int = 0


@dataclass(frozen=True)
class RoutingDecision:
    """The chosen starting agent and how it was chosen.

    ``strategy`` is ``None`` when no rule matched and the orchestrator runs
    directly.
    """

    agent: Agent
    strategy: RoutingStrategy | None = None

    @property
    def delegated(self) -> bool:
        return self.strategy is not None


def match_agent(name: str, match_on: MatchOn | None, text: str) -> MatchResult:
    """Score *text* against one agent's patterns.

    String patterns match as case-insensitive substrings and score their
    word count; regex patterns use :meth:`re.Pattern.search` and score 2; a
    predicate scores 10.  A raising predicate is logged and counts as no match.
    """
    if not match_on:
        return MatchResult(matched=False)

    if callable(match_on):
        try:
            matched = bool(match_on(text))
        except Exception:
            logger.exception("match_on predicate for %s raised", name)
            return MatchResult(matched=False)
        return MatchResult(matched=matched, score=_PREDICATE_SCORE if matched else 0)

    lowered = text.lower()
    score = 0
    for pattern in match_on:
        if isinstance(pattern, re.Pattern):
            if pattern.search(text):
                score += _REGEX_SCORE
        elif pattern and pattern.lower() in lowered:
            score += len(pattern.split())
    return MatchResult(matched=score > 0, score=score)


def find_first_match(agents: Sequence[Agent], text: str) -> Agent | None:
    """First agent in declaration order whose patterns match *text*."""
    for agent in agents:
        if match_agent(agent.name, agent.match_on, text).matched:
            return agent
    return None


def find_best_match(agents: Sequence[Agent], text: str) -> Agent | None:
    """Highest-scoring matching agent; ties go to the earlier declaration."""
    best: Agent | None = None
    best_score = 0
    for agent in agents:
        result = match_agent(agent.name, agent.match_on, text)
        if result.matched and result.score > best_score:
            best, best_score = agent, result.score
    return best


def select_starting_agent(
    orchestrator: Agent,
    specialists: Sequence[Agent],
    text: str,
    *,
    explicit_agent: str | None = None,
    tool_choice: str | None = None,
    strategy: str = MatchStrategy.AUTO,
    context: ExecutionContext | None = None,
) -> RoutingDecision:
    """Pick the agent that starts the turn. Deterministic for fixed inputs."""
    if explicit_agent:
        for agent in specialists:
            if agent.name == explicit_agent:
                logger.info("Routing to %s (explicit)", agent.name)
                return RoutingDecision(agent, RoutingStrategy.EXPLICIT)
        logger.debug("Explicit agent %r is not a specialist; ignoring", explicit_agent)

    if tool_choice:
        owners = [a for a in specialists if a.declares_tool(tool_choice, context)]
        if len(owners) == 1:
            logger.info("Routing to %s (tool choice %s)", owners[0].name, tool_choice)
            return RoutingDecision(owners[0], RoutingStrategy.TOOL_CHOICE)
        logger.debug("Tool choice %r matched %d specialists; ignoring", tool_choice, len(owners))

    if strategy == MatchStrategy.AUTO:
        matched = find_first_match(specialists, text)
    elif strategy == MatchStrategy.BEST_MATCH:
        matched = find_best_match(specialists, text)
    else:
        matched = None
    if matched is not None:
        logger.info("Routing to %s (programmatic, %s)", matched.name, strategy)
        return RoutingDecision(matched, RoutingStrategy.PROGRAMMATIC)

    return RoutingDecision(orchestrator)
