"""Tests for run state transitions and handoff acceptance."""

from __future__ import annotations

from handoffkit.models.enums import RoutingStrategy, RunPhase
from handoffkit.orchestration.driver import (
    STOP_MAX_ROUNDS,
    STOP_TARGET_USED,
    STOP_UNKNOWN_TARGET,
    build_registry,
    evaluate_handoff,
    message_window,
)
from handoffkit.orchestration.handoff import HandoffSignal, handoff
from handoffkit.orchestration.state import RunState
from handoffkit.providers.ai.base import AIMessage
from tests.conftest import make_agent


def _signal(target: str) -> HandoffSignal:
    return HandoffSignal(target_agent=target)


class TestRunState:
    def test_initial_state(self) -> None:
        state = RunState(request_id="r1")
        assert state.phase == RunPhase.ROUTING
        assert state.round == 0
        assert state.used_agents == frozenset()

    def test_delegated_route_marks_used(self) -> None:
        state = RunState(request_id="r1").route(
            "MathTutor", RoutingStrategy.PROGRAMMATIC, from_agent="Triage"
        )
        assert state.phase == RunPhase.EXECUTING
        assert state.current_agent == "MathTutor"
        assert state.is_used("MathTutor")
        assert state.switches[0].from_agent == "Triage"
        assert state.switches[0].strategy == RoutingStrategy.PROGRAMMATIC

    def test_orchestrator_route_does_not_mark_used(self) -> None:
        state = RunState(request_id="r1").route("Triage", None)
        assert state.current_agent == "Triage"
        assert not state.is_used("Triage")
        assert state.switches == []

    def test_begin_round_increments(self) -> None:
        state = RunState(request_id="r1").route("Triage", None).begin_round().begin_round()
        assert state.round == 2

    def test_handoff_records_switch(self) -> None:
        state = RunState(request_id="r1").route("Triage", None).begin_round()
        state = state.handoff("MathTutor", "math question")

        assert state.phase == RunPhase.HANDOFF
        assert state.current_agent == "MathTutor"
        assert state.is_used("MathTutor")
        record = state.switches[-1]
        assert record.from_agent == "Triage"
        assert record.strategy == RoutingStrategy.LLM
        assert record.reason == "math question"
        assert record.round == 1

    def test_transitions_are_immutable(self) -> None:
        initial = RunState(request_id="r1")
        initial.route("A", RoutingStrategy.EXPLICIT)
        assert initial.current_agent is None
        assert initial.used_agents == frozenset()

    def test_complete_and_fail(self) -> None:
        state = RunState(request_id="r1")
        done = state.complete("max-rounds")
        assert done.phase == RunPhase.DONE
        assert done.stop_reason == "max-rounds"

        failed = state.fail("boom")
        assert failed.phase == RunPhase.ERROR
        assert failed.error == "boom"

    def test_rounds_exhausted(self) -> None:
        state = RunState(request_id="r1", round=5)
        assert state.rounds_exhausted(5)
        assert not state.rounds_exhausted(6)


class TestEvaluateHandoff:
    def test_accepts_fresh_known_target(self) -> None:
        state = RunState(request_id="r1", round=1)
        assert evaluate_handoff(state, _signal("B"), max_rounds=5, known_agents={"A", "B"}) is None

    def test_rejects_used_target(self) -> None:
        state = RunState(request_id="r1", round=1, used_agents=frozenset({"B"}))
        stop = evaluate_handoff(state, _signal("B"), max_rounds=5, known_agents={"A", "B"})
        assert stop == STOP_TARGET_USED

    def test_rejects_unknown_target(self) -> None:
        state = RunState(request_id="r1", round=1)
        stop = evaluate_handoff(state, _signal("Ghost"), max_rounds=5, known_agents={"A"})
        assert stop == STOP_UNKNOWN_TARGET

    def test_rejects_when_rounds_exhausted(self) -> None:
        state = RunState(request_id="r1", round=2)
        stop = evaluate_handoff(state, _signal("B"), max_rounds=2, known_agents={"A", "B"})
        assert stop == STOP_MAX_ROUNDS

    def test_used_check_precedes_round_check(self) -> None:
        state = RunState(request_id="r1", round=9, used_agents=frozenset({"B"}))
        stop = evaluate_handoff(state, _signal("B"), max_rounds=2, known_agents={"B"})
        assert stop == STOP_TARGET_USED


class TestMessageWindow:
    def _messages(self, n: int) -> list[AIMessage]:
        return [AIMessage(role="user", content=f"m{i}") for i in range(n)]

    def test_keeps_last_n(self) -> None:
        window = message_window(self._messages(8), 3)
        assert [m.content for m in window] == ["m5", "m6", "m7"]

    def test_shorter_history_is_kept_whole(self) -> None:
        assert len(message_window(self._messages(2), 5)) == 2

    def test_zero_falls_back_to_last_message(self) -> None:
        window = message_window(self._messages(4), 0)
        assert [m.content for m in window] == ["m3"]

    def test_empty_history(self) -> None:
        assert message_window([], 5) == []


class TestBuildRegistry:
    def test_collects_reachable_agents(self) -> None:
        leaf = make_agent("Leaf")
        middle = make_agent("Middle", handoffs=[leaf])
        root = make_agent("Root", handoffs=[middle])

        registry = build_registry(root)

        assert set(registry) == {"Root", "Middle", "Leaf"}
        assert registry["Leaf"] is leaf

    def test_handles_cycles(self) -> None:
        agents: dict[str, object] = {}
        math = make_agent("Math", handoffs=lambda: [agents["History"]])
        history = make_agent("History", handoffs=lambda: [handoff(math)])
        agents["History"] = history
        root = make_agent("Root", handoffs=[math, history])

        registry = build_registry(root)

        assert set(registry) == {"Root", "Math", "History"}
