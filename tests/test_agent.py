"""Tests for the Agent descriptor and system prompt composition."""

from __future__ import annotations

import pytest

from handoffkit.agent import Agent, compose_system_prompt
from handoffkit.context import ExecutionContext
from handoffkit.errors import ConfigurationError
from handoffkit.memory.config import MemoryConfig, WorkingMemoryConfig
from handoffkit.memory.mock import MockMemoryGateway
from handoffkit.memory.working import WORKING_MEMORY_TOOL_NAME
from handoffkit.orchestration.handoff import HANDOFF_TOOL_NAME, RECOMMENDED_PROMPT_PREFIX, handoff
from handoffkit.providers.ai.base import AIMessage
from handoffkit.tools.base import Tool, tool
from tests.conftest import chunk_types, handoff_response, make_agent, make_context, scripted


@tool("lookup", "Look something up")
def lookup(args, options):
    return "found"


def _memory() -> MemoryConfig:
    return MemoryConfig(
        gateway=MockMemoryGateway(), working_memory=WorkingMemoryConfig(enabled=True)
    )


class TestComposeSystemPrompt:
    def test_plain_instructions(self) -> None:
        assert compose_system_prompt("Be kind.", False) == "Be kind."

    def test_handoff_prefix(self) -> None:
        prompt = compose_system_prompt("Route.", True)
        assert prompt.startswith(RECOMMENDED_PROMPT_PREFIX)

    def test_working_memory_and_addition(self) -> None:
        prompt = compose_system_prompt("Help.", False, "# Template", "\n## Working Memory\n\nx\n")
        assert "## Memory Instructions" in prompt
        assert "# Template" in prompt
        assert prompt.endswith("## Working Memory\n\nx\n")

    def test_memoized(self) -> None:
        compose_system_prompt.cache_clear()
        first = compose_system_prompt("Same.", True)
        second = compose_system_prompt("Same.", True)
        assert first is second
        assert compose_system_prompt.cache_info().hits == 1


class TestAgentConfiguration:
    def test_empty_name_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            Agent("", instructions="x")

    def test_last_messages_defaults(self) -> None:
        specialist = make_agent("Spec")
        orchestrator = make_agent("Orch", handoffs=[specialist])
        assert specialist.last_messages == 5
        assert orchestrator.last_messages == 10
        assert make_agent("Custom", last_messages=3).last_messages == 3

    def test_handoffs_accept_configs_and_callables(self) -> None:
        math = make_agent("Math")
        history = make_agent("History")
        triage = make_agent("Triage", handoffs=lambda: [math, handoff(history)])

        assert triage.get_handoffs() == (math, history)
        assert triage.find_handoff("History") is not None
        assert triage.find_handoff("Nobody") is None
        assert triage.has_handoffs

    def test_dynamic_instructions(self) -> None:
        agent = Agent("A", instructions=lambda ctx: f"User is {ctx.get('name')}.")
        assert agent.resolve_instructions(make_context(name="Ada")) == "User is Ada."

    async def test_missing_provider_raises(self) -> None:
        agent = Agent("A", instructions="x")
        with pytest.raises(ConfigurationError):
            await agent.provider.generate(None)  # type: ignore[arg-type]


class TestResolveTools:
    def test_specialist_tools(self) -> None:
        agent = make_agent("A", tools=[lookup])
        assert set(agent.resolve_tools(make_context())) == {"lookup"}

    def test_handoff_tool_added(self) -> None:
        triage = make_agent("Triage", handoffs=[make_agent("Math")])
        tools = triage.resolve_tools(make_context())
        assert set(tools) == {HANDOFF_TOOL_NAME}
        assert tools[HANDOFF_TOOL_NAME].parameters["properties"]["target_agent"]["enum"] == [
            "Math"
        ]

    def test_context_tools(self) -> None:
        extra = Tool(name="extra", description="x", execute=lambda a, o: "x")
        agent = make_agent("A", tools=lambda ctx: {"extra": extra} if ctx.get("on") else {})
        assert set(agent.resolve_tools(make_context(on=True))) == {"extra"}
        assert agent.resolve_tools(make_context()) == {}
        assert not agent.declares_tool("extra")
        assert agent.declares_tool("extra", make_context(on=True))

    def test_working_memory_tool_for_specialists(self) -> None:
        agent = make_agent("A", memory=_memory())
        assert WORKING_MEMORY_TOOL_NAME in agent.resolve_tools(make_context())

    def test_pure_orchestrator_gets_no_working_memory_tool(self) -> None:
        triage = make_agent("Triage", handoffs=[make_agent("Math")], memory=_memory())
        assert WORKING_MEMORY_TOOL_NAME not in triage.resolve_tools(make_context())

    def test_orchestrator_with_tools_gets_working_memory_tool(self) -> None:
        triage = make_agent(
            "Triage", handoffs=[make_agent("Math")], tools=[lookup], memory=_memory()
        )
        tools = triage.resolve_tools(make_context())
        assert {"lookup", HANDOFF_TOOL_NAME, WORKING_MEMORY_TOOL_NAME} <= set(tools)

    def test_working_memory_off_without_memory_or_when_disabled(self) -> None:
        disabled = MemoryConfig(
            gateway=MockMemoryGateway(), working_memory=WorkingMemoryConfig(enabled=False)
        )
        for memory in (None, disabled):
            agent = make_agent("A", memory=memory)
            context = make_context()
            assert WORKING_MEMORY_TOOL_NAME not in agent.resolve_tools(context)
            assert "## Memory Instructions" not in agent.system_prompt(context)

    def test_system_prompt_includes_memory_addition(self) -> None:
        agent = make_agent("A", memory=_memory())
        context = ExecutionContext(memory_addition="\n## Working Memory\n\nLikes tea\n")
        prompt = agent.system_prompt(context)
        assert "Likes tea" in prompt
        assert "## Memory Instructions" in prompt


class TestAgentStream:
    async def test_stops_after_handoff_step(self) -> None:
        provider = scripted(handoff_response("Math"))
        triage = make_agent("Triage", provider=provider, handoffs=[make_agent("Math")])

        stream = triage.stream([AIMessage(role="user", content="2+2")], make_context())
        chunks = [chunk async for chunk in stream]
        result = await stream.result()

        assert chunk_types(chunks)[0] == "start-step"
        assert "tool-output-available" in chunk_types(chunks)
        assert len(result.steps) == 1
        assert len(provider.calls) == 1
        assert provider.calls[0].system_prompt.startswith(RECOMMENDED_PROMPT_PREFIX)
