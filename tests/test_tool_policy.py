"""Tests for tool definitions and access policy."""

from __future__ import annotations

import pytest

from handoffkit.errors import ToolPermissionDeniedError
from handoffkit.tools.base import Tool, ToolCallOptions, tool
from handoffkit.tools.policy import ToolPolicy
from tests.conftest import make_context


class TestTool:
    async def test_sync_and_async_execute(self) -> None:
        options = ToolCallOptions(tool_call_id="c1", context=make_context())

        async def async_fn(args, opts):
            return {"echo": args["x"]}

        sync_tool = Tool(name="s", description="s", execute=lambda a, o: a["x"] * 2)
        async_tool = Tool(name="a", description="a", execute=async_fn)

        assert await sync_tool.run({"x": 2}, options) == 4
        assert await async_tool.run({"x": 1}, options) == {"echo": 1}

    def test_decorator_builds_tool(self) -> None:
        @tool("greet", "Say hello", {"type": "object", "properties": {"name": {"type": "string"}}})
        def greet(args, options):
            return f"hello {args['name']}"

        assert isinstance(greet, Tool)
        ai_tool = greet.to_ai_tool()
        assert ai_tool.name == "greet"
        assert "name" in ai_tool.parameters["properties"]

    def test_default_schema(self) -> None:
        assert Tool(name="t", description="t", execute=lambda a, o: None).parameters == {
            "type": "object",
            "properties": {},
        }


class TestToolPolicy:
    def test_empty_policy_allows_everything(self) -> None:
        assert ToolPolicy().is_allowed("anything")

    def test_deny_wins(self) -> None:
        policy = ToolPolicy(allow=["get_*"], deny=["get_secret"])
        assert policy.is_allowed("get_weather")
        assert not policy.is_allowed("get_secret")

    def test_allow_is_whitelist(self) -> None:
        policy = ToolPolicy(allow=["search_*"])
        assert policy.is_allowed("search_docs")
        assert not policy.is_allowed("delete_all")

    def test_deny_only_permits_the_rest(self) -> None:
        policy = ToolPolicy(deny=["rm"])
        assert [n for n in ["ls", "rm"] if policy.is_allowed(n)] == ["ls"]

    async def test_authorize_static_denial(self) -> None:
        with pytest.raises(ToolPermissionDeniedError) as exc_info:
            await ToolPolicy(deny=["rm"]).authorize("rm", {}, make_context())
        assert exc_info.value.tool_name == "rm"

    async def test_authorize_dynamic_check(self) -> None:
        async def only_admins(name, arguments, context):
            return True if context.get("role") == "admin" else "Admins only."

        policy = ToolPolicy(check=only_admins)
        await policy.authorize("drop_table", {}, make_context(role="admin"))
        with pytest.raises(ToolPermissionDeniedError) as exc_info:
            await policy.authorize("drop_table", {}, make_context(role="guest"))
        assert exc_info.value.reason == "Admins only."

    async def test_check_returning_false(self) -> None:
        policy = ToolPolicy(check=lambda name, arguments, context: False)
        with pytest.raises(ToolPermissionDeniedError):
            await policy.authorize("x", {}, make_context())
