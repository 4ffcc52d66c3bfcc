import pytest

from agentflow.agent import AgentObserver, ToolExecutor, ToolInvocation
from agentflow.agent.tools_executor import parse_arguments
from agentflow.tools import ToolRegistry, ToolSpec
from agentflow.tools.text_utils import create_text_utility_tool
from agentflow.utils.errors import ArgumentParseError


async def _explode(params):
    raise RuntimeError("kaboom")


async def _echo(params):
    return {"echo": params}


def _registry():
    registry = ToolRegistry()
    registry.register(create_text_utility_tool())
    registry.register(ToolSpec(name="explode", description="fails", parameters={}, handler=_explode))
    registry.register(ToolSpec(name="echo", description="echo", parameters={}, handler=_echo))
    return registry


class TestParseArguments:
    def test_json_string(self):
        assert parse_arguments("t", '{"a": 1}') == {"a": 1}

    def test_dict_passthrough(self):
        assert parse_arguments("t", {"a": 1}) == {"a": 1}

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_empty_payload_is_empty_object(self, raw):
        assert parse_arguments("t", raw) == {}

    def test_malformed_json(self):
        with pytest.raises(ArgumentParseError, match="invalid arguments for t"):
            parse_arguments("t", '{"a": ')

    def test_non_object_json(self):
        with pytest.raises(ArgumentParseError, match="expected a JSON object, got list"):
            parse_arguments("t", "[1, 2]")


@pytest.mark.asyncio
class TestToolExecutor:
    async def test_success_wraps_value(self):
        executor = ToolExecutor(_registry())
        result = await executor.execute(ToolInvocation(
            id="call_1",
            name="text_utility",
            arguments='{"operation": "keywords", "text": "alpha alpha beta gamma gamma gamma"}'
        ))
        assert result.to_dict() == {"ok": True, "value": {"result": ["gamma", "alpha"]}}

    async def test_unknown_tool(self):
        executor = ToolExecutor(_registry())
        result = await executor.execute(ToolInvocation(id="c", name="teleport", arguments="{}"))
        assert result.to_dict() == {"ok": False, "error": "unknown tool teleport"}

    async def test_unparseable_arguments_do_not_reach_handler(self):
        executor = ToolExecutor(_registry())
        result = await executor.execute(ToolInvocation(id="c", name="echo", arguments="not json"))
        assert not result.ok
        assert result.error.startswith("invalid arguments for echo:")

    async def test_handler_exception_is_captured(self):
        executor = ToolExecutor(_registry())
        result = await executor.execute(ToolInvocation(id="c", name="explode", arguments={}))
        assert result.to_dict() == {"ok": False, "error": "kaboom"}

    async def test_unknown_operation_is_a_failed_result(self):
        executor = ToolExecutor(_registry())
        result = await executor.execute(ToolInvocation(
            id="c", name="text_utility", arguments={"operation": "shout", "text": "hi"}
        ))
        assert result.to_dict() == {"ok": False, "error": "Unknown text operation: shout"}

    async def test_observer_notified(self, observer):
        executor = ToolExecutor(_registry(), observer)
        invocation = ToolInvocation(id="c1", name="echo", arguments={"x": 1})
        result = await executor.execute(invocation)
        assert observer.events == [("tool", "c1", result)]

    async def test_failing_observer_does_not_break_execution(self):
        class BrokenObserver(AgentObserver):
            def on_tool_result(self, invocation, result):
                raise RuntimeError("display is gone")

        executor = ToolExecutor(_registry(), BrokenObserver())
        result = await executor.execute(ToolInvocation(id="c", name="echo", arguments={}))
        assert result.ok

    async def test_run_tool_directly(self):
        executor = ToolExecutor(_registry())
        result = await executor.run_tool("echo", {"q": "x"})
        assert result.value == {"echo": {"q": "x"}}
