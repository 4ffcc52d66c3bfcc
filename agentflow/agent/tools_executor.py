"""
Tool Executor
=============

Runs the tool invocations issued by the model.

For each invocation the executor:
1. Looks the tool up in the registry
2. Parses the raw arguments into a JSON object
3. Awaits the tool's handler
4. Wraps the outcome in a ToolResult

Nothing a tool does can escape as an exception: unknown tools, malformed
arguments and handler failures all come back as ToolResult.failure(...), so
the agent can record them and let the model react on its next turn.
"""

import json
import uuid
from typing import Any

from agentflow.agent.conversation import ToolInvocation
from agentflow.agent.observer import AgentObserver, notify
from agentflow.tools import ToolRegistry, ToolResult
from agentflow.utils.errors import ArgumentParseError, UnknownToolError
from agentflow.utils.logger import Logger

logger = Logger("ToolExecutor")


def parse_arguments(tool_name: str, raw: Any) -> dict:
    """
    Turn a raw argument payload into a dict.

    Only the structure is checked; the tool's schema is not enforced.

    Raises:
        ArgumentParseError: If the payload is not a JSON object
    """
    if raw is None:
        return {}
    if isinstance(raw, dict):
        return dict(raw)
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    if not isinstance(raw, str):
        raise ArgumentParseError(
            f"invalid arguments for {tool_name}: expected a JSON object, got {type(raw).__name__}"
        )
    if not raw.strip():
        return {}

    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ArgumentParseError(f"invalid arguments for {tool_name}: {e}") from None

    if not isinstance(parsed, dict):
        raise ArgumentParseError(
            f"invalid arguments for {tool_name}: expected a JSON object, got {type(parsed).__name__}"
        )
    return parsed


class ToolExecutor:
    """
    Executes tool invocations against a registry.

    Example:
        executor = ToolExecutor(registry, observer)

        result = await executor.execute(
            ToolInvocation(id="call_1", name="text_utility",
                           arguments='{"operation": "sentiment", "text": "great"}')
        )
        result.to_dict()   # {"ok": True, "value": {"result": {...}}}
    """

    def __init__(self, registry: ToolRegistry, observer: AgentObserver | None = None):
        self.registry = registry
        self.observer = observer

    async def execute(self, invocation: ToolInvocation) -> ToolResult:
        """
        Execute a single invocation. Never raises for tool-level failures.
        """
        result = await self._execute(invocation)

        if result.ok:
            logger.debug(f"Tool {invocation.name} succeeded")
        else:
            logger.warning(f"Tool {invocation.name} failed: {result.error}")

        notify(self.observer, "on_tool_result", invocation, result)
        return result

    async def _execute(self, invocation: ToolInvocation) -> ToolResult:
        spec = self.registry.get(invocation.name)
        if spec is None:
            return ToolResult.failure(str(UnknownToolError(invocation.name)))

        try:
            arguments = parse_arguments(invocation.name, invocation.arguments)
        except ArgumentParseError as e:
            return ToolResult.failure(str(e))

        logger.info(f"Executing tool: {invocation.name}")
        try:
            value = await spec.handler(arguments)
        except Exception as e:
            logger.error(f"Tool execution failed: {invocation.name}", e)
            return ToolResult.failure(str(e) or type(e).__name__)

        return ToolResult.success(value)

    async def run_tool(self, name: str, arguments: Any = None) -> ToolResult:
        """Run a tool directly, outside of any model turn."""
        invocation = ToolInvocation(id=f"direct_{uuid.uuid4().hex[:12]}", name=name, arguments=arguments)
        return await self.execute(invocation)
