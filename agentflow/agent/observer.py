"""
Agent Observer
==============

Presentation hooks. The agent loop and the tool executor report what they do
through an observer instead of reaching into any UI. Notifications are
fire-and-forget: the loop never waits on them, and an observer that raises
is logged and ignored.

Subclass AgentObserver and override only the hooks you need:

    class PrintingObserver(AgentObserver):
        def on_assistant_text(self, text):
            print(f"assistant> {text}")
"""

from typing import TYPE_CHECKING

from agentflow.utils.logger import Logger

if TYPE_CHECKING:
    from agentflow.agent.conversation import ToolInvocation
    from agentflow.agent.core import RunOutcome
    from agentflow.tools import ToolResult

logger = Logger("Observer")


class AgentObserver:
    """No-op base observer."""

    def on_user_text(self, text: str) -> None:
        pass

    def on_assistant_text(self, text: str) -> None:
        pass

    def on_tool_result(self, invocation: "ToolInvocation", result: "ToolResult") -> None:
        pass

    def on_run_finished(self, outcome: "RunOutcome") -> None:
        pass


def notify(observer: AgentObserver | None, hook: str, *args) -> None:
    """Call observer.<hook>(*args), logging instead of raising on failure."""
    if observer is None:
        return
    try:
        getattr(observer, hook)(*args)
    except Exception as e:
        logger.error(f"Observer hook {hook} failed", e)
