"""
Agent Core
==========

The agent loop that ties the provider, the tools and the conversation
together.

Agent Loop:
    User Message
         │
         ▼
    Append UserTurn
         │
         ▼
    MODEL_CALL: provider.complete(window, tool schemas)  ◄──────┐
         │                                                      │
         ▼                                                      │
    Append AssistantTurn (emit text, if any)                    │
         │                                                      │
    ┌─── Has Invocations? ───┐                                  │
    │                        │                                  │
    No                       Yes                                │
    │                        │                                  │
    ▼                        ▼                                  │
    TEXT_ONLY          TOOL_DISPATCH: execute each in order,    │
    (done)             append one ToolResultTurn per call       │
                             │                                  │
                             ├── auto-continue ─────────────────┘
                             │   (until max_iterations)
                             ▼
                       stop, await user

Failure semantics:
- A failing tool is recorded as an error-bearing tool result; the run goes on.
- A failing provider (credentials, network, upstream status) aborts the run
  and the exception propagates to the caller.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from agentflow.agent.conversation import (
    AssistantTurn,
    Conversation,
    ToolResultTurn,
    Turn,
    UserTurn,
)
from agentflow.agent.observer import AgentObserver, notify
from agentflow.agent.tools_executor import ToolExecutor
from agentflow.tools import ToolRegistry, ToolResult
from agentflow.utils.logger import Logger

if TYPE_CHECKING:
    from agentflow.providers.base import LLMProvider
    from agentflow.utils.config import Config, SecretStore

logger = Logger("Agent")


class AgentState(str, Enum):
    AWAITING_USER = "awaiting_user"
    MODEL_CALL = "model_call"
    TEXT_ONLY = "text_only"
    TOOL_DISPATCH = "tool_dispatch"


class StopReason(str, Enum):
    COMPLETED = "completed"              # Model answered without tool calls
    PAUSED = "paused"                    # Tools ran, auto-continue was off
    MAX_ITERATIONS = "max_iterations"    # Iteration cap reached


@dataclass(frozen=True)
class RunOutcome:
    """
    Summary of one user-initiated run.

    Attributes:
        stop_reason: Why the loop stopped
        iterations: Number of provider calls made
        tool_calls: Number of tool invocations executed
        final_text: Text of the last assistant turn that carried text
    """
    stop_reason: StopReason
    iterations: int
    tool_calls: int
    final_text: str | None = None


class Agent:
    """
    Runs the model/tool loop over a single conversation.

    Example:
        agent = Agent(provider, registry, observer=ConsoleObserver())

        outcome = await agent.run("Find three facts about the Moon")
        print(outcome.stop_reason, outcome.final_text)
    """

    DEFAULT_MAX_ITERATIONS = 25

    def __init__(
        self,
        provider: "LLMProvider",
        registry: ToolRegistry,
        observer: AgentObserver | None = None,
        history_window: int = 20,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        auto_continue: bool = True
    ):
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")

        self.provider = provider
        self.registry = registry
        self.observer = observer
        self.max_iterations = max_iterations
        self.auto_continue = auto_continue

        self.conversation = Conversation(window_size=history_window)
        self.tool_executor = ToolExecutor(registry, observer)
        self.state = AgentState.AWAITING_USER

        # One run at a time per conversation
        self._run_lock = asyncio.Lock()

        logger.info(
            f"Agent initialized with provider: {provider.name}",
            {"tools": registry.list_names(), "window": history_window, "max_iterations": max_iterations}
        )

    @classmethod
    def from_config(
        cls,
        config: "Config",
        secrets: "SecretStore",
        observer: AgentObserver | None = None
    ) -> "Agent":
        """Assemble an agent with the configured provider and default tools."""
        from agentflow.providers import create_provider
        from agentflow.tools import build_default_registry

        return cls(
            provider=create_provider(config.llm.provider, secrets, config),
            registry=build_default_registry(secrets, config),
            observer=observer,
            history_window=config.agent.history_window,
            max_iterations=config.agent.max_iterations,
            auto_continue=config.agent.auto_continue,
        )

    @property
    def history(self) -> tuple[Turn, ...]:
        """Read-only view of every turn so far."""
        return self.conversation.turns

    @property
    def is_running(self) -> bool:
        return self._run_lock.locked()

    async def run(
        self,
        text: str,
        auto_continue: bool | None = None,
        provider: "LLMProvider | None" = None
    ) -> RunOutcome:
        """
        Process one user message until the model stops calling tools.

        Args:
            text: The user's message
            auto_continue: Override the agent's auto-continue setting
            provider: Use this provider for this run only

        Returns:
            RunOutcome describing how the run ended

        Raises:
            MissingCredentialsError, UpstreamError, NotImplementedError:
                Provider failures abort the run
        """
        auto = self.auto_continue if auto_continue is None else auto_continue
        provider = provider or self.provider

        async with self._run_lock:
            logger.info(f"Run started (auto_continue={auto}): {text[:50]}")
            self.conversation.append(UserTurn(text))
            notify(self.observer, "on_user_text", text)

            try:
                outcome = await self._loop(provider, auto)
            except Exception as e:
                logger.error("Run aborted", e)
                raise
            finally:
                self._settle_pending()
                self.state = AgentState.AWAITING_USER

        logger.info(
            f"Run finished: {outcome.stop_reason.value}",
            {"iterations": outcome.iterations, "tool_calls": outcome.tool_calls}
        )
        notify(self.observer, "on_run_finished", outcome)
        return outcome

    async def _loop(self, provider: "LLMProvider", auto_continue: bool) -> RunOutcome:
        iterations = 0
        tool_calls = 0
        final_text = None

        while True:
            self.state = AgentState.MODEL_CALL
            iterations += 1
            logger.debug(f"Iteration {iterations}")

            turn = await provider.complete(
                self.conversation.window(),
                self.registry.export_schemas()
            )

            if turn.text or turn.invocations:
                self.conversation.append(turn)
            if turn.text:
                final_text = turn.text
                notify(self.observer, "on_assistant_text", turn.text)

            if not turn.invocations:
                self.state = AgentState.TEXT_ONLY
                return RunOutcome(StopReason.COMPLETED, iterations, tool_calls, final_text)

            self.state = AgentState.TOOL_DISPATCH
            await self._dispatch(turn)
            tool_calls += len(turn.invocations)

            if not auto_continue:
                return RunOutcome(StopReason.PAUSED, iterations, tool_calls, final_text)

            if iterations >= self.max_iterations:
                logger.warning(f"Reached max iterations ({self.max_iterations})")
                return RunOutcome(StopReason.MAX_ITERATIONS, iterations, tool_calls, final_text)

    async def _dispatch(self, turn: AssistantTurn) -> None:
        # Sequential, so results land in the order the model issued the calls
        for invocation in turn.invocations:
            result = await self.tool_executor.execute(invocation)
            self.conversation.append(ToolResultTurn(
                invocation_id=invocation.id,
                tool_name=invocation.name,
                result=result
            ))

    def _settle_pending(self) -> None:
        # A cancelled dispatch must still leave one result per invocation
        for invocation_id, name in self.conversation.pending_invocations.items():
            logger.warning(f"Tool {name} interrupted before completing")
            self.conversation.append(ToolResultTurn(
                invocation_id=invocation_id,
                tool_name=name,
                result=ToolResult.failure("tool execution was interrupted")
            ))

    def clear_conversation(self) -> None:
        """
        Start a fresh conversation.

        Raises:
            RuntimeError: If a run is in progress
        """
        if self.is_running:
            raise RuntimeError("Cannot clear the conversation while a run is active")
        self.conversation.clear()
        logger.info("Cleared conversation")
