"""
LLM Provider Abstraction
========================

A provider turns a bounded conversation window plus the tool schemas into
one assistant turn:

    complete(history, tools) -> AssistantTurn(text, invocations)

Concrete providers adapt this to a vendor wire protocol. They raise
MissingCredentialsError when no key is configured and UpstreamError (or
UpstreamTimeoutError) when the vendor call fails; the agent treats all of
these as fatal for the current run.
"""

from abc import ABC, abstractmethod
from typing import Sequence

from agentflow.agent.conversation import AssistantTurn, Turn
from agentflow.tools import ToolSpec


class LLMProvider(ABC):
    """Base class for model backends."""

    name: str = "base"

    @abstractmethod
    async def complete(self, history: Sequence[Turn], tools: Sequence[ToolSpec]) -> AssistantTurn:
        """
        Return the model's next assistant turn.

        Args:
            history: The bounded conversation window, oldest first
            tools: Tool schemas the model may invoke
        """

    async def aclose(self) -> None:
        """Release any network resources held by the provider."""


class UnwiredProvider(LLMProvider):
    """A provider that is declared but has no client behind it yet."""

    display_name = "Provider"

    async def complete(self, history: Sequence[Turn], tools: Sequence[ToolSpec]) -> AssistantTurn:
        raise NotImplementedError(f"{self.display_name} provider is not wired yet")


class AnthropicProvider(UnwiredProvider):
    name = "anthropic"
    display_name = "Anthropic"


class GoogleProvider(UnwiredProvider):
    name = "google"
    display_name = "Google"
