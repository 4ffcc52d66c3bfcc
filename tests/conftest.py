"""
Shared test fixtures.

Nothing here talks to a real service: model providers are scripted fakes
and HTTP goes through httpx.MockTransport.
"""

import json

import httpx
import pytest

from agentflow.agent import AgentObserver, AssistantTurn, ToolInvocation
from agentflow.providers.base import LLMProvider
from agentflow.utils.config import (
    AgentConfig,
    Config,
    LLMConfig,
    SandboxConfig,
    SearchConfig,
    SecretStore,
)


class ScriptedProvider(LLMProvider):
    """Returns pre-baked assistant turns and records what it was sent."""

    name = "scripted"

    def __init__(self, *turns):
        self.turns = list(turns)
        self.calls = []
        self.closed = False

    async def complete(self, history, tools):
        self.calls.append({"history": tuple(history), "tools": list(tools)})
        if not self.turns:
            raise AssertionError("ScriptedProvider ran out of turns")
        turn = self.turns.pop(0)
        if isinstance(turn, Exception):
            raise turn
        return turn

    async def aclose(self):
        self.closed = True


class LoopingProvider(LLMProvider):
    """Always asks for the same tool; used to exercise the iteration cap."""

    name = "looping"

    def __init__(self):
        self.calls = 0

    async def complete(self, history, tools):
        self.calls += 1
        return AssistantTurn(
            text=None,
            invocations=(ToolInvocation(
                id=f"call_{self.calls}",
                name="text_utility",
                arguments='{"operation": "sentiment", "text": "good"}'
            ),)
        )


class RecordingObserver(AgentObserver):
    def __init__(self):
        self.events = []

    def on_user_text(self, text):
        self.events.append(("user", text))

    def on_assistant_text(self, text):
        self.events.append(("assistant", text))

    def on_tool_result(self, invocation, result):
        self.events.append(("tool", invocation.id, result))

    def on_run_finished(self, outcome):
        self.events.append(("finished", outcome.stop_reason))


def make_config(**agent_overrides) -> Config:
    agent = dict(history_window=20, max_iterations=25, auto_continue=True, system_prompt=None)
    agent.update(agent_overrides)
    return Config(
        llm=LLMConfig(provider="openai", model="gpt-4o-mini", base_url="https://llm.test/v1", timeout_seconds=5.0),
        agent=AgentConfig(**agent),
        search=SearchConfig(endpoint="https://search.test/customsearch/v1", timeout_seconds=5.0),
        sandbox=SandboxConfig(timeout_seconds=10.0),
        log_level="error",
    )


def json_response(status_code: int, payload) -> httpx.Response:
    return httpx.Response(status_code, content=json.dumps(payload).encode(), headers={"content-type": "application/json"})


@pytest.fixture
def config():
    return make_config()


@pytest.fixture
def secrets():
    return SecretStore({
        SecretStore.LLM_API_KEY: "sk-test",
        SecretStore.SEARCH_API_KEY: "search-key",
        SecretStore.SEARCH_ENGINE_ID: "engine-id",
    })


@pytest.fixture
def observer():
    return RecordingObserver()
