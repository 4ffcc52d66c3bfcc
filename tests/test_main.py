import io

import httpx
import pytest

from agentflow.agent import AssistantTurn
from agentflow.main import ConsoleApp, ConsoleObserver
from agentflow.providers import GoogleProvider, OpenAIProvider
from agentflow.utils.config import SecretStore
from agentflow.utils.errors import UpstreamError

from conftest import ScriptedProvider


@pytest.fixture
def app(config, secrets):
    stream = io.StringIO()
    return ConsoleApp(config, secrets, observer=ConsoleObserver(stream))


def output(app):
    return app.observer.stream.getvalue()


@pytest.mark.asyncio
class TestConsoleApp:
    async def test_message_runs_agent(self, app):
        app.agent.provider = ScriptedProvider(AssistantTurn(text="Hello there"))
        await app.handle_line("hi")
        assert "Hello there" in output(app)

    async def test_provider_error_is_reported_not_raised(self, app):
        app.agent.provider = ScriptedProvider(UpstreamError("OpenAI", 503, "overloaded"))
        await app.handle_line("hi")
        assert "Error: OpenAI error: 503 overloaded" in output(app)

    async def test_unwired_provider_is_reported(self, app):
        await app.handle_line("/provider google")
        assert isinstance(app.agent.provider, GoogleProvider)
        await app.handle_line("hi")
        assert "not wired yet" in output(app)

    async def test_unknown_provider(self, app):
        await app.handle_line("/provider mystery")
        assert "Unknown provider" in output(app)

    async def test_provider_switch_closes_previous(self, app):
        previous = ScriptedProvider()
        app.agent.provider = previous
        await app.handle_line("/provider google")
        assert previous.closed is True
        assert isinstance(app.agent.provider, GoogleProvider)

    async def test_unknown_provider_keeps_current_open(self, app):
        current = ScriptedProvider()
        app.agent.provider = current
        await app.handle_line("/provider mystery")
        assert app.agent.provider is current
        assert current.closed is False

    async def test_malformed_provider_reply_is_reported(self, config, secrets):
        http = httpx.AsyncClient(transport=httpx.MockTransport(
            lambda r: httpx.Response(200, content=b"<html>gateway page</html>", headers={"content-type": "application/json"})
        ))
        app = ConsoleApp(config, secrets, observer=ConsoleObserver(io.StringIO()))
        app.agent.provider = OpenAIProvider(secrets, config.llm, http_client=http)

        await app.handle_line("hello")

        assert "Error: OpenAI error:" in output(app)

    async def test_auto_toggle(self, app):
        await app.handle_line("/auto off")
        assert app.agent.auto_continue is False
        await app.handle_line("/auto on")
        assert app.agent.auto_continue is True

    async def test_keys(self, app):
        await app.handle_line("/key search new-key")
        assert app.secrets.get(SecretStore.SEARCH_API_KEY) == "new-key"
        await app.handle_line("/clear-keys")
        assert len(app.secrets) == 0

    async def test_search_without_keys_shows_tool_error(self, app):
        app.secrets.clear()
        await app.handle_line("/search python")
        assert "Tool error: Missing required credentials" in output(app)

    async def test_direct_run(self, app):
        await app.handle_line("/run result = 6 * 7")
        assert "42" in output(app)

    async def test_quit(self, app):
        await app.handle_line("/quit")
        assert app.running is False

    async def test_unknown_command(self, app):
        await app.handle_line("/dance")
        assert "Unknown command /dance" in output(app)
