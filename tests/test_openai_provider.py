import json

import httpx
import pytest

from agentflow.agent import AssistantTurn, ToolInvocation, ToolResultTurn, UserTurn
from agentflow.providers import AnthropicProvider, GoogleProvider, OpenAIProvider, create_provider
from agentflow.providers.openai_provider import turn_to_message
from agentflow.tools import ToolResult
from agentflow.tools.text_utils import create_text_utility_tool
from agentflow.utils.config import SecretStore
from agentflow.utils.errors import MissingCredentialsError, UpstreamError, UpstreamTimeoutError

from conftest import json_response


def completion(message):
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "created": 1700000000,
        "model": "gpt-4o-mini",
        "choices": [{"index": 0, "finish_reason": "stop", "message": message}],
    }


def _provider(secrets, config, handler, requests=None):
    def record(request):
        if requests is not None:
            requests.append(request)
        return handler(request)

    http = httpx.AsyncClient(transport=httpx.MockTransport(record))
    return OpenAIProvider(secrets, config.llm, system_prompt="be brief", http_client=http)


class TestTurnMapping:
    def test_user(self):
        assert turn_to_message(UserTurn("hi")) == {"role": "user", "content": "hi"}

    def test_assistant_with_invocations(self):
        turn = AssistantTurn(text=None, invocations=(
            ToolInvocation(id="c1", name="web_search", arguments='{"query": "x"}'),
            ToolInvocation(id="c2", name="run_code", arguments={"code": "result = 1"}),
        ))
        assert turn_to_message(turn) == {
            "role": "assistant",
            "content": None,
            "tool_calls": [
                {"id": "c1", "type": "function", "function": {"name": "web_search", "arguments": '{"query": "x"}'}},
                {"id": "c2", "type": "function", "function": {"name": "run_code", "arguments": '{"code": "result = 1"}'}},
            ],
        }

    def test_tool_result(self):
        turn = ToolResultTurn(invocation_id="c1", tool_name="run_code", result=ToolResult.failure("boom"))
        message = turn_to_message(turn)
        assert message["role"] == "tool"
        assert message["tool_call_id"] == "c1"
        assert json.loads(message["content"]) == {"ok": False, "error": "boom"}


@pytest.mark.asyncio
class TestOpenAIProvider:
    async def test_request_shape_and_text_reply(self, secrets, config):
        requests = []
        provider = _provider(
            secrets, config,
            lambda r: json_response(200, completion({"role": "assistant", "content": "Hello"})),
            requests
        )

        turn = await provider.complete([UserTurn("hi")], [create_text_utility_tool()])

        assert turn == AssistantTurn(text="Hello")
        request = requests[0]
        assert request.method == "POST"
        assert request.url.path.endswith("/chat/completions")
        assert request.headers["authorization"] == "Bearer sk-test"

        body = json.loads(request.content)
        assert body["model"] == "gpt-4o-mini"
        assert body["tool_choice"] == "auto"
        assert body["messages"] == [
            {"role": "system", "content": "be brief"},
            {"role": "user", "content": "hi"},
        ]
        assert body["tools"][0]["type"] == "function"
        assert body["tools"][0]["function"]["name"] == "text_utility"

    async def test_tool_calls_parsed_in_order(self, secrets, config):
        message = {
            "role": "assistant",
            "content": "Let me check.",
            "tool_calls": [
                {"id": "call_a", "type": "function",
                 "function": {"name": "web_search", "arguments": '{"query": "moon"}'}},
                {"id": "call_b", "type": "function",
                 "function": {"name": "text_utility", "arguments": '{"operation": "summarize", "text": "x"}'}},
            ],
        }
        provider = _provider(secrets, config, lambda r: json_response(200, completion(message)))

        turn = await provider.complete([UserTurn("moon facts")], [])

        assert turn.text == "Let me check."
        assert [(i.id, i.name) for i in turn.invocations] == [("call_a", "web_search"), ("call_b", "text_utility")]
        assert turn.invocations[0].arguments == '{"query": "moon"}'

    async def test_missing_key_makes_no_request(self, config):
        requests = []
        provider = _provider(SecretStore(), config, lambda r: json_response(200, {}), requests)

        with pytest.raises(MissingCredentialsError):
            await provider.complete([UserTurn("hi")], [])
        assert requests == []

    async def test_error_status_becomes_upstream_error(self, secrets, config):
        provider = _provider(
            secrets, config,
            lambda r: json_response(401, {"error": {"message": "Incorrect API key", "type": "invalid_request_error"}})
        )

        with pytest.raises(UpstreamError) as excinfo:
            await provider.complete([UserTurn("hi")], [])
        assert excinfo.value.status_code == 401
        assert "Incorrect API key" in excinfo.value.detail

    async def test_timeout_becomes_upstream_timeout(self, secrets, config):
        def slow(request):
            raise httpx.ReadTimeout("slow", request=request)

        provider = _provider(secrets, config, slow)
        with pytest.raises(UpstreamTimeoutError):
            await provider.complete([UserTurn("hi")], [])

    @pytest.mark.parametrize("content_type", ["application/json", "text/html"])
    async def test_non_json_success_body_becomes_upstream_error(self, secrets, config, content_type):
        provider = _provider(
            secrets, config,
            lambda r: httpx.Response(200, content=b"<html>gateway page</html>", headers={"content-type": content_type})
        )

        with pytest.raises(UpstreamError):
            await provider.complete([UserTurn("hi")], [])

    async def test_new_session_key_is_picked_up(self, secrets, config):
        requests = []
        provider = _provider(
            secrets, config,
            lambda r: json_response(200, completion({"role": "assistant", "content": "ok"})),
            requests
        )

        await provider.complete([UserTurn("hi")], [])
        secrets.set(SecretStore.LLM_API_KEY, "sk-rotated")
        await provider.complete([UserTurn("hi")], [])

        assert requests[1].headers["authorization"] == "Bearer sk-rotated"


@pytest.mark.asyncio
@pytest.mark.parametrize("provider_cls", [AnthropicProvider, GoogleProvider])
async def test_unwired_providers(provider_cls):
    with pytest.raises(NotImplementedError, match="not wired"):
        await provider_cls().complete([UserTurn("hi")], [])


class TestCreateProvider:
    def test_selects_by_name(self, secrets, config):
        assert isinstance(create_provider("openai", secrets, config), OpenAIProvider)
        assert isinstance(create_provider("Google", secrets, config), GoogleProvider)

    def test_unknown_name(self, secrets, config):
        with pytest.raises(ValueError, match="Unknown provider"):
            create_provider("mystery", secrets, config)
