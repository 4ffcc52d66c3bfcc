"""
OpenAI Provider
===============

Chat-completions provider built on the official openai SDK (AsyncOpenAI).
Works with any OpenAI-compatible endpoint via base_url.

Turn mapping:
    UserTurn        -> {"role": "user", "content": text}
    AssistantTurn   -> {"role": "assistant", "content": text,
                        "tool_calls": [{"id", "type": "function",
                                        "function": {"name", "arguments"}}]}
    ToolResultTurn  -> {"role": "tool", "tool_call_id": id,
                        "content": json.dumps(result.to_dict())}

The SDK's own retries are disabled: every failure is terminal for the call
and surfaces as UpstreamError / UpstreamTimeoutError.
"""

import json
from typing import Sequence

import httpx
import openai
from openai import AsyncOpenAI

from agentflow.agent.conversation import (
    AssistantTurn,
    ToolInvocation,
    ToolResultTurn,
    Turn,
    UserTurn,
)
from agentflow.providers.base import LLMProvider
from agentflow.tools import ToolSpec
from agentflow.utils.config import LLMConfig, SecretStore
from agentflow.utils.errors import MissingCredentialsError, UpstreamError, UpstreamTimeoutError
from agentflow.utils.logger import Logger

logger = Logger("OpenAI")


def turn_to_message(turn: Turn) -> dict:
    """Convert one conversation turn to an OpenAI chat message."""
    if isinstance(turn, UserTurn):
        return {"role": "user", "content": turn.text}

    if isinstance(turn, AssistantTurn):
        message = {"role": "assistant", "content": turn.text}
        if turn.invocations:
            message["tool_calls"] = [
                {
                    "id": inv.id,
                    "type": "function",
                    "function": {
                        "name": inv.name,
                        "arguments": _encode_arguments(inv.arguments),
                    },
                }
                for inv in turn.invocations
            ]
        return message

    if isinstance(turn, ToolResultTurn):
        return {
            "role": "tool",
            "tool_call_id": turn.invocation_id,
            "content": json.dumps(turn.result.to_dict(), default=str),
        }

    raise TypeError(f"Cannot convert {turn!r} to a chat message")


def _encode_arguments(arguments) -> str:
    if arguments is None:
        return "{}"
    if isinstance(arguments, str):
        return arguments
    return json.dumps(arguments, default=str)


class OpenAIProvider(LLMProvider):
    """
    Provider for OpenAI chat completions.

    Example:
        provider = OpenAIProvider(secrets, config.llm)
        turn = await provider.complete(conversation.window(), registry.export_schemas())
    """

    name = "openai"

    def __init__(
        self,
        secrets: SecretStore,
        config: LLMConfig,
        system_prompt: str | None = None,
        http_client: httpx.AsyncClient | None = None
    ):
        self.secrets = secrets
        self.config = config
        self.model = config.model
        self.system_prompt = system_prompt
        self._http_client = http_client
        self._client: AsyncOpenAI | None = None
        self._client_key: str | None = None

    def _get_client(self) -> AsyncOpenAI:
        api_key = self.secrets.get(SecretStore.LLM_API_KEY)
        if not api_key:
            raise MissingCredentialsError(SecretStore.LLM_API_KEY)

        # Rebuilt when the session key changes
        if self._client is None or self._client_key != api_key:
            self._client = AsyncOpenAI(
                api_key=api_key,
                base_url=self.config.base_url,
                timeout=self.config.timeout_seconds,
                max_retries=0,
                http_client=self._http_client,
            )
            self._client_key = api_key
        return self._client

    def build_messages(self, history: Sequence[Turn]) -> list[dict]:
        messages = []
        if self.system_prompt:
            messages.append({"role": "system", "content": self.system_prompt})
        messages.extend(turn_to_message(turn) for turn in history)
        return messages

    async def complete(self, history: Sequence[Turn], tools: Sequence[ToolSpec]) -> AssistantTurn:
        client = self._get_client()
        messages = self.build_messages(history)

        request = {"model": self.model, "messages": messages}
        if tools:
            request["tools"] = [spec.to_openai_function() for spec in tools]
            request["tool_choice"] = "auto"

        logger.debug(f"Requesting completion ({len(messages)} messages, {len(tools)} tools)")

        try:
            response = await client.chat.completions.create(**request)
        except openai.APITimeoutError:
            raise UpstreamTimeoutError("OpenAI", self.config.timeout_seconds) from None
        except openai.APIStatusError as e:
            raise UpstreamError("OpenAI", e.status_code, e.response.text) from e
        except openai.APIConnectionError as e:
            raise UpstreamError("OpenAI", None, str(e)) from e
        except (openai.APIError, ValueError) as e:
            # Malformed success bodies, e.g. a proxy page at OPENAI_BASE_URL
            raise UpstreamError("OpenAI", None, str(e)) from e

        if not getattr(response, "choices", None):
            raise UpstreamError("OpenAI", None, "response contained no choices")

        return self._to_assistant_turn(response.choices[0].message)

    @staticmethod
    def _to_assistant_turn(message) -> AssistantTurn:
        invocations = []
        for tc in message.tool_calls or []:
            function = getattr(tc, "function", None)
            if function is None:
                logger.warning(f"Ignoring non-function tool call {tc.id}")
                continue
            invocations.append(ToolInvocation(
                id=tc.id,
                name=function.name,
                arguments=function.arguments
            ))

        return AssistantTurn(text=message.content or None, invocations=tuple(invocations))

    async def aclose(self) -> None:
        # Injected clients belong to the caller
        if self._client is not None and self._http_client is None:
            await self._client.close()
        self._client = None
        self._client_key = None
