"""
Model Providers
===============

Providers are chosen by name from configuration (AGENTFLOW_PROVIDER) and can
be swapped between runs:

- openai: chat completions via the openai SDK
- anthropic, google: declared but not wired (raise NotImplementedError)
"""

from agentflow.providers.base import AnthropicProvider, GoogleProvider, LLMProvider
from agentflow.providers.openai_provider import OpenAIProvider
from agentflow.utils.config import Config, SecretStore

PROVIDERS = {
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
    "google": GoogleProvider,
}


def create_provider(name: str, secrets: SecretStore, config: Config, http_client=None) -> LLMProvider:
    """
    Create a provider by name.

    Raises:
        ValueError: If the name is not a known provider
    """
    key = name.strip().lower()
    if key not in PROVIDERS:
        raise ValueError(f"Unknown provider '{name}'. Choose one of: {', '.join(PROVIDERS)}")

    if key == "openai":
        return OpenAIProvider(
            secrets,
            config.llm,
            system_prompt=config.agent.system_prompt,
            http_client=http_client
        )
    return PROVIDERS[key]()


__all__ = [
    "LLMProvider",
    "OpenAIProvider",
    "AnthropicProvider",
    "GoogleProvider",
    "PROVIDERS",
    "create_provider",
]
