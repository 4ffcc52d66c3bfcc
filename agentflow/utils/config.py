"""
Configuration Management
========================

Centralized configuration for AgentFlow. Environment variables (optionally
from a .env file) are read once and turned into typed, frozen dataclasses.

Credentials are kept apart from the rest of the configuration in a
SecretStore: an in-memory, process-local holder that lives only for the
current session. It is seeded from the environment at start-up, can be
updated or cleared on demand (the console's /key and /clear-keys commands),
and is never written to disk.

Usage:
    from agentflow.utils.config import get_config, SecretStore

    config = get_config()
    print(config.llm.model)

    secrets = SecretStore.from_env()
    secrets.get(SecretStore.LLM_API_KEY)
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from agentflow.utils.logger import Logger

logger = Logger("Config")


def _optional(name: str, default: str) -> str:
    """Get an optional environment variable with a default."""
    value = os.getenv(name)
    return value if value else default


def _optional_int(name: str, default: int, minimum: int = 1) -> int:
    """
    Get an optional integer environment variable.

    Invalid or out-of-range values fall back to the default with a warning.
    """
    value = os.getenv(name)
    if not value:
        return default
    try:
        parsed = int(value)
    except ValueError:
        logger.warning(f"{name} is not a valid integer, using default: {default}")
        return default
    if parsed < minimum:
        logger.warning(f"{name} must be >= {minimum}, using default: {default}")
        return default
    return parsed


def _optional_float(name: str, default: float) -> float:
    """Get an optional positive float environment variable."""
    value = os.getenv(name)
    if not value:
        return default
    try:
        parsed = float(value)
    except ValueError:
        logger.warning(f"{name} is not a valid number, using default: {default}")
        return default
    if parsed <= 0:
        logger.warning(f"{name} must be positive, using default: {default}")
        return default
    return parsed


def _optional_bool(name: str, default: bool) -> bool:
    """True for 1/true/yes/on (case-insensitive)."""
    value = os.getenv(name)
    if not value:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# ==============================================================================
# Configuration Dataclasses
# ==============================================================================

@dataclass(frozen=True)
class LLMConfig:
    """Model provider configuration."""
    provider: str              # "openai", "anthropic" or "google"
    model: str                 # Chat completion model
    base_url: str | None       # Override for OpenAI-compatible endpoints
    timeout_seconds: float     # Per-request timeout


@dataclass(frozen=True)
class AgentConfig:
    """Agent loop behaviour."""
    history_window: int        # Turns sent to the provider per call
    max_iterations: int        # Provider calls allowed per run
    auto_continue: bool        # Re-invoke the model after tool dispatch
    system_prompt: str | None  # Prepended to every provider call


@dataclass(frozen=True)
class SearchConfig:
    """Web search tool configuration."""
    endpoint: str
    timeout_seconds: float


@dataclass(frozen=True)
class SandboxConfig:
    """Sandboxed code tool configuration."""
    timeout_seconds: float


@dataclass(frozen=True)
class Config:
    """
    Root configuration object.

        config = get_config()
        config.llm.model
        config.agent.max_iterations
    """
    llm: LLMConfig
    agent: AgentConfig
    search: SearchConfig
    sandbox: SandboxConfig
    log_level: str


DEFAULT_SYSTEM_PROMPT = (
    "You are AgentFlow, a helpful assistant. Use the available tools when "
    "they help answer the user's request, then reply with a concise answer."
)


def load_config() -> Config:
    """
    Load configuration from the environment (and .env, if present).

    Nothing here is required: credentials live in the SecretStore and are
    checked when a provider or tool actually needs them.
    """
    load_dotenv()

    system_prompt = os.getenv("AGENT_SYSTEM_PROMPT", DEFAULT_SYSTEM_PROMPT)

    return Config(
        llm=LLMConfig(
            provider=_optional("AGENTFLOW_PROVIDER", "openai").lower(),
            model=_optional("OPENAI_MODEL", "gpt-4o-mini"),
            base_url=os.getenv("OPENAI_BASE_URL") or None,
            timeout_seconds=_optional_float("LLM_TIMEOUT_SECONDS", 60.0),
        ),
        agent=AgentConfig(
            history_window=_optional_int("AGENT_HISTORY_WINDOW", 20),
            max_iterations=_optional_int("AGENT_MAX_ITERATIONS", 25),
            auto_continue=_optional_bool("AGENT_AUTO_CONTINUE", True),
            system_prompt=system_prompt or None,
        ),
        search=SearchConfig(
            endpoint=_optional("SEARCH_ENDPOINT", "https://www.googleapis.com/customsearch/v1"),
            timeout_seconds=_optional_float("SEARCH_TIMEOUT_SECONDS", 15.0),
        ),
        sandbox=SandboxConfig(
            timeout_seconds=_optional_float("SANDBOX_TIMEOUT_SECONDS", 5.0),
        ),
        log_level=_optional("LOG_LEVEL", "info"),
    )


_config_instance: Config | None = None


def get_config() -> Config:
    """Get the process-wide configuration, loading it on first access."""
    global _config_instance
    if _config_instance is None:
        _config_instance = load_config()
    return _config_instance


def reset_config() -> None:
    """Forget the cached configuration so the next get_config() reloads it."""
    global _config_instance
    _config_instance = None


# ==============================================================================
# Session Secrets
# ==============================================================================

class SecretStore:
    """
    Session-scoped credential storage.

    Values live only in this object's memory. Providers and tools receive
    the store and read from it at call time, so updating or clearing a key
    takes effect on the next request.

    Example:
        secrets = SecretStore()
        secrets.set(SecretStore.SEARCH_API_KEY, "AIza...")
        secrets.has(SecretStore.SEARCH_API_KEY)   # True
        secrets.clear()
    """

    LLM_API_KEY = "llm_api_key"
    SEARCH_API_KEY = "search_api_key"
    SEARCH_ENGINE_ID = "search_engine_id"

    # Secret name -> environment variable used to seed it
    ENV_VARS = {
        LLM_API_KEY: "OPENAI_API_KEY",
        SEARCH_API_KEY: "GOOGLE_API_KEY",
        SEARCH_ENGINE_ID: "GOOGLE_CX",
    }

    def __init__(self, values: dict[str, str] | None = None):
        self._values: dict[str, str] = {}
        for name, value in (values or {}).items():
            self.set(name, value)

    @classmethod
    def from_env(cls) -> "SecretStore":
        """Seed a store from the environment (after loading .env)."""
        load_dotenv()
        store = cls()
        for name, env_var in cls.ENV_VARS.items():
            value = os.getenv(env_var)
            if value:
                store.set(name, value)
        logger.debug(f"Loaded {len(store)} secrets from environment")
        return store

    def set(self, name: str, value: str) -> None:
        """Store a secret; blank values remove it."""
        if name not in self.ENV_VARS:
            raise KeyError(f"Unknown secret '{name}'. Expected one of: {', '.join(self.ENV_VARS)}")
        value = value.strip()
        if value:
            self._values[name] = value
        else:
            self._values.pop(name, None)

    def get(self, name: str) -> str | None:
        return self._values.get(name)

    def has(self, name: str) -> bool:
        return name in self._values

    def missing(self, *names: str) -> list[str]:
        """Return the subset of names that are not set."""
        return [name for name in names if name not in self._values]

    def clear(self) -> None:
        """Forget every stored secret."""
        self._values.clear()
        logger.info("Session secrets cleared")

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        # Never expose secret values in logs or tracebacks
        return f"SecretStore(names={sorted(self._values)})"
