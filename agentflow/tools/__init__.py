"""
Tools System
============

Tools are the functions the model can ask AgentFlow to run.

- Each tool has a name, a description and a JSON Schema for its parameters
- The model decides which tools to call based on those descriptions
- The executor parses the call, runs the tool and feeds the result back

The schema is advisory: it tells the model what to send, but arguments are
only checked for being a parseable JSON object before the handler runs.
Handlers validate whatever they actually depend on.

Baseline tools (registered by build_default_registry, in this order):
1. web_search: Google Custom Search
2. text_utility: local summarize / keywords / sentiment / translate
3. run_code: Python snippets in an isolated interpreter process

This module provides:
- ToolSpec dataclass for defining tools
- ToolResult, the uniform success/failure envelope
- ToolRegistry for managing available tools
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from agentflow.utils.errors import DuplicateToolError
from agentflow.utils.logger import Logger

if TYPE_CHECKING:
    from agentflow.utils.config import Config, SecretStore

logger = Logger("Tools")

ToolHandler = Callable[[dict], Awaitable[Any]]


@dataclass(frozen=True)
class ToolResult:
    """
    Outcome of one tool execution.

    Serializes to exactly {"ok": true, "value": ...} or
    {"ok": false, "error": "..."}.
    """
    ok: bool
    value: Any = None
    error: str | None = None

    @classmethod
    def success(cls, value: Any) -> "ToolResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str) -> "ToolResult":
        return cls(ok=False, error=error)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        if self.ok:
            return {"ok": True, "value": self.value}
        return {"ok": False, "error": self.error}


@dataclass(frozen=True)
class ToolSpec:
    """
    Definition of an invocable tool.

    Attributes:
        name: Unique identifier for the tool
        description: What the tool does (shown to the model)
        parameters: JSON Schema for the arguments
        handler: Async function taking the parsed arguments; returns a
            JSON-serializable value or raises with a descriptive message

    Example:
        async def echo(params: dict) -> dict:
            return {"echo": params["text"]}

        spec = ToolSpec(
            name="echo",
            description="Repeat the given text",
            parameters={
                "type": "object",
                "properties": {"text": {"type": "string"}},
                "required": ["text"]
            },
            handler=echo
        )
    """
    name: str
    description: str
    parameters: dict
    handler: ToolHandler

    def to_openai_function(self) -> dict:
        """Convert to the OpenAI function-calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters
            }
        }


class ToolRegistry:
    """
    Registry of the tools an agent may invoke.

    Tools are registered while the agent is being assembled and only read
    afterwards. Export order is registration order.

    Example:
        registry = ToolRegistry()
        registry.register(spec)

        registry.get("echo")              # ToolSpec or None
        registry.export_schemas()         # [ToolSpec, ...]
    """

    def __init__(self):
        self._tools: dict[str, ToolSpec] = {}

    def register(self, spec: ToolSpec) -> None:
        """
        Register a tool.

        Raises:
            DuplicateToolError: If a tool with this name already exists
        """
        if spec.name in self._tools:
            raise DuplicateToolError(spec.name)

        self._tools[spec.name] = spec
        logger.debug(f"Registered tool: {spec.name}")

    def get(self, name: str) -> ToolSpec | None:
        return self._tools.get(name)

    def export_schemas(self) -> list[ToolSpec]:
        """All registered tools, in registration order."""
        return list(self._tools.values())

    def to_openai_functions(self) -> list[dict]:
        return [spec.to_openai_function() for spec in self._tools.values()]

    def list_names(self) -> list[str]:
        return list(self._tools.keys())

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)


def build_default_registry(
    secrets: "SecretStore",
    config: "Config",
    http_client=None
) -> ToolRegistry:
    """
    Build a registry holding the three baseline tools.

    Args:
        secrets: Session secrets (the search tool reads its keys from here)
        config: Application configuration
        http_client: Optional httpx.AsyncClient for the search tool
    """
    # Imported here: the tool modules import ToolSpec from this package
    from agentflow.tools.sandbox import create_run_code_tool
    from agentflow.tools.text_utils import create_text_utility_tool
    from agentflow.tools.web_search import create_web_search_tool

    registry = ToolRegistry()
    registry.register(create_web_search_tool(secrets, config.search, http_client=http_client))
    registry.register(create_text_utility_tool())
    registry.register(create_run_code_tool(config.sandbox))

    logger.info(f"Registered {len(registry)} tools: {', '.join(registry.list_names())}")
    return registry


__all__ = [
    "ToolHandler",
    "ToolResult",
    "ToolSpec",
    "ToolRegistry",
    "build_default_registry",
]
