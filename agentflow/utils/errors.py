"""
Error Taxonomy
==============

All AgentFlow failures derive from AgentFlowError so callers can catch
them in one place.

Propagation policy:
- Provider and credential errors abort the whole run and surface to the caller.
- Tool errors are absorbed into the conversation as error-bearing tool
  results, so the model can react to them on the next iteration.

    AgentFlowError
    ├── MissingCredentialsError
    ├── UpstreamError
    │   └── UpstreamTimeoutError
    ├── ToolError
    │   ├── UnknownToolError
    │   ├── UnknownOperationError
    │   ├── ArgumentParseError
    │   └── SandboxExecutionError
    ├── DuplicateToolError
    └── ConversationError
"""


class AgentFlowError(Exception):
    """Base class for all AgentFlow errors."""


class MissingCredentialsError(AgentFlowError):
    """A required secret (API key, search engine id) is not configured."""

    def __init__(self, *names: str):
        self.names = names
        joined = ", ".join(names) if names else "credentials"
        super().__init__(f"Missing required credentials: {joined}")


class UpstreamError(AgentFlowError):
    """
    An external API answered with a non-success response.

    Attributes:
        status_code: HTTP status, or None when no response was received
        detail: Response body or transport error text
    """

    def __init__(self, service: str, status_code: int | None, detail: str = ""):
        self.service = service
        self.status_code = status_code
        self.detail = detail
        status = f" {status_code}" if status_code is not None else ""
        message = f"{service} error:{status}"
        if detail:
            message = f"{message} {detail}"
        super().__init__(message.strip())


class UpstreamTimeoutError(UpstreamError):
    """An external call did not complete within its timeout."""

    def __init__(self, service: str, timeout: float):
        self.timeout = timeout
        super().__init__(service, None, f"timed out after {timeout:g}s")


class ToolError(AgentFlowError):
    """Base class for failures recorded inline as tool results."""


class UnknownToolError(ToolError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"unknown tool {name}")


class UnknownOperationError(ToolError):
    def __init__(self, operation: object):
        self.operation = operation
        super().__init__(f"Unknown text operation: {operation}")


class ArgumentParseError(ToolError):
    """Invocation arguments are not a parseable JSON object."""


class SandboxExecutionError(ToolError):
    """Code under sandboxed execution raised, or the sandbox itself failed."""


class DuplicateToolError(AgentFlowError, ValueError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Tool '{name}' is already registered")


class ConversationError(AgentFlowError, ValueError):
    """A turn would break the invocation/result pairing of the conversation."""
