"""
Utilities Module
================

Common utilities shared across AgentFlow:
- logger: Context-prefixed console logging
- config: Typed configuration and session secrets
- errors: The AgentFlow exception hierarchy
"""

from agentflow.utils.config import Config, SecretStore, get_config
from agentflow.utils.logger import Logger, logger, set_log_level

__all__ = ["Config", "SecretStore", "get_config", "Logger", "logger", "set_log_level"]
