"""
Logger Utility
==============

Console logging for AgentFlow. Every component gets a context-prefixed
logger, so a single run can be traced from the model call through each
tool dispatch:

    [2026-01-31T10:30:00] [INFO] [Agent] Run started (auto_continue=True)
    [2026-01-31T10:30:01] [INFO] [ToolExecutor] Executing tool: web_search

The minimum level comes from the LOG_LEVEL environment variable and can be
changed at runtime with set_log_level() (main.py does this once the
configuration is loaded). Colors are only emitted when the stream is a TTY
and NO_COLOR is unset.

Usage:
    from agentflow.utils.logger import Logger

    logger = Logger("WebSearch")
    logger.info("Searching", {"query": "python asyncio"})
    logger.child("HTTP").debug("GET customsearch/v1")
"""

import json
import os
import sys
from datetime import datetime
from enum import IntEnum
from typing import Any, TextIO


class LogLevel(IntEnum):
    """Log levels; higher values are more severe."""
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40


class Colors:
    """ANSI escape codes for colored terminal output."""
    RESET = "\033[0m"
    DEBUG = "\033[36m"    # Cyan
    INFO = "\033[32m"     # Green
    WARNING = "\033[33m"  # Yellow
    ERROR = "\033[31m"    # Red
    DIM = "\033[2m"


_LEVEL_NAMES = {
    "DEBUG": LogLevel.DEBUG,
    "INFO": LogLevel.INFO,
    "WARNING": LogLevel.WARNING,
    "WARN": LogLevel.WARNING,
    "ERROR": LogLevel.ERROR,
}


def parse_level(value: str | None, default: LogLevel = LogLevel.INFO) -> LogLevel:
    """Map a level name such as "debug" or "WARN" to a LogLevel."""
    if not value:
        return default
    return _LEVEL_NAMES.get(value.strip().upper(), default)


# Shared by every Logger instance so set_log_level() applies everywhere,
# including loggers created at import time.
_min_level = parse_level(os.getenv("LOG_LEVEL"))


def set_log_level(level: str | LogLevel) -> None:
    """Change the minimum level for all loggers."""
    global _min_level
    _min_level = level if isinstance(level, LogLevel) else parse_level(level)


def get_log_level() -> LogLevel:
    return _min_level


def _use_color(stream: TextIO) -> bool:
    if os.getenv("NO_COLOR"):
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


class Logger:
    """
    A context-aware logger with colored output.

    Example:
        logger = Logger("Agent")
        logger.info("Run started")

        exec_logger = logger.child("Tools")   # logs as [Agent:Tools]
        exec_logger.warning("Tool failed", {"tool": "run_code"})
    """

    def __init__(self, context: str = ""):
        self.context = context

    def child(self, child_context: str) -> "Logger":
        """Create a logger whose context is nested under this one."""
        new_context = f"{self.context}:{child_context}" if self.context else child_context
        return Logger(new_context)

    def is_enabled_for(self, level: LogLevel) -> bool:
        return level >= _min_level

    def _format_message(self, level: str, message: str, color: str, colored: bool) -> str:
        timestamp = datetime.now().isoformat(timespec="seconds")
        context_str = f"[{self.context}] " if self.context else ""

        if not colored:
            return f"[{timestamp}] [{level}] {context_str}{message}"

        return (
            f"{Colors.DIM}[{timestamp}]{Colors.RESET} "
            f"{color}[{level}]{Colors.RESET} "
            f"{context_str}{message}"
        )

    def _log(
        self,
        level: LogLevel,
        level_name: str,
        color: str,
        message: str,
        data: dict[str, Any] | None = None
    ) -> None:
        if not self.is_enabled_for(level):
            return

        stream = sys.stderr if level >= LogLevel.ERROR else sys.stdout
        colored = _use_color(stream)
        print(self._format_message(level_name, message, color, colored), file=stream)

        if data:
            data_str = json.dumps(data, indent=2, default=str)
            if colored:
                data_str = f"{Colors.DIM}{data_str}{Colors.RESET}"
            print(data_str, file=stream)

    def debug(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Detailed information, only shown when LOG_LEVEL=DEBUG."""
        self._log(LogLevel.DEBUG, "DEBUG", Colors.DEBUG, message, data)

    def info(self, message: str, data: dict[str, Any] | None = None) -> None:
        self._log(LogLevel.INFO, "INFO", Colors.INFO, message, data)

    def warning(self, message: str, data: dict[str, Any] | None = None) -> None:
        self._log(LogLevel.WARNING, "WARN", Colors.WARNING, message, data)

    def error(self, message: str, error: BaseException | None = None) -> None:
        """
        Log an error message.

        Args:
            message: The error message
            error: Optional exception whose type and text are attached
        """
        data = None
        if error is not None:
            data = {
                "error_type": type(error).__name__,
                "error_message": str(error),
            }
        self._log(LogLevel.ERROR, "ERROR", Colors.ERROR, message, data)


logger = Logger("AgentFlow")
