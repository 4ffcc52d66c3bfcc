"""
AgentFlow - Tool-Calling Agent Loop
===================================

A client-side orchestrator that lets a language model call tools in a loop
until it produces a final answer.

This package provides:
- Agent loop with bounded history and an iteration cap
- Tool registry and executor with a uniform result envelope
- Provider abstraction with an OpenAI chat-completions backend
- Baseline tools: web search, local text utilities, sandboxed Python
"""

__version__ = "1.0.0"
