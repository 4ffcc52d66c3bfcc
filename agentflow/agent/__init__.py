"""
Agent System
============

The agent drives the tool-call loop:
1. Receives a user message
2. Asks the model for its next turn
3. Executes any tool calls, in order
4. Feeds results back and repeats until the model answers

This module provides:
- Agent: The loop itself
- Conversation and the Turn types: The bounded conversation log
- ToolExecutor: Runs one invocation into a ToolResult
- AgentObserver: Presentation hooks
"""

from agentflow.agent.conversation import (
    AssistantTurn,
    Conversation,
    ToolInvocation,
    ToolResultTurn,
    Turn,
    UserTurn,
)
from agentflow.agent.core import Agent, AgentState, RunOutcome, StopReason
from agentflow.agent.observer import AgentObserver
from agentflow.agent.tools_executor import ToolExecutor

__all__ = [
    "Agent",
    "AgentState",
    "AgentObserver",
    "AssistantTurn",
    "Conversation",
    "RunOutcome",
    "StopReason",
    "ToolExecutor",
    "ToolInvocation",
    "ToolResultTurn",
    "Turn",
    "UserTurn",
]
