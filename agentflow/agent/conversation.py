"""
Conversation State
==================

The conversation is an append-only log of turns:

- UserTurn: text typed by the user
- AssistantTurn: optional text plus zero or more tool invocations
- ToolResultTurn: the outcome of one invocation

Turns are frozen once created. Storage is unbounded, but providers only ever
see window(): the most recent N turns (20 by default).

Pairing rule, enforced on append:
    An assistant turn's invocations must each be answered by exactly one
    tool-result turn, in any order, before anything else is appended.
    A tool-result turn may only answer an invocation of the immediately
    preceding assistant turn.
"""

from dataclasses import dataclass, field
from typing import Any, Union

from agentflow.tools import ToolResult
from agentflow.utils.errors import ConversationError

DEFAULT_WINDOW = 20


@dataclass(frozen=True)
class ToolInvocation:
    """
    A model-issued request to run a tool.

    Attributes:
        id: Opaque identifier, unique within its assistant turn
        name: The tool name
        arguments: Raw payload, a JSON string or an already-parsed dict
    """
    id: str
    name: str
    arguments: Any = None


@dataclass(frozen=True)
class UserTurn:
    text: str
    role: str = field(default="user", init=False)


@dataclass(frozen=True)
class AssistantTurn:
    text: str | None = None
    invocations: tuple[ToolInvocation, ...] = ()
    role: str = field(default="assistant", init=False)

    def __post_init__(self):
        # Accept any sequence, store an immutable tuple
        object.__setattr__(self, "invocations", tuple(self.invocations))


@dataclass(frozen=True)
class ToolResultTurn:
    invocation_id: str
    tool_name: str
    result: ToolResult
    role: str = field(default="tool", init=False)


Turn = Union[UserTurn, AssistantTurn, ToolResultTurn]


class Conversation:
    """
    Ordered, append-only turn log with a bounded view.

    Example:
        conversation = Conversation(window_size=20)
        conversation.append(UserTurn("What is 2**10?"))
        conversation.window()     # tuple of at most 20 turns
    """

    def __init__(self, window_size: int = DEFAULT_WINDOW):
        if window_size < 1:
            raise ValueError("window_size must be at least 1")
        self.window_size = window_size
        self._turns: list[Turn] = []
        # Invocation id -> tool name, for the latest assistant turn
        self._pending: dict[str, str] = {}

    @property
    def turns(self) -> tuple[Turn, ...]:
        """All turns, oldest first (read-only copy)."""
        return tuple(self._turns)

    @property
    def pending_invocations(self) -> dict[str, str]:
        """Invocations still waiting for a result, as id -> tool name."""
        return dict(self._pending)

    def append(self, turn: Turn) -> None:
        """
        Append a turn.

        Raises:
            ConversationError: If the turn breaks the pairing rule
        """
        if isinstance(turn, ToolResultTurn):
            if turn.invocation_id not in self._pending:
                raise ConversationError(
                    f"Tool result '{turn.invocation_id}' does not answer a pending invocation"
                )
            del self._pending[turn.invocation_id]
        elif isinstance(turn, (UserTurn, AssistantTurn)):
            if self._pending:
                raise ConversationError(
                    f"Invocations still awaiting results: {', '.join(self._pending)}"
                )
            if isinstance(turn, AssistantTurn):
                ids = [inv.id for inv in turn.invocations]
                if len(set(ids)) != len(ids):
                    raise ConversationError("Invocation ids must be unique within a turn")
                self._pending = {inv.id: inv.name for inv in turn.invocations}
        else:
            raise TypeError(f"Not a conversation turn: {turn!r}")

        self._turns.append(turn)

    def window(self, size: int | None = None) -> tuple[Turn, ...]:
        """
        The most recent turns, at most `size` (default: window_size).

        Tool results whose assistant turn fell outside the cut are dropped
        from the start of the view; they cannot be sent without it.
        """
        size = self.window_size if size is None else size
        if size < 1:
            return ()
        view = self._turns[-size:]
        start = 0
        while start < len(view) and isinstance(view[start], ToolResultTurn):
            start += 1
        return tuple(view[start:])

    def clear(self) -> None:
        """Drop all turns and start fresh."""
        self._turns.clear()
        self._pending.clear()

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self):
        return iter(tuple(self._turns))
