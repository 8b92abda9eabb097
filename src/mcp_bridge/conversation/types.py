"""Data types for a single orchestrated query.

A conversation is an ordered list of turns. Turns are backend-neutral; each
backend adapter translates them into its own message format.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class UserText:
    """Text typed by the user."""

    text: str


@dataclass(frozen=True)
class ModelText:
    """Plain text produced by the model."""

    text: str


@dataclass(frozen=True)
class ToolCallIntent:
    """A tool invocation requested by the model.

    Attributes:
        name: Tool name
        arguments: Arguments for the tool, passed verbatim to ``tools/call``
        call_id: Backend-native id of the call, when the backend assigns one
    """

    name: str
    arguments: dict[str, Any] = field(default_factory=dict)
    call_id: str | None = None


@dataclass(frozen=True)
class ToolResult:
    """The tool-server's answer to one ToolCallIntent.

    Attributes:
        intent: The intent this result answers
        content: The tool-server payload (``{"error": ...}`` on failure)
        is_error: Whether the invocation failed
    """

    intent: ToolCallIntent
    content: Any
    is_error: bool = False


# Union type for all conversation turns
ConversationTurn = UserText | ModelText | ToolCallIntent | ToolResult


@dataclass(frozen=True)
class FinalText:
    """Model outcome: a final answer for the user."""

    text: str


@dataclass(frozen=True)
class ToolCalls:
    """Model outcome: one or more tool invocations, in the order returned."""

    intents: tuple[ToolCallIntent, ...]


ModelTurnOutcome = FinalText | ToolCalls


class OrchestratorState(str, Enum):
    """States of the per-query state machine."""

    AWAITING_MODEL = "awaiting_model"
    DISPATCHING = "dispatching"
    AWAITING_FOLLOW_UP = "awaiting_follow_up"
    DONE = "done"


@dataclass
class QueryResult:
    """Outcome of one orchestrated query.

    Attributes:
        text: The final answer
        tool_results: Every tool result produced, in dispatch order
        iterations: Number of tool-calling rounds performed
        conversation: The full turn sequence, for inspection and logging
    """

    text: str
    tool_results: list[ToolResult] = field(default_factory=list)
    iterations: int = 0
    conversation: list[ConversationTurn] = field(default_factory=list)
