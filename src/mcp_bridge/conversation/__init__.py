"""Backend-neutral conversation model and the query orchestrator."""

from mcp_bridge.conversation.orchestrator import ConversationOrchestrator
from mcp_bridge.conversation.types import (
    ConversationTurn,
    FinalText,
    ModelText,
    ModelTurnOutcome,
    OrchestratorState,
    QueryResult,
    ToolCallIntent,
    ToolCalls,
    ToolResult,
    UserText,
)

__all__ = [
    "ConversationOrchestrator",
    # Turn types
    "ConversationTurn",
    "UserText",
    "ModelText",
    "ToolCallIntent",
    "ToolResult",
    # Model outcomes
    "ModelTurnOutcome",
    "FinalText",
    "ToolCalls",
    # State
    "OrchestratorState",
    "QueryResult",
]
