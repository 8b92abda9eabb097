"""Conversation orchestration for one user query.

The orchestrator runs a small state machine per query:

    AWAITING_MODEL --FinalText--> DONE
    AWAITING_MODEL --ToolCalls--> DISPATCHING --> AWAITING_FOLLOW_UP
    AWAITING_FOLLOW_UP --FinalText--> DONE
    AWAITING_FOLLOW_UP --ToolCalls--> DISPATCHING

Every tool round is counted; exceeding ``max_tool_iterations`` ends the query
with ToolLoopLimitError. Backend calls and tool requests are each bounded by
their own timeout, and cancelling the task running ``process_query`` cancels
whatever call is in flight.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Awaitable, Callable, Sequence

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
from mcp_bridge.errors import BackendError, RequestTimeoutError, ToolLoopLimitError
from mcp_bridge.transport.correlator import RequestCorrelator

if TYPE_CHECKING:
    from mcp_bridge.backends.base import ChatBackend

logger = logging.getLogger(__name__)

CALL_TOOL_METHOD = "tools/call"

DEFAULT_MAX_TOOL_ITERATIONS = 10

BackendCall = Callable[[Sequence[ConversationTurn]], Awaitable[ModelTurnOutcome]]


class ConversationOrchestrator:
    """Drive user queries through the model and the tool-server.

    Attributes:
        backend: The chat backend adapter
        correlator: The tool-server request correlator
        max_tool_iterations: Maximum tool-calling rounds per query
        request_timeout: Seconds to wait for each tool result (None: no limit)
        backend_timeout: Seconds to wait for each model reply (None: no limit)
    """

    def __init__(
        self,
        backend: ChatBackend,
        correlator: RequestCorrelator,
        max_tool_iterations: int = DEFAULT_MAX_TOOL_ITERATIONS,
        request_timeout: float | None = None,
        backend_timeout: float | None = None,
    ) -> None:
        if max_tool_iterations < 1:
            raise ValueError("max_tool_iterations must be at least 1")
        self.backend = backend
        self.correlator = correlator
        self.max_tool_iterations = max_tool_iterations
        self.request_timeout = request_timeout
        self.backend_timeout = backend_timeout
        self.state = OrchestratorState.DONE

    async def process_query(self, query: str) -> QueryResult:
        """Answer one query, invoking tools as the model requests.

        Args:
            query: The raw user text

        Returns:
            QueryResult: The final text plus every tool result produced

        Raises:
            BackendError: If a model call fails or times out
            ToolLoopLimitError: If the model never stops requesting tools
            TransportClosedError: If the tool-server goes away mid-query
        """
        conversation: list[ConversationTurn] = [UserText(query)]
        tool_results: list[ToolResult] = []
        iterations = 0

        self.state = OrchestratorState.AWAITING_MODEL
        outcome = await self._call_backend(self.backend.generate, conversation)

        while isinstance(outcome, ToolCalls):
            if iterations >= self.max_tool_iterations:
                logger.error(
                    f"Stopping query after {iterations} tool rounds; model still requests "
                    f"{[i.name for i in outcome.intents]}"
                )
                raise ToolLoopLimitError(self.max_tool_iterations)
            iterations += 1

            self.state = OrchestratorState.DISPATCHING
            results = await self._dispatch(outcome.intents)
            conversation.extend(outcome.intents)
            conversation.extend(results)
            tool_results.extend(results)

            self.state = OrchestratorState.AWAITING_FOLLOW_UP
            outcome = await self._call_backend(
                self.backend.continue_conversation, conversation
            )

        if not isinstance(outcome, FinalText):
            raise BackendError(
                f"Backend {type(self.backend).__name__} returned an unexpected outcome: {outcome!r}"
            )
        conversation.append(ModelText(outcome.text))
        self.state = OrchestratorState.DONE

        logger.info(
            f"Query answered after {iterations} tool round(s), "
            f"{len(tool_results)} tool call(s)"
        )
        return QueryResult(
            text=outcome.text,
            tool_results=tool_results,
            iterations=iterations,
            conversation=conversation,
        )

    async def _call_backend(
        self, call: BackendCall, conversation: Sequence[ConversationTurn]
    ) -> ModelTurnOutcome:
        try:
            async with asyncio.timeout(self.backend_timeout):
                # Pass a snapshot so adapters never see later mutation
                return await call(tuple(conversation))
        except TimeoutError as e:
            raise BackendError(
                f"Backend did not respond within {self.backend_timeout}s"
            ) from e

    async def _dispatch(self, intents: Sequence[ToolCallIntent]) -> list[ToolResult]:
        """Invoke every intent of one model turn.

        Requests are written in intent order and awaited together; results
        come back in intent order whatever order the responses arrive in.
        """
        logger.info(f"Dispatching {len(intents)} tool call(s): {[i.name for i in intents]}")
        outcomes = await asyncio.gather(
            *(self._invoke(intent) for intent in intents),
            return_exceptions=True,
        )

        results: list[ToolResult] = []
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome
            results.append(outcome)
        return results

    async def _invoke(self, intent: ToolCallIntent) -> ToolResult:
        try:
            response = await self.correlator.call(
                CALL_TOOL_METHOD,
                {"name": intent.name, "arguments": intent.arguments},
                timeout=self.request_timeout,
            )
        except RequestTimeoutError as e:
            return ToolResult(intent=intent, content={"error": {"message": str(e)}}, is_error=True)

        if response.is_error:
            logger.warning(f"Tool '{intent.name}' failed: {response.error}")
            return ToolResult(intent=intent, content={"error": response.error}, is_error=True)

        result = response.result
        is_error = isinstance(result, dict) and result.get("isError") is True
        if is_error:
            logger.warning(f"Tool '{intent.name}' reported an error result")
        else:
            logger.debug(f"Tool '{intent.name}' returned: {result}")
        return ToolResult(intent=intent, content=result, is_error=is_error)
