"""Request/response correlation over the tool-server transport.

The correlator hands out request ids and parks each caller on an
``asyncio.Future`` keyed by that id. Responses are matched on ``id`` alone,
so any number of calls may be in flight and they may complete in any order.
"""

import asyncio
import logging
from typing import Any

from mcp_bridge.errors import RequestTimeoutError, TransportClosedError
from mcp_bridge.transport.protocol import JsonRpcRequest, JsonRpcResponse
from mcp_bridge.transport.stdio import StdioTransport

logger = logging.getLogger(__name__)


class RequestCorrelator:
    """Correlates JSON-RPC requests with their responses.

    Attributes:
        transport: The transport requests are written to
        default_timeout: Timeout in seconds applied when ``call`` gets none;
                         None waits indefinitely
    """

    def __init__(
        self,
        transport: StdioTransport,
        default_timeout: float | None = None,
    ) -> None:
        self.transport = transport
        self.default_timeout = default_timeout
        self._last_id = 0
        self._pending: dict[int, asyncio.Future[JsonRpcResponse]] = {}
        self._closed = False
        transport.bind(self.dispatch, self.close)

    @property
    def pending_ids(self) -> list[int]:
        """Ids of requests still waiting for a response."""
        return list(self._pending)

    def _next_id(self) -> int:
        self._last_id += 1
        return self._last_id

    async def call(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> JsonRpcResponse:
        """Send a request and wait for the response carrying the same id.

        Args:
            method: JSON-RPC method name (e.g. "tools/list")
            params: Optional params object
            timeout: Seconds to wait for the response (default_timeout if None)

        Returns:
            JsonRpcResponse: The matching response, which may be an error response

        Raises:
            TransportClosedError: If the transport is closed before a response arrives
            RequestTimeoutError: If no response arrives within the timeout
        """
        if self._closed:
            raise TransportClosedError("Tool-server connection is closed")

        request_id = self._next_id()
        future: asyncio.Future[JsonRpcResponse] = (
            asyncio.get_running_loop().create_future()
        )
        self._pending[request_id] = future

        effective_timeout = timeout if timeout is not None else self.default_timeout
        try:
            await self.transport.send(
                JsonRpcRequest(id=request_id, method=method, params=params)
            )
            async with asyncio.timeout(effective_timeout):
                return await future
        except TimeoutError as e:
            logger.warning(
                f"Request {method} (id={request_id}) timed out after {effective_timeout}s"
            )
            raise RequestTimeoutError(method, request_id, effective_timeout) from e
        finally:
            # Covers timeout, cancellation and send failures; a late response
            # for this id is then reported as uncorrelated.
            self._pending.pop(request_id, None)

    def dispatch(self, response: JsonRpcResponse) -> None:
        """Resolve the pending request matching ``response.id``.

        A response whose id is not pending is logged and discarded.
        """
        future = self._pending.pop(response.id, None)
        if future is None:
            logger.warning(
                f"Discarding response with no pending request: id={response.id}"
            )
            return
        if future.done():
            return
        future.set_result(response)

    def close(self) -> None:
        """Fail every pending request; later calls fail immediately."""
        if self._closed:
            return
        self._closed = True

        pending = list(self._pending.items())
        self._pending.clear()
        for request_id, future in pending:
            if not future.done():
                future.set_exception(
                    TransportClosedError(
                        f"Tool-server closed before responding to request {request_id}"
                    )
                )
        if pending:
            logger.warning(f"Transport closed with {len(pending)} pending request(s)")
