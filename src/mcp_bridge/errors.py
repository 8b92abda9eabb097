"""Exception hierarchy for mcp-bridge.

Startup errors are fatal. Everything else is scoped to a single query so the
interactive loop can keep accepting input.
"""

from typing import Any


class BridgeError(Exception):
    """Base class for all mcp-bridge errors."""


class StartupError(BridgeError):
    """Raised when the session cannot be established (credentials, spawn, catalog)."""


class TransportError(BridgeError):
    """Base class for failures of the tool-server pipe."""


class TransportClosedError(TransportError):
    """Raised when the tool-server process has exited or its pipes are closed."""


class RequestTimeoutError(TransportError):
    """Raised when a tool-server request does not receive a response in time."""

    def __init__(self, method: str, request_id: int, timeout: float) -> None:
        self.method = method
        self.request_id = request_id
        self.timeout = timeout
        super().__init__(
            f"Request {method} (id={request_id}) timed out after {timeout:.1f}s"
        )


class FramingError(BridgeError):
    """Raised for a line from the tool-server that is not a valid JSON-RPC message."""

    def __init__(self, message: str, line: str = "") -> None:
        self.line = line
        super().__init__(message)


class ToolInvocationError(BridgeError):
    """Raised when the tool-server answers a request with an ``error`` member."""

    def __init__(self, method: str, error: Any) -> None:
        self.method = method
        self.error = error
        if isinstance(error, dict) and "message" in error:
            detail = error["message"]
        else:
            detail = error
        super().__init__(f"{method} failed: {detail}")


class BackendError(BridgeError):
    """Raised when the language-model backend fails to produce a reply."""


class ToolLoopLimitError(BridgeError):
    """Raised when the model keeps requesting tools past the iteration cap."""

    def __init__(self, max_iterations: int) -> None:
        self.max_iterations = max_iterations
        super().__init__(
            f"Model requested tools for more than {max_iterations} consecutive turns"
        )
