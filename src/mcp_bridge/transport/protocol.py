"""JSON-RPC wire records exchanged with the tool-server.

Each record is serialized as a single JSON object on its own line. The ``id``
member is the only correlation key between a request and its response.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from mcp_bridge.errors import FramingError, ToolInvocationError

JSONRPC_VERSION = "2.0"


@dataclass(frozen=True)
class JsonRpcRequest:
    """A request from the bridge to the tool-server."""

    id: int
    method: str
    params: dict[str, Any] | None = None

    def to_json(self) -> str:
        """Serialize to a JSON line (without the trailing newline)."""
        data: dict[str, Any] = {
            "jsonrpc": JSONRPC_VERSION,
            "id": self.id,
            "method": self.method,
        }
        if self.params is not None:
            data["params"] = self.params
        return json.dumps(data, ensure_ascii=False)


@dataclass(frozen=True)
class JsonRpcNotification:
    """A message from the tool-server with a ``method`` and no ``id``.

    The bridge does not act on notifications; they are recognised only so
    they are not mistaken for malformed responses.
    """

    method: str
    params: Any = None


@dataclass(frozen=True)
class JsonRpcResponse:
    """A response from the tool-server.

    Exactly one of ``result`` / ``error`` is meaningful; ``is_error`` tells
    which one.
    """

    id: int
    result: Any = None
    error: Any = None
    is_error: bool = False

    @classmethod
    def from_json(cls, line: str) -> JsonRpcResponse:
        """Decode one line into a response.

        Raises:
            FramingError: If the line is not JSON or not a response object
        """
        try:
            data = json.loads(line)
        except json.JSONDecodeError as e:
            raise FramingError(f"Invalid JSON from tool-server: {e}", line) from e
        return cls.from_dict(data, line)

    @classmethod
    def from_dict(cls, data: Any, line: str = "") -> JsonRpcResponse:
        if not isinstance(data, dict):
            raise FramingError("Tool-server message is not a JSON object", line)

        msg_id = data.get("id")
        # bool is an int subclass and never a valid id
        if not isinstance(msg_id, int) or isinstance(msg_id, bool):
            raise FramingError(f"Tool-server message has invalid id: {msg_id!r}", line)

        if "error" in data:
            return cls(id=msg_id, error=data["error"], is_error=True)
        if "result" in data:
            return cls(id=msg_id, result=data["result"])
        raise FramingError(
            f"Tool-server message {msg_id} has neither result nor error", line
        )

    def raise_for_error(self, method: str) -> Any:
        """Return the result, or raise ToolInvocationError for an error response."""
        if self.is_error:
            raise ToolInvocationError(method, self.error)
        return self.result


def decode_message(line: str) -> JsonRpcResponse | JsonRpcNotification:
    """Decode one line into a response or a notification.

    Raises:
        FramingError: If the line is neither
    """
    try:
        data = json.loads(line)
    except json.JSONDecodeError as e:
        raise FramingError(f"Invalid JSON from tool-server: {e}", line) from e

    if isinstance(data, dict) and "id" not in data and isinstance(data.get("method"), str):
        return JsonRpcNotification(method=data["method"], params=data.get("params"))
    return JsonRpcResponse.from_dict(data, line)
