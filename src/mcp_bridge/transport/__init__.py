"""Tool-server transport layer.

This package spawns the tool-server process, frames the newline-delimited JSON
stream on its pipes, and correlates responses with requests by id.
"""

from mcp_bridge.transport.correlator import RequestCorrelator
from mcp_bridge.transport.framing import LineBuffer
from mcp_bridge.transport.protocol import (
    JsonRpcNotification,
    JsonRpcRequest,
    JsonRpcResponse,
    decode_message,
)
from mcp_bridge.transport.stdio import StdioTransport

__all__ = [
    "JsonRpcNotification",
    "JsonRpcRequest",
    "JsonRpcResponse",
    "LineBuffer",
    "RequestCorrelator",
    "StdioTransport",
    "decode_message",
]
