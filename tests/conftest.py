"""Pytest configuration and shared fixtures for mcp-bridge tests.

This module provides in-memory stand-ins for the tool-server transport and
the chat backend, so the correlator and orchestrator can be tested without
spawning processes or calling a model.
"""

import asyncio
import sys
from pathlib import Path
from typing import Any, Callable, Sequence

import pytest

from mcp_bridge.backends.base import ChatBackend
from mcp_bridge.config import BridgeSettings
from mcp_bridge.conversation.types import (
    ConversationTurn,
    FinalText,
    ModelTurnOutcome,
)
from mcp_bridge.errors import TransportClosedError
from mcp_bridge.transport.protocol import JsonRpcRequest, JsonRpcResponse

STUB_SERVER = Path(__file__).parent / "stubs" / "weather_server.py"


class FakeTransport:
    """In-memory transport recording requests.

    If ``handler`` is given, each request is answered on the next loop
    iteration with ``handler(request)`` (a JSON-RPC response dict); returning
    None leaves the request unanswered so tests can respond manually.
    """

    def __init__(self, handler: Callable[[JsonRpcRequest], dict | None] | None = None):
        self.handler = handler
        self.sent: list[JsonRpcRequest] = []
        self._on_message = None
        self._on_close = None
        self.closed = False

    def bind(self, on_message, on_close=None) -> None:
        self._on_message = on_message
        self._on_close = on_close

    async def send(self, request: JsonRpcRequest) -> None:
        if self.closed:
            raise TransportClosedError("closed")
        self.sent.append(request)
        if self.handler is not None:
            reply = self.handler(request)
            if reply is not None:
                asyncio.get_running_loop().call_soon(self.deliver, reply)

    def deliver(self, data: dict[str, Any]) -> None:
        """Hand a response dict to the bound handler, as the reader would."""
        self._on_message(JsonRpcResponse.from_dict(data))

    def respond(self, request_id: int, result: Any = None, error: Any = None) -> None:
        data: dict[str, Any] = {"jsonrpc": "2.0", "id": request_id}
        if error is not None:
            data["error"] = error
        else:
            data["result"] = result
        self.deliver(data)

    def close(self) -> None:
        self.closed = True
        if self._on_close is not None:
            self._on_close()

    def requests_for(self, method: str) -> list[JsonRpcRequest]:
        return [r for r in self.sent if r.method == method]


class ScriptedBackend(ChatBackend):
    """Backend returning pre-scripted outcomes and recording what it saw.

    ``outcomes`` is consumed in order by generate/continue_conversation. A
    callable instead of a list is called with the conversation each time.
    """

    name = "scripted"

    def __init__(
        self,
        outcomes: list[ModelTurnOutcome] | Callable[[Sequence[ConversationTurn]], ModelTurnOutcome],
    ):
        self.outcomes = outcomes
        self.declared: list = []
        self.generate_calls: list[tuple[ConversationTurn, ...]] = []
        self.continue_calls: list[tuple[ConversationTurn, ...]] = []
        self.closed = False

    @classmethod
    def from_settings(cls, settings: BridgeSettings) -> "ScriptedBackend":
        return cls([FinalText("")])

    def declare_tools(self, tools) -> None:
        self.declared = list(tools)

    def _next(self, conversation: Sequence[ConversationTurn]) -> ModelTurnOutcome:
        if callable(self.outcomes):
            return self.outcomes(conversation)
        return self.outcomes.pop(0)

    async def generate(self, conversation: Sequence[ConversationTurn]) -> ModelTurnOutcome:
        self.generate_calls.append(tuple(conversation))
        return self._next(conversation)

    async def continue_conversation(
        self, conversation: Sequence[ConversationTurn]
    ) -> ModelTurnOutcome:
        self.continue_calls.append(tuple(conversation))
        return self._next(conversation)

    async def close(self) -> None:
        self.closed = True


def weather_tools() -> list[dict[str, Any]]:
    """The tool list the weather stub server advertises."""
    return [
        {
            "name": "get_forecast",
            "description": "Get weather forecast for a city",
            "inputSchema": {
                "type": "object",
                "properties": {"city": {"type": "string"}},
                "required": ["city"],
            },
        },
        {
            "name": "get_alerts",
            "description": "Get weather alerts for a region",
            "inputSchema": {
                "type": "object",
                "properties": {"region": {"type": "string"}},
                "required": ["region"],
            },
        },
    ]


def weather_handler(request: JsonRpcRequest) -> dict | None:
    """Answer tools/list and tools/call like a small weather tool-server."""
    reply: dict[str, Any] = {"jsonrpc": "2.0", "id": request.id}
    if request.method == "tools/list":
        reply["result"] = {"tools": weather_tools()}
    elif request.method == "tools/call":
        params = request.params or {}
        name = params.get("name")
        args = params.get("arguments", {})
        if name == "get_forecast":
            reply["result"] = "Sunny, 20C" if args.get("city") == "Paris" else "Cloudy, 12C"
        elif name == "get_alerts":
            reply["result"] = f"No alerts for {args.get('region')}"
        else:
            reply["error"] = {"code": -32602, "message": f"Unknown tool: {name}"}
    else:
        reply["error"] = {"code": -32601, "message": "Method not found"}
    return reply


@pytest.fixture
def test_settings() -> BridgeSettings:
    """Create settings isolated from the environment."""
    return BridgeSettings(
        backend="gemini",
        gemini_api_key="test-key",
        gemini_model="gemini-test",
        ollama_host="http://localhost:11434",
        ollama_model="llama3.2:latest",
        max_tool_iterations=3,
        request_timeout=5.0,
        backend_timeout=5.0,
        shutdown_timeout=2.0,
        log_level="DEBUG",
    )


@pytest.fixture
def fake_transport() -> FakeTransport:
    """A transport that leaves every request unanswered."""
    return FakeTransport()


@pytest.fixture
def weather_transport() -> FakeTransport:
    """A transport answering like the weather tool-server."""
    return FakeTransport(weather_handler)


@pytest.fixture
def stub_server_path() -> str:
    """Path of the stub tool-server script."""
    return str(STUB_SERVER)


@pytest.fixture
def python_executable() -> str:
    return sys.executable


@pytest.fixture
def make_transport() -> type[FakeTransport]:
    """Factory for transports with a custom request handler."""
    return FakeTransport


@pytest.fixture
def make_backend() -> type[ScriptedBackend]:
    """Factory for scripted backends."""
    return ScriptedBackend
