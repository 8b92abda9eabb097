"""Unit tests for the Ollama backend adapter."""

import json
import logging
from unittest.mock import AsyncMock, MagicMock

import httpx
import ollama
import pytest

from mcp_bridge.backends.ollama import OllamaBackend, convert_conversation, tool_to_ollama
from mcp_bridge.conversation import (
    FinalText,
    ModelText,
    ToolCallIntent,
    ToolCalls,
    ToolResult,
    UserText,
)
from mcp_bridge.errors import BackendError
from mcp_bridge.ollama import ModelInfo, OllamaClient
from mcp_bridge.tools import ToolDescriptor

FORECAST = ToolDescriptor.from_wire(
    {
        "name": "get_forecast",
        "description": "Get weather forecast for a city",
        "inputSchema": {
            "type": "object",
            "properties": {"city": {"type": "string"}},
            "required": ["city"],
        },
    }
)


async def _stream(*chunks):
    for chunk in chunks:
        yield chunk


@pytest.fixture
def mock_client():
    client = MagicMock(spec=OllamaClient)
    client.check_connection = AsyncMock(return_value=True)
    client.get_model_info = AsyncMock()
    client.close = AsyncMock()
    return client


@pytest.fixture
def backend(mock_client):
    backend = OllamaBackend(mock_client, "llama3.2:latest")
    backend.declare_tools([FORECAST])
    return backend


def test_tool_to_ollama():
    """Test that a descriptor becomes an Ollama function declaration."""
    assert tool_to_ollama(FORECAST) == {
        "type": "function",
        "function": {
            "name": "get_forecast",
            "description": "Get weather forecast for a city",
            "parameters": {
                "type": "object",
                "properties": {"city": {"type": "string"}},
                "required": ["city"],
            },
        },
    }


def test_convert_conversation_groups_tool_calls():
    """Test that consecutive intents share one assistant message."""
    paris = ToolCallIntent("get_forecast", {"city": "Paris"})
    oslo = ToolCallIntent("get_forecast", {"city": "Oslo"})
    conversation = [
        UserText("Paris and Oslo?"),
        paris,
        oslo,
        ToolResult(paris, "Sunny, 20C"),
        ToolResult(oslo, {"content": [{"type": "text", "text": "Cloudy"}]}),
        ModelText("Sunny and cloudy."),
    ]

    messages = convert_conversation(conversation)

    assert messages[0] == {"role": "user", "content": "Paris and Oslo?"}
    assert messages[1]["role"] == "assistant"
    assert messages[1]["tool_calls"] == [
        {"function": {"name": "get_forecast", "arguments": {"city": "Paris"}}},
        {"function": {"name": "get_forecast", "arguments": {"city": "Oslo"}}},
    ]
    assert messages[2] == {"role": "tool", "content": "Sunny, 20C", "tool_name": "get_forecast"}
    assert json.loads(messages[3]["content"]) == {
        "content": [{"type": "text", "text": "Cloudy"}]
    }
    assert messages[4] == {"role": "assistant", "content": "Sunny and cloudy."}
    assert len(messages) == 5


def test_convert_conversation_rejects_unknown_turn():
    with pytest.raises(TypeError):
        convert_conversation([object()])


@pytest.mark.asyncio
async def test_generate_final_text(backend, mock_client):
    """Test that streamed content is collected into FinalText."""
    mock_client.chat_stream = MagicMock(
        return_value=_stream(
            {"message": {"role": "assistant", "content": "Hello"}, "done": False},
            {"message": {"role": "assistant", "content": "!"}, "done": True},
        )
    )

    outcome = await backend.generate([UserText("Hi")])

    assert outcome == FinalText("Hello!")
    kwargs = mock_client.chat_stream.call_args.kwargs
    assert kwargs["model"] == "llama3.2:latest"
    assert kwargs["messages"] == [{"role": "user", "content": "Hi"}]
    assert kwargs["tools"] == [tool_to_ollama(FORECAST)]


@pytest.mark.asyncio
async def test_generate_tool_calls(backend, mock_client):
    """Test that tool_calls become intents in the order returned."""
    mock_client.chat_stream = MagicMock(
        return_value=_stream(
            {
                "message": {
                    "role": "assistant",
                    "content": "",
                    "tool_calls": [
                        {"function": {"name": "get_forecast", "arguments": {"city": "Paris"}}},
                        {"function": {"name": "get_forecast", "arguments": '{"city": "Oslo"}'}},
                    ],
                },
                "done": False,
            },
            {"message": {"role": "assistant", "content": ""}, "done": True},
        )
    )

    outcome = await backend.generate([UserText("Paris and Oslo?")])

    assert outcome == ToolCalls(
        (
            ToolCallIntent("get_forecast", {"city": "Paris"}),
            ToolCallIntent("get_forecast", {"city": "Oslo"}),
        )
    )


@pytest.mark.asyncio
async def test_generate_skips_nameless_call(backend, mock_client):
    mock_client.chat_stream = MagicMock(
        return_value=_stream(
            {
                "message": {"content": "ok", "tool_calls": [{"function": {"arguments": {}}}]},
                "done": True,
            },
        )
    )

    assert await backend.generate([UserText("Hi")]) == FinalText("ok")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        ollama.ResponseError("model not found", 404),
        httpx.ConnectError("refused"),
        ConnectionError("refused"),
    ],
)
async def test_generate_errors_become_backend_error(backend, mock_client, error):
    async def failing(*args, **kwargs):
        raise error
        yield  # pragma: no cover

    mock_client.chat_stream = MagicMock(return_value=failing())

    with pytest.raises(BackendError, match="Failed to get response from Ollama"):
        await backend.generate([UserText("Hi")])


@pytest.mark.asyncio
async def test_generate_without_done_marker(backend, mock_client):
    mock_client.chat_stream = MagicMock(
        return_value=_stream({"message": {"content": "partial"}, "done": False})
    )

    with pytest.raises(BackendError, match="completion marker"):
        await backend.generate([UserText("Hi")])


@pytest.mark.asyncio
async def test_check_ready_warns_without_tool_support(backend, mock_client, caplog):
    mock_client.get_model_info.return_value = ModelInfo(
        name="llama3.2:latest", family="llama", capabilities=["completion"]
    )

    with caplog.at_level(logging.WARNING):
        await backend.check_ready()

    assert "does not advertise tool support" in caplog.text


@pytest.mark.asyncio
async def test_check_ready_when_unreachable(backend, mock_client, caplog):
    mock_client.check_connection.return_value = False

    with caplog.at_level(logging.WARNING):
        await backend.check_ready()

    assert "Could not connect to Ollama" in caplog.text
    mock_client.get_model_info.assert_not_called()


@pytest.mark.asyncio
async def test_close_closes_client(backend, mock_client):
    await backend.close()

    mock_client.close.assert_awaited_once()


def test_from_settings_needs_no_key(test_settings):
    settings = test_settings.model_copy(update={"backend": "ollama", "gemini_api_key": None})

    backend = OllamaBackend.from_settings(settings)

    assert backend.model == "llama3.2:latest"
    assert backend.client.host == "http://localhost:11434"


def test_tool_messages_keep_tool_name():
    """The ollama Message model accepts every key the converter produces."""
    intent = ToolCallIntent("get_forecast", {"city": "Paris"})
    messages = convert_conversation(
        [UserText("Paris?"), intent, ToolResult(intent, "Sunny, 20C")]
    )

    parsed = [ollama.Message.model_validate(m) for m in messages]

    assert parsed[2].role == "tool"
    assert parsed[2].tool_name == "get_forecast"
    assert parsed[1].tool_calls[0].function.arguments == {"city": "Paris"}
