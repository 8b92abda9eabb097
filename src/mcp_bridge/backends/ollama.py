"""Ollama backend adapter.

Ollama reports function calls as a ``tool_calls`` array on the assistant
message, so several tools may be requested in one turn. Tool results go back
as ``tool`` role messages carrying the tool name.
"""

import json
import logging
from typing import Any, Sequence

import httpx
import ollama

from mcp_bridge.backends.base import ChatBackend, register_backend
from mcp_bridge.config import BridgeSettings
from mcp_bridge.conversation.types import (
    ConversationTurn,
    FinalText,
    ModelText,
    ModelTurnOutcome,
    ToolCallIntent,
    ToolCalls,
    ToolResult,
    UserText,
)
from mcp_bridge.errors import BackendError
from mcp_bridge.ollama import OllamaClient
from mcp_bridge.tools.schema import render_schema
from mcp_bridge.tools.types import ToolDescriptor

logger = logging.getLogger(__name__)


def tool_to_ollama(tool: ToolDescriptor) -> dict[str, Any]:
    """Convert a tool descriptor into an Ollama function declaration."""
    return {
        "type": "function",
        "function": {
            "name": tool.name,
            "description": tool.description or "",
            "parameters": render_schema(tool.input_schema),
        },
    }


def _tool_content(result: ToolResult) -> str:
    """Ollama tool messages carry a string; serialize anything else as JSON."""
    if isinstance(result.content, str):
        return result.content
    return json.dumps(result.content, ensure_ascii=False, default=str)


def convert_conversation(conversation: Sequence[ConversationTurn]) -> list[dict[str, Any]]:
    """Convert conversation turns to Ollama API messages.

    Consecutive intents are grouped into one assistant message with a
    ``tool_calls`` array, mirroring how the model produced them.

    Args:
        conversation: Backend-neutral turns

    Returns:
        List of message dicts in Ollama format
    """
    messages: list[dict[str, Any]] = []

    for turn in conversation:
        if isinstance(turn, UserText):
            messages.append({"role": "user", "content": turn.text})
        elif isinstance(turn, ModelText):
            messages.append({"role": "assistant", "content": turn.text})
        elif isinstance(turn, ToolCallIntent):
            call = {"function": {"name": turn.name, "arguments": turn.arguments}}
            last = messages[-1] if messages else None
            if last is not None and last["role"] == "assistant" and "tool_calls" in last:
                last["tool_calls"].append(call)
            else:
                messages.append({"role": "assistant", "content": "", "tool_calls": [call]})
        elif isinstance(turn, ToolResult):
            messages.append(
                {
                    "role": "tool",
                    "content": _tool_content(turn),
                    "tool_name": turn.intent.name,
                }
            )
        else:
            raise TypeError(f"Unknown conversation turn: {turn!r}")

    return messages


def _parse_arguments(raw: Any) -> dict[str, Any]:
    # Some models return arguments as a JSON string
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Tool call arguments are not JSON: {raw[:200]!r}")
            return {}
    return dict(raw) if isinstance(raw, dict) else {}


@register_backend("ollama")
class OllamaBackend(ChatBackend):
    """Chat backend talking to an Ollama server.

    Attributes:
        client: The Ollama client wrapper
        model: Model name used for every call
    """

    def __init__(self, client: OllamaClient, model: str) -> None:
        self.client = client
        self.model = model
        self._tools: list[dict[str, Any]] = []

    @classmethod
    def from_settings(cls, settings: BridgeSettings) -> "OllamaBackend":
        # A local Ollama server needs no credential
        return cls(OllamaClient(host=settings.ollama_host), settings.ollama_model)

    def declare_tools(self, tools: Sequence[ToolDescriptor]) -> None:
        self._tools = [tool_to_ollama(tool) for tool in tools]
        logger.debug(f"Declared {len(self._tools)} tools for Ollama")

    @property
    def declarations(self) -> list[dict[str, Any]]:
        return list(self._tools)

    async def generate(self, conversation: Sequence[ConversationTurn]) -> ModelTurnOutcome:
        messages = convert_conversation(conversation)
        content_parts: list[str] = []
        intents: list[ToolCallIntent] = []
        final_chunk = None

        try:
            async for chunk in self.client.chat_stream(
                model=self.model,
                messages=messages,
                tools=self._tools,
            ):
                message = chunk.get("message") or {}
                content = message.get("content") or ""
                if content:
                    content_parts.append(content)

                for call in message.get("tool_calls") or []:
                    function = call.get("function") or {}
                    name = function.get("name")
                    if not name:
                        logger.warning(f"Ignoring tool call without a name: {call!r}")
                        continue
                    intents.append(
                        ToolCallIntent(
                            name=name,
                            arguments=_parse_arguments(function.get("arguments")),
                        )
                    )

                if chunk.get("done"):
                    final_chunk = chunk

        except (ollama.ResponseError, httpx.HTTPError, ConnectionError) as e:
            logger.error(f"Ollama streaming error: {e}")
            raise BackendError(f"Failed to get response from Ollama: {e}") from e

        if final_chunk is None:
            raise BackendError("Ollama stream ended without completion marker")

        if intents:
            logger.info(f"Ollama requested {len(intents)} tool call(s): {[i.name for i in intents]}")
            return ToolCalls(tuple(intents))
        return FinalText("".join(content_parts))

    async def check_ready(self) -> None:
        if not await self.client.check_connection():
            logger.warning("Could not connect to Ollama - check if server is running")
            return

        try:
            info = await self.client.get_model_info(self.model)
        except (ollama.ResponseError, httpx.HTTPError) as e:
            logger.warning(f"Could not inspect model {self.model}: {e}")
            return

        if info is None:
            logger.warning(f"Model {self.model} is not available on the Ollama server")
        elif not info.supports_tools:
            logger.warning(f"Model {self.model} does not advertise tool support")
        else:
            logger.info(f"Successfully connected to Ollama; {self.model} supports tools")

    async def close(self) -> None:
        await self.client.close()
