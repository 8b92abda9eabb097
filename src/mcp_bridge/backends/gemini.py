"""Gemini backend adapter.

Gemini returns function calls as ``function_call`` parts of the model
content. Results are sent back as ``function_response`` parts in a user
content, matched to the call by name (and by id when Gemini provides one).
"""

import logging
from typing import Any, Sequence

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

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
from mcp_bridge.errors import BackendError, StartupError
from mcp_bridge.tools.schema import SchemaKind, render_schema
from mcp_bridge.tools.types import ToolDescriptor

logger = logging.getLogger(__name__)


def gemini_schema_type(kind: SchemaKind) -> str | None:
    """Gemini spells schema types in upper case and has no "any" type."""
    if kind is SchemaKind.ANY:
        return None
    return kind.value.upper()


def tool_to_gemini(tool: ToolDescriptor) -> types.FunctionDeclaration:
    """Convert a tool descriptor into a Gemini function declaration.

    Gemini rejects OBJECT schemas without properties, so tools that take no
    arguments are declared without parameters.
    """
    parameters = None
    if tool.input_schema.properties:
        rendered = render_schema(
            tool.input_schema, type_name=gemini_schema_type, stringify_enums=True
        )
        parameters = types.Schema.model_validate(rendered)

    return types.FunctionDeclaration(
        name=tool.name,
        description=tool.description or "",
        parameters=parameters,
    )


def _function_response(result: ToolResult) -> dict[str, Any]:
    # function_response.response must be an object
    if isinstance(result.content, dict):
        return result.content
    return {"result": result.content}


def convert_conversation(conversation: Sequence[ConversationTurn]) -> list[types.Content]:
    """Convert conversation turns to Gemini contents.

    Consecutive intents share one model content and consecutive results share
    one user content, which is how Gemini expects parallel calls.
    """
    contents: list[types.Content] = []

    def append_part(role: str, part: types.Part, group: str) -> None:
        last = contents[-1] if contents else None
        if (
            last is not None
            and last.role == role
            and last.parts
            and getattr(last.parts[-1], group) is not None
        ):
            last.parts.append(part)
        else:
            contents.append(types.Content(role=role, parts=[part]))

    for turn in conversation:
        if isinstance(turn, UserText):
            contents.append(types.Content(role="user", parts=[types.Part(text=turn.text)]))
        elif isinstance(turn, ModelText):
            contents.append(types.Content(role="model", parts=[types.Part(text=turn.text)]))
        elif isinstance(turn, ToolCallIntent):
            part = types.Part(
                function_call=types.FunctionCall(
                    id=turn.call_id, name=turn.name, args=turn.arguments
                )
            )
            append_part("model", part, "function_call")
        elif isinstance(turn, ToolResult):
            part = types.Part(
                function_response=types.FunctionResponse(
                    id=turn.intent.call_id,
                    name=turn.intent.name,
                    response=_function_response(turn),
                )
            )
            append_part("user", part, "function_response")
        else:
            raise TypeError(f"Unknown conversation turn: {turn!r}")

    return contents


def parse_response(response: types.GenerateContentResponse) -> ModelTurnOutcome:
    """Turn a Gemini reply into FinalText or ToolCalls.

    Raises:
        BackendError: If the reply has no candidates (e.g. a blocked prompt)
    """
    if not response.candidates:
        feedback = response.prompt_feedback
        reason = feedback.block_reason if feedback is not None else None
        raise BackendError(f"Gemini returned no candidates (block reason: {reason})")

    content = response.candidates[0].content
    parts = content.parts if content is not None and content.parts else []

    intents: list[ToolCallIntent] = []
    texts: list[str] = []
    for part in parts:
        if part.function_call is not None and part.function_call.name:
            call = part.function_call
            intents.append(
                ToolCallIntent(name=call.name, arguments=dict(call.args or {}), call_id=call.id)
            )
        elif part.text and not part.thought:
            texts.append(part.text)

    if intents:
        return ToolCalls(tuple(intents))
    return FinalText("".join(texts))


@register_backend("gemini")
class GeminiBackend(ChatBackend):
    """Chat backend using the Google Gen AI SDK.

    Attributes:
        client: The genai client
        model: Model name used for every call
    """

    def __init__(self, client: genai.Client, model: str) -> None:
        self.client = client
        self.model = model
        self._declarations: list[types.FunctionDeclaration] = []

    @classmethod
    def from_settings(cls, settings: BridgeSettings) -> "GeminiBackend":
        if not settings.gemini_api_key:
            raise StartupError("GEMINI_API_KEY not set")
        return cls(genai.Client(api_key=settings.gemini_api_key), settings.gemini_model)

    def declare_tools(self, tools: Sequence[ToolDescriptor]) -> None:
        self._declarations = [tool_to_gemini(tool) for tool in tools]
        logger.debug(f"Declared {len(self._declarations)} tools for Gemini")

    @property
    def declarations(self) -> list[types.FunctionDeclaration]:
        return list(self._declarations)

    def _config(self) -> types.GenerateContentConfig | None:
        if not self._declarations:
            return None
        return types.GenerateContentConfig(
            tools=[types.Tool(function_declarations=self._declarations)],
        )

    async def generate(self, conversation: Sequence[ConversationTurn]) -> ModelTurnOutcome:
        contents = convert_conversation(conversation)
        logger.debug(f"Sending {len(contents)} contents to Gemini model {self.model}")

        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=contents,
                config=self._config(),
            )
        except (genai_errors.APIError, httpx.HTTPError) as e:
            logger.error(f"Gemini request failed: {e}")
            raise BackendError(f"Failed to get response from Gemini: {e}") from e

        outcome = parse_response(response)
        if isinstance(outcome, ToolCalls):
            logger.info(
                f"Gemini requested {len(outcome.intents)} tool call(s): "
                f"{[i.name for i in outcome.intents]}"
            )
        return outcome
