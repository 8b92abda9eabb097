"""Backend adapter interface.

This module is the boundary between the orchestrator and a concrete chat
backend. Everything above it works with backend-neutral conversation turns;
everything below it speaks a provider's native message format.

Additional providers can be added by subclassing :class:`ChatBackend` and
registering via :func:`register_backend`.
"""

from abc import ABC, abstractmethod
from typing import Callable, ClassVar, Sequence, Type

from mcp_bridge.config import BridgeSettings
from mcp_bridge.conversation.types import ConversationTurn, ModelTurnOutcome
from mcp_bridge.tools.types import ToolDescriptor

_BACKEND_REGISTRY: dict[str, Type["ChatBackend"]] = {}


def register_backend(name: str) -> Callable[[Type["ChatBackend"]], Type["ChatBackend"]]:
    """Decorator to register a backend class under *name*."""

    def wrapper(cls: Type["ChatBackend"]) -> Type["ChatBackend"]:
        if name in _BACKEND_REGISTRY:
            raise ValueError(f"Backend '{name}' is already registered.")
        cls.name = name
        _BACKEND_REGISTRY[name] = cls
        return cls

    return wrapper


def available_backends() -> list[str]:
    return sorted(_BACKEND_REGISTRY)


def get_backend_class(name: str) -> Type["ChatBackend"]:
    cls = _BACKEND_REGISTRY.get(name.lower())
    if cls is None:
        raise ValueError(
            f"Backend '{name}' is not registered. Available: {available_backends()}"
        )
    return cls


class ChatBackend(ABC):
    """Abstract chat backend with function calling.

    Subclasses differ only in how they serialize the conversation and how
    they parse the model's reply into a ModelTurnOutcome.
    """

    name: ClassVar[str] = ""

    @classmethod
    @abstractmethod
    def from_settings(cls, settings: BridgeSettings) -> "ChatBackend":
        """Build the backend from settings.

        Raises:
            StartupError: If a required credential is missing
        """

    @abstractmethod
    def declare_tools(self, tools: Sequence[ToolDescriptor]) -> None:
        """Convert and store the tool declarations sent with every model call."""

    @abstractmethod
    async def generate(self, conversation: Sequence[ConversationTurn]) -> ModelTurnOutcome:
        """Make the first model call of a query.

        Raises:
            BackendError: If the backend call fails
        """

    async def continue_conversation(
        self, conversation: Sequence[ConversationTurn]
    ) -> ModelTurnOutcome:
        """Make a follow-up call after tool results were appended.

        Tools stay declared, so the model may request further calls.

        Raises:
            BackendError: If the backend call fails
        """
        return await self.generate(conversation)

    async def check_ready(self) -> None:
        """Log whether the backend looks usable. Never raises for connectivity."""

    async def close(self) -> None:
        """Release backend resources."""
