"""Chat backend adapters.

Importing this package registers the built-in backends. Use
:func:`create_backend` to build the one selected in settings.
"""

from mcp_bridge.backends.base import (
    ChatBackend,
    available_backends,
    get_backend_class,
    register_backend,
)
from mcp_bridge.backends.gemini import GeminiBackend
from mcp_bridge.backends.ollama import OllamaBackend
from mcp_bridge.config import BridgeSettings
from mcp_bridge.errors import StartupError


def create_backend(settings: BridgeSettings) -> ChatBackend:
    """Instantiate the backend named by ``settings.backend``.

    Raises:
        StartupError: If the backend is unknown or its credential is missing
    """
    try:
        cls = get_backend_class(settings.backend)
    except ValueError as e:
        raise StartupError(str(e)) from e
    return cls.from_settings(settings)


__all__ = [
    "ChatBackend",
    "GeminiBackend",
    "OllamaBackend",
    "available_backends",
    "create_backend",
    "get_backend_class",
    "register_backend",
]
