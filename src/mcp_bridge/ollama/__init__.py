"""Ollama client wrapper and integration layer.

This package provides the async client wrapper used by the Ollama backend.
"""

from mcp_bridge.ollama.client import OllamaClient
from mcp_bridge.ollama.types import ModelInfo

__all__ = ["OllamaClient", "ModelInfo"]
