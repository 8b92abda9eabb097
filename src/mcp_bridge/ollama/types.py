"""Type definitions for Ollama integration.

This module contains dataclasses used for representing Ollama model metadata
relevant to function calling.
"""

from dataclasses import dataclass
from typing import Any


@dataclass
class ModelInfo:
    """Information about an Ollama model.

    Attributes:
        name: Full model name (e.g., "qwen3:14b")
        family: Model family (e.g., "qwen3")
        capabilities: List of model capabilities (e.g., ["completion", "tools"])
    """

    name: str
    family: str
    capabilities: list[str]

    @property
    def supports_tools(self) -> bool:
        """Whether the model advertises native tool calling."""
        return "tools" in self.capabilities

    @staticmethod
    def from_show_response(model_name: str, show_data: Any) -> "ModelInfo":
        """Create a ModelInfo instance from an Ollama show response.

        Args:
            model_name: The model that was queried
            show_data: Raw show response (object or dict)

        Returns:
            ModelInfo: Parsed model information
        """

        # Helper to get value from either object attribute or dict key
        def get_value(obj: Any, key: str, default: Any = None) -> Any:
            if isinstance(obj, dict):
                return obj.get(key, default)
            return getattr(obj, key, default)

        details = get_value(show_data, "details", {}) or {}
        family = get_value(details, "family", None) or "unknown"

        # Older servers omit capabilities; assume plain completion
        capabilities = get_value(show_data, "capabilities", None) or ["completion"]

        return ModelInfo(
            name=model_name,
            family=family,
            capabilities=list(capabilities),
        )
