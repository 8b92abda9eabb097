"""Async Ollama client wrapper.

This module provides an async wrapper around the ollama.AsyncClient for
communicating with the Ollama API. The client is created once per session
and reused for every model call.
"""

import logging
from typing import Any, AsyncIterator

import ollama

from mcp_bridge.ollama.types import ModelInfo

logger = logging.getLogger(__name__)


class OllamaClient:
    """Async client for interacting with Ollama API.

    This client wraps ollama.AsyncClient. Chat operations use streaming;
    callers collect the chunks into a complete reply.

    Attributes:
        host: The Ollama server URL (e.g., "http://localhost:11434")
        _client: The underlying ollama.AsyncClient instance
    """

    def __init__(self, host: str) -> None:
        """Initialize the Ollama client.

        Args:
            host: The Ollama server URL
        """
        self.host = host
        self._client = ollama.AsyncClient(host=host)
        logger.info(f"OllamaClient initialized with host: {host}")

    async def check_connection(self) -> bool:
        """Check if the Ollama server is reachable.

        Returns:
            bool: True if connection is successful, False otherwise
        """
        try:
            await self._client.list()
            logger.debug("Ollama connection check: successful")
            return True
        except Exception as e:
            logger.warning(f"Ollama connection check failed: {e}")
            return False

    async def get_model_info(self, model_name: str) -> ModelInfo | None:
        """Get capability information about a specific model.

        Args:
            model_name: Name of the model to query

        Returns:
            ModelInfo | None: Model information if found, None if not found

        Raises:
            ollama.ResponseError: If the Ollama API request fails (except for 404)
        """
        try:
            show_response = await self._client.show(model_name)
        except ollama.ResponseError as e:
            if e.status_code == 404:
                logger.debug(f"Model not found: {model_name}")
                return None
            logger.error(f"Ollama API error for model {model_name}: {e}")
            raise

        model_info = ModelInfo.from_show_response(model_name, show_response)
        logger.debug(f"Model {model_name} capabilities: {model_info.capabilities}")
        return model_info

    async def chat_stream(
        self,
        model: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        options: dict[str, Any] | None = None,
    ) -> AsyncIterator[dict[str, Any]]:
        """Stream chat responses from Ollama.

        Args:
            model: The model name to use for the chat
            messages: List of message dicts in Ollama format:
                      [{"role": "user", "content": "..."}, ...]
            tools: Optional function declarations in Ollama format:
                   [{"type": "function", "function": {...}}, ...]
            options: Optional model parameters (temperature, etc.)

        Yields:
            dict: Response chunks from Ollama. Each chunk contains:
                  - model: str - The model name
                  - message: dict - Contains role, content and possibly tool_calls
                  - done: bool - True on the final chunk

        Raises:
            Exception: If the Ollama API request fails

        Example:
            >>> async for chunk in client.chat_stream(
            ...     model="llama3.2:latest",
            ...     messages=[{"role": "user", "content": "Hello"}],
            ... ):
            ...     print(chunk["message"]["content"], end="")
        """
        logger.debug(
            f"Starting chat stream with model: {model}, "
            f"messages: {len(messages)}, tools: {len(tools or [])}"
        )

        async for chunk in await self._client.chat(
            model=model,
            messages=messages,
            tools=tools or None,
            stream=True,
            options=options,
        ):
            # Convert the chunk to a dict if it's not already
            if hasattr(chunk, "model_dump"):
                chunk_dict = chunk.model_dump()
            elif isinstance(chunk, dict):
                chunk_dict = chunk
            else:
                chunk_dict = vars(chunk)

            logger.debug(f"Received chunk: done={chunk_dict.get('done')}")
            yield chunk_dict

        logger.debug("Chat stream completed")

    async def close(self) -> None:
        """Close the client and clean up resources.

        ollama.AsyncClient uses httpx internally; closing its transport
        releases pooled connections.
        """
        inner = getattr(self._client, "_client", None)
        if inner is not None and hasattr(inner, "aclose"):
            await inner.aclose()
        logger.debug("OllamaClient closed")
