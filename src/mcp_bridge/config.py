"""Configuration module for mcp-bridge using pydantic-settings."""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BridgeSettings(BaseSettings):
    """Main configuration settings for mcp-bridge.

    All settings can be overridden via environment variables with the
    MCP_BRIDGE_ prefix, or from a ``.env`` file in the working directory.
    For example, MCP_BRIDGE_BACKEND=ollama selects the Ollama backend.
    The Gemini credential is also read from the plain GEMINI_API_KEY variable.
    """

    # Backend selection
    backend: str = "gemini"  # Options: gemini, ollama

    # Gemini
    gemini_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("MCP_BRIDGE_GEMINI_API_KEY", "GEMINI_API_KEY"),
    )
    gemini_model: str = "gemini-2.5-flash"

    # Ollama
    ollama_host: str = "http://localhost:11434"
    ollama_model: str = "llama3.2:latest"

    # Tool-server process
    node_command: str = "node"
    shutdown_timeout: float = Field(default=5.0, gt=0)

    # Orchestration limits
    max_tool_iterations: int = Field(default=10, ge=1)
    request_timeout: float = Field(default=60.0, gt=0)
    backend_timeout: float = Field(default=120.0, gt=0)

    # Logging
    log_level: str = "WARNING"

    model_config = SettingsConfigDict(
        env_prefix="MCP_BRIDGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def model_name(self) -> str:
        """Get the model name for the selected backend."""
        if self.backend == "ollama":
            return self.ollama_model
        return self.gemini_model
