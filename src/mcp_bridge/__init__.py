"""mcp-bridge: connect a function-calling chat model to a stdio tool-server.

This package spawns a tool-server process, talks newline-delimited JSON-RPC
to it over its pipes, and lets a Gemini or Ollama model call its tools while
answering user queries.
"""

from mcp_bridge.session import BridgeSession

__version__ = "0.1.0"

__all__ = ["BridgeSession", "__version__"]
