"""Tool catalog populated from the tool-server.

The catalog is filled once per session with a single ``tools/list`` request
and is read-only afterwards.
"""

import logging
from typing import Iterator

from mcp_bridge.errors import StartupError, ToolInvocationError, TransportError
from mcp_bridge.tools.types import ToolDescriptor
from mcp_bridge.transport.correlator import RequestCorrelator

logger = logging.getLogger(__name__)

LIST_TOOLS_METHOD = "tools/list"


class ToolCatalog:
    """The tools offered by the connected tool-server.

    Attributes:
        correlator: The correlator used to query the tool-server
    """

    def __init__(self, correlator: RequestCorrelator) -> None:
        self.correlator = correlator
        self._tools: tuple[ToolDescriptor, ...] = ()
        self._loaded = False

    async def load(self, timeout: float | None = None) -> list[ToolDescriptor]:
        """Fetch the tool list from the tool-server.

        Args:
            timeout: Seconds to wait for the ``tools/list`` response

        Returns:
            list[ToolDescriptor]: The advertised tools, in server order

        Raises:
            StartupError: If the request fails or the payload is unusable
        """
        if self._loaded:
            raise RuntimeError("Tool catalog is already loaded")

        try:
            response = await self.correlator.call(LIST_TOOLS_METHOD, timeout=timeout)
            result = response.raise_for_error(LIST_TOOLS_METHOD)
        except (ToolInvocationError, TransportError) as e:
            raise StartupError(f"Could not list tools: {e}") from e

        if not isinstance(result, dict) or not isinstance(result.get("tools"), list):
            raise StartupError(f"Malformed {LIST_TOOLS_METHOD} result: {result!r}")

        tools: list[ToolDescriptor] = []
        seen: set[str] = set()
        for entry in result["tools"]:
            try:
                tool = ToolDescriptor.from_wire(entry)
            except ValueError as e:
                raise StartupError(f"Malformed tool in {LIST_TOOLS_METHOD}: {e}") from e
            if tool.name in seen:
                raise StartupError(f"Duplicate tool name: {tool.name}")
            seen.add(tool.name)
            tools.append(tool)

        self._tools = tuple(tools)
        self._loaded = True
        logger.info(f"Connected to server with tools: {[t.name for t in tools]}")
        return list(self._tools)

    @property
    def tools(self) -> list[ToolDescriptor]:
        return list(self._tools)

    @property
    def names(self) -> list[str]:
        return [tool.name for tool in self._tools]

    def get(self, name: str) -> ToolDescriptor | None:
        """Look up a tool by name."""
        for tool in self._tools:
            if tool.name == name:
                return tool
        return None

    def __iter__(self) -> Iterator[ToolDescriptor]:
        return iter(self._tools)

    def __len__(self) -> int:
        return len(self._tools)
