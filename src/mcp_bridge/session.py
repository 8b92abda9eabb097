"""Session lifecycle: tool-server process, catalog and backend.

A :class:`BridgeSession` is an async context manager. Entering it spawns the
tool-server, loads the tool catalog and declares the tools to the backend;
leaving it (normally or through an exception) closes the backend, closes the
pipes and reaps the child process.
"""

import logging
import sys
from pathlib import Path
from types import TracebackType

from mcp_bridge.backends import ChatBackend, create_backend
from mcp_bridge.config import BridgeSettings
from mcp_bridge.conversation import ConversationOrchestrator, QueryResult
from mcp_bridge.errors import BridgeError
from mcp_bridge.tools import ToolCatalog
from mcp_bridge.transport import RequestCorrelator, StdioTransport

logger = logging.getLogger(__name__)


def resolve_server_command(
    server_path: str, node_command: str = "node"
) -> tuple[str, list[str]]:
    """Work out how to launch a tool-server script.

    ``.js``/``.mjs``/``.cjs`` scripts run under Node, ``.py`` scripts under
    the current Python interpreter; anything else is executed directly.

    Returns:
        tuple: (command, args) for create_subprocess_exec
    """
    suffix = Path(server_path).suffix.lower()
    if suffix in {".js", ".mjs", ".cjs"}:
        return node_command, [server_path]
    if suffix == ".py":
        return sys.executable, [server_path]
    return server_path, []


class BridgeSession:
    """One connection between a chat backend and a tool-server.

    Attributes:
        settings: The bridge configuration
        server_path: Path to the tool-server executable or script
        transport: The stdio transport owning the child process
        correlator: Request correlator bound to the transport
        catalog: Tools offered by the tool-server
        backend: The chat backend adapter
        orchestrator: Query orchestrator (available after entering)
    """

    def __init__(
        self,
        settings: BridgeSettings,
        server_path: str,
        backend: ChatBackend | None = None,
    ) -> None:
        self.settings = settings
        self.server_path = server_path
        self._backend = backend
        self.transport = StdioTransport(shutdown_timeout=settings.shutdown_timeout)
        self.correlator = RequestCorrelator(
            self.transport, default_timeout=settings.request_timeout
        )
        self.catalog = ToolCatalog(self.correlator)
        self.orchestrator: ConversationOrchestrator | None = None

    @property
    def backend(self) -> ChatBackend:
        if self._backend is None:
            raise RuntimeError("Session has not been started")
        return self._backend

    @property
    def is_alive(self) -> bool:
        return self.transport.is_running

    async def start(self) -> None:
        """Spawn the tool-server, load the catalog and prepare the backend.

        Raises:
            StartupError: If any step fails; resources acquired so far are released
        """
        try:
            # Build the backend first so a missing credential fails before spawning
            if self._backend is None:
                self._backend = create_backend(self.settings)

            command, args = resolve_server_command(
                self.server_path, self.settings.node_command
            )
            await self.transport.start(command, args)

            tools = await self.catalog.load(timeout=self.settings.request_timeout)
            self._backend.declare_tools(tools)
            await self._backend.check_ready()
        except BaseException:
            await self.close()
            raise

        self.orchestrator = ConversationOrchestrator(
            backend=self._backend,
            correlator=self.correlator,
            max_tool_iterations=self.settings.max_tool_iterations,
            request_timeout=self.settings.request_timeout,
            backend_timeout=self.settings.backend_timeout,
        )
        logger.info(
            f"Session ready: backend={self._backend.name}, "
            f"model={self.settings.model_name}, tools={self.catalog.names}"
        )

    async def process_query(self, query: str) -> QueryResult:
        """Run one query through the orchestrator."""
        if self.orchestrator is None:
            raise RuntimeError("Session has not been started")
        return await self.orchestrator.process_query(query)

    async def close(self) -> None:
        """Release the backend and the tool-server. Safe to call more than once."""
        try:
            if self._backend is not None:
                try:
                    await self._backend.close()
                except BridgeError as e:
                    logger.warning(f"Error while closing backend: {e}")
        finally:
            await self.transport.stop()
        logger.info("Session closed")

    async def __aenter__(self) -> "BridgeSession":
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
