"""Line-delimited JSON transport over a child process's standard pipes.

The transport owns the tool-server process. It writes one request per line to
the child's stdin and turns the child's stdout into a stream of
:class:`JsonRpcResponse` objects, delivered in arrival order to a single
bound message handler.
"""

import asyncio
import logging
from typing import Callable

from mcp_bridge.errors import FramingError, StartupError, TransportClosedError
from mcp_bridge.transport.framing import LineBuffer
from mcp_bridge.transport.protocol import (
    JsonRpcNotification,
    JsonRpcRequest,
    JsonRpcResponse,
    decode_message,
)

logger = logging.getLogger(__name__)

MessageHandler = Callable[[JsonRpcResponse], None]
CloseHandler = Callable[[], None]

READ_CHUNK_SIZE = 64 * 1024


class StdioTransport:
    """Framed transport to a spawned tool-server.

    Attributes:
        shutdown_timeout: Seconds to wait for the child to exit after its stdin
                          is closed before it is terminated
        read_size: Maximum number of bytes read from stdout per chunk
    """

    def __init__(
        self,
        shutdown_timeout: float = 5.0,
        read_size: int = READ_CHUNK_SIZE,
    ) -> None:
        self.shutdown_timeout = shutdown_timeout
        self.read_size = read_size
        self._process: asyncio.subprocess.Process | None = None
        self._reader_task: asyncio.Task | None = None
        self._buffer = LineBuffer()
        self._on_message: MessageHandler | None = None
        self._on_close: CloseHandler | None = None
        self._closed = False

    def bind(self, on_message: MessageHandler, on_close: CloseHandler | None = None) -> None:
        """Register the receiver of decoded messages and of the close notification."""
        self._on_message = on_message
        self._on_close = on_close

    @property
    def is_running(self) -> bool:
        """True while the child is alive and its pipes are open."""
        return (
            self._process is not None
            and self._process.returncode is None
            and not self._closed
        )

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process else None

    async def start(self, command: str, args: list[str] | None = None) -> None:
        """Spawn the tool-server and start listening to its stdout.

        Raises:
            StartupError: If the process cannot be spawned
        """
        if self._process is not None:
            raise RuntimeError("Transport already started")

        args = args or []
        try:
            self._process = await asyncio.create_subprocess_exec(
                command,
                *args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                # stderr is inherited so the tool-server's own logs stay visible
                stderr=None,
            )
        except OSError as e:
            raise StartupError(
                f"Failed to start tool-server {command} {' '.join(args)}: {e}"
            ) from e

        logger.info(f"Started tool-server pid={self._process.pid}: {command} {args}")
        self._reader_task = asyncio.create_task(
            self._read_loop(), name="mcp-bridge-stdout-reader"
        )

    async def send(self, request: JsonRpcRequest) -> None:
        """Write one request followed by a newline.

        Raises:
            TransportClosedError: If the child is gone or its stdin is closed
        """
        if self._closed or self._process is None or self._process.stdin is None:
            raise TransportClosedError("Tool-server transport is not running")

        line = request.to_json() + "\n"
        try:
            self._process.stdin.write(line.encode("utf-8"))
            await self._process.stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as e:
            raise TransportClosedError(f"Tool-server stdin closed: {e}") from e

        logger.debug(f"Sent request id={request.id} method={request.method}")

    def feed(self, chunk: bytes) -> None:
        """Process a raw chunk read from the tool-server's stdout.

        Complete lines are decoded and delivered; malformed lines are logged
        and skipped so that later valid lines are still processed.
        """
        for line in self._buffer.feed(chunk):
            self._dispatch_line(line)

    def _dispatch_line(self, line: str) -> None:
        try:
            message = decode_message(line)
        except FramingError as e:
            logger.error(f"Framing error: {e} (line: {line[:200]!r})")
            return

        if isinstance(message, JsonRpcNotification):
            logger.debug(f"Ignoring unsupported notification: {message.method}")
            return

        response = message
        logger.debug(f"Received response id={response.id} error={response.is_error}")
        if self._on_message is None:
            logger.warning(f"No handler bound; dropping response id={response.id}")
            return
        self._on_message(response)

    async def _read_loop(self) -> None:
        if self._process is None or self._process.stdout is None:
            raise RuntimeError("Reader started without a running tool-server")
        stdout = self._process.stdout
        try:
            while True:
                chunk = await stdout.read(self.read_size)
                if not chunk:
                    break
                self.feed(chunk)

            trailing = self._buffer.flush()
            if trailing:
                self._dispatch_line(trailing)
            logger.info("Tool-server closed its stdout")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Tool-server reader failed: {e}")
        finally:
            self._mark_closed()

    def _mark_closed(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._on_close is not None:
            self._on_close()

    async def stop(self) -> None:
        """Close the pipes and reap the child process. Safe to call more than once."""
        process = self._process
        if process is None:
            self._mark_closed()
            return

        if process.stdin is not None and not process.stdin.is_closing():
            process.stdin.close()
            try:
                await process.stdin.wait_closed()
            except (BrokenPipeError, ConnectionResetError):
                pass

        if process.returncode is None:
            try:
                await asyncio.wait_for(process.wait(), timeout=self.shutdown_timeout)
            except asyncio.TimeoutError:
                logger.warning(
                    f"Tool-server pid={process.pid} did not exit; terminating"
                )
                try:
                    process.terminate()
                    await asyncio.wait_for(process.wait(), timeout=self.shutdown_timeout)
                except ProcessLookupError:
                    pass
                except asyncio.TimeoutError:
                    logger.warning(f"Tool-server pid={process.pid} ignored SIGTERM; killing")
                    try:
                        process.kill()
                    except ProcessLookupError:
                        pass
                    await process.wait()

        if self._reader_task is not None and not self._reader_task.done():
            self._reader_task.cancel()
            try:
                await self._reader_task
            except asyncio.CancelledError:
                pass

        self._mark_closed()
        logger.info(f"Tool-server pid={process.pid} exited with code {process.returncode}")
