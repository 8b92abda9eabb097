"""CLI entry point for mcp-bridge.

This module provides the command-line interface and the interactive query
loop. It can be invoked as `mcp-bridge <server>` (via the script entry point)
or `python -m mcp_bridge <server>`.
"""

import argparse
import asyncio
import logging
import sys

from pydantic import ValidationError

from mcp_bridge import __version__
from mcp_bridge.backends import available_backends
from mcp_bridge.config import BridgeSettings
from mcp_bridge.conversation import QueryResult
from mcp_bridge.errors import (
    BackendError,
    RequestTimeoutError,
    StartupError,
    ToolLoopLimitError,
    TransportClosedError,
)
from mcp_bridge.session import BridgeSession

logger = logging.getLogger(__name__)

USAGE = "Usage: mcp-bridge <path-to-tool-server>"
QUIT_COMMAND = "quit"


def _init_logging(level: str) -> None:
    numeric = getattr(logging, level.upper(), logging.WARNING)
    logging.basicConfig(
        level=numeric,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        # stdout belongs to the interactive loop
        stream=sys.stderr,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mcp-bridge",
        description="Chat with a language model that can call tools from a stdio tool-server",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"mcp-bridge {__version__}",
    )

    parser.add_argument(
        "server_path",
        nargs="?",
        default=None,
        help="Path to the tool-server executable (.js and .py scripts are run with node/python)",
    )

    parser.add_argument(
        "--backend",
        type=str.lower,
        default=None,
        choices=available_backends(),
        help="Chat backend (default: gemini, can be set via MCP_BRIDGE_BACKEND)",
    )

    parser.add_argument(
        "--model",
        type=str,
        default=None,
        help="Model name for the selected backend",
    )

    parser.add_argument(
        "--ollama-host",
        type=str,
        default=None,
        help="Ollama server URL (default: http://localhost:11434, can be set via MCP_BRIDGE_OLLAMA_HOST)",
    )

    parser.add_argument(
        "--max-tool-iterations",
        type=int,
        default=None,
        help="Maximum tool-calling rounds per query (default: 10)",
    )

    parser.add_argument(
        "--log-level",
        type=str.upper,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: WARNING, can be set via MCP_BRIDGE_LOG_LEVEL)",
    )

    return parser


def build_settings(args: argparse.Namespace) -> BridgeSettings:
    """Build settings; CLI args override environment variables."""
    settings_kwargs: dict = {}
    if args.backend is not None:
        settings_kwargs["backend"] = args.backend
    if args.ollama_host is not None:
        settings_kwargs["ollama_host"] = args.ollama_host
    if args.max_tool_iterations is not None:
        settings_kwargs["max_tool_iterations"] = args.max_tool_iterations
    if args.log_level is not None:
        settings_kwargs["log_level"] = args.log_level

    settings = BridgeSettings(**settings_kwargs)

    if args.model is not None:
        if settings.backend == "ollama":
            settings.ollama_model = args.model
        else:
            settings.gemini_model = args.model

    return settings


def get_user_message(prompt: str = "\nQuery: ") -> tuple[str, bool]:
    """Read one line from standard input.

    Returns:
        Tuple of (user_input, success_flag)
        The success_flag is False if input couldn't be read (EOF or Ctrl+C)
    """
    try:
        return input(prompt).strip(), True
    except (EOFError, KeyboardInterrupt):
        return "", False


def print_result(result: QueryResult) -> None:
    for tool_result in result.tool_results:
        status = "failed" if tool_result.is_error else "ok"
        print(f"[{tool_result.intent.name}: {status}]")
    print(f"\n{result.text}")


def run_repl(runner: asyncio.Runner, session: BridgeSession) -> int:
    """Read queries until ``quit`` or end of input.

    Each query runs on the session's event loop. Ctrl+C while a query is
    running cancels that query only. Errors scoped to one query are printed
    and the loop continues.

    Returns:
        int: Process exit code
    """
    print(f"\nMCP Client Started ({session.backend.name})!")
    print(f'Type your queries or "{QUIT_COMMAND}".')

    while True:
        query, ok = get_user_message()
        if not ok:
            print()
            return 0
        if not query:
            continue
        if query.lower() == QUIT_COMMAND:
            return 0

        try:
            result = runner.run(session.process_query(query))
        except KeyboardInterrupt:
            print("\nQuery cancelled.")
            continue
        except (BackendError, ToolLoopLimitError, RequestTimeoutError) as e:
            logger.warning(f"Query failed: {e}")
            print(f"\nError: {e}")
            continue
        except TransportClosedError as e:
            print(f"\nTool-server is no longer available: {e}", file=sys.stderr)
            return 1

        print_result(result)


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the mcp-bridge CLI.

    Returns:
        int: 0 after ``quit``, 1 on usage, startup or orchestration failure
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.server_path:
        print(USAGE, file=sys.stderr)
        return 1

    try:
        settings = build_settings(args)
    except ValidationError as e:
        print(USAGE, file=sys.stderr)
        for error in e.errors():
            field = ".".join(str(part) for part in error["loc"])
            print(f"Error: invalid setting {field}: {error['msg']}", file=sys.stderr)
        return 1

    _init_logging(settings.log_level)
    logger.debug(f"Settings: {settings.model_dump(exclude={'gemini_api_key'})}")

    session = BridgeSession(settings, args.server_path)

    with asyncio.Runner() as runner:
        try:
            runner.run(session.start())
        except StartupError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

        try:
            return run_repl(runner, session)
        except Exception as e:
            logger.exception("Unhandled error while processing query")
            print(f"Fatal error: {e}", file=sys.stderr)
            return 1
        finally:
            runner.run(session.close())


if __name__ == "__main__":
    sys.exit(main())
