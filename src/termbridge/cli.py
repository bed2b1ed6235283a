"""Command-line interface for termbridge.

``serve`` starts the HTTP endpoint with local pty panes. The remaining
commands talk to a running endpoint and print the tool result as JSON.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def _add_locator_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-s", "--session-id", help="Stable session ID (recommended)")
    parser.add_argument("-i", "--tab-index", type=int, help="Tab index (legacy, may change)")
    parser.add_argument("-t", "--title", help="Match by title (partial, case-insensitive)")
    parser.add_argument("-p", "--profile-name", help="Match by profile name (partial)")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="termbridge",
        description="Structured command execution over terminal panes",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: config/termbridge.yaml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--url",
        default=None,
        help="Endpoint URL for client commands (default: client.base_url from config)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("serve", help="Start the HTTP endpoint with local terminal panes")
    subparsers.add_parser("sessions", help="List terminal sessions")
    subparsers.add_parser("status", help="List commands currently running")

    exec_parser = subparsers.add_parser("exec", help="Run a command and print its result")
    exec_parser.add_argument("cmd", help="Command line to execute")
    exec_parser.add_argument(
        "--no-wait", action="store_true",
        help="Send the command without waiting for output",
    )
    exec_parser.add_argument(
        "--timeout", type=int, default=None,
        help="Timeout in milliseconds (max 300000)",
    )
    _add_locator_args(exec_parser)

    send_parser = subparsers.add_parser("send", help=r"Send raw input (\n, \x03 ... decoded)")
    send_parser.add_argument("input", help="Input to send")
    _add_locator_args(send_parser)

    buffer_parser = subparsers.add_parser("buffer", help="Print a terminal buffer")
    buffer_parser.add_argument("-n", "--last", type=int, default=None, help="Only the last N lines")
    _add_locator_args(buffer_parser)

    abort_parser = subparsers.add_parser("abort", help="Abort the running command (Ctrl+C)")
    _add_locator_args(abort_parser)

    focus_parser = subparsers.add_parser("focus", help="Focus a pane by session ID")
    focus_parser.add_argument("session", help="Session ID of the pane")

    return parser.parse_args(argv)


def _locator(args: argparse.Namespace) -> dict[str, Any]:
    return {
        "sessionId": args.session_id,
        "tabIndex": args.tab_index,
        "title": args.title,
        "profileName": args.profile_name,
    }


async def _call(base_url: str, timeout: float, args: argparse.Namespace) -> Any:
    """Dispatch a client subcommand to the endpoint."""
    from termbridge.endpoint.client import ToolClient

    async with ToolClient(base_url=base_url, timeout=timeout) as client:
        if args.command == "sessions":
            return await client.call("get_session_list")
        if args.command == "status":
            return await client.call("get_command_status")
        if args.command == "exec":
            return await client.call(
                "exec_command",
                command=args.cmd,
                waitForOutput=not args.no_wait,
                timeout=args.timeout,
                **_locator(args),
            )
        if args.command == "send":
            return await client.call("send_input", input=args.input, **_locator(args))
        if args.command == "buffer":
            return await client.call("get_terminal_buffer", lastNLines=args.last, **_locator(args))
        if args.command == "abort":
            return await client.call("abort_command", **_locator(args))
        if args.command == "focus":
            return await client.call("focus_pane", sessionId=args.session)
    raise ValueError(f"Unknown command: {args.command}")


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the termbridge CLI."""
    args = parse_args(argv)

    if args.command is None:
        parse_args(["--help"])
        return

    from termbridge.config.settings import load_settings
    from termbridge.utils.logging import setup_logging

    settings = load_settings(args.config)

    if args.verbose:
        settings.logging.level = "DEBUG"

    setup_logging(settings.logging)

    if args.command == "serve":
        logger.info("Starting endpoint server")
        import uvicorn

        from termbridge.endpoint.server import create_app

        app = create_app(settings=settings)
        uvicorn.run(app, host=settings.server.host, port=settings.server.port)
        return

    from termbridge.endpoint.client import ToolClientError

    base_url = args.url or settings.client.base_url
    try:
        result = asyncio.run(_call(base_url, settings.client.timeout, args))
    except ToolClientError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.command == "buffer" and isinstance(result, dict) and result.get("success"):
        print(result["content"])
    else:
        print(json.dumps(result, indent=2))

    if isinstance(result, dict) and result.get("success") is False:
        sys.exit(1)


if __name__ == "__main__":
    main()
