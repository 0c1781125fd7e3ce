#!/usr/bin/env python3
"""Remote Control Protocol command-line tool.

Runs the reference application host, or drives the client engine against a
host through the boundary call surface.
"""

import argparse
import getpass
import logging
import os
import sys
from enum import IntEnum

from boundary.api import RcpBoundary
from boundary.envelope import ResultEnvelope
from common.protocol import DEFAULT_PORT
from common.report import CatalogReport, OperationReport
from server.host import AppHost
from server.runner import run_server

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 5000


class ExitCode(IntEnum):
    """Exit codes for client commands."""

    SUCCESS = 0
    CONNECT_FAILED = 1
    AUTH_FAILED = 2
    COMMAND_FAILED = 3


def _report(operation: str, envelope: ResultEnvelope) -> OperationReport:
    """Print an envelope's outcome and release it."""
    report = OperationReport.from_envelope(operation, envelope)
    envelope.release()
    report.print()
    return report


def _password(args: argparse.Namespace) -> str:
    password = os.environ.get("RCP_PASSWORD")
    if password:
        return password
    return getpass.getpass(f"Password for {args.user}: ")


def run_client_command(args: argparse.Namespace) -> int:
    """Connect, authenticate, list apps and optionally launch one."""
    boundary = RcpBoundary()
    try:
        connected = boundary.connect_to_server(args.host, args.port, args.timeout)
        if not connected.success:
            _report("connect", connected)
            return ExitCode.CONNECT_FAILED
        connection_id = connected.data
        _report("connect", connected)

        authenticated = boundary.authenticate(connection_id, args.user, _password(args))
        if not authenticated.success:
            _report("authenticate", authenticated)
            return ExitCode.AUTH_FAILED
        session_id = authenticated.json()["sessionId"]
        _report("authenticate", authenticated)

        apps = boundary.get_available_apps(session_id)
        if not apps.success:
            _report("list apps", apps)
            return ExitCode.COMMAND_FAILED
        catalog = CatalogReport(apps_json=apps.data or "[]")
        apps.release()
        catalog.print()

        exit_code = ExitCode.SUCCESS
        if args.command == "launch":
            if not _report(f"launch {args.app_id}", boundary.launch_app(session_id, args.app_id)).success():
                exit_code = ExitCode.COMMAND_FAILED

        _report("logout", boundary.logout(session_id))
        return exit_code
    finally:
        boundary.close()


def run_serve_command(args: argparse.Namespace) -> int:
    """Run the reference host."""
    host = AppHost.from_file(args.catalog) if args.catalog else AppHost()
    for entry in args.user or []:
        username, sep, password = entry.partition(":")
        if not sep or not username or not password:
            logger.error(f"Invalid --user {entry!r}, expected NAME:PASSWORD")
            return 2
        host.add_user(username, password, display_name=username)
    if not host.accounts:
        logger.warning("No users configured; every login will be rejected")
    return run_server(args.bind, args.port, host)


def _add_connect_args(parser: argparse.ArgumentParser) -> None:
    """Add host, port, timeout and user arguments to a parser."""
    parser.add_argument("-H", "--host", type=str, required=True, help="Application host")
    parser.add_argument(
        "-p",
        "--port",
        type=int,
        default=DEFAULT_PORT,
        help=f"Host port (default: {DEFAULT_PORT})",
    )
    parser.add_argument(
        "-t",
        "--timeout",
        type=int,
        default=DEFAULT_TIMEOUT_MS,
        help=f"Connect timeout in milliseconds (default: {DEFAULT_TIMEOUT_MS})",
    )
    parser.add_argument(
        "-u",
        "--user",
        type=str,
        required=True,
        help="Username (password from RCP_PASSWORD or prompt)",
    )


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Remote Control Protocol client and reference host",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s serve --user alice:secret            Run a host on port 9000
  %(prog)s apps -H localhost -u alice           List available applications
  %(prog)s launch -H localhost -u alice app1    Launch an application
""",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command")

    serve_parser = subparsers.add_parser("serve", help="Run the reference application host")
    serve_parser.add_argument(
        "--bind", type=str, default="127.0.0.1", help="Listen address (default: 127.0.0.1)"
    )
    serve_parser.add_argument(
        "--port",
        type=int,
        default=DEFAULT_PORT,
        help=f"Listen port (default: {DEFAULT_PORT})",
    )
    serve_parser.add_argument("--catalog", type=str, help="JSON file with users, apps and rejected ids")
    serve_parser.add_argument(
        "--user", type=str, action="append", help="NAME:PASSWORD account (repeatable)"
    )

    apps_parser = subparsers.add_parser("apps", help="List available applications")
    _add_connect_args(apps_parser)

    launch_parser = subparsers.add_parser("launch", help="Launch an application")
    _add_connect_args(launch_parser)
    launch_parser.add_argument("app_id", type=str, help="Application id")

    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    if args.command == "serve":
        return run_serve_command(args)
    if args.command in ("apps", "launch"):
        return run_client_command(args)

    parser.print_help()
    return 2


if __name__ == "__main__":
    sys.exit(main())
