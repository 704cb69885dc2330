"""Command line for application scripts.

An application script ends with::

    if __name__ == "__main__":
        sys.exit(main(app))

and can then be started with ``python app.py serve``.
"""

from __future__ import annotations

import argparse
from collections.abc import Sequence

from webtestkit.app import Framework
from webtestkit.config import get_settings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage a webtestkit application.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run the development server")
    serve_parser.add_argument("--host", help="Address to bind to (default: APP_HOST)")
    serve_parser.add_argument("--port", type=int, help="Port to bind to (default: APP_PORT)")
    return parser


def _serve(app: Framework, parser: argparse.ArgumentParser, args: argparse.Namespace) -> int:
    settings = get_settings()
    host = args.host or settings.host
    port = args.port if args.port is not None else settings.port_number
    if port is None:
        parser.error(f"APP_PORT is not a valid port number: {settings.port!r}")
    app.run(host=host, port=port)
    return 0


def main(app: Framework, argv: Sequence[str] | None = None) -> int:
    """Parse *argv* and run the selected subcommand against *app*."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "serve":
        return _serve(app, parser, args)
    parser.error(f"unknown command: {args.command}")
    return 2
