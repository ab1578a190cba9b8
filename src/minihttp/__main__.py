"""
=============================================================================
CLI ENTRY POINT
=============================================================================

    # Defaults (localhost:4221, no file access)
    python -m minihttp

    # Serve and store files under /tmp/data
    python -m minihttp --directory /tmp/data

    # Environment works too; flags win over environment
    HTTP_PORT=8080 python -m minihttp --log-level DEBUG

=============================================================================
"""

import argparse
import sys

from . import __version__
from .config import ServerConfig, LOG_LEVELS, LOG_FORMATS, parse_timeout
from .server import HTTPServer


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="minihttp",
        description="Minimal HTTP/1.1 server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m minihttp                          # localhost:4221
  python -m minihttp --directory /tmp/data    # enable /files/*
  python -m minihttp --port 8080 -l DEBUG     # custom port, verbose
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # FILES
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--directory", "-d",
        default=None,
        help="Root directory for /files/* (default: file access disabled)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host to bind to (default: localhost)",
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: 4221)",
    )

    parser.add_argument(
        "--timeout", "-t",
        type=parse_timeout,
        default=argparse.SUPPRESS,
        help="Per-connection socket timeout in seconds; 'none' or 0 blocks forever (default: 30)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=LOG_LEVELS,
        default=None,
        help="Logging level (default: INFO)",
    )

    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=None,
        help="Access log format (default: text)",
    )

    parser.add_argument(
        "--no-access-log",
        action="store_true",
        help="Disable per-request access logging",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"minihttp {__version__}",
    )

    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """Layer CLI flags over the environment-derived configuration."""
    config = ServerConfig.from_env()

    if args.directory is not None:
        config.directory = args.directory
    if args.host is not None:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if hasattr(args, "timeout"):
        config.timeout = args.timeout
    if args.log_level is not None:
        config.log_level = args.log_level
    if args.log_format is not None:
        config.log_format = args.log_format
    if args.no_access_log:
        config.access_log = False

    return config


def main(argv=None) -> int:
    """
    Main CLI entry point.

    Returns:
        Process exit status.
    """
    args = build_parser().parse_args(argv)

    try:
        config = config_from_args(args)
        server = HTTPServer(config)
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1

    try:
        server.run()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
