"""Remote MCP authorization server entry point.

Changes:
  - 2026-10-18: Initial CLI (serve with --host/--port/--dev/--log-level).
"""

import argparse
import logging

from remote_mcp import __version__
from remote_mcp.config import ConfigError, get_settings
from remote_mcp.logging_setup import setup_logging

logger = logging.getLogger(__name__)


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Remote MCP Server - OAuth 2.1 authorization server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  remote-mcp                         Serve on 127.0.0.1:8888
  remote-mcp --host 0.0.0.0 -p 9000  Serve on all interfaces, port 9000
  remote-mcp --dev                   Serve with auto-reload (dev mode)
""",
    )
    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Host to bind the server (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        "-p",
        type=int,
        default=8888,
        help="Port for the server (default: 8888)",
    )
    parser.add_argument(
        "--dev", action="store_true", help="Development mode with auto-reload"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Log level (default: REMOTE_MCP_LOG_LEVEL or INFO)",
    )
    parser.add_argument(
        "--version", "-v", action="version", version=f"%(prog)s {__version__}"
    )
    args = parser.parse_args()

    settings = get_settings()
    log_level = args.log_level or settings.log_level
    setup_logging(level=log_level)

    from remote_mcp.api.serve import run_api_server

    try:
        run_api_server(
            host=args.host, port=args.port, dev=args.dev, log_level=log_level.lower()
        )
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        raise SystemExit(2) from exc
    except KeyboardInterrupt:
        logger.info("Remote MCP Server stopped.")


if __name__ == "__main__":
    main()
