#!/usr/bin/env python3
"""
MCP Lucid Import - Entry Point

Supports multiple transport modes:
- stdio: Standard I/O (default, for Claude Desktop)
- sse: Server-Sent Events over HTTP, plus the /oauth/token proxy
- http: Streamable HTTP transport, plus the /oauth/token proxy
"""

import argparse
import logging
import sys

from .config import get_settings
from .log import setup_logging

logger = logging.getLogger("mcp_lucid_import")


LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def build_parser(settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="MCP server for building and importing Lucid diagrams",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with STDIO transport (default, for Claude Desktop)
  LUCID_ACCESS_TOKEN=... mcp-lucid-import

  # Run with SSE transport on port 3000; callers send Authorization: Bearer <token>
  mcp-lucid-import --transport sse --port 3000

  # Run with HTTP transport on custom port
  mcp-lucid-import --transport http --port 8080

Configuration is read from LUCID_* environment variables or a .env file
(LUCID_CLIENT_ID, LUCID_CLIENT_SECRET, LUCID_REDIRECT_URI, ...).
"""
    )
    parser.add_argument(
        "--transport",
        choices=["stdio", "sse", "http"],
        default="stdio",
        help="Transport mode (default: stdio)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=settings.port,
        help=f"Port for SSE/HTTP transport (default: {settings.port})"
    )
    parser.add_argument(
        "--host",
        type=str,
        default=settings.host,
        help=f"Host to bind for SSE/HTTP transport (default: {settings.host})"
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=settings.log_level,
        help=f"Log level (default: {settings.log_level})"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__import__('mcp_lucid_import').__version__}"
    )
    return parser


def main():
    args = build_parser(get_settings()).parse_args()
    setup_logging(args.log_level)

    from .server import mcp

    if args.transport == "stdio":
        # Standard STDIO transport (default)
        mcp.run()
        return

    try:
        import uvicorn
    except ImportError as e:
        logger.error("%s transport requires additional dependencies: %s", args.transport, e)
        sys.exit(1)

    if args.transport == "sse":
        app = mcp.sse_app()
        endpoint = mcp.settings.sse_path
    else:
        app = mcp.streamable_http_app()
        endpoint = mcp.settings.streamable_http_path

    logger.info("Starting %s server on %s:%s", args.transport.upper(), args.host, args.port)
    logger.info("MCP endpoint: http://%s:%s%s", args.host, args.port, endpoint)
    logger.info("OAuth token proxy: http://%s:%s/oauth/token", args.host, args.port)
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level.lower())


if __name__ == "__main__":
    main()
