"""
MCP Lucid Import
================

MCP server that builds Lucid Standard Import documents and uploads them
to Lucidchart / Lucidspark.

Supports:
- Building: pages, shapes, connectors, linear process maps
- Packaging: .lucid archives (zip with document.json)
- Uploading: Standard Import and empty documents via the Lucid REST API
- OAuth2: authorization URL, code exchange, token refresh, token proxy

Transport modes:
- STDIO (default): For Claude Desktop and other MCP clients
- SSE: Server-Sent Events over HTTP
- HTTP: Streamable HTTP transport
"""

__version__ = "0.1.0"

from .builder import DocumentBuilder, create_simple_process_map
from .client import LucidApiClient
from .oauth import LucidOAuthClient
from .packager import package_document, read_packaged_document, serialize_document
from .server import create_server, mcp

__all__ = [
    "DocumentBuilder",
    "LucidApiClient",
    "LucidOAuthClient",
    "create_server",
    "create_simple_process_map",
    "mcp",
    "package_document",
    "read_packaged_document",
    "serialize_document",
    "__version__",
]
