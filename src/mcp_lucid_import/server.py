#!/usr/bin/env python3
"""
MCP Lucid Import - Server Implementation
========================================

Tools that build Lucid Standard Import documents and upload them to
Lucidchart / Lucidspark.

Tools:
- lucid_get_auth_url: OAuth consent URL
- lucid_exchange_code: Trade an authorization code for tokens
- lucid_set_token: Use an access token obtained elsewhere
- lucid_get_user_profile: Profile of the authenticated user
- lucid_create_process_map: Linear process from a list of steps, uploaded
- lucid_create_custom_diagram: Upload a typed document JSON
- lucid_build_diagram_step_by_step: Build document JSON from shapes/connectors
- lucid_import_diagram: Upload raw document JSON as-is
"""

import json
import logging
from contextlib import asynccontextmanager
from typing import Annotated, Any, List, Mapping, Optional

from mcp.server.fastmcp import Context, FastMCP
from pydantic import Field, ValidationError
from starlette.requests import Request
from starlette.responses import Response

from .builder import (
    DocumentBuilder,
    create_simple_process_map,
    describe_validation_error,
)
from .config import get_settings
from .context import LucidService, RequestAuth
from .errors import InvalidInput, LucidError
from .models import PRODUCTS, CreateDocumentResponse, Document, Product
from .proxy import make_token_proxy

logger = logging.getLogger(__name__)

_service: Optional[LucidService] = None


def get_service() -> LucidService:
    """The process-wide service, created from settings on first use."""
    global _service
    if _service is None:
        _service = LucidService(get_settings())
    return _service


def configure(service: Optional[LucidService]) -> None:
    """Replace the process-wide service (``None`` resets to settings)."""
    global _service
    _service = service


@asynccontextmanager
async def server_lifespan(server: FastMCP):
    """Initialize on startup, cleanup on shutdown."""
    service = get_service()
    logger.info(
        "Lucid import server ready (stored token: %s)",
        "yes" if service.oauth.has_access_token() else "no",
    )
    yield


# Initialize the MCP server
mcp = FastMCP("mcp-lucid-import", lifespan=server_lifespan)


def create_server() -> FastMCP:
    """Create and return the MCP server instance."""
    return mcp


# ============================================================================
# Dispatch helpers
# ============================================================================

def _request_headers(ctx: Optional[Context]) -> Optional[Mapping[str, str]]:
    """HTTP headers of the request behind ``ctx`` (None over stdio)."""
    if ctx is None:
        return None
    try:
        request = ctx.request_context.request
    except (AttributeError, LookupError, ValueError):
        return None
    return getattr(request, "headers", None)


def _request_auth(ctx: Optional[Context]) -> RequestAuth:
    return get_service().request_auth(_request_headers(ctx))


def _error(tool: str, exc: Exception) -> str:
    if isinstance(exc, LucidError):
        logger.warning("%s failed: %s", tool, exc)
    else:
        logger.exception("%s failed unexpectedly", tool)
    return f"Error: {exc}"


def _check_product(product: str) -> str:
    if product not in PRODUCTS:
        raise InvalidInput(f"Invalid product: {product!r}. Expected one of {', '.join(PRODUCTS)}")
    return product


def _parse_document_json(document_json: str) -> Any:
    try:
        return json.loads(document_json)
    except (TypeError, json.JSONDecodeError) as e:
        raise InvalidInput("Invalid documentJson: Failed to parse JSON") from e


def _created_summary(heading: str, result: CreateDocumentResponse) -> str:
    return (
        f"{heading}\n\n"
        f"Document ID: {result.document_id}\n"
        f"Title: {result.title}\n"
        f"Product: {result.product}\n\n"
        f"Edit URL: {result.edit_url}"
    )


def build_step_by_step(page_title: str, shapes: Any, connectors: Any = None) -> Document:
    """Build a one-page document from loose shape and connector dicts.

    Connectors refer to shapes by their 0-based index in ``shapes``.

    Raises:
        InvalidInput: on a malformed shape or connector list.
    """
    if not isinstance(shapes, list):
        raise InvalidInput("Shapes must be an array")
    connectors = connectors or []
    if not isinstance(connectors, list):
        raise InvalidInput("Connectors must be an array")

    builder = DocumentBuilder()
    builder.add_page(page_title)

    shape_ids: List[str] = []
    for index, shape in enumerate(shapes):
        if not isinstance(shape, dict):
            raise InvalidInput(f"Invalid shape at index {index}: expected an object")
        try:
            shape_ids.append(builder.add_shape_spec(shape))
        except InvalidInput as e:
            raise InvalidInput(f"Invalid shape at index {index}: {e}") from e

    for index, connector in enumerate(connectors):
        if not isinstance(connector, dict):
            raise InvalidInput(f"Invalid connector at index {index}: expected an object")
        ends = connector.get("from"), connector.get("to")
        for end in ends:
            if not isinstance(end, int) or isinstance(end, bool) or not 0 <= end < len(shape_ids):
                raise InvalidInput(
                    f"Invalid connector at index {index}: shape index {end!r} out of range"
                )
        try:
            builder.add_connector(
                from_shape_id=shape_ids[ends[0]],
                to_shape_id=shape_ids[ends[1]],
                text=connector.get("text"),
            )
        except ValidationError as e:
            raise InvalidInput(
                f"Invalid connector at index {index}: {describe_validation_error(e)}"
            ) from e

    return builder.build()


# ============================================================================
# Authorization tools
# ============================================================================

@mcp.tool()
def lucid_get_auth_url(
    state: Annotated[Optional[str], Field(description="Optional CSRF state echoed back on redirect")] = None,
) -> str:
    """Get the Lucid OAuth2 authorization URL.

    Send the user to this URL; after consent Lucid redirects back with a
    ``code`` to pass to lucid_exchange_code.
    """
    try:
        url = get_service().oauth.get_authorization_url(state)
        return f"Open this URL to authorize access to Lucid:\n\n{url}"
    except Exception as e:
        return _error("lucid_get_auth_url", e)


@mcp.tool()
async def lucid_exchange_code(
    code: Annotated[str, Field(description="Authorization code from the OAuth redirect")],
) -> str:
    """Exchange an OAuth2 authorization code for an access token.

    The tokens are kept by this server and used by later tool calls that
    arrive without their own bearer token.
    """
    try:
        tokens = await get_service().oauth.exchange_code_for_token(code)
        expires = f"{tokens.expires_in} seconds" if tokens.expires_in is not None else "unknown"
        return (
            "Authorization successful!\n\n"
            f"Token type: {tokens.token_type}\n"
            f"Expires in: {expires}\n"
            f"Scope: {tokens.scope}\n"
            f"Refresh token: {'received' if tokens.refresh_token else 'not provided'}"
        )
    except Exception as e:
        return _error("lucid_exchange_code", e)


@mcp.tool()
def lucid_set_token(
    token: Annotated[str, Field(description="Lucid OAuth2 access token")],
) -> str:
    """Set the access token used by calls that carry no bearer token of their own."""
    try:
        if not token or not token.strip():
            raise InvalidInput("Token must not be empty")
        get_service().oauth.set_access_token(token.strip())
        return "Access token set."
    except Exception as e:
        return _error("lucid_set_token", e)


# ============================================================================
# Lucid API tools
# ============================================================================

@mcp.tool()
async def lucid_get_user_profile(ctx: Context = None) -> str:
    """Get the authenticated user's profile information."""
    try:
        client = get_service().api_client(_request_auth(ctx))
        profile = await client.get_user_profile()
        return (
            "User Profile:\n\n"
            f"ID: {profile.id}\n"
            f"Name: {profile.name}\n"
            f"Email: {profile.email}"
        )
    except Exception as e:
        return _error("lucid_get_user_profile", e)


@mcp.tool()
async def lucid_create_process_map(
    title: Annotated[str, Field(description="Title of the process map document")],
    steps: Annotated[List[str], Field(description="Process steps in order (first and last become start/end ovals)")],
    product: Annotated[Product, Field(description="Product: lucidchart or lucidspark")] = "lucidchart",
    parentFolderId: Annotated[Optional[int], Field(description="Optional folder ID to create the document in")] = None,
    ctx: Context = None,
) -> str:
    """Create a simple linear process map in Lucidchart or Lucidspark.

    Steps are stacked vertically and joined in order. With no steps an
    empty document is created instead.

    Args:
        title: Document and page title
        steps: Step labels, top to bottom
        product: Target product
        parentFolderId: Optional destination folder

    Returns:
        Summary with the new document's ID and edit URL
    """
    try:
        _check_product(product)
        if not isinstance(steps, list) or not all(isinstance(s, str) for s in steps):
            raise InvalidInput("Steps must be an array of strings")
        client = get_service().api_client(_request_auth(ctx))

        if not steps:
            result = await client.create_empty_document(title, product, parentFolderId)
            return _created_summary("Empty document created (no steps given).", result)

        document = create_simple_process_map(title, steps)
        result = await client.import_document(title, product, document, parentFolderId)
        return _created_summary("Process map created successfully!", result)
    except Exception as e:
        return _error("lucid_create_process_map", e)


@mcp.tool()
async def lucid_create_custom_diagram(
    title: Annotated[str, Field(description="Title of the document")],
    documentJson: Annotated[str, Field(description="Standard Import document JSON: {version, pages: [{id, title, shapes, lines}]}")],
    product: Annotated[Product, Field(description="Product: lucidchart or lucidspark")] = "lucidchart",
    parentFolderId: Annotated[Optional[int], Field(description="Optional folder ID")] = None,
    ctx: Context = None,
) -> str:
    """Create a diagram from a full Standard Import document.

    The JSON is checked against the document model (shapes need id,
    shapeType and boundingBox; lines need id and both endpoints) before
    it is uploaded, and the document must have at least one page.
    """
    try:
        _check_product(product)
        raw = _parse_document_json(documentJson)
        try:
            document = Document.model_validate(raw)
        except ValidationError as e:
            raise InvalidInput(f"Invalid document structure: {e.error_count()} validation error(s)\n{e}") from e
        if not document.pages:
            raise InvalidInput("Invalid document structure: document must have at least one page")

        client = get_service().api_client(_request_auth(ctx))
        result = await client.import_document(title, product, document, parentFolderId)
        return _created_summary("Custom diagram created successfully!", result)
    except Exception as e:
        return _error("lucid_create_custom_diagram", e)


@mcp.tool()
def lucid_build_diagram_step_by_step(
    pageTitle: Annotated[str, Field(description="Title of the page")],
    shapes: Annotated[list, Field(description="Shapes: [{type, x, y, width?, height?, text, fillColor?, strokeColor?}]; type is rectangle, ellipse, diamond, process, decision, start, end or any Lucid shape type")],
    connectors: Annotated[Optional[list], Field(description="Connectors: [{from, to, text?}] using 0-based shape indices")] = None,
) -> str:
    """Build a diagram by listing shapes and connectors.

    Nothing is uploaded. The returned JSON can be passed to
    lucid_import_diagram.

    Returns:
        Document JSON, or an error message
    """
    try:
        document = build_step_by_step(pageTitle, shapes, connectors)
        document_json = json.dumps(document.to_wire(), indent=2, ensure_ascii=False)
        return (
            "Diagram built successfully!\n\n"
            "Use the lucid_import_diagram tool with this JSON to create the document:\n\n"
            f"{document_json}"
        )
    except Exception as e:
        return _error("lucid_build_diagram_step_by_step", e)


@mcp.tool()
async def lucid_import_diagram(
    title: Annotated[str, Field(description="Title of the document")],
    documentJson: Annotated[str, Field(description="JSON string of the document to import")],
    product: Annotated[Product, Field(description="Product: lucidchart or lucidspark")] = "lucidchart",
    parentFolderId: Annotated[Optional[int], Field(description="Optional folder ID")] = None,
    ctx: Context = None,
) -> str:
    """Import a diagram JSON into Lucidchart/Lucidspark and create the document.

    Only ``version`` and a ``pages`` array are required; everything else
    is sent to Lucid exactly as given.
    """
    try:
        _check_product(product)
        document = _parse_document_json(documentJson)
        if (
            not isinstance(document, dict)
            or not document.get("version")
            or not isinstance(document.get("pages"), list)
        ):
            raise InvalidInput("Invalid document structure: Missing version or pages array")

        client = get_service().api_client(_request_auth(ctx))
        result = await client.import_document(title, product, document, parentFolderId)
        return _created_summary("Diagram imported successfully!", result)
    except Exception as e:
        return _error("lucid_import_diagram", e)


# ============================================================================
# HTTP routes (SSE / streamable HTTP transports only)
# ============================================================================

@mcp.custom_route("/oauth/token", methods=["POST"])
async def oauth_token_proxy(request: Request) -> Response:
    """Forward client_secret_basic token requests to Lucid as client_secret_post."""
    service = get_service()
    endpoint = make_token_proxy(
        token_url=service.settings.token_url,
        timeout=service.settings.timeout,
        transport=service.transport,
    )
    return await endpoint(request)
