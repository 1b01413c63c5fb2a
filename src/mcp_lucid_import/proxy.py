"""
OAuth token proxy.

Some MCP hosts authenticate to token endpoints with HTTP Basic
credentials (``client_secret_basic``) while Lucid only accepts them in
the form body (``client_secret_post``). ``POST /oauth/token`` on this
server takes the former and forwards the grant as the latter, relaying
Lucid's status code and body.
"""

import base64
import binascii
import json
import logging
from typing import Optional, Tuple

import httpx
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from .config import LUCID_TOKEN_URL

logger = logging.getLogger(__name__)


def parse_basic_credentials(authorization: Optional[str]) -> Optional[Tuple[str, str]]:
    """``(client_id, client_secret)`` from a Basic auth header, or None."""
    if not authorization or not authorization.startswith("Basic "):
        return None
    try:
        decoded = base64.b64decode(authorization[len("Basic "):].strip()).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    client_id, _, client_secret = decoded.partition(":")
    if not client_id or not client_secret:
        return None
    return client_id, client_secret


def _invalid_client(description: str) -> JSONResponse:
    return JSONResponse(
        {"error": "invalid_client", "error_description": description}, status_code=401
    )


async def _read_params(request: Request) -> dict:
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        body = await request.json()
        return body if isinstance(body, dict) else {}
    form = await request.form()
    return dict(form)


def make_token_proxy(
    token_url: str = LUCID_TOKEN_URL,
    timeout: float = 30.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
):
    """Build the Starlette endpoint for ``POST /oauth/token``."""

    async def token_proxy(request: Request) -> Response:
        credentials = parse_basic_credentials(request.headers.get("authorization"))
        if request.headers.get("authorization", "").startswith("Basic ") and credentials is None:
            logger.error("[OAuth Proxy] Invalid credentials format")
            return _invalid_client("Invalid client credentials")
        if credentials is None:
            logger.error("[OAuth Proxy] Missing or invalid Authorization header")
            return _invalid_client("Missing client credentials")
        client_id, client_secret = credentials

        try:
            params = await _read_params(request)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error("[OAuth Proxy] Malformed JSON body: %s", e)
            return JSONResponse(
                {"error": "invalid_request", "error_description": "Malformed request body"},
                status_code=400,
            )
        form = {
            "grant_type": params.get("grant_type") or "authorization_code",
            "code": params.get("code") or "",
            "redirect_uri": params.get("redirect_uri") or "",
            "client_id": client_id,
            "client_secret": client_secret,
        }
        if params.get("refresh_token"):
            form["refresh_token"] = params["refresh_token"]

        logger.info("[OAuth Proxy] Forwarding %s request to Lucid", form["grant_type"])
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
                upstream = await client.post(token_url, data=form)
        except httpx.HTTPError as e:
            logger.error("[OAuth Proxy] Error during token exchange: %s", e)
            return JSONResponse(
                {
                    "error": "server_error",
                    "error_description": "Internal server error during token exchange",
                },
                status_code=500,
            )

        try:
            payload = upstream.json()
        except json.JSONDecodeError:
            logger.error("[OAuth Proxy] Token exchange failed: %s", upstream.status_code)
            return Response(upstream.text, status_code=upstream.status_code)

        if upstream.is_success:
            logger.info("[OAuth Proxy] Token exchange successful")
        else:
            logger.error("[OAuth Proxy] Token exchange failed: %s", upstream.status_code)
        return JSONResponse(payload, status_code=upstream.status_code)

    return token_proxy
