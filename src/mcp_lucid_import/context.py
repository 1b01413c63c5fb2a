"""
Per-request authorization and shared service wiring.

Each authenticated tool call resolves a :class:`RequestAuth` once and
hands it down explicitly. Over SSE/HTTP the token comes from the
caller's ``Authorization: Bearer`` header; otherwise the token held by
the server's OAuth client is used (set with ``lucid_set_token`` or
``lucid_exchange_code``, or from ``LUCID_ACCESS_TOKEN``).
"""

from dataclasses import dataclass
from typing import Mapping, Optional

import httpx

from .client import LucidApiClient
from .config import LucidSettings
from .errors import AuthenticationRequired
from .oauth import LucidOAuthClient


@dataclass(frozen=True)
class RequestAuth:
    access_token: Optional[str] = None
    source: str = "none"

    def require_token(self) -> str:
        if not self.access_token:
            raise AuthenticationRequired()
        return self.access_token


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Token part of an ``Authorization: Bearer <token>`` header value."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def resolve_request_auth(
    headers: Optional[Mapping[str, str]],
    fallback_token: Optional[str] = None,
) -> RequestAuth:
    """Header token wins over the fallback; neither gives an empty context."""
    if headers is not None:
        token = bearer_token(headers.get("authorization"))
        if token:
            return RequestAuth(token, "header")
    if fallback_token:
        return RequestAuth(fallback_token, "server")
    return RequestAuth()


class LucidService:
    """Settings plus the long-lived OAuth client for one server process."""

    def __init__(
        self,
        settings: LucidSettings,
        oauth: Optional[LucidOAuthClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self.transport = transport
        self.oauth = oauth or LucidOAuthClient.from_settings(settings, transport=transport)

    def request_auth(self, headers: Optional[Mapping[str, str]] = None) -> RequestAuth:
        return resolve_request_auth(headers, self.oauth.get_access_token())

    def api_client(self, auth: RequestAuth) -> LucidApiClient:
        """API client bound to the token of ``auth``.

        Raises:
            AuthenticationRequired: if ``auth`` carries no token.
        """
        return LucidApiClient(
            auth.require_token(),
            base_url=self.settings.api_base,
            edit_url_base=self.settings.edit_url_base,
            timeout=self.settings.timeout,
            transport=self.transport,
        )
