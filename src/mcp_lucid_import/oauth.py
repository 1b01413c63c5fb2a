"""
Lucid OAuth2 client.

Authorization-code and refresh-token grants against Lucid's token
endpoint. The client keeps the current access and refresh tokens; a lock
makes each update atomic when one instance is shared between threads
(last writer wins).
"""

import logging
import threading
from typing import List, Optional, Type
from urllib.parse import urlencode

import httpx

from .config import LUCID_AUTH_URL, LUCID_TOKEN_URL
from .errors import AuthError, NoRefreshToken, TokenExchangeError, TokenRefreshError
from .models import TokenResponse

logger = logging.getLogger(__name__)

SCOPES: List[str] = [
    "lucidchart.document.content",
    "lucidchart.document.app.folder",
    "lucidspark.document.content",
    "lucidspark.document.app.folder",
    "user.profile",
]


class LucidOAuthClient:
    """Holds OAuth app credentials and the tokens obtained with them."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        access_token: Optional[str] = None,
        refresh_token: Optional[str] = None,
        auth_url: str = LUCID_AUTH_URL,
        token_url: str = LUCID_TOKEN_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.auth_url = auth_url
        self.token_url = token_url
        self.timeout = timeout
        self._transport = transport
        self._lock = threading.Lock()
        self._access_token = access_token
        self._refresh_token = refresh_token

    @classmethod
    def from_settings(cls, settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> "LucidOAuthClient":
        return cls(
            client_id=settings.client_id,
            client_secret=settings.client_secret,
            redirect_uri=settings.redirect_uri,
            access_token=settings.access_token,
            refresh_token=settings.refresh_token,
            auth_url=settings.auth_url,
            token_url=settings.token_url,
            timeout=settings.timeout,
            transport=transport,
        )

    # ------------------------------------------------------------------
    # Authorization URL
    # ------------------------------------------------------------------

    def get_authorization_url(self, state: Optional[str] = None) -> str:
        """URL to send the user to for consent. No side effects."""
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(SCOPES),
        }
        if state:
            params["state"] = state
        return f"{self.auth_url}?{urlencode(params)}"

    # ------------------------------------------------------------------
    # Token grants
    # ------------------------------------------------------------------

    async def _post_grant(self, form: dict, error_cls: Type[AuthError]) -> httpx.Response:
        """POST a grant to the token endpoint; non-2xx and transport errors raise ``error_cls``."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    self.token_url,
                    data=form,
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
        except httpx.HTTPError as e:
            logger.error("%s grant request failed: %s", form["grant_type"], e)
            raise error_cls(str(e)) from e

        if not response.is_success:
            logger.error(
                "%s grant failed: %s %s", form["grant_type"], response.status_code, response.text
            )
            raise error_cls(response.text, response.status_code)
        return response

    async def exchange_code_for_token(self, code: str) -> TokenResponse:
        """Trade an authorization code for tokens and store them.

        Raises:
            TokenExchangeError: on a non-2xx response or a transport
                failure; stored tokens are left as they were.
        """
        response = await self._post_grant({
            "grant_type": "authorization_code",
            "code": code,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "redirect_uri": self.redirect_uri,
        }, TokenExchangeError)

        tokens = TokenResponse.model_validate(response.json())
        with self._lock:
            self._access_token = tokens.access_token
            self._refresh_token = tokens.refresh_token
        logger.info("Exchanged authorization code for access token")
        return tokens

    async def refresh_access_token(self) -> TokenResponse:
        """Get a new access token with the stored refresh token.

        The refresh token is only replaced when the response carries a new one.

        Raises:
            NoRefreshToken: when no refresh token is held (no request is made).
            TokenRefreshError: on a non-2xx response or a transport failure.
        """
        with self._lock:
            refresh_token = self._refresh_token
        if not refresh_token:
            raise NoRefreshToken()

        response = await self._post_grant({
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
        }, TokenRefreshError)

        tokens = TokenResponse.model_validate(response.json())
        with self._lock:
            self._access_token = tokens.access_token
            if tokens.refresh_token:
                self._refresh_token = tokens.refresh_token
        logger.info("Refreshed access token")
        return tokens

    # ------------------------------------------------------------------
    # Token accessors
    # ------------------------------------------------------------------

    def get_access_token(self) -> Optional[str]:
        return self._access_token

    def get_refresh_token(self) -> Optional[str]:
        return self._refresh_token

    def set_access_token(self, token: str) -> None:
        with self._lock:
            self._access_token = token

    def has_access_token(self) -> bool:
        return bool(self._access_token)
