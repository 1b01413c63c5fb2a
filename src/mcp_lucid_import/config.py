"""
Server configuration.

Values come from ``LUCID_*`` environment variables or a ``.env`` file in
the working directory. ``PORT`` is honoured as well as ``LUCID_PORT`` so
the server runs unchanged on hosts that inject ``PORT``.
"""

from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

LUCID_API_BASE = "https://api.lucid.co"
LUCID_AUTH_URL = "https://lucid.app/oauth2/authorize"
LUCID_TOKEN_URL = "https://api.lucid.co/oauth2/token"
LUCID_EDIT_URL_BASE = "https://lucid.app/documents"
LUCID_API_VERSION = "1"


class LucidSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="LUCID_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # OAuth application credentials
    client_id: str = ""
    client_secret: str = ""
    redirect_uri: str = ""

    # Optional pre-issued tokens (stdio use)
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None

    api_base: str = LUCID_API_BASE
    auth_url: str = LUCID_AUTH_URL
    token_url: str = LUCID_TOKEN_URL
    edit_url_base: str = LUCID_EDIT_URL_BASE
    timeout: float = 30.0

    host: str = "0.0.0.0"
    port: int = Field(default=3000, validation_alias=AliasChoices("LUCID_PORT", "PORT"))
    log_level: str = "INFO"


@lru_cache(maxsize=1)
def get_settings() -> LucidSettings:
    """Process-wide settings, read once."""
    return LucidSettings()
