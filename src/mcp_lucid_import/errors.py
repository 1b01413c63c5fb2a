"""Error types raised by the builder, packager and Lucid clients.

Tools catch these at the dispatch boundary and turn them into
``Error: ...`` text for the caller.
"""

from typing import Optional


class LucidError(Exception):
    """Base class for all errors raised by this package."""


# ============================================================================
# Builder / packaging
# ============================================================================

class BuilderError(LucidError):
    """Raised when the document builder is used out of order."""


class NoActivePage(BuilderError):
    def __init__(self) -> None:
        super().__init__("No page available. Call add_page() first.")


class EmptyDocument(BuilderError):
    def __init__(self) -> None:
        super().__init__("Document must have at least one page")


class PackagingError(LucidError):
    """Serializing or zipping a document failed."""


class InvalidInput(LucidError, ValueError):
    """Malformed tool arguments (bad JSON, wrong shapes list, ...)."""


# ============================================================================
# Remote API / OAuth
# ============================================================================

class RemoteApiError(LucidError):
    """Non-2xx response (or transport failure) from the Lucid REST API.

    ``status`` and ``body`` are kept for logging; ``str(err)`` is the
    sanitized message that is safe to hand back to a tool caller.
    """

    def __init__(self, status: int, body: str, operation: str = "call Lucid API") -> None:
        self.status = status
        self.body = body
        self.operation = operation
        super().__init__(
            f"Failed to {operation}: {status}. Please check server logs for details."
        )


class AuthError(LucidError):
    """Base class for OAuth failures."""


def _reason(status: Optional[int]) -> str:
    return "connection error" if status is None else str(status)


class TokenExchangeError(AuthError):
    def __init__(self, body: str, status: Optional[int] = None) -> None:
        self.body = body
        self.status = status
        super().__init__(
            f"Failed to exchange code for token: {_reason(status)}. "
            "Please check server logs for details."
        )


class TokenRefreshError(AuthError):
    def __init__(self, body: str, status: Optional[int] = None) -> None:
        self.body = body
        self.status = status
        super().__init__(
            f"Failed to refresh token: {_reason(status)}. Please check server logs for details."
        )


class NoRefreshToken(AuthError):
    def __init__(self) -> None:
        super().__init__("No refresh token available")


class AuthenticationRequired(AuthError):
    def __init__(self) -> None:
        super().__init__(
            "Authentication required. No access token found in request context."
        )
