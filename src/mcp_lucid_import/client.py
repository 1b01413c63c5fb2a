"""
Lucid REST API client.

Covers the three calls this server needs: the caller's profile, a
Standard Import upload of a ``.lucid`` archive, and an empty-document
create. Failures are logged with status and body and raised as
:class:`RemoteApiError`, whose message carries the status only. Nothing
is retried.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from .config import LUCID_API_BASE, LUCID_API_VERSION, LUCID_EDIT_URL_BASE
from .errors import RemoteApiError
from .models import CreateDocumentResponse, Product, UserProfile
from .packager import ARCHIVE_CONTENT_TYPE, DocumentLike, archive_filename, package_document

logger = logging.getLogger(__name__)


class LucidApiClient:
    """Bearer-token client for ``api.lucid.co``."""

    def __init__(
        self,
        access_token: str,
        base_url: str = LUCID_API_BASE,
        edit_url_base: str = LUCID_EDIT_URL_BASE,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.access_token = access_token
        self.base_url = base_url.rstrip("/")
        self.edit_url_base = edit_url_base.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def set_access_token(self, token: str) -> None:
        self.access_token = token

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Lucid-Api-Version": LUCID_API_VERSION,
        }

    async def _request(self, operation: str, method: str, path: str, **kwargs) -> Dict[str, Any]:
        """Send one request and return the decoded JSON body."""
        headers = self._headers()
        headers.update(kwargs.pop("headers", {}))
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error("Lucid API Error (%s): %s", operation, e)
            raise RemoteApiError(0, str(e), operation) from e

        if not response.is_success:
            logger.error(
                "Lucid API Error (%s): %s %s", operation, response.status_code, response.text
            )
            raise RemoteApiError(response.status_code, response.text, operation)
        return response.json()

    def _document_response(self, result: Dict[str, Any]) -> CreateDocumentResponse:
        document_id = str(result.get("id", ""))
        return CreateDocumentResponse(
            document_id=document_id,
            title=result.get("title", ""),
            product=result.get("product", ""),
            edit_url=result.get("editUrl") or f"{self.edit_url_base}/{document_id}/edit",
        )

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    async def get_user_profile(self) -> UserProfile:
        result = await self._request("get user profile", "GET", "/users/me/profile")
        return UserProfile(
            id=result.get("id", ""),
            name=result.get("name", ""),
            email=result.get("email", ""),
        )

    async def import_document(
        self,
        title: str,
        product: Product,
        document: DocumentLike,
        parent_folder_id: Optional[int] = None,
    ) -> CreateDocumentResponse:
        """Package ``document`` and upload it through Standard Import.

        Raises:
            PackagingError: if the document cannot be packaged.
            RemoteApiError: on a non-2xx response or transport failure.
        """
        archive = package_document(document)
        data = {"type": "standard", "product": product, "title": title}
        if parent_folder_id:
            data["parent"] = str(parent_folder_id)

        result = await self._request(
            "import document",
            "POST",
            "/documents",
            data=data,
            files={"file": (archive_filename(title), archive, ARCHIVE_CONTENT_TYPE)},
        )
        created = self._document_response(result)
        logger.info("Imported document %s (%s)", created.document_id, created.product)
        return created

    async def create_empty_document(
        self,
        title: str,
        product: Product,
        parent_folder_id: Optional[int] = None,
    ) -> CreateDocumentResponse:
        """Create a document with no content."""
        body: Dict[str, Any] = {"title": title, "product": product}
        if parent_folder_id:
            body["parent"] = parent_folder_id

        result = await self._request("create document", "POST", "/documents", json=body)
        created = self._document_response(result)
        logger.info("Created empty document %s (%s)", created.document_id, created.product)
        return created
