"""
Lucid Standard Import - Packager
================================

A ``.lucid`` file is a zip archive with a single ``document.json`` entry.
Entry name, timestamp and permissions are fixed, so packaging the same
document twice gives the same bytes.
"""

import io
import json
import logging
import zipfile
from typing import Any, Mapping, Union

from pydantic_core import PydanticSerializationError

from .errors import PackagingError
from .models import Document

logger = logging.getLogger(__name__)

DOCUMENT_ENTRY = "document.json"
ARCHIVE_SUFFIX = ".lucid"
ARCHIVE_CONTENT_TYPE = "application/zip"

# zip timestamps cannot predate 1980
_FIXED_DATE_TIME = (1980, 1, 1, 0, 0, 0)
_FILE_MODE = 0o644

DocumentLike = Union[Document, Mapping[str, Any]]


def serialize_document(document: DocumentLike) -> str:
    """Canonical JSON text of ``document`` (2-space indent, UTF-8 friendly).

    Accepts a :class:`Document` or an already-parsed mapping (raw imports
    are passed through untouched).

    Raises:
        PackagingError: if the document holds values JSON cannot represent.
    """
    try:
        payload = document.to_wire() if isinstance(document, Document) else document
        return json.dumps(payload, indent=2, ensure_ascii=False)
    except (TypeError, ValueError, PydanticSerializationError) as e:
        raise PackagingError(f"Document is not JSON serializable: {e}") from e


def package_document(document: DocumentLike) -> bytes:
    """Zip ``document`` into ``.lucid`` archive bytes (deflate, level 9).

    Raises:
        PackagingError: on serialization or compression failure.
    """
    content = serialize_document(document).encode("utf-8")

    info = zipfile.ZipInfo(DOCUMENT_ENTRY, date_time=_FIXED_DATE_TIME)
    info.compress_type = zipfile.ZIP_DEFLATED
    info.external_attr = _FILE_MODE << 16

    buffer = io.BytesIO()
    try:
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as archive:
            archive.writestr(info, content, compresslevel=9)
    except (OSError, zipfile.BadZipFile, RuntimeError) as e:
        raise PackagingError(f"Failed to build archive: {e}") from e

    data = buffer.getvalue()
    logger.debug("Packaged %d byte document into %d byte archive", len(content), len(data))
    return data


def read_packaged_document(data: bytes) -> str:
    """Return the ``document.json`` text stored in ``.lucid`` archive bytes.

    Raises:
        PackagingError: if ``data`` is not an archive or lacks the entry.
    """
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            return archive.read(DOCUMENT_ENTRY).decode("utf-8")
    except (zipfile.BadZipFile, KeyError) as e:
        raise PackagingError(f"Not a valid .lucid archive: {e}") from e


def archive_filename(title: str) -> str:
    return f"{title}{ARCHIVE_SUFFIX}"
