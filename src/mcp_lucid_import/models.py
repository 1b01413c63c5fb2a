"""
Lucid Standard Import - Document Model
======================================

Pydantic models for the ``document.json`` entry of a ``.lucid`` archive,
plus the small response types returned by the Lucid REST API.

Wire names are camelCase (``shapeType``, ``boundingBox``, ``customData``,
``shapeId``); attributes are snake_case. Dump with ``by_alias=True`` and
``exclude_none=True`` so optional fields that were never set do not show
up as ``null``.
"""

from typing import Any, Dict, List, Literal, Optional, Union, get_args

from pydantic import BaseModel, ConfigDict, Field

DOCUMENT_VERSION = "1.0"
AUTO_POSITION = "auto"

Product = Literal["lucidchart", "lucidspark"]
PRODUCTS = get_args(Product)

Number = Union[int, float]


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")


# ============================================================================
# Geometry and style
# ============================================================================

class BoundingBox(_WireModel):
    x: Number
    y: Number
    w: Number
    h: Number
    rotation: Optional[Number] = None


class Fill(_WireModel):
    color: Optional[str] = None
    type: Optional[Literal["solid", "gradient"]] = None


class Stroke(_WireModel):
    color: Optional[str] = None
    width: Optional[Number] = None
    style: Optional[Literal["solid", "dashed", "dotted"]] = None


class Style(_WireModel):
    """Shape or line style. Anything left unset falls back to Lucid's default."""

    fill: Optional[Fill] = None
    stroke: Optional[Stroke] = None
    rounding: Optional[Number] = None


class TextStyle(_WireModel):
    bold: Optional[bool] = None
    italic: Optional[bool] = None
    underline: Optional[bool] = None
    color: Optional[str] = None
    font_size: Optional[Number] = Field(default=None, alias="fontSize")


class TextBlock(_WireModel):
    """A run of text with its own styling."""

    text: str
    style: Optional[TextStyle] = None


# ============================================================================
# Shapes, lines, pages
# ============================================================================

class Shape(_WireModel):
    # shape_type is an open string; Lucid interprets it.
    id: str
    shape_type: str = Field(alias="shapeType")
    bounding_box: BoundingBox = Field(alias="boundingBox")
    text: Optional[Union[str, List[TextBlock]]] = None
    style: Optional[Style] = None
    custom_data: Optional[Dict[str, Any]] = Field(default=None, alias="customData")


class Endpoint(_WireModel):
    """One end of a line.

    With ``shape_id`` set the end is attached to that shape and ``position``
    is ``"auto"``; Lucid works out the attach point and ``x``/``y`` are
    ignored. Without it ``x``/``y`` are absolute page coordinates.
    """

    x: Number = 0
    y: Number = 0
    shape_id: Optional[str] = Field(default=None, alias="shapeId")
    position: Optional[str] = None


class Line(_WireModel):
    id: str
    endpoint1: Endpoint
    endpoint2: Endpoint
    style: Optional[Style] = None
    text: Optional[str] = None


class Page(_WireModel):
    id: str
    title: str
    shapes: List[Shape] = Field(default_factory=list)
    lines: List[Line] = Field(default_factory=list)


class Document(_WireModel):
    version: str = DOCUMENT_VERSION
    pages: List[Page] = Field(default_factory=list)

    def to_wire(self) -> Dict[str, Any]:
        """Plain dict in the exact shape Lucid expects."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ============================================================================
# API responses
# ============================================================================

class TokenResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    access_token: str
    token_type: str = "Bearer"
    expires_in: Optional[int] = None
    refresh_token: Optional[str] = None
    scope: str = ""


class UserProfile(BaseModel):
    id: Union[str, int]
    name: str = ""
    email: str = ""


class CreateDocumentResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    document_id: str = Field(alias="documentId")
    title: str
    product: str
    edit_url: str = Field(alias="editUrl")
