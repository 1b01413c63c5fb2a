"""
Lucid Standard Import - Document Builder
========================================

Append-only assembler for Standard Import documents.

    builder = DocumentBuilder()
    builder.add_page("Onboarding")
    start = builder.add_start_end(x=200, y=100, text="Start")
    check = builder.add_decision_diamond(x=190, y=220, text="Approved?")
    builder.add_connector(from_shape_id=start, to_shape_id=check)
    document = builder.build()

Shapes and lines always go to the most recently added page.
"""

import json
import uuid
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from .errors import EmptyDocument, InvalidInput, NoActivePage
from .models import (
    AUTO_POSITION,
    BoundingBox,
    Document,
    Endpoint,
    Fill,
    Line,
    Page,
    Shape,
    Stroke,
    Style,
    TextBlock,
)

DEFAULT_STROKE_COLOR = "#000000"
DEFAULT_STROKE_WIDTH = 2

# shape_type, width, height, fill color
PROCESS_BOX = ("rectangle", 120, 60, "#FFFFFF")
DECISION_DIAMOND = ("diamond", 120, 80, "#FFE699")
START_END = ("ellipse", 100, 50, "#C5E0B4")

# Fallback size for shape types without a preset
RAW_SHAPE_SIZE = (100, 60)

LINEAR_START_X = 200
LINEAR_START_Y = 100
LINEAR_SPACING = 120


def _new_id() -> str:
    return str(uuid.uuid4())


def _solid_style(fill_color: str, stroke_color: Optional[str]) -> Style:
    return Style(
        fill=Fill(color=fill_color, type="solid"),
        stroke=Stroke(
            color=stroke_color or DEFAULT_STROKE_COLOR,
            width=DEFAULT_STROKE_WIDTH,
            style="solid",
        ),
    )


class DocumentBuilder:
    """Builds a :class:`Document` one page, shape and connector at a time.

    Not thread-safe; use one builder per call site.
    """

    def __init__(self) -> None:
        self._document = Document()
        self._current_page: Optional[Page] = None

    def _require_page(self) -> Page:
        if self._current_page is None:
            raise NoActivePage()
        return self._current_page

    # ------------------------------------------------------------------
    # Pages and shapes
    # ------------------------------------------------------------------

    def add_page(self, title: str) -> str:
        """Append an empty page and make it current. Returns the page id."""
        page = Page(id=_new_id(), title=title)
        self._document.pages.append(page)
        self._current_page = page
        return page.id

    def add_shape(
        self,
        shape_type: str,
        x: float,
        y: float,
        width: float,
        height: float,
        text: Optional[Union[str, List[TextBlock]]] = None,
        style: Optional[Style] = None,
        rotation: Optional[float] = None,
        custom_data: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Add a shape of any Lucid ``shape_type`` to the current page.

        Raises:
            NoActivePage: if :meth:`add_page` has not been called yet.
        """
        page = self._require_page()
        shape = Shape(
            id=_new_id(),
            shape_type=shape_type,
            bounding_box=BoundingBox(x=x, y=y, w=width, h=height, rotation=rotation),
            text=text,
            style=style,
            custom_data=custom_data,
        )
        page.shapes.append(shape)
        return shape.id

    def _add_preset(
        self,
        preset: tuple,
        x: float,
        y: float,
        text: Optional[str],
        width: Optional[float],
        height: Optional[float],
        fill_color: Optional[str],
        stroke_color: Optional[str],
    ) -> str:
        shape_type, default_w, default_h, default_fill = preset
        return self.add_shape(
            shape_type,
            x,
            y,
            width or default_w,
            height or default_h,
            text=text,
            style=_solid_style(fill_color or default_fill, stroke_color),
        )

    def add_process_box(
        self,
        x: float,
        y: float,
        text: Optional[str] = None,
        width: Optional[float] = None,
        height: Optional[float] = None,
        fill_color: Optional[str] = None,
        stroke_color: Optional[str] = None,
    ) -> str:
        """White 120x60 rectangle."""
        return self._add_preset(
            PROCESS_BOX, x, y, text, width, height, fill_color, stroke_color
        )

    def add_decision_diamond(
        self,
        x: float,
        y: float,
        text: Optional[str] = None,
        width: Optional[float] = None,
        height: Optional[float] = None,
        fill_color: Optional[str] = None,
        stroke_color: Optional[str] = None,
    ) -> str:
        """Pale-yellow 120x80 diamond."""
        return self._add_preset(
            DECISION_DIAMOND, x, y, text, width, height, fill_color, stroke_color
        )

    def add_start_end(
        self,
        x: float,
        y: float,
        text: Optional[str] = None,
        width: Optional[float] = None,
        height: Optional[float] = None,
        fill_color: Optional[str] = None,
        stroke_color: Optional[str] = None,
    ) -> str:
        """Pale-green 100x50 oval."""
        return self._add_preset(
            START_END, x, y, text, width, height, fill_color, stroke_color
        )

    def add_shape_spec(self, spec: Mapping[str, Any]) -> str:
        """Add a shape from a loose description as sent by tool callers.

        ``type`` picks the preset: ``process``/``rectangle``,
        ``decision``/``diamond``, ``start``/``end``/``ellipse``. Any other
        type is passed through to Lucid unchanged at 100x60 with no style.

        Raises:
            InvalidInput: if ``type`` is missing, ``x``/``y`` are not numbers,
                or any other property has the wrong type.
        """
        shape_type = spec.get("type")
        x, y = spec.get("x"), spec.get("y")
        if not shape_type or not _is_number(x) or not _is_number(y):
            raise InvalidInput("Shape is missing required properties (type, x, y)")

        preset_args = dict(
            x=x,
            y=y,
            text=spec.get("text"),
            width=spec.get("width"),
            height=spec.get("height"),
            fill_color=spec.get("fillColor"),
            stroke_color=spec.get("strokeColor"),
        )
        try:
            if shape_type in ("process", "rectangle"):
                return self.add_process_box(**preset_args)
            if shape_type in ("decision", "diamond"):
                return self.add_decision_diamond(**preset_args)
            if shape_type in ("start", "end", "ellipse"):
                return self.add_start_end(**preset_args)

            return self.add_shape(
                shape_type,
                x,
                y,
                spec.get("width") or RAW_SHAPE_SIZE[0],
                spec.get("height") or RAW_SHAPE_SIZE[1],
                text=spec.get("text"),
            )
        except ValidationError as e:
            raise InvalidInput(describe_validation_error(e)) from e

    # ------------------------------------------------------------------
    # Connectors
    # ------------------------------------------------------------------

    def add_connector(
        self,
        from_shape_id: Optional[str] = None,
        to_shape_id: Optional[str] = None,
        from_x: float = 0,
        from_y: float = 0,
        to_x: float = 0,
        to_y: float = 0,
        text: Optional[str] = None,
        stroke_color: Optional[str] = None,
        stroke_width: Optional[float] = None,
    ) -> str:
        """Add a line between two shapes, two points, or a mix of both.

        An end with a shape id is attached to that shape (``position="auto"``);
        its coordinates are only a placeholder. An end without one sits at
        the given absolute coordinates.

        Raises:
            NoActivePage: if :meth:`add_page` has not been called yet.
        """
        page = self._require_page()
        line = Line(
            id=_new_id(),
            endpoint1=_endpoint(from_shape_id, from_x, from_y),
            endpoint2=_endpoint(to_shape_id, to_x, to_y),
            text=text,
            style=Style(
                stroke=Stroke(
                    color=stroke_color or DEFAULT_STROKE_COLOR,
                    width=stroke_width or DEFAULT_STROKE_WIDTH,
                    style="solid",
                )
            ),
        )
        page.lines.append(line)
        return line.id

    # ------------------------------------------------------------------
    # Layouts
    # ------------------------------------------------------------------

    def create_linear_process(
        self,
        steps: Sequence[str],
        start_x: Optional[float] = None,
        start_y: Optional[float] = None,
        vertical_spacing: Optional[float] = None,
    ) -> List[str]:
        """Lay ``steps`` out top to bottom and chain them with connectors.

        The first and last steps become start/end ovals, everything in
        between a process box. A single step is the first *and* the last
        step, so it is added twice (two ovals joined by one connector).
        Existing content on the page is not taken into account.

        Returns:
            Shape ids in step order.
        """
        x = start_x or LINEAR_START_X
        y = start_y or LINEAR_START_Y
        spacing = vertical_spacing or LINEAR_SPACING

        shape_ids: List[str] = []
        last = len(steps) - 1
        for index, step in enumerate(steps):
            if index == 0:
                shape_id = self.add_start_end(x=x, y=y, text=step)
            elif index == last:
                shape_id = self.add_start_end(x=x, y=y, text=step)
            else:
                shape_id = self.add_process_box(x=x, y=y, text=step)

            if shape_ids:
                self.add_connector(from_shape_id=shape_ids[-1], to_shape_id=shape_id)
            shape_ids.append(shape_id)
            y += spacing

        # One step: the loop above only ran once, emit its closing oval.
        if len(steps) == 1:
            closing = self.add_start_end(x=x, y=y, text=steps[0])
            self.add_connector(from_shape_id=shape_ids[-1], to_shape_id=closing)
            shape_ids.append(closing)

        return shape_ids

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def build(self) -> Document:
        """Return a snapshot of the document.

        The returned object is a deep copy: further builder calls do not
        change it, and changing it does not affect the builder.

        Raises:
            EmptyDocument: if no page has been added.
        """
        if not self._document.pages:
            raise EmptyDocument()
        return self._document.model_copy(deep=True)

    def to_json(self) -> str:
        """Pretty-printed JSON (2-space indent) of :meth:`build`."""
        return json.dumps(self.build().to_wire(), indent=2, ensure_ascii=False)


def _endpoint(shape_id: Optional[str], x: float, y: float) -> Endpoint:
    if shape_id:
        return Endpoint(x=x or 0, y=y or 0, shape_id=shape_id, position=AUTO_POSITION)
    return Endpoint(x=x or 0, y=y or 0)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def create_simple_process_map(title: str, steps: Sequence[str]) -> Document:
    """One page titled ``title`` holding a linear process of ``steps``."""
    builder = DocumentBuilder()
    builder.add_page(title)
    builder.create_linear_process(steps)
    return builder.build()


def describe_validation_error(error: ValidationError) -> str:
    """One-line summary of a pydantic error, e.g. ``text: Input should be ...``."""
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"])
        parts.append(f"{location}: {item['msg']}" if location else item["msg"])
    return "; ".join(parts)
