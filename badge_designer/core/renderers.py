"""
Element renderers.

One renderer per element type turns a ``BadgeElement`` (plus optional
sample data) into a drawable primitive. Text, shape, line, polygon and
table render synchronously; QR and image have to wait for an encode or a
decode and are coroutines. ``render_element`` dispatches on the element
type for both kinds.

Returning None means "no element": the caller leaves that element out of
the composition. Only ``render_image_element`` raises (``ImageLoadError``);
everything else degrades to defaults or to None.
"""
from __future__ import annotations

import asyncio
import functools
import inspect
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from ..config import DesignerSettings
from .defaults import (
    DEFAULT_LINE_STROKE,
    DEFAULT_SHAPE_FILL,
    DEFAULT_TEXT_FILL,
    apply_geometry,
    apply_stroke,
    geometry,
    num,
    positive,
    prop,
)
from .exceptions import ImageLoadError
from .fields import resolve_dynamic_fields
from .images import ImageLoader, decode_data_url, decode_image
from .models import BadgeElement, SampleData
from .primitives import (
    EllipsePrimitive,
    GroupPrimitive,
    LinePrimitive,
    PolygonPrimitive,
    Primitive,
    RasterPrimitive,
    RectPrimitive,
    SelectionStyle,
    Shadow,
    TextPrimitive,
)
from .qrcodes import QRCodeQueue, encode_qr_data_url

logger = logging.getLogger(__name__)

LINE_TYPES = ("straight", "arrow")

TABLE_CELL_FILL = "#ffffff"
TABLE_CELL_BORDER = "#cccccc"
TABLE_CELL_FONT_SIZE = 12
TABLE_CELL_TEXT_FILL = "#000000"


@dataclass
class RenderContext:
    """Everything a renderer may need besides the element itself."""
    elements: Sequence[BadgeElement] = ()
    sample_data: Optional[SampleData] = None
    settings: DesignerSettings = field(default_factory=DesignerSettings)
    qr_queue: Optional[QRCodeQueue] = None
    image_loader: ImageLoader = field(default_factory=ImageLoader)

    def __post_init__(self) -> None:
        if self.qr_queue is None:
            self.qr_queue = QRCodeQueue(
                functools.partial(encode_qr_data_url, border=self.settings.qr_border)
            )

    def resolve(self, text: str) -> str:
        if self.sample_data:
            return resolve_dynamic_fields(text, self.sample_data)
        return text


def _props(element: BadgeElement) -> Mapping[str, Any]:
    props = element.properties
    return props if isinstance(props, Mapping) else {}


def _opt_num(props: Mapping[str, Any], key: str) -> Optional[float]:
    if props.get(key) is None:
        return None
    return num(props, key, 0.0)


# ---------- text ----------

def _shadow(raw: Any) -> Optional[Shadow]:
    if not isinstance(raw, Mapping):
        return None
    return Shadow(
        offset_x=num(raw, "offsetX", 0.0),
        offset_y=num(raw, "offsetY", 0.0),
        blur=num(raw, "blur", 0.0),
        color=str(prop(raw, "color", "#000000")),
    )


def render_text_element(element: BadgeElement, ctx: RenderContext) -> TextPrimitive:
    props = _props(element)
    content = prop(props, "content")
    content = ctx.settings.default_text if content in (None, "") else str(content)
    content = ctx.resolve(content)

    text = TextPrimitive(
        text=content,
        width=positive(props, "width", 200),
        font_size=positive(props, "fontSize", 24),
        font_family=str(prop(props, "fontFamily", "Arial")),
        font_weight=str(prop(props, "fontWeight", "normal")),
        font_style=str(prop(props, "fontStyle", "normal")),
        text_align=str(prop(props, "textAlign", "left")),
        line_height=_opt_num(props, "lineHeight"),
        char_spacing=_opt_num(props, "letterSpacing"),
        shadow=_shadow(props.get("textShadow")),
    )
    text.fill = str(prop(props, "fill", DEFAULT_TEXT_FILL))
    apply_geometry(text, props, ctx.settings)
    return text


# ---------- raster (qr, image) ----------

def _raster(element: BadgeElement, ctx: RenderContext, image, src: str) -> RasterPrimitive:
    raster = RasterPrimitive(image=image, src=src)
    apply_geometry(raster, _props(element), ctx.settings)
    return raster


def qr_payload(element: BadgeElement, ctx: RenderContext) -> Tuple[str, int]:
    """(resolved data, pixel size) a QR element encodes."""
    props = _props(element)
    raw = prop(props, "qrData") or prop(props, "dynamicField") or ctx.settings.default_qr_data
    size = int(positive(props, "size", ctx.settings.default_qr_size))
    return ctx.resolve(str(raw)), size


async def render_qr_element(element: BadgeElement, ctx: RenderContext) -> Optional[RasterPrimitive]:
    try:
        data, size = qr_payload(element, ctx)
        url = await ctx.qr_queue.generate(data, size)
        image = await asyncio.to_thread(lambda: decode_image(decode_data_url(url)))
    except Exception as e:
        logger.warning("Failed to generate QR code for element %s: %s", element.id, e)
        return None
    return _raster(element, ctx, image, url)


async def render_image_element(element: BadgeElement, ctx: RenderContext) -> Optional[RasterPrimitive]:
    src = prop(_props(element), "src")
    if not src:
        return None
    src = str(src)
    try:
        image = await ctx.image_loader.load_async(src)
    except ImageLoadError:
        raise
    except Exception as e:
        raise ImageLoadError(f"Failed to load image for element {element.id}: {e}") from e
    return _raster(element, ctx, image, src)


# ---------- vector shapes ----------

def render_shape_element(element: BadgeElement, ctx: RenderContext) -> Optional[Primitive]:
    props = _props(element)
    shape_type = prop(props, "shapeType", "rectangle")

    shape: Primitive
    if shape_type == "rectangle":
        shape = RectPrimitive(
            width=positive(props, "width", 100),
            height=positive(props, "height", 100),
            rx=num(props, "rx", 0.0),
            ry=num(props, "ry", 0.0),
        )
    elif shape_type == "circle":
        radius = positive(props, "width", 100) / 2
        shape = EllipsePrimitive(rx=radius, ry=radius)
    elif shape_type == "ellipse":
        shape = EllipsePrimitive(
            rx=positive(props, "width", 100) / 2,
            ry=positive(props, "height", 100) / 2,
        )
    else:
        logger.debug("Element %s: unknown shapeType %r", element.id, shape_type)
        return None

    shape.fill = str(prop(props, "fill", DEFAULT_SHAPE_FILL))
    apply_stroke(shape, props)
    apply_geometry(shape, props, ctx.settings)
    return shape


def line_endpoints(props: Mapping[str, Any]) -> Tuple[float, float, float, float]:
    """Explicit endpoints win; otherwise left/top plus width/height as a delta."""
    start_x = num(props, "startX", num(props, "left", 50))
    start_y = num(props, "startY", num(props, "top", 50))
    end_x = num(props, "endX", start_x + positive(props, "width", 100))
    end_y = num(props, "endY", start_y + num(props, "height", 0))
    return start_x, start_y, end_x, end_y


def render_line_element(element: BadgeElement, ctx: RenderContext) -> Optional[LinePrimitive]:
    props = _props(element)
    line_type = prop(props, "lineType", "straight")
    if line_type not in LINE_TYPES:
        logger.debug("Element %s: unknown lineType %r", element.id, line_type)
        return None

    x1, y1, x2, y2 = line_endpoints(props)
    line = LinePrimitive(x1=x1, y1=y1, x2=x2, y2=y2)
    apply_stroke(line, props, default_width=2)
    line.stroke = str(prop(props, "stroke") or prop(props, "fill") or DEFAULT_LINE_STROKE)
    line.stroke_width = positive(props, "strokeWidth", 2)
    if line_type == "arrow":
        line.stroke_line_cap = "round"

    apply_geometry(line, props, ctx.settings, position=False)
    line.left, line.top = min(x1, x2), min(y1, y2)
    return line


def polygon_points(cx: float, cy: float, sides: int, radius: float) -> List[Tuple[float, float]]:
    """
    Vertices of a regular polygon. Vertex 0 sits straight above the centre
    and the rest follow clockwise (screen coordinates, y grows downward).
    """
    points = []
    for i in range(sides):
        theta = 2 * math.pi * i / sides - math.pi / 2
        points.append((cx + radius * math.cos(theta), cy + radius * math.sin(theta)))
    return points


def render_polygon_element(element: BadgeElement, ctx: RenderContext) -> PolygonPrimitive:
    props = _props(element)
    sides = int(positive(props, "sides", 5))
    radius = positive(props, "radius", 50)
    g = geometry(props)

    polygon = PolygonPrimitive(points=polygon_points(g.left + radius, g.top + radius, sides, radius))
    polygon.fill = str(prop(props, "fill", DEFAULT_SHAPE_FILL))
    apply_stroke(polygon, props)
    apply_geometry(polygon, props, ctx.settings)
    return polygon


# ---------- table ----------

def _cell_map(cells: Any) -> Dict[Tuple[int, int], Mapping[str, Any]]:
    found: Dict[Tuple[int, int], Mapping[str, Any]] = {}
    if not isinstance(cells, list):
        return found
    for cell in cells:
        if not isinstance(cell, Mapping):
            continue
        try:
            key = (int(cell.get("row")), int(cell.get("col")))
        except (TypeError, ValueError):
            continue
        found.setdefault(key, cell)
    return found


def render_table_element(element: BadgeElement, ctx: RenderContext) -> Optional[GroupPrimitive]:
    props = _props(element)
    rows = int(num(props, "rows", 2))
    columns = int(num(props, "columns", 2))
    if rows <= 0 or columns <= 0:
        return None

    cell_width = positive(props, "width", 200) / columns
    cell_height = positive(props, "height", 100) / rows
    g = geometry(props)
    cells = _cell_map(props.get("cells"))
    inert = SelectionStyle(selectable=False, has_controls=False, has_borders=False)

    children: List[Primitive] = []
    for row in range(rows):
        for col in range(columns):
            cell = cells.get((row, col), {})
            cell_x = g.left + col * cell_width
            cell_y = g.top + row * cell_height

            children.append(RectPrimitive(
                left=cell_x,
                top=cell_y,
                width=cell_width,
                height=cell_height,
                fill=str(cell.get("backgroundColor") or TABLE_CELL_FILL),
                stroke=str(cell.get("borderColor") or TABLE_CELL_BORDER),
                stroke_width=1,
                selection=inert,
            ))

            content = cell.get("content")
            if content is None or content == "":
                continue
            children.append(TextPrimitive(
                text=ctx.resolve(str(content)),
                left=cell_x + cell_width / 2,
                top=cell_y + cell_height / 2,
                origin_x="center",
                origin_y="center",
                font_size=TABLE_CELL_FONT_SIZE,
                fill=TABLE_CELL_TEXT_FILL,
                text_align=str(cell.get("textAlign") or "center"),
                selection=inert,
            ))

    if not children:
        return None

    table = GroupPrimitive(children=children)
    apply_geometry(table, props, ctx.settings)
    return table


# ---------- group ----------

async def render_group_element(
    element: BadgeElement,
    ctx: RenderContext,
    _path: Tuple[str, ...] = (),
) -> Optional[GroupPrimitive]:
    """
    Compose the elements named in ``properties.children`` into one group.

    Ids missing from the document are skipped. Children are drawn in
    document order. Nested groups are followed up to
    ``settings.max_group_depth`` levels; a group already being rendered
    further up (a cycle) is skipped.
    """
    props = _props(element)
    child_ids = props.get("children")
    if not isinstance(child_ids, (list, tuple)) or not child_ids:
        return None

    path = _path + (element.id,)
    wanted = {str(cid) for cid in child_ids}
    child_elements = [e for e in ctx.elements if e.id in wanted]
    missing = wanted - {e.id for e in child_elements}
    if missing:
        logger.debug("Group %s: skipping unknown children %s", element.id, sorted(missing))

    jobs = []
    for child in child_elements:
        if child.type == "group":
            if child.id in path:
                logger.warning("Group %s: cycle through %s skipped", element.id, child.id)
                continue
            if len(path) > ctx.settings.max_group_depth:
                logger.debug("Group %s: nested group %s exceeds depth %d",
                             element.id, child.id, ctx.settings.max_group_depth)
                continue
        jobs.append(render_element(child, ctx, _path=path))

    results = await asyncio.gather(*jobs, return_exceptions=True)
    children: List[Primitive] = []
    for res in results:
        if isinstance(res, BaseException):
            if isinstance(res, asyncio.CancelledError):
                raise res
            logger.warning("Group %s: child omitted: %s", element.id, res)
            continue
        if res is not None:
            children.append(res)

    if not children:
        return None

    group = GroupPrimitive(children=children)
    apply_geometry(group, props, ctx.settings)
    return group


# ---------- dispatch ----------

RENDERERS: Dict[str, Callable[..., Any]] = {
    "text": render_text_element,
    "qr": render_qr_element,
    "image": render_image_element,
    "shape": render_shape_element,
    "line": render_line_element,
    "polygon": render_polygon_element,
    "table": render_table_element,
    "group": render_group_element,
}


async def render_element(
    element: BadgeElement,
    ctx: RenderContext,
    _path: Tuple[str, ...] = (),
) -> Optional[Primitive]:
    """
    Render one element with the renderer registered for its type.

    Unknown types give None. ``ImageLoadError`` from image elements is
    passed through for the caller to log and skip.
    """
    renderer = RENDERERS.get(element.type)
    if renderer is None:
        logger.warning("Element %s has unknown type %r; not rendered", element.id, element.type)
        return None

    if element.type == "group":
        result = renderer(element, ctx, _path)
    else:
        result = renderer(element, ctx)
    if inspect.isawaitable(result):
        result = await result

    if result is not None:
        result.element_id = element.id
    return result
