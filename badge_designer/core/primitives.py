"""
Drawable primitives produced by the element renderers.

A primitive is an abstract drawing instruction: it carries geometry and
paint but knows nothing about the surface that will draw it. The Qt
surface in ``badge_designer.surface`` turns these into scene items.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from PIL import Image


@dataclass
class SelectionStyle:
    """Selection affordance metadata; set uniformly, never interpreted by the core."""
    selectable: bool = True
    has_controls: bool = True
    has_borders: bool = True
    corner_size: int = 10
    transparent_corners: bool = False
    corner_color: str = "#2563eb"
    corner_stroke_color: str = "#1e40af"
    border_color: str = "#2563eb"


@dataclass
class Shadow:
    offset_x: float = 0.0
    offset_y: float = 0.0
    blur: float = 0.0
    color: str = "#000000"


@dataclass
class Primitive:
    left: float = 0.0
    top: float = 0.0
    scale_x: float = 1.0
    scale_y: float = 1.0
    angle: float = 0.0
    opacity: float = 1.0
    fill: Optional[str] = None
    stroke: Optional[str] = None
    stroke_width: float = 0.0
    stroke_dash_array: Optional[List[float]] = None
    selection: SelectionStyle = field(default_factory=SelectionStyle)
    element_id: Optional[str] = None


@dataclass
class TextPrimitive(Primitive):
    text: str = ""
    width: Optional[float] = None         # wrap width; None = no wrapping
    font_size: float = 24
    font_family: str = "Arial"
    font_weight: str = "normal"
    font_style: str = "normal"
    text_align: str = "left"              # left|center|right|justify
    line_height: Optional[float] = None
    char_spacing: Optional[float] = None
    shadow: Optional[Shadow] = None
    # "left"/"top" anchor the box corner; "center" anchors its middle
    origin_x: str = "left"
    origin_y: str = "top"


@dataclass
class RasterPrimitive(Primitive):
    image: Optional[Image.Image] = None
    src: str = ""

    @property
    def width(self) -> int:
        return self.image.width if self.image is not None else 0

    @property
    def height(self) -> int:
        return self.image.height if self.image is not None else 0


@dataclass
class RectPrimitive(Primitive):
    width: float = 100.0
    height: float = 100.0
    rx: float = 0.0
    ry: float = 0.0


@dataclass
class EllipsePrimitive(Primitive):
    """Circles are ellipses with rx == ry; left/top is the bounding box corner."""
    rx: float = 50.0
    ry: float = 50.0


@dataclass
class LinePrimitive(Primitive):
    x1: float = 0.0
    y1: float = 0.0
    x2: float = 0.0
    y2: float = 0.0
    stroke_line_cap: str = "butt"         # butt|round|square


@dataclass
class PolygonPrimitive(Primitive):
    # absolute canvas coordinates
    points: List[Tuple[float, float]] = field(default_factory=list)


@dataclass
class GroupPrimitive(Primitive):
    # children keep absolute canvas coordinates; left/top is the group anchor
    children: List[Primitive] = field(default_factory=list)
