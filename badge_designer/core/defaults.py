"""
Shared geometry and paint defaults.

Every renderer reads element geometry through ``geometry()`` so that a
missing property always falls back to the same value and re-renders are
deterministic. A property counts as missing when it is absent or None;
explicit zeros are honoured.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from ..config import DesignerSettings
from .primitives import Primitive, SelectionStyle

DEFAULT_LEFT = 50.0
DEFAULT_TOP = 50.0
DEFAULT_SCALE = 1.0
DEFAULT_ANGLE = 0.0
DEFAULT_OPACITY = 1.0

DEFAULT_SHAPE_FILL = "#cccccc"
DEFAULT_TEXT_FILL = "#000000"
DEFAULT_LINE_STROKE = "#000000"


def prop(props: Mapping[str, Any], key: str, default: Any = None) -> Any:
    """props[key], or *default* when the key is absent or None."""
    value = props.get(key)
    return default if value is None else value


def num(props: Mapping[str, Any], key: str, default: float) -> float:
    """Numeric property with fallback; unparsable values degrade to *default*."""
    value = props.get(key)
    if value is None or isinstance(value, bool):
        return float(default)
    try:
        return float(value)
    except (TypeError, ValueError):
        return float(default)


def positive(props: Mapping[str, Any], key: str, default: float) -> float:
    """Like num(), but zero/negative sizes fall back to *default* too."""
    value = num(props, key, default)
    return value if value > 0 else float(default)


@dataclass
class Geometry:
    left: float = DEFAULT_LEFT
    top: float = DEFAULT_TOP
    scale_x: float = DEFAULT_SCALE
    scale_y: float = DEFAULT_SCALE
    angle: float = DEFAULT_ANGLE
    opacity: float = DEFAULT_OPACITY


def geometry(props: Mapping[str, Any]) -> Geometry:
    opacity = num(props, "opacity", DEFAULT_OPACITY)
    return Geometry(
        left=num(props, "left", DEFAULT_LEFT),
        top=num(props, "top", DEFAULT_TOP),
        scale_x=num(props, "scaleX", DEFAULT_SCALE),
        scale_y=num(props, "scaleY", DEFAULT_SCALE),
        angle=num(props, "angle", DEFAULT_ANGLE),
        opacity=min(1.0, max(0.0, opacity)),
    )


def selection_style(settings: Optional[DesignerSettings] = None) -> SelectionStyle:
    s = settings or DesignerSettings()
    return SelectionStyle(
        corner_size=s.corner_size,
        corner_color=s.corner_color,
        corner_stroke_color=s.corner_stroke_color,
        border_color=s.border_color,
    )


def apply_geometry(
    primitive: Primitive,
    props: Mapping[str, Any],
    settings: Optional[DesignerSettings] = None,
    *,
    position: bool = True,
) -> Primitive:
    """
    Copy the common geometry onto *primitive* and tag it with the uniform
    selection affordances. ``position=False`` leaves left/top untouched for
    primitives that carry absolute coordinates (lines, polygons).
    """
    g = geometry(props)
    if position:
        primitive.left = g.left
        primitive.top = g.top
    primitive.scale_x = g.scale_x
    primitive.scale_y = g.scale_y
    primitive.angle = g.angle
    primitive.opacity = g.opacity
    primitive.selection = selection_style(settings)
    return primitive


def apply_stroke(primitive: Primitive, props: Mapping[str, Any], default_width: float = 0.0) -> Primitive:
    primitive.stroke = prop(props, "stroke")
    primitive.stroke_width = num(props, "strokeWidth", default_width)
    dash = props.get("strokeDashArray")
    if isinstance(dash, (list, tuple)) and dash:
        try:
            primitive.stroke_dash_array = [float(v) for v in dash]
        except (TypeError, ValueError):
            primitive.stroke_dash_array = None
    return primitive
