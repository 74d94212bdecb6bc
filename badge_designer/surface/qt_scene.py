from __future__ import annotations

"""
Qt drawing surface.

Materialises drawable primitives as items in a QGraphicsScene:

  TextPrimitive     -> QGraphicsTextItem
  RasterPrimitive   -> QGraphicsPixmapItem
  RectPrimitive     -> QGraphicsRectItem / QGraphicsPathItem (rounded)
  EllipsePrimitive  -> QGraphicsEllipseItem
  LinePrimitive     -> QGraphicsLineItem
  PolygonPrimitive  -> QGraphicsPolygonItem
  GroupPrimitive    -> QGraphicsItemGroup

Each top-level item gets z = its document index and the element id in
data slot 0, so selection in the scene maps back to the document.
"""

import logging
from typing import Dict, Optional

from PIL import Image
from PySide6 import QtCore, QtGui, QtWidgets

from ..core.primitives import (
    EllipsePrimitive,
    GroupPrimitive,
    LinePrimitive,
    PolygonPrimitive,
    Primitive,
    RasterPrimitive,
    RectPrimitive,
    TextPrimitive,
)
from ..core.render import RenderedBadge

logger = logging.getLogger(__name__)

ELEMENT_ID_ROLE = 0
BACKGROUND_Z = -1.0

_ALIGNMENTS = {
    "left": QtCore.Qt.AlignLeft,
    "center": QtCore.Qt.AlignHCenter,
    "right": QtCore.Qt.AlignRight,
    "justify": QtCore.Qt.AlignJustify,
}

_CAPS = {
    "butt": QtCore.Qt.FlatCap,
    "round": QtCore.Qt.RoundCap,
    "square": QtCore.Qt.SquareCap,
}


# --- Utility: Pillow -> QImage ---------------------------------------------


def pil_to_qimage(img: Image.Image) -> QtGui.QImage:
    """
    Convert a Pillow Image to a QtGui.QImage.
    """
    img = img.convert("RGBA")
    w, h = img.size
    data = img.tobytes("raw", "RGBA")
    qimg = QtGui.QImage(data, w, h, QtGui.QImage.Format.Format_RGBA8888)
    return qimg.copy()  # detach from original buffer


# --- Paint helpers ----------------------------------------------------------


def _pen(prim: Primitive, cap: str = "butt") -> QtGui.QPen:
    if not prim.stroke or prim.stroke_width <= 0:
        return QtGui.QPen(QtCore.Qt.NoPen)
    pen = QtGui.QPen(QtGui.QColor(prim.stroke))
    pen.setWidthF(prim.stroke_width)
    pen.setCapStyle(_CAPS.get(cap, QtCore.Qt.FlatCap))
    if prim.stroke_dash_array:
        # Qt dash patterns are in units of the pen width
        pattern = [max(v / prim.stroke_width, 0.01) for v in prim.stroke_dash_array]
        if len(pattern) % 2:
            pattern = pattern * 2
        pen.setDashPattern(pattern)
    return pen


def _brush(prim: Primitive) -> QtGui.QBrush:
    if not prim.fill:
        return QtGui.QBrush(QtCore.Qt.NoBrush)
    return QtGui.QBrush(QtGui.QColor(prim.fill))


def _apply_transform(item: QtWidgets.QGraphicsItem, prim: Primitive, origin: QtCore.QPointF) -> None:
    """Scale then rotate about *origin* (item coordinates), then fade."""
    if prim.scale_x != 1.0 or prim.scale_y != 1.0 or prim.angle:
        t = QtGui.QTransform()
        t.translate(origin.x(), origin.y())
        t.rotate(prim.angle)
        t.scale(prim.scale_x, prim.scale_y)
        t.translate(-origin.x(), -origin.y())
        item.setTransform(t)
    item.setOpacity(prim.opacity)


def _apply_selection(item: QtWidgets.QGraphicsItem, prim: Primitive) -> None:
    if prim.selection.selectable:
        item.setFlags(
            QtWidgets.QGraphicsItem.ItemIsMovable
            | QtWidgets.QGraphicsItem.ItemIsSelectable
            | QtWidgets.QGraphicsItem.ItemSendsGeometryChanges
        )
    else:
        item.setFlag(QtWidgets.QGraphicsItem.ItemIsMovable, False)
        item.setFlag(QtWidgets.QGraphicsItem.ItemIsSelectable, False)


# --- Item builders ----------------------------------------------------------


def _text_item(prim: TextPrimitive) -> QtWidgets.QGraphicsItem:
    item = QtWidgets.QGraphicsTextItem(prim.text)
    item.setDefaultTextColor(QtGui.QColor(prim.fill or "#000000"))

    font = QtGui.QFont(prim.font_family)
    font.setPixelSize(max(1, int(round(prim.font_size))))
    weight = str(prim.font_weight).lower()
    font.setBold(weight == "bold" or (weight.isdigit() and int(weight) >= 600))
    font.setItalic(str(prim.font_style).lower() in ("italic", "oblique"))
    if prim.char_spacing:
        # char spacing is in thousandths of an em
        font.setLetterSpacing(QtGui.QFont.AbsoluteSpacing, prim.char_spacing * prim.font_size / 1000.0)
    item.setFont(font)

    if prim.width:
        item.setTextWidth(prim.width)
    option = QtGui.QTextOption(_ALIGNMENTS.get(prim.text_align, QtCore.Qt.AlignLeft))
    option.setWrapMode(QtGui.QTextOption.WrapAtWordBoundaryOrAnywhere)
    item.document().setDefaultTextOption(option)

    if prim.shadow is not None:
        effect = QtWidgets.QGraphicsDropShadowEffect()
        effect.setOffset(prim.shadow.offset_x, prim.shadow.offset_y)
        effect.setBlurRadius(prim.shadow.blur)
        effect.setColor(QtGui.QColor(prim.shadow.color))
        item.setGraphicsEffect(effect)

    rect = item.boundingRect()
    x = prim.left - rect.width() / 2 if prim.origin_x == "center" else prim.left
    y = prim.top - rect.height() / 2 if prim.origin_y == "center" else prim.top
    item.setPos(x, y)
    _apply_transform(item, prim, QtCore.QPointF(0, 0))
    return item


def _raster_item(prim: RasterPrimitive) -> Optional[QtWidgets.QGraphicsItem]:
    if prim.image is None:
        return None
    item = QtWidgets.QGraphicsPixmapItem(QtGui.QPixmap.fromImage(pil_to_qimage(prim.image)))
    item.setTransformationMode(QtCore.Qt.SmoothTransformation)
    item.setPos(prim.left, prim.top)
    _apply_transform(item, prim, QtCore.QPointF(0, 0))
    return item


def _rect_item(prim: RectPrimitive) -> QtWidgets.QGraphicsItem:
    rect = QtCore.QRectF(0, 0, prim.width, prim.height)
    if prim.rx > 0 or prim.ry > 0:
        path = QtGui.QPainterPath()
        path.addRoundedRect(rect, prim.rx or prim.ry, prim.ry or prim.rx)
        item: QtWidgets.QAbstractGraphicsShapeItem = QtWidgets.QGraphicsPathItem(path)
    else:
        item = QtWidgets.QGraphicsRectItem(rect)
    item.setPen(_pen(prim))
    item.setBrush(_brush(prim))
    item.setPos(prim.left, prim.top)
    _apply_transform(item, prim, QtCore.QPointF(0, 0))
    return item


def _ellipse_item(prim: EllipsePrimitive) -> QtWidgets.QGraphicsItem:
    item = QtWidgets.QGraphicsEllipseItem(0, 0, prim.rx * 2, prim.ry * 2)
    item.setPen(_pen(prim))
    item.setBrush(_brush(prim))
    item.setPos(prim.left, prim.top)
    _apply_transform(item, prim, QtCore.QPointF(0, 0))
    return item


def _line_item(prim: LinePrimitive) -> QtWidgets.QGraphicsItem:
    item = QtWidgets.QGraphicsLineItem(prim.x1, prim.y1, prim.x2, prim.y2)
    item.setPen(_pen(prim, prim.stroke_line_cap))
    _apply_transform(item, prim, QtCore.QPointF(prim.left, prim.top))
    return item


def _polygon_item(prim: PolygonPrimitive) -> QtWidgets.QGraphicsItem:
    poly = QtGui.QPolygonF([QtCore.QPointF(x, y) for x, y in prim.points])
    item = QtWidgets.QGraphicsPolygonItem(poly)
    item.setPen(_pen(prim))
    item.setBrush(_brush(prim))
    _apply_transform(item, prim, QtCore.QPointF(prim.left, prim.top))
    return item


def _group_item(prim: GroupPrimitive) -> Optional[QtWidgets.QGraphicsItem]:
    group = QtWidgets.QGraphicsItemGroup()
    for child in prim.children:
        child_item = make_item(child)
        if child_item is not None:
            group.addToGroup(child_item)
    if not group.childItems():
        return None

    # children sit at absolute coordinates; move their bounds to left/top
    bounds = group.childrenBoundingRect()
    group.setPos(prim.left - bounds.x(), prim.top - bounds.y())
    _apply_transform(group, prim, bounds.topLeft())
    return group


_BUILDERS = (
    (TextPrimitive, _text_item),
    (RasterPrimitive, _raster_item),
    (RectPrimitive, _rect_item),
    (EllipsePrimitive, _ellipse_item),
    (LinePrimitive, _line_item),
    (PolygonPrimitive, _polygon_item),
    (GroupPrimitive, _group_item),
)


def make_item(prim: Primitive) -> Optional[QtWidgets.QGraphicsItem]:
    """Build the scene item for *prim* (not yet added to any scene)."""
    for cls, builder in _BUILDERS:
        if isinstance(prim, cls):
            item = builder(prim)
            if item is not None:
                _apply_selection(item, prim)
                if prim.element_id is not None:
                    item.setData(ELEMENT_ID_ROLE, prim.element_id)
            return item
    logger.warning("No scene item for primitive %s", type(prim).__name__)
    return None


# --- Surface ----------------------------------------------------------------


class QtSceneSurface:
    """A QGraphicsScene used as the badge drawing surface."""

    def __init__(self, scene: Optional[QtWidgets.QGraphicsScene] = None):
        self.scene = scene if scene is not None else QtWidgets.QGraphicsScene()
        self.items: Dict[str, QtWidgets.QGraphicsItem] = {}
        self.background_item: Optional[QtWidgets.QGraphicsItem] = None

    def clear(self) -> None:
        self.scene.clear()
        self.items.clear()
        self.background_item = None

    def draw(self, prim: Primitive, z: float = 0.0) -> Optional[QtWidgets.QGraphicsItem]:
        item = make_item(prim)
        if item is None:
            return None
        item.setZValue(z)
        self.scene.addItem(item)
        if prim.element_id is not None:
            self.items[prim.element_id] = item
        return item

    def show(self, rendered: RenderedBadge) -> None:
        """Replace the scene contents with a finished render pass."""
        self.clear()
        width, height = rendered.canvas_size
        self.scene.setSceneRect(0, 0, width, height)

        if rendered.background is not None:
            self.background_item = self.draw(rendered.background, BACKGROUND_Z)

        for layer in rendered.layers:
            self.draw(layer.primitive, float(layer.z))

    def item_for(self, element_id: str) -> Optional[QtWidgets.QGraphicsItem]:
        return self.items.get(element_id)

    def selected_element_ids(self) -> list[str]:
        ids = []
        for item in self.scene.selectedItems():
            value = item.data(ELEMENT_ID_ROLE)
            if value is not None:
                ids.append(str(value))
        return ids
