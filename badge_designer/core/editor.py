"""
core/editor.py - Editor state for one badge.

BadgeEditor owns the live document, its undo/redo history and the canvas
settings. The editing UI calls these methods; every element mutation
records a history snapshot.
"""
from __future__ import annotations

import copy
import datetime
import json
import logging
from typing import Any, Dict, Mapping, Optional, Tuple

from ..config import DesignerSettings
from .exceptions import TemplateError
from .history import History
from .migration import migrate_template
from .models import (
    CURRENT_TEMPLATE_VERSION,
    BadgeDocument,
    BadgeElement,
    BadgeTemplate,
)

logger = logging.getLogger(__name__)

BADGE_TYPES = ("single", "double")
SIDES = ("front", "back")


class BadgeEditor:
    def __init__(self, settings: Optional[DesignerSettings] = None):
        self.settings = settings or DesignerSettings()
        self.document = BadgeDocument()
        self.history = History(self.document, limit=self.settings.history_limit)

        self.active_element_id: Optional[str] = None
        self.canvas_size: Tuple[int, int] = (self.settings.canvas_width, self.settings.canvas_height)
        self.template_version = CURRENT_TEMPLATE_VERSION
        self.template_name = "Badge Template"
        self.badge_type = "single"
        self.current_side = "front"
        self.background_image: Dict[str, str] = {}

    # ---- convenience ----
    @property
    def elements(self):
        return self.document.elements

    @property
    def active_element(self) -> Optional[BadgeElement]:
        if self.active_element_id is None:
            return None
        return self.document.find(self.active_element_id)

    def _record(self) -> None:
        self.history.record(self.document)

    # ---- element mutations ----
    def add_element(self, element: BadgeElement) -> None:
        self.document.elements.append(element)
        self.active_element_id = element.id
        self._record()

    def update_element(self, element_id: str, properties: Mapping[str, Any]) -> bool:
        """Merge *properties* into the element's properties. False if no such element."""
        elem = self.document.find(element_id)
        if elem is None:
            logger.debug("update_element: no element %s", element_id)
            return False
        elem.properties = {**elem.properties, **copy.deepcopy(dict(properties))}
        self._record()
        return True

    def delete_element(self, element_id: str) -> bool:
        index = self.document.index_of(element_id)
        if index < 0:
            return False
        del self.document.elements[index]
        if self.active_element_id == element_id:
            self.active_element_id = None
        self._record()
        return True

    def reorder_elements(self, from_index: int, to_index: int) -> bool:
        """Move one element in the z-order. Out-of-range indexes do nothing."""
        count = len(self.document.elements)
        if not (0 <= from_index < count and 0 <= to_index < count):
            return False
        elem = self.document.elements.pop(from_index)
        self.document.elements.insert(to_index, elem)
        self._record()
        return True

    def set_active_element(self, element_id: Optional[str]) -> None:
        self.active_element_id = element_id

    # ---- undo / redo ----
    def undo(self) -> bool:
        restored = self.history.undo()
        if restored is None:
            return False
        self.document = restored
        return True

    def redo(self) -> bool:
        restored = self.history.redo()
        if restored is None:
            return False
        self.document = restored
        return True

    def can_undo(self) -> bool:
        return self.history.can_undo()

    def can_redo(self) -> bool:
        return self.history.can_redo()

    # ---- templates ----
    def load_template(self, payload: Mapping[str, Any]) -> BadgeTemplate:
        """Load a saved template (any version). History restarts at the loaded state."""
        template = BadgeTemplate.from_dict(migrate_template(payload))

        self.document = BadgeDocument([e.clone() for e in template.objects])
        self.history.reset(self.document)
        self.active_element_id = None
        self.template_version = template.version or CURRENT_TEMPLATE_VERSION
        self.template_name = template.name
        self.canvas_size = (template.canvas_width, template.canvas_height)
        self.badge_type = template.badge_type if template.badge_type in BADGE_TYPES else "single"
        self.background_image = {
            side: src for side, src in template.background_image.items() if side in SIDES and src
        }
        logger.info("Loaded template %r with %d elements", template.name, len(self.document))
        return template

    def load_template_json(self, raw: str) -> BadgeTemplate:
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as e:
            raise TemplateError(f"Template is not valid JSON: {e}") from e
        return self.load_template(payload)

    def export_template(self) -> BadgeTemplate:
        now = datetime.datetime.now(datetime.timezone.utc).isoformat()
        return BadgeTemplate(
            name=self.template_name,
            version=CURRENT_TEMPLATE_VERSION,
            canvas_width=self.canvas_size[0],
            canvas_height=self.canvas_size[1],
            badge_type=self.badge_type,
            background_image=dict(self.background_image),
            objects=self.document.clone().elements,
            created_at=now,
            updated_at=now,
            version_history=[CURRENT_TEMPLATE_VERSION],
        )

    def clear_canvas(self) -> None:
        self.document = BadgeDocument()
        self.history.reset(self.document)
        self.active_element_id = None

    # ---- canvas / badge configuration ----
    def set_canvas_size(self, width: int, height: int) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"Canvas size must be positive, got {width}x{height}")
        self.canvas_size = (int(width), int(height))

    def set_badge_type(self, badge_type: str) -> None:
        if badge_type not in BADGE_TYPES:
            raise ValueError(f"Unknown badge type: {badge_type!r}")
        self.badge_type = badge_type

    def set_current_side(self, side: str) -> None:
        if side not in SIDES:
            raise ValueError(f"Unknown badge side: {side!r}")
        self.current_side = side

    def set_background_image(self, side: str, src: Optional[str]) -> None:
        if side not in SIDES:
            raise ValueError(f"Unknown badge side: {side!r}")
        if src is None:
            self.background_image.pop(side, None)
        else:
            self.background_image[side] = src

    @property
    def current_background(self) -> Optional[str]:
        return self.background_image.get(self.current_side)

    # ---- dynamic fields ----
    def insert_field(self, token: str) -> bool:
        """
        Insert a dynamic field token into the active element.

        Text: appended to the content after a space.
        QR: replaces both the payload and the dynamic field.
        Anything else: nothing happens and False is returned.
        """
        elem = self.active_element
        if elem is None:
            return False
        if elem.type == "text":
            current = elem.properties.get("content") or ""
            return self.update_element(elem.id, {"content": f"{current} {token}"})
        if elem.type == "qr":
            return self.update_element(elem.id, {"dynamicField": token, "qrData": token})
        return False
