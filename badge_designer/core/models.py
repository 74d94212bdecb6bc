from __future__ import annotations

import copy
import datetime
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Union

from .exceptions import TemplateError


# Entity name -> field name -> value, e.g. {"attendee": {"name": "John Doe"}}
SampleData = Mapping[str, Mapping[str, Union[str, int, float]]]

ELEMENT_TYPES = ("text", "qr", "image", "shape", "line", "polygon", "table", "group")

CURRENT_TEMPLATE_VERSION = "2.1"


# ---------- Core element model ----------

@dataclass
class BadgeElement:
    id: str
    type: str                       # one of ELEMENT_TYPES
    # wire-format property bag (camelCase keys, JSON-compatible values)
    properties: Dict[str, Any] = field(default_factory=dict)

    def clone(self) -> "BadgeElement":
        return BadgeElement(self.id, self.type, copy.deepcopy(self.properties))

    # ---- helpers used by the editor / persistence ----
    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "properties": copy.deepcopy(self.properties),
        }

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "BadgeElement":
        if not isinstance(d, Mapping):
            raise TemplateError("Badge element must be a JSON object.")
        if "id" not in d:
            raise TemplateError("Badge element is missing its 'id'.")
        props = d.get("properties") or {}
        if not isinstance(props, Mapping):
            raise TemplateError(f"Element {d['id']!r} has non-object properties.")
        return BadgeElement(
            id=str(d["id"]),
            type=str(d.get("type") or "text"),
            properties=copy.deepcopy(dict(props)),
        )


# ---------- Document ----------

class BadgeDocument:
    """
    Ordered sequence of elements. Position in the sequence is the z-order:
    index 0 is drawn first (back-most).
    """

    def __init__(self, elements: Optional[List[BadgeElement]] = None):
        self.elements: List[BadgeElement] = list(elements or [])

    def __len__(self) -> int:
        return len(self.elements)

    def __iter__(self) -> Iterator[BadgeElement]:
        return iter(self.elements)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BadgeDocument):
            return NotImplemented
        return self.elements == other.elements

    def __repr__(self) -> str:
        return f"BadgeDocument({[e.id for e in self.elements]!r})"

    def clone(self) -> "BadgeDocument":
        """Structurally independent copy; later edits never reach the clone."""
        return BadgeDocument([e.clone() for e in self.elements])

    def find(self, element_id: str) -> Optional[BadgeElement]:
        for elem in self.elements:
            if elem.id == element_id:
                return elem
        return None

    def index_of(self, element_id: str) -> int:
        for i, elem in enumerate(self.elements):
            if elem.id == element_id:
                return i
        return -1

    def to_list(self) -> List[Dict[str, Any]]:
        return [e.to_dict() for e in self.elements]

    @staticmethod
    def from_list(items: List[Mapping[str, Any]]) -> "BadgeDocument":
        return BadgeDocument([BadgeElement.from_dict(x) for x in items])


# ---------- Template / wire format ----------

def _now_iso() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


@dataclass
class BadgeTemplate:
    name: str = "Badge Template"
    version: str = CURRENT_TEMPLATE_VERSION

    # canvas
    canvas_width: int = 400
    canvas_height: int = 600
    badge_type: str = "single"      # single|double
    background_image: Dict[str, str] = field(default_factory=dict)  # front/back -> src

    # content
    objects: List[BadgeElement] = field(default_factory=list)

    # metadata
    created_at: str = field(default_factory=_now_iso)
    updated_at: str = field(default_factory=_now_iso)
    version_history: List[str] = field(default_factory=lambda: [CURRENT_TEMPLATE_VERSION])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "canvasSize": {"width": self.canvas_width, "height": self.canvas_height},
            "badgeType": self.badge_type,
            "backgroundImage": dict(self.background_image),
            "objects": [e.to_dict() for e in self.objects],
            "metadata": {
                "createdAt": self.created_at,
                "updatedAt": self.updated_at,
                "versionHistory": list(self.version_history),
            },
        }

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "BadgeTemplate":
        """
        Build a template from an already-migrated payload.

        Unknown top-level keys are ignored. Use ``migrate_template`` first
        for payloads that may predate the current version.
        """
        if not isinstance(d, Mapping):
            raise TemplateError("Template payload must be a JSON object.")

        size = d.get("canvasSize") or {}
        meta = d.get("metadata") or {}
        objects = d.get("objects") or []
        if not isinstance(size, Mapping):
            raise TemplateError("Template 'canvasSize' must be a JSON object.")
        if not isinstance(meta, Mapping):
            raise TemplateError("Template 'metadata' must be a JSON object.")
        if not isinstance(objects, list):
            raise TemplateError("Template 'objects' must be a list.")

        try:
            t = BadgeTemplate(
                name=d.get("name", "Badge Template"),
                version=d.get("version", CURRENT_TEMPLATE_VERSION),
                canvas_width=int(size.get("width", 400)),
                canvas_height=int(size.get("height", 600)),
                badge_type=d.get("badgeType", "single"),
                background_image=dict(d.get("backgroundImage") or {}),
            )
        except (AttributeError, TypeError, ValueError) as e:
            raise TemplateError(f"Template canvas settings are malformed: {e}") from e
        t.objects = BadgeDocument.from_list(objects).elements
        if meta.get("createdAt"):
            t.created_at = meta["createdAt"]
        if meta.get("updatedAt"):
            t.updated_at = meta["updatedAt"]
        if isinstance(meta.get("versionHistory"), list):
            t.version_history = list(meta["versionHistory"])
        return t

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @staticmethod
    def from_json(raw: str) -> "BadgeTemplate":
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise TemplateError(f"Template is not valid JSON: {e}") from e
        return BadgeTemplate.from_dict(data)
