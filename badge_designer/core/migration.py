"""
core/migration.py - Upgrade saved templates to the current wire format.

  1.0  flat element list ("elements": [{x, y, rotation, text, ...}])
  2.0  "objects": [{id, type, properties}] plus metadata
  2.1  every object carries opacity (default 1) and shadow (default None)

A payload without a version is treated as 1.0.
"""
from __future__ import annotations

import copy
import datetime
import logging
import uuid
from typing import Any, Dict, List, Mapping

from .exceptions import TemplateError
from .models import CURRENT_TEMPLATE_VERSION

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


def _convert_v1_element(el: Mapping[str, Any]) -> Dict[str, Any]:
    kind = el.get("type") or "text"
    props: Dict[str, Any] = {
        "left": el.get("x") or 0,
        "top": el.get("y") or 0,
        "angle": el.get("rotation") or 0,
    }

    if kind == "text":
        props.update({
            "content": el.get("text") or "",
            "fontSize": el.get("fontSize") or 24,
            "fontFamily": el.get("fontFamily") or "Arial",
            "fill": el.get("fill") or "#000000",
            "fontWeight": el.get("fontWeight"),
            "fontStyle": el.get("fontStyle"),
        })
    elif kind == "qr":
        props.update({
            "qrData": el.get("data") or "",
            "size": el.get("size") or 150,
        })
    elif kind == "image":
        props.update({
            "src": el.get("src") or "",
            "width": el.get("width"),
            "height": el.get("height"),
        })

    return {
        "id": el.get("id") or str(uuid.uuid4()),
        "type": kind,
        "properties": {k: v for k, v in props.items() if v is not None},
    }


def migrate_v1_to_v2(template: Mapping[str, Any]) -> Dict[str, Any]:
    elements = template.get("elements") or []
    if not isinstance(elements, list):
        raise TemplateError("Version 1.0 template 'elements' must be a list.")
    return {
        "name": template.get("name", "Badge Template"),
        "version": "2.0",
        "objects": [_convert_v1_element(el) for el in elements if isinstance(el, Mapping)],
        "metadata": {
            "createdAt": template.get("createdAt") or _now_iso(),
            "updatedAt": _now_iso(),
            "versionHistory": ["1.0", "2.0"],
        },
    }


def migrate_v2_to_v2_1(template: Mapping[str, Any]) -> Dict[str, Any]:
    migrated = copy.deepcopy(dict(template))
    raw_objects = migrated.get("objects") or []
    if not isinstance(raw_objects, list):
        raise TemplateError("Version 2.0 template 'objects' must be a list.")

    objects: List[Dict[str, Any]] = []
    for obj in raw_objects:
        if not isinstance(obj, Mapping):
            raise TemplateError("Version 2.0 template objects must be JSON objects.")
        props = obj.get("properties") or {}
        if not isinstance(props, Mapping):
            raise TemplateError(f"Element {obj.get('id')!r} has non-object properties.")
        props = dict(props)
        props.setdefault("opacity", 1)
        props.setdefault("shadow", None)
        objects.append({**obj, "properties": props})

    meta = migrated.get("metadata") or {}
    if not isinstance(meta, Mapping):
        raise TemplateError("Template 'metadata' must be a JSON object.")
    meta = dict(meta)
    meta["updatedAt"] = _now_iso()
    meta["versionHistory"] = list(meta.get("versionHistory") or []) + ["2.1"]

    migrated.update(version="2.1", objects=objects, metadata=meta)
    return migrated


def migrate_template(template: Mapping[str, Any]) -> Dict[str, Any]:
    """Bring *template* up to CURRENT_TEMPLATE_VERSION; newer input passes through."""
    if not isinstance(template, Mapping):
        raise TemplateError("Template payload must be a JSON object.")

    migrated: Dict[str, Any] = dict(template)
    version = str(migrated.get("version") or "1.0")

    if version == "1.0":
        logger.info("Migrating template %r from 1.0", migrated.get("name"))
        migrated = migrate_v1_to_v2(migrated)
    if migrated.get("version") == "2.0":
        migrated = migrate_v2_to_v2_1(migrated)

    if migrated.get("version") != CURRENT_TEMPLATE_VERSION:
        logger.warning("Template version %r is not %s; loading as-is",
                       migrated.get("version"), CURRENT_TEMPLATE_VERSION)
    return migrated
