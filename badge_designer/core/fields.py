"""
core/fields.py - Dynamic field ({entity.field}) substitution.

Tokens look like ``{attendee.name}``: an entity and a field name, each made
of word characters, joined by a dot and wrapped in single braces. Lookups
are case-sensitive. A token whose entity or field is missing from the data
is left exactly as written.
"""
from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .models import BadgeElement, SampleData

FIELD_PATTERN = re.compile(r"\{(\w+)\.(\w+)\}", re.ASCII)

# element properties that may carry tokens
CONTENT_PROPERTIES = ("content", "qrData", "dynamicField")


AVAILABLE_FIELDS: List[Dict[str, Any]] = [
    {
        "category": "Attendee",
        "fields": [
            {"value": "{attendee.name}", "label": "Name"},
            {"value": "{attendee.email}", "label": "Email"},
            {"value": "{attendee.company}", "label": "Company"},
            {"value": "{attendee.jobtitle}", "label": "Job Title"},
            {"value": "{attendee.phone}", "label": "Phone"},
            {"value": "{attendee.uuid}", "label": "UUID (for QR)"},
        ],
    },
    {
        "category": "Event",
        "fields": [
            {"value": "{event.name}", "label": "Event Name"},
            {"value": "{event.date}", "label": "Event Date"},
            {"value": "{event.location}", "label": "Location"},
        ],
    },
    {
        "category": "Guest Type",
        "fields": [
            {"value": "{guest_type.name}", "label": "Guest Type Name"},
        ],
    },
]

DEFAULT_SAMPLE_DATA: Dict[str, Dict[str, str]] = {
    "attendee": {
        "name": "John Doe",
        "email": "john.doe@example.com",
        "company": "Acme Corp",
        "jobtitle": "Product Manager",
        "phone": "+1234567890",
        "uuid": "ATT-2024-001-ABC123",
    },
    "event": {
        "name": "Tech Conference 2024",
        "date": "2024-12-15",
        "location": "Convention Center",
    },
    "guest_type": {
        "name": "VIP",
    },
}


def _stringify(value: Any) -> str:
    # 3.0 -> "3" so numeric sample data prints the way it was typed
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def resolve_dynamic_fields(template: Optional[str], sample_data: Optional[SampleData]) -> Optional[str]:
    """
    Replace every ``{entity.field}`` in *template* with the matching value.

    Each token is substituted at most once, in a single left-to-right pass;
    substituted values are never rescanned.
    """
    if not template or not sample_data:
        return template

    def _replace_match(m: re.Match) -> str:
        entity = sample_data.get(m.group(1))
        if not isinstance(entity, Mapping):
            return m.group(0)
        value = entity.get(m.group(2))
        if value is None:
            return m.group(0)
        return _stringify(value)

    return FIELD_PATTERN.sub(_replace_match, template)


def find_field_tokens(text: Optional[str]) -> List[str]:
    """Tokens referenced by *text*, in order of first appearance."""
    if not text or not isinstance(text, str):
        return []
    seen: List[str] = []
    for m in FIELD_PATTERN.finditer(text):
        token = m.group(0)
        if token not in seen:
            seen.append(token)
    return seen


def _element_texts(elem: BadgeElement) -> Iterable[str]:
    props = elem.properties or {}
    for key in CONTENT_PROPERTIES:
        value = props.get(key)
        if isinstance(value, str):
            yield value
    cells = props.get("cells")
    if isinstance(cells, list):
        for cell in cells:
            if isinstance(cell, Mapping) and isinstance(cell.get("content"), str):
                yield cell["content"]


def extract_dynamic_fields(elements: Iterable[BadgeElement]) -> List[str]:
    """
    Distinct field tokens used anywhere in *elements* (text content, QR data,
    table cells), sorted for stable display in the field picker.
    """
    found = set()
    for elem in elements:
        for text in _element_texts(elem):
            found.update(find_field_tokens(text))
    return sorted(found)


def catalog_tokens() -> List[str]:
    """Flat list of every token offered by the field picker."""
    return [f["value"] for group in AVAILABLE_FIELDS for f in group["fields"]]
