from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Mapping, Optional

import json
import logging

from PySide6.QtCore import QSettings

logger = logging.getLogger(__name__)

# lower bounds for numeric settings; smaller stored values are ignored
_MINIMUMS = {
    "history_limit": 1,
    "max_group_depth": 0,
    "default_qr_size": 1,
    "qr_border": 0,
    "canvas_width": 1,
    "canvas_height": 1,
    "corner_size": 0,
}


@dataclass
class DesignerSettings:
    """
    Tunables shared by the renderers, the history and the editor store.

    Stored as one JSON blob under the "designer_settings" key so new fields
    can be added without migrating old settings files.
    """
    history_limit: int = 20
    max_group_depth: int = 1            # nested groups rendered below a top-level group

    default_text: str = "Double-click to edit"
    default_qr_data: str = "https://validity.et"
    default_qr_size: int = 150
    qr_border: int = 1

    canvas_width: int = 400
    canvas_height: int = 600

    # selection affordances (set on every primitive, interpreted by the surface)
    corner_size: int = 10
    corner_color: str = "#2563eb"
    corner_stroke_color: str = "#1e40af"
    border_color: str = "#2563eb"

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "DesignerSettings":
        """
        Build settings from a stored blob.

        Unknown keys are ignored. A value of the wrong type, or below its
        minimum, keeps the default. Anything but a JSON object raises
        TypeError.
        """
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise TypeError(f"Designer settings must be a JSON object, not {type(data).__name__}")

        values: Dict[str, Any] = {}
        for f in fields(cls):
            if f.name not in data:
                continue
            value = data[f.name]
            expected = type(f.default)
            # bool is an int subclass; JSON true/false is never a valid count
            if isinstance(value, bool) or not isinstance(value, expected):
                logger.warning("Ignoring setting %s=%r (expected %s)", f.name, value, expected.__name__)
                continue
            if value < _MINIMUMS.get(f.name, value):
                logger.warning("Ignoring setting %s=%r (minimum %s)", f.name, value, _MINIMUMS[f.name])
                continue
            values[f.name] = value
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _settings() -> QSettings:
    return QSettings("BadgeDesigner", "BadgeDesigner")


def load_settings(store: QSettings | None = None) -> DesignerSettings:
    """
    Load designer settings from QSettings.

    Nothing stored yet, or a blob that no longer parses, gives the defaults.
    """
    s = store if store is not None else _settings()
    raw = s.value("designer_settings", "", type=str)
    if not raw:
        return DesignerSettings()
    try:
        return DesignerSettings.from_dict(json.loads(raw))
    except (ValueError, TypeError) as e:
        logger.warning("Ignoring unreadable designer settings: %s", e)
        return DesignerSettings()


def save_settings(settings: DesignerSettings, store: QSettings | None = None) -> None:
    """Persist designer settings to QSettings as JSON."""
    s = store if store is not None else _settings()
    s.setValue("designer_settings", json.dumps(settings.to_dict(), indent=2))
