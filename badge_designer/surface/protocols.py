# badge_designer/surface/protocols.py
"""
Typing-only Protocol for the drawing surface the render pass targets.

This is a **static guardrail only**; it is never checked at runtime.
The core imports it under TYPE_CHECKING only.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional, Protocol

if TYPE_CHECKING:
    from ..core.primitives import Primitive
    from ..core.render import RenderedBadge


class DrawingSurface(Protocol):
    """Anything that can draw primitives: the Qt scene, a test recorder, ..."""

    def clear(self) -> None: ...
    def draw(self, prim: "Primitive", z: float = ...) -> Optional[Any]: ...
    def show(self, rendered: "RenderedBadge") -> None: ...
