"""
core/render.py - The render pass over a whole badge document.

Every element is rendered concurrently, but the output keeps document
order: an element's z is its index in the document no matter when its
render finished. Elements that render to nothing, or whose render failed,
are left out and reported in ``skipped``.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, List, Optional, Tuple

from .images import ImageLoader
from .models import BadgeElement
from .primitives import Primitive, RasterPrimitive, SelectionStyle
from .renderers import RenderContext, render_element

if TYPE_CHECKING:
    from ..surface.protocols import DrawingSurface

logger = logging.getLogger(__name__)


@dataclass
class Layer:
    z: int
    element_id: str
    primitive: Primitive


@dataclass
class RenderedBadge:
    layers: List[Layer] = field(default_factory=list)
    background: Optional[RasterPrimitive] = None
    skipped: List[str] = field(default_factory=list)
    canvas_size: Tuple[int, int] = (400, 600)

    @property
    def primitives(self) -> List[Primitive]:
        return [layer.primitive for layer in self.layers]


async def _render_safely(element: BadgeElement, ctx: RenderContext) -> Optional[Primitive]:
    try:
        return await render_element(element, ctx)
    except asyncio.CancelledError:
        raise
    except Exception as e:
        logger.warning("Element %s (%s) omitted from render: %s", element.id, element.type, e)
        return None


async def render_background(
    src: str,
    canvas_size: Tuple[int, int],
    loader: Optional[ImageLoader] = None,
) -> Optional[RasterPrimitive]:
    """
    Load a background image scaled to cover the whole canvas while keeping
    its aspect ratio. Failures are logged and give None.
    """
    if not src:
        return None
    loader = loader or ImageLoader()
    try:
        image = await loader.load_async(src)
    except Exception as e:
        logger.warning("Failed to load background image: %s", e)
        return None

    width, height = canvas_size
    scale = max(width / (image.width or width), height / (image.height or height))
    return RasterPrimitive(
        image=image,
        src=src,
        left=0.0,
        top=0.0,
        scale_x=scale,
        scale_y=scale,
        selection=SelectionStyle(selectable=False, has_controls=False, has_borders=False),
    )


async def render_document(
    elements: Iterable[BadgeElement],
    ctx: Optional[RenderContext] = None,
    *,
    background_src: Optional[str] = None,
    canvas_size: Optional[Tuple[int, int]] = None,
) -> RenderedBadge:
    """Render every element of a document (plus an optional background)."""
    elements = list(elements)
    if ctx is None:
        ctx = RenderContext(elements=elements)
    elif list(ctx.elements) != elements:
        # group children must resolve against the document being rendered
        ctx = RenderContext(
            elements=elements,
            sample_data=ctx.sample_data,
            settings=ctx.settings,
            qr_queue=ctx.qr_queue,
            image_loader=ctx.image_loader,
        )
    size = canvas_size or (ctx.settings.canvas_width, ctx.settings.canvas_height)

    jobs = [_render_safely(elem, ctx) for elem in elements]
    if background_src:
        jobs.append(render_background(background_src, size, ctx.image_loader))
    results = await asyncio.gather(*jobs)

    rendered = RenderedBadge(canvas_size=size)
    if background_src:
        rendered.background = results.pop()

    for z, (elem, primitive) in enumerate(zip(elements, results)):
        if primitive is None:
            rendered.skipped.append(elem.id)
            continue
        rendered.layers.append(Layer(z=z, element_id=elem.id, primitive=primitive))
    return rendered


class RenderScheduler:
    """
    Runs render passes and drops results that were overtaken by a newer
    request (document edited or switched while a slow image or QR load was
    still in flight).
    """

    def __init__(self, ctx: Optional[RenderContext] = None, surface: Optional["DrawingSurface"] = None):
        self.ctx = ctx or RenderContext()
        self.surface = surface
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def invalidate(self) -> None:
        self._generation += 1

    async def render(
        self,
        elements: Iterable[BadgeElement],
        *,
        background_src: Optional[str] = None,
        canvas_size: Optional[Tuple[int, int]] = None,
    ) -> Optional[RenderedBadge]:
        self._generation += 1
        generation = self._generation
        rendered = await render_document(
            elements,
            self.ctx,
            background_src=background_src,
            canvas_size=canvas_size,
        )
        if generation != self._generation:
            logger.debug("Discarding stale render pass %d (current %d)", generation, self._generation)
            return None
        if self.surface is not None:
            self.surface.show(rendered)
        return rendered
