"""
core/images.py - Load raster sources for image and QR elements.

Supported sources:
  - data URLs (``data:image/png;base64,...``, also non-base64 payloads)
  - ``file://`` URLs and plain local paths
  - ``http(s)://`` URLs, through an injected ``fetch`` callable

Remote sources are ordinary sources here, not an error path; the core just
does no network I/O of its own, so without a fetcher they cannot load.
"""
from __future__ import annotations

import asyncio
import base64
import io
import logging
import os
from typing import Callable, Optional
from urllib.parse import unquote, unquote_to_bytes, urlparse

from PIL import Image

from .exceptions import ImageLoadError, map_exception

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], bytes]


def _image_error(e: BaseException) -> ImageLoadError:
    mapped = map_exception(e)
    if isinstance(mapped, ImageLoadError):
        return mapped
    err = ImageLoadError(f"Image could not be decoded: {e}")
    err.__cause__ = e
    return err


def decode_data_url(url: str) -> bytes:
    """Payload bytes of a ``data:`` URL."""
    header, sep, payload = url.partition(",")
    if not sep or not header.lower().startswith("data:"):
        raise ImageLoadError("Malformed data URL.")
    if header.lower().endswith(";base64"):
        try:
            return base64.b64decode(payload, validate=False)
        except ValueError as e:
            raise _image_error(e) from e
    return unquote_to_bytes(payload)


def decode_image(raw: bytes) -> Image.Image:
    """Decode *raw* into a fully loaded RGBA Pillow image."""
    try:
        img = Image.open(io.BytesIO(raw))
        img.load()
        return img.convert("RGBA")
    except Exception as e:
        raise _image_error(e) from e


def _is_remote(src: str) -> bool:
    return urlparse(src).scheme.lower() in {"http", "https"}


class ImageLoader:
    """
    Turns an element ``src`` into a Pillow image.

    ``fetch`` receives remote URLs and returns their bytes; ``base_dir`` is
    used to resolve relative file paths.
    """

    def __init__(self, fetch: Optional[Fetcher] = None, base_dir: Optional[str] = None):
        self.fetch = fetch
        self.base_dir = base_dir

    def _resolve_path(self, src: str) -> str:
        if src.lower().startswith("file://"):
            src = unquote(urlparse(src).path)
        if not os.path.isabs(src) and self.base_dir:
            src = os.path.normpath(os.path.join(self.base_dir, src))
        return src

    def read_bytes(self, src: str) -> bytes:
        if src.lower().startswith("data:"):
            return decode_data_url(src)

        if _is_remote(src):
            if self.fetch is None:
                raise ImageLoadError(f"No fetcher configured for remote image {src!r}.")
            try:
                return self.fetch(src)
            except ImageLoadError:
                raise
            except Exception as e:
                err = ImageLoadError(f"Failed to fetch image {src!r}: {e}")
                raise err from e

        path = self._resolve_path(src)
        try:
            with open(path, "rb") as fh:
                return fh.read()
        except OSError as e:
            raise _image_error(e) from e

    def load(self, src: str) -> Image.Image:
        """Blocking load + decode. Raises ImageLoadError on any failure."""
        if not src:
            raise ImageLoadError("Image source is empty.")
        img = decode_image(self.read_bytes(src))
        logger.debug("Loaded image %s (%dx%d)", src[:60], img.width, img.height)
        return img

    async def load_async(self, src: str) -> Image.Image:
        """Load off the event loop so slow sources only delay their own element."""
        return await asyncio.to_thread(self.load, src)
