from __future__ import annotations

"""
QR code generation.

``encode_qr_data_url`` is the default encode primitive: it turns a payload
into a PNG data URL using the `qrcode` library and Pillow. The encoder is
treated as one shared, non-reentrant resource, so badge renders never call
it directly; they go through a ``QRCodeQueue``, which runs one encode at a
time in submission order.
"""

import asyncio
import base64
import inspect
import io
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Deque, Optional, Union

import qrcode
from PIL import Image

from .exceptions import QRGenerationError, map_exception

logger = logging.getLogger(__name__)

# (data, size) -> data URL; may be a plain function or a coroutine function
QREncoder = Callable[[str, int], Union[str, Awaitable[str]]]

MAX_QR_SIZE = 1200


# --- Validation -----------------------------------------------------------


def validate_qr_data(data: str) -> str:
    data = data or ""
    if not data.strip():
        raise QRGenerationError("QR Code data cannot be empty.")
    return data


def _resample_nearest():
    # keep module edges crisp when scaling
    if hasattr(Image, "Resampling"):
        return Image.Resampling.NEAREST
    return Image.NEAREST


# --- Encode primitive -----------------------------------------------------


def encode_qr_data_url(data: str, size: int = 150, *, border: int = 1) -> str:
    """
    Encode *data* as a black-on-white QR code of *size* x *size* pixels and
    return it as a ``data:image/png;base64,...`` URL.
    """
    data = validate_qr_data(data)
    size = max(1, min(int(size or 150), MAX_QR_SIZE))

    try:
        qr = qrcode.QRCode(
            version=None,
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=10,
            border=border,
        )
        qr.add_data(data)
        qr.make(fit=True)
        pil_img = qr.make_image(fill_color="black", back_color="white")
        if hasattr(pil_img, "get_image"):
            pil_img = pil_img.get_image()
        pil_img = pil_img.convert("RGB").resize((size, size), _resample_nearest())

        buf = io.BytesIO()
        pil_img.save(buf, format="PNG")
    except QRGenerationError:
        raise
    except Exception as e:
        mapped = map_exception(e)
        if not isinstance(mapped, QRGenerationError):
            mapped = QRGenerationError(f"QR encoding failed: {e}")
            mapped.__cause__ = e
        raise mapped

    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")


# --- Queue ----------------------------------------------------------------


@dataclass
class _QRRequest:
    data: str
    size: int
    future: "asyncio.Future[str]"


@dataclass
class QueueState:
    pending: Deque[_QRRequest] = field(default_factory=deque)
    processing: bool = False
    completed: int = 0
    failed: int = 0


class QRCodeQueue:
    """
    FIFO queue in front of a single QR encoder.

    - a request arriving while idle starts the drain loop immediately
    - a request arriving while busy is appended and served in order
    - each request resolves or fails on its own; a failure never stops
      the drain loop

    Bound to the event loop it is first used on.
    """

    def __init__(self, encoder: Optional[QREncoder] = None):
        self.encoder: QREncoder = encoder or encode_qr_data_url
        self.state = QueueState()
        self._drain_task: Optional[asyncio.Task] = None

    @property
    def busy(self) -> bool:
        return self.state.processing

    def __len__(self) -> int:
        return len(self.state.pending)

    def enqueue(self, data: str, size: int) -> "asyncio.Future[str]":
        """Append a request and make sure the drain loop is running."""
        loop = asyncio.get_running_loop()
        future: asyncio.Future[str] = loop.create_future()
        self.state.pending.append(_QRRequest(data, int(size), future))
        if not self.state.processing:
            self.state.processing = True
            self._drain_task = loop.create_task(self._drain())
        return future

    async def generate(self, data: str, size: int = 150) -> str:
        """Queue an encode and wait for its data URL."""
        return await self.enqueue(data, size)

    async def _encode(self, data: str, size: int) -> str:
        if inspect.iscoroutinefunction(self.encoder):
            return await self.encoder(data, size)
        result = await asyncio.to_thread(self.encoder, data, size)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def _drain(self) -> None:
        try:
            while self.state.pending:
                req = self.state.pending.popleft()
                if req.future.done():
                    # caller went away before its turn
                    continue
                logger.debug("Encoding QR (%d chars, %dpx); %d waiting",
                             len(req.data), req.size, len(self.state.pending))
                try:
                    url = await self._encode(req.data, req.size)
                except Exception as e:
                    self.state.failed += 1
                    logger.warning("QR encode failed for %r: %s", req.data[:40], e)
                    if not req.future.done():
                        req.future.set_exception(e)
                else:
                    self.state.completed += 1
                    if not req.future.done():
                        req.future.set_result(url)
        finally:
            self.state.processing = False
