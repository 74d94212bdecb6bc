"""
Tests for the QR encode primitive and the serialising QR queue.

The queue tests swap in a fake async encoder with per-payload latency so
ordering and exclusivity can be observed without the real encoder.
"""
from __future__ import annotations

import asyncio
import base64
import io

import pytest
from PIL import Image

from badge_designer.core.exceptions import QRGenerationError
from badge_designer.core.qrcodes import (
    MAX_QR_SIZE,
    QRCodeQueue,
    encode_qr_data_url,
    validate_qr_data,
)


def _decode(url: str) -> Image.Image:
    header, _, payload = url.partition(",")
    assert header == "data:image/png;base64"
    return Image.open(io.BytesIO(base64.b64decode(payload)))


class RecordingEncoder:
    """Async encoder that records start/finish order and overlap."""

    def __init__(self, delays=None, fail_on=()):
        self.delays = delays or {}
        self.fail_on = set(fail_on)
        self.started = []
        self.finished = []
        self.active = 0
        self.max_active = 0

    async def __call__(self, data: str, size: int) -> str:
        self.started.append(data)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delays.get(data, 0))
            if data in self.fail_on:
                raise QRGenerationError(f"cannot encode {data}")
            return f"url:{data}:{size}"
        finally:
            self.active -= 1
            self.finished.append(data)


# ---------------------------------------------------------------------------
# Encode primitive
# ---------------------------------------------------------------------------

class TestEncodeQrDataUrl:
    def test_produces_png_data_url_of_requested_size(self):
        url = encode_qr_data_url("https://validity.et", 150)
        img = _decode(url)
        assert img.format == "PNG"
        assert img.size == (150, 150)

    def test_black_on_white(self):
        img = _decode(encode_qr_data_url("hello", 120)).convert("RGB")
        colours = {c for _, c in img.getcolors(maxcolors=16)}
        assert colours <= {(0, 0, 0), (255, 255, 255)}
        assert (0, 0, 0) in colours

    def test_size_is_clamped(self):
        img = _decode(encode_qr_data_url("hello", MAX_QR_SIZE * 4))
        assert img.size == (MAX_QR_SIZE, MAX_QR_SIZE)

    @pytest.mark.parametrize("data", ["", "   ", None])
    def test_empty_payload_rejected(self, data):
        with pytest.raises(QRGenerationError):
            encode_qr_data_url(data, 150)

    def test_validate_passes_data_through(self):
        assert validate_qr_data("abc") == "abc"

    def test_oversized_payload_maps_to_qr_error(self):
        with pytest.raises(QRGenerationError):
            encode_qr_data_url("x" * 5000, 150)


# ---------------------------------------------------------------------------
# Queue
# ---------------------------------------------------------------------------

class TestQRCodeQueue:
    def test_completes_in_submission_order(self):
        # later requests are faster; they must still wait their turn
        enc = RecordingEncoder(delays={"a": 0.05, "b": 0.02, "c": 0.0})
        queue = QRCodeQueue(enc)

        async def run():
            futures = [queue.enqueue(d, 100) for d in ("a", "b", "c")]
            return await asyncio.gather(*futures)

        results = asyncio.run(run())
        assert results == ["url:a:100", "url:b:100", "url:c:100"]
        assert enc.started == ["a", "b", "c"]
        assert enc.finished == ["a", "b", "c"]

    def test_never_runs_two_encodes_at_once(self):
        enc = RecordingEncoder(delays={str(i): 0.01 for i in range(6)})
        queue = QRCodeQueue(enc)

        async def run():
            return await asyncio.gather(*(queue.generate(str(i), 50) for i in range(6)))

        asyncio.run(run())
        assert enc.max_active == 1

    def test_failure_is_isolated(self):
        enc = RecordingEncoder(fail_on={"bad"})
        queue = QRCodeQueue(enc)

        async def run():
            futures = [queue.enqueue(d, 10) for d in ("ok1", "bad", "ok2")]
            return await asyncio.gather(*futures, return_exceptions=True)

        first, second, third = asyncio.run(run())
        assert first == "url:ok1:10"
        assert isinstance(second, QRGenerationError)
        assert third == "url:ok2:10"
        assert queue.state.completed == 2
        assert queue.state.failed == 1

    def test_goes_idle_after_draining(self):
        enc = RecordingEncoder()
        queue = QRCodeQueue(enc)

        async def run():
            await queue.generate("x", 10)
            await asyncio.sleep(0)
            return queue.busy, len(queue)

        assert asyncio.run(run()) == (False, 0)

    def test_request_after_idle_restarts_drain(self):
        enc = RecordingEncoder()
        queue = QRCodeQueue(enc)

        async def run():
            first = await queue.generate("one", 10)
            await asyncio.sleep(0)
            second = await queue.generate("two", 10)
            return first, second

        assert asyncio.run(run()) == ("url:one:10", "url:two:10")

    def test_cancelled_request_is_skipped(self):
        enc = RecordingEncoder(delays={"slow": 0.02})
        queue = QRCodeQueue(enc)

        async def run():
            slow = queue.enqueue("slow", 10)
            dropped = queue.enqueue("dropped", 10)
            last = queue.enqueue("last", 10)
            dropped.cancel()
            return await asyncio.gather(slow, last)

        assert asyncio.run(run()) == ["url:slow:10", "url:last:10"]
        assert "dropped" not in enc.started

    def test_sync_encoder_runs_off_loop(self):
        calls = []

        def encoder(data, size):
            calls.append((data, size))
            return f"sync:{data}"

        queue = QRCodeQueue(encoder)
        assert asyncio.run(queue.generate("p", 42)) == "sync:p"
        assert calls == [("p", 42)]

    def test_default_encoder_is_real(self):
        queue = QRCodeQueue()
        url = asyncio.run(queue.generate("hello", 80))
        assert _decode(url).size == (80, 80)
