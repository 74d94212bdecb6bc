# badge_designer/core/exceptions.py
"""
Consistent error types for the badge rendering core.

No Qt dependencies; this module is pure Python so it can be used
in non-GUI contexts (tests, batch renders, template tooling).
"""
from __future__ import annotations

import binascii

from PIL import UnidentifiedImageError
from qrcode.exceptions import DataOverflowError


class BadgeError(Exception):
    """Base exception for all badge designer errors."""


class ImageLoadError(BadgeError):
    """An image source could not be fetched or decoded."""


class QRGenerationError(BadgeError):
    """The QR encoder rejected the payload or failed to produce an image."""


class TemplateError(BadgeError):
    """A template payload is malformed and cannot be loaded."""


# ---------------------------------------------------------------------------
# Error-mapping helpers
# ---------------------------------------------------------------------------

_IMAGE_PATTERNS: list[tuple[type, str]] = [
    (UnidentifiedImageError, "Image data is not in a recognised format."),
    (binascii.Error, "Image data URL has invalid base64 content."),
    (FileNotFoundError, "Image file was not found."),
    (PermissionError, "Image file could not be read (permission denied)."),
    (OSError, "Image could not be read."),
]


def _chain(new: BadgeError, cause: BaseException) -> BadgeError:
    """Attach *cause* as ``__cause__`` (mimics ``raise new from cause``)."""
    new.__cause__ = cause
    return new


def map_exception(exc: BaseException) -> BadgeError:
    """
    Wrap a low-level exception into the appropriate ``BadgeError`` subclass
    with a user-friendly message while preserving the original as ``__cause__``.

    If *exc* is already a ``BadgeError`` it is returned unchanged.
    """
    if isinstance(exc, BadgeError):
        return exc

    if isinstance(exc, DataOverflowError):
        return _chain(QRGenerationError("QR payload is too long to encode."), exc)

    for exc_type, message in _IMAGE_PATTERNS:
        if isinstance(exc, exc_type):
            return _chain(ImageLoadError(message), exc)

    # Malformed template data surfaces as KeyError/TypeError/ValueError
    if isinstance(exc, (KeyError, TypeError, ValueError)):
        return _chain(TemplateError(str(exc)), exc)

    return _chain(BadgeError(str(exc)), exc)


def friendly_message(exc: BaseException) -> str:
    """Return a short, UI-safe description for *exc*."""
    mapped = map_exception(exc)
    return str(mapped)
