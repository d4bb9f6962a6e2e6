"""
Image decoding and upload validation.

Turns uploaded bytes into an RGB Pillow image plus basic metadata, and records
the ``size`` and ``format`` checks for the audit trail.
"""
from __future__ import annotations

import io
from dataclasses import dataclass
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

from .checks import CHECK_FORMAT, CHECK_SIZE, CheckResult
from .config import settings
from .errors import DecodeError


@dataclass
class DecodedImage:
    """A decoded upload normalized to RGB."""
    format: str
    width: int
    height: int
    image: Image.Image

    @property
    def mode(self) -> str:
        return self.image.mode


def decode_image(data: bytes, *, max_bytes: Optional[int] = None) -> DecodedImage:
    """
    Decode raw bytes as a raster image.

    Raises:
        DecodeError: if the payload is larger than ``max_bytes`` or is not an
            image format Pillow recognizes.
    """
    if max_bytes is None:
        max_bytes = settings.verify_max_file_size
    if len(data) > max_bytes:
        raise DecodeError(f"Image is {len(data)} bytes, limit is {max_bytes}")
    if not data:
        raise DecodeError("Empty payload")

    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            fmt = img.format
            rgb = img.convert("RGB")
    except UnidentifiedImageError as e:
        # Pillow's message embeds the BytesIO repr, which differs per call
        raise DecodeError("Unrecognized image format") from e
    except Image.DecompressionBombError as e:
        raise DecodeError(str(e)) from e
    except (OSError, ValueError, SyntaxError) as e:
        # Truncated or corrupt payloads surface as OSError/SyntaxError from the plugins
        raise DecodeError(f"Cannot decode image: {e}") from e

    if not fmt:
        raise DecodeError("Unrecognized image format")

    width, height = rgb.size
    return DecodedImage(format=fmt, width=width, height=height, image=rgb)


def check_size(data: bytes, max_bytes: int) -> CheckResult:
    """Record the ``size`` check for an upload."""
    size = len(data)
    return CheckResult(CHECK_SIZE, size <= max_bytes, {"size": size, "max": max_bytes})


def check_format(data: bytes, max_bytes: int) -> Tuple[CheckResult, Optional[DecodedImage]]:
    """
    Record the ``format`` check, returning the decoded image when it succeeds.
    """
    if len(data) > max_bytes:
        return CheckResult(CHECK_FORMAT, False, {"skipped": "too-large"}), None
    try:
        decoded = decode_image(data, max_bytes=max_bytes)
    except DecodeError as e:
        return CheckResult(CHECK_FORMAT, False, {"error": str(e)}), None
    info = {
        "format": decoded.format.lower(),
        "width": decoded.width,
        "height": decoded.height,
    }
    return CheckResult(CHECK_FORMAT, True, info), decoded
