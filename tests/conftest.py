from __future__ import annotations

import io
from fractions import Fraction
from typing import Optional

import numpy as np
import piexif
import pytest
from PIL import Image


def block_image(seed: int, size: int = 256) -> Image.Image:
    """8x8 grid of dark/bright gray cells, half of each, shuffled by ``seed``.

    Every cell sits far from the grid mean, so fingerprints are stable under
    recompression while different seeds give very different fingerprints.
    """
    rng = np.random.default_rng(seed)
    bits = rng.permutation(np.array([0] * 32 + [1] * 32)).reshape(8, 8)
    grid = np.where(bits == 1, 220, 30).astype(np.uint8)
    cell = size // 8
    pixels = np.kron(grid, np.ones((cell, cell), dtype=np.uint8))
    return Image.fromarray(np.stack([pixels] * 3, axis=-1), "RGB")


def photo_image(seed: int = 0, size: int = 256) -> Image.Image:
    """Smooth gradient with mild sensor-like noise."""
    rng = np.random.default_rng(seed)
    y, x = np.mgrid[0:size, 0:size].astype(np.float64)
    base = np.stack(
        [60 + 120 * x / size, 80 + 100 * y / size, 140 - 60 * (x + y) / (2 * size)],
        axis=-1,
    )
    noisy = base + rng.normal(0, 3, base.shape)
    return Image.fromarray(np.clip(noisy, 0, 255).astype(np.uint8), "RGB")


def _to_rational(value: float, denominator: int = 10000):
    frac = Fraction(value).limit_denominator(denominator)
    return (frac.numerator, frac.denominator)


def gps_exif(lat: float, lon: float) -> bytes:
    def dms(value: float):
        value = abs(value)
        degrees = int(value)
        minutes_full = (value - degrees) * 60
        minutes = int(minutes_full)
        seconds = (minutes_full - minutes) * 60
        return ((degrees, 1), (minutes, 1), _to_rational(seconds))

    gps_ifd = {
        piexif.GPSIFD.GPSLatitudeRef: b"N" if lat >= 0 else b"S",
        piexif.GPSIFD.GPSLatitude: dms(lat),
        piexif.GPSIFD.GPSLongitudeRef: b"E" if lon >= 0 else b"W",
        piexif.GPSIFD.GPSLongitude: dms(lon),
    }
    return piexif.dump({"0th": {}, "Exif": {}, "GPS": gps_ifd, "1st": {}})


def to_jpeg(image: Image.Image, quality: int = 95, exif: Optional[bytes] = None) -> bytes:
    buf = io.BytesIO()
    if exif is not None:
        image.save(buf, "JPEG", quality=quality, exif=exif)
    else:
        image.save(buf, "JPEG", quality=quality)
    return buf.getvalue()


def to_png(image: Image.Image) -> bytes:
    buf = io.BytesIO()
    image.save(buf, "PNG")
    return buf.getvalue()


@pytest.fixture
def jpeg_bytes() -> bytes:
    return to_jpeg(block_image(1))
