"""
Error Level Analysis (ELA)

Re-saves an image as JPEG at a reduced quality and measures how far the
re-encoded pixels drift from the original. Regions that were pasted in or
edited after the last save tend to drift more. This is a global average, so it
flags whole images and does not localize the edit.
"""
from __future__ import annotations

import io
from dataclasses import dataclass
from typing import Any, Dict

import numpy as np
from PIL import Image

from .checks import CHECK_ELA, CheckResult

DEFAULT_ELA_QUALITY = 85
DEFAULT_ELA_THRESHOLD = 35.0


@dataclass(frozen=True)
class ElaResult:
    avg_diff: float

    def to_dict(self) -> Dict[str, Any]:
        return {"avgDiff": self.avg_diff}


def recompress(image: Image.Image, quality: int = DEFAULT_ELA_QUALITY) -> Image.Image:
    """Round-trip an image through an in-memory JPEG at ``quality``."""
    buf = io.BytesIO()
    image.convert("RGB").save(buf, "JPEG", quality=quality)
    buf.seek(0)
    with Image.open(buf) as low:
        return low.convert("RGB")


def compute_ela(image: Image.Image, *, quality: int = DEFAULT_ELA_QUALITY) -> ElaResult:
    """
    Mean absolute difference between an image and its JPEG re-encode.

    Per pixel the R, G and B differences are averaged, then averaged over all
    pixels, giving a score on the 0-255 scale.
    """
    original = np.asarray(image.convert("RGB"), dtype=np.int16)
    low = np.asarray(recompress(image, quality), dtype=np.int16)
    if original.shape != low.shape:
        raise ValueError(f"Re-encoded shape {low.shape} differs from original {original.shape}")
    per_pixel = np.abs(original - low).mean(axis=2)
    return ElaResult(avg_diff=float(per_pixel.mean()))


def check_ela(result: ElaResult, threshold: float = DEFAULT_ELA_THRESHOLD) -> CheckResult:
    """Fail when the divergence exceeds ``threshold``."""
    ok = result.avg_diff <= threshold
    return CheckResult(CHECK_ELA, ok, {"ela": result.to_dict(), "threshold": threshold})
