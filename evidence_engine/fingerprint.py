"""
Perceptual Fingerprint Module
=============================
Computes 64-bit average-luminance fingerprints for near-duplicate detection.

Features:
- 8x8 area-resampled luminance grid (Rec. 709 weights)
- Fingerprints serialized as 64-character '0'/'1' strings
- Hamming distance matching against the accepted-image history
"""
from __future__ import annotations

import math
from typing import Iterable, List, Optional, Sequence, Tuple

import imagehash
import numpy as np
from PIL import Image


GRID_SIZE = 8
FINGERPRINT_BITS = GRID_SIZE * GRID_SIZE

# Default threshold for near-duplicate detection
DEFAULT_HAMMING_THRESHOLD = 5

LUMA_WEIGHTS = np.array([0.2126, 0.7152, 0.0722], dtype=np.float64)


def luminance_grid(image: Image.Image) -> np.ndarray:
    """
    Downsample an image to an 8x8 grid of luminance values.

    The whole frame is squeezed into the grid with a box (area) filter, so
    aspect ratio is not preserved and nothing is cropped.
    """
    small = image.convert("RGB").resize((GRID_SIZE, GRID_SIZE), Image.Resampling.BOX)
    pixels = np.asarray(small, dtype=np.float64)
    return pixels @ LUMA_WEIGHTS


def compute_image_hash(image: Image.Image) -> imagehash.ImageHash:
    """Compute the fingerprint as an ``imagehash.ImageHash`` (8x8 bool grid)."""
    lum = luminance_grid(image)
    return imagehash.ImageHash(lum > lum.mean())


def compute_fingerprint(image: Image.Image) -> str:
    """
    Compute the 64-character bit-string fingerprint of an image.

    Bit i (row-major) is '1' when cell i is brighter than the grid mean.
    """
    return hash_to_bits(compute_image_hash(image))


def hash_to_bits(value: imagehash.ImageHash) -> str:
    return "".join("1" if bit else "0" for bit in value.hash.flatten())


def bits_to_hash(bits: str) -> imagehash.ImageHash:
    """Parse a stored bit string back into an ``ImageHash``."""
    if not is_valid_fingerprint(bits):
        raise ValueError(f"Not a {FINGERPRINT_BITS}-bit fingerprint: {bits!r}")
    grid = np.array([c == "1" for c in bits], dtype=bool).reshape(GRID_SIZE, GRID_SIZE)
    return imagehash.ImageHash(grid)


def fingerprint_to_hex(bits: str) -> str:
    """Hex form of a fingerprint, compatible with imagehash tooling."""
    return str(bits_to_hash(bits))


def is_valid_fingerprint(value: object) -> bool:
    return (
        isinstance(value, str)
        and len(value) == FINGERPRINT_BITS
        and set(value) <= {"0", "1"}
    )


def hamming_distance(a: Optional[str], b: Optional[str]) -> float:
    """
    Count differing positions between two fingerprints.

    - 0: Identical
    - 1-5: Near-duplicate (recompression, resizing)
    - 6+: Different images

    Empty or unequal-length inputs are infinitely far apart, which keeps
    malformed stored entries from ever matching.
    """
    if not a or not b or len(a) != len(b):
        return math.inf
    return sum(1 for x, y in zip(a, b) if x != y)


def find_near_duplicates(
    target: str,
    history: Sequence[str],
    threshold: int = DEFAULT_HAMMING_THRESHOLD,
) -> List[Tuple[int, int]]:
    """
    Find all near-duplicates of a fingerprint in the history.

    Returns:
        List of (history index, distance) for all matches, closest first
    """
    matches = []
    for index, stored in enumerate(history):
        distance = hamming_distance(target, stored)
        if distance <= threshold:
            matches.append((index, int(distance)))
    return sorted(matches, key=lambda x: x[1])


def is_duplicate(
    target: str,
    history: Iterable[str],
    threshold: int = DEFAULT_HAMMING_THRESHOLD,
) -> bool:
    """Check if a fingerprint is within ``threshold`` bits of any stored one."""
    return any(hamming_distance(target, stored) <= threshold for stored in history)


if __name__ == "__main__":
    import sys

    from .decoder import decode_image
    from .errors import DecodeError

    if len(sys.argv) < 2:
        print("Usage: python -m evidence_engine.fingerprint <image_path> [<compare_image_path>]")
        sys.exit(1)

    def _load(path: str) -> str:
        with open(path, "rb") as f:
            return compute_fingerprint(decode_image(f.read()).image)

    try:
        first = _load(sys.argv[1])
        print(f"Fingerprint: {first}")
        print(f"Hex:         {fingerprint_to_hex(first)}")

        if len(sys.argv) > 2:
            second = _load(sys.argv[2])
            distance = hamming_distance(first, second)
            print(f"\nComparing with: {sys.argv[2]}")
            print(f"Hamming distance: {distance}")
            print(f"Near-duplicate: {distance <= DEFAULT_HAMMING_THRESHOLD}")
    except (OSError, DecodeError) as e:
        print(f"Error: {e}")
        sys.exit(1)
