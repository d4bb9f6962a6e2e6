from __future__ import annotations

import math

import numpy as np
import pytest
from PIL import Image

from conftest import block_image, photo_image, to_jpeg
from evidence_engine.decoder import decode_image
from evidence_engine.fingerprint import (
    FINGERPRINT_BITS,
    bits_to_hash,
    compute_fingerprint,
    find_near_duplicates,
    fingerprint_to_hex,
    hamming_distance,
    is_duplicate,
    is_valid_fingerprint,
)


def test_fingerprint_is_64_binary_characters():
    for img in (block_image(3), photo_image(1), Image.new("RGB", (1, 1)), Image.new("RGB", (640, 48))):
        fp = compute_fingerprint(img)
        assert len(fp) == FINGERPRINT_BITS == 64
        assert set(fp) <= {"0", "1"}


def test_fingerprint_is_deterministic_for_same_bytes():
    data = to_jpeg(photo_image(4), quality=90)
    first = compute_fingerprint(decode_image(data).image)
    second = compute_fingerprint(decode_image(data).image)
    assert first == second


def test_fingerprint_thresholds_cells_against_mean_luminance():
    # Left half black, right half white -> each row reads 00001111
    pixels = np.zeros((64, 64, 3), dtype=np.uint8)
    pixels[:, 32:] = 255
    fp = compute_fingerprint(Image.fromarray(pixels, "RGB"))
    assert fp == "00001111" * 8


def test_fingerprint_uses_rec709_luminance():
    # Pure green is far brighter than pure blue under Rec. 709 weights
    pixels = np.zeros((8, 8, 3), dtype=np.uint8)
    pixels[:4, :, 1] = 255
    pixels[4:, :, 2] = 255
    fp = compute_fingerprint(Image.fromarray(pixels, "RGB"))
    assert fp == "1" * 32 + "0" * 32


def test_flat_image_has_no_bits_set():
    assert compute_fingerprint(Image.new("RGB", (50, 50), (0, 0, 0))) == "0" * 64


def test_heavy_recompression_stays_within_duplicate_threshold():
    original = to_jpeg(photo_image(5), quality=95)
    recompressed = to_jpeg(decode_image(original).image, quality=20)
    a = compute_fingerprint(decode_image(original).image)
    b = compute_fingerprint(decode_image(recompressed).image)
    assert hamming_distance(a, b) <= 5


def test_different_images_are_far_apart():
    a = compute_fingerprint(block_image(6))
    b = compute_fingerprint(block_image(7))
    assert hamming_distance(a, b) > 5


def test_hamming_distance_basics():
    fp = compute_fingerprint(block_image(8))
    assert hamming_distance(fp, fp) == 0
    flipped = ("1" if fp[0] == "0" else "0") + fp[1:]
    assert hamming_distance(fp, flipped) == 1
    inverse = "".join("1" if c == "0" else "0" for c in fp)
    assert hamming_distance(fp, inverse) == 64


def test_hamming_distance_malformed_inputs_are_infinite():
    assert hamming_distance("0101", "010") == math.inf
    assert hamming_distance("", "") == math.inf
    assert hamming_distance(None, "0" * 64) == math.inf


def test_find_near_duplicates_sorted_by_distance():
    target = "0" * 64
    history = ["1" * 64, "0" * 60 + "1111", "0" * 63 + "1", "bogus", "0" * 64]
    assert find_near_duplicates(target, history, threshold=5) == [(4, 0), (2, 1), (1, 4)]
    assert is_duplicate(target, history, threshold=0)
    assert not is_duplicate(target, ["1" * 64, "bogus"], threshold=5)


def test_hex_form_matches_imagehash():
    fp = "00001111" * 8
    assert fingerprint_to_hex(fp) == "0f" * 8
    assert bits_to_hash(fp) - bits_to_hash(fp) == 0


def test_bits_to_hash_rejects_malformed_strings():
    assert not is_valid_fingerprint("012" * 21 + "0")
    with pytest.raises(ValueError):
        bits_to_hash("0101")
