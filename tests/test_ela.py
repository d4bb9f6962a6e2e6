from __future__ import annotations

import numpy as np
from PIL import Image

from conftest import photo_image, to_jpeg
from evidence_engine.decoder import decode_image
from evidence_engine.ela import ElaResult, check_ela, compute_ela, recompress


def _saved_at_85(img: Image.Image) -> Image.Image:
    return decode_image(to_jpeg(img, quality=85)).image


def test_recompress_preserves_dimensions():
    img = photo_image(1, size=97)
    assert recompress(img).size == (97, 97)


def test_identical_reencode_has_low_divergence():
    control = _saved_at_85(photo_image(2))
    result = compute_ela(control, quality=85)
    assert 0 <= result.avg_diff < 3


def test_pasted_patch_raises_divergence():
    control = _saved_at_85(photo_image(3))
    rng = np.random.default_rng(3)
    patch = Image.fromarray(rng.integers(0, 256, (128, 128, 3), dtype=np.uint8), "RGB")
    tampered = control.copy()
    tampered.paste(patch, (37, 51))

    control_score = compute_ela(control).avg_diff
    tampered_score = compute_ela(tampered).avg_diff
    assert tampered_score > control_score + 1.0


def test_ela_score_is_on_byte_scale():
    rng = np.random.default_rng(4)
    noise = Image.fromarray(rng.integers(0, 256, (64, 64, 3), dtype=np.uint8), "RGB")
    assert 0 <= compute_ela(noise).avg_diff <= 255


def test_check_ela_threshold_is_inclusive():
    assert check_ela(ElaResult(35.0), 35.0).ok is True
    failing = check_ela(ElaResult(35.5), 35.0)
    assert failing.name == "ela"
    assert failing.ok is False
    assert failing.info == {"ela": {"avgDiff": 35.5}, "threshold": 35.0}
