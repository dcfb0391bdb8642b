from __future__ import annotations

import numpy as np
import pytest

from realtimebos.constants import MOTION_COST, MOTION_DX, MOTION_DY
from realtimebos.effects import EffectError, NumpyEffects, coarse_size


def _texture(h: int, w: int, seed: int = 0) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return rng.random((h, w, 3), dtype=np.float32)


def test_greyscale_replicates_luma():
    fx = NumpyEffects()
    src = np.zeros((2, 2, 3), dtype=np.float32)
    src[..., 0] = 1.0
    out = fx.greyscale(src)
    assert np.allclose(out, 0.299)
    assert np.array_equal(out[..., 0], out[..., 2])


def test_denoise_keeps_uniform_and_spreads_impulse():
    fx = NumpyEffects()
    flat = np.full((5, 5, 3), 0.25, dtype=np.float32)
    assert np.allclose(fx.denoise(flat), 0.25)

    impulse = np.zeros((5, 5, 3), dtype=np.float32)
    impulse[2, 2] = 9.0
    out = fx.denoise(impulse)
    assert np.allclose(out[1:4, 1:4], 1.0)
    assert np.allclose(out[0], 0.0)


def test_windowed_delta_passes_values_above_threshold():
    fx = NumpyEffects()
    ref = np.zeros((4, 4, 3), dtype=np.float32)
    src = np.full((4, 4, 3), 10.0, dtype=np.float32)
    delta = fx.windowed_delta_pass1(src, ref)
    assert np.all(delta == 10.0)
    out = fx.windowed_delta_pass2(delta, threshold=0.5, gain=1.0)
    assert np.all(out == 10.0)


def test_windowed_delta_suppresses_noise_floor_in_place():
    fx = NumpyEffects()
    delta = np.array([[[0.01, -0.01, 0.2]]], dtype=np.float32)
    out = fx.windowed_delta_pass2(delta, out=delta, threshold=0.05, gain=2.0)
    assert out is delta
    assert np.allclose(out, [[[0.0, 0.0, 0.4]]])


def test_blend_weight_extremes():
    fx = NumpyEffects()
    target = _texture(3, 3, seed=1)
    incoming = _texture(3, 3, seed=2)
    assert np.array_equal(fx.blend(incoming, target, 0.0), target)
    assert np.array_equal(fx.blend(incoming, target, 1.0), incoming)
    mid = fx.blend(incoming, target, 0.3)
    assert np.allclose(mid, target * 0.7 + incoming * 0.3, atol=1e-6)
    # weights outside [0, 1] are clamped
    assert np.array_equal(fx.blend(incoming, target, 4.0), incoming)


def test_shape_mismatch_raises():
    fx = NumpyEffects()
    with pytest.raises(EffectError):
        fx.windowed_delta_pass1(_texture(4, 4), _texture(4, 5))
    with pytest.raises(EffectError):
        fx.greyscale(np.zeros((4, 4), dtype=np.float32))


def test_coarse_size_is_eighth_resolution_and_never_empty():
    assert coarse_size(64, 48) == (8, 6)
    assert coarse_size(20, 7) == (2, 1)


def test_motion_search_identical_frames_has_zero_field():
    fx = NumpyEffects()
    img = _texture(32, 32)
    coarse = fx.motion_search_pass1(img, img)
    assert coarse.shape == (4, 4, 3)
    assert np.all(coarse[..., MOTION_DY] == 0)
    assert np.all(coarse[..., MOTION_DX] == 0)
    assert np.all(coarse[..., MOTION_COST] == 0)
    assert np.all(fx.motion_search_pass2(img, coarse, img) == 0)


def test_motion_search_absorbs_small_shift():
    fx = NumpyEffects()
    base = _texture(40, 40, seed=3)
    ref = base[2:34, 2:34]
    src = base[3:35, 2:34]  # src[y, x] == ref[y + 1, x]
    coarse = fx.motion_search_pass1(src, ref)
    assert np.all(coarse[:-1, :, MOTION_DY] == 1)
    assert np.all(coarse[:-1, :, MOTION_DX] == 0)

    compensated = fx.motion_search_pass2(src, coarse, ref)
    plain = fx.windowed_delta_pass1(src, ref)
    assert np.allclose(compensated[:-1], 0.0)
    assert np.abs(compensated).mean() < 0.1 * np.abs(plain).mean()


def test_motion_search_handles_partial_blocks():
    fx = NumpyEffects()
    img = _texture(12, 20)
    coarse = fx.motion_search_pass1(img, img)
    assert coarse.shape == (1, 2, 3)
    out = fx.motion_search_pass2(img, coarse, img)
    assert out.shape == img.shape
    with pytest.raises(EffectError):
        fx.motion_search_pass2(img, np.zeros((3, 3, 3), dtype=np.float32), img)
