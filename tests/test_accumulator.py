from __future__ import annotations

import numpy as np

from realtimebos.accumulator import OutputAccumulator
from realtimebos.effects import NumpyEffects


def test_disabled_averaging_overwrites_buffer():
    acc = OutputAccumulator(NumpyEffects())
    acc.accumulate(np.full((3, 3, 3), 0.9, dtype=np.float32), average=True, weight=0.5)
    d = np.full((3, 3, 3), 0.2, dtype=np.float32)
    out = acc.accumulate(d, average=False, weight=0.5)
    assert np.array_equal(out, d)
    assert np.array_equal(acc.buffered, d)


def test_averaging_matches_closed_form():
    acc = OutputAccumulator(NumpyEffects())
    w, v = 0.05, 0.8
    d = np.full((4, 4, 3), v, dtype=np.float32)
    previous = 0.0
    for k in range(1, 6):
        out = acc.accumulate(d, average=True, weight=w)
        expected = v * (1.0 - (1.0 - w) ** k)
        assert np.allclose(out, expected, rtol=1e-5)
        assert np.all(out > previous)
        previous = float(out[0, 0, 0])


def test_buffer_created_lazily_and_resized_on_new_dimensions():
    acc = OutputAccumulator(NumpyEffects())
    assert acc.buffered is None
    acc.accumulate(np.ones((2, 2, 3), dtype=np.float32), average=True, weight=1.0)
    first = acc.buffered
    acc.accumulate(np.ones((2, 2, 3), dtype=np.float32), average=True, weight=1.0)
    assert acc.buffered is first
    acc.accumulate(np.ones((4, 2, 3), dtype=np.float32), average=True, weight=0.5)
    assert acc.buffered.shape == (4, 2, 3)
    assert np.allclose(acc.buffered, 0.5)
