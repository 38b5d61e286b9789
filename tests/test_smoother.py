"""Tests for the EWMA focus smoother."""

from __future__ import annotations

import math
import random

import pytest

from focus_tempo.exceptions import ConfigurationError
from focus_tempo.focus.smoother import FocusSmoother


class TestFocusSmoother:
    def test_first_update_seeds_with_raw(self):
        smoother = FocusSmoother()
        assert smoother.value is None
        assert smoother.update(0.8) == 0.8

    def test_blend_example(self):
        smoother = FocusSmoother(alpha=0.7)
        smoother.update(0.0)
        assert smoother.update(1.0) == pytest.approx(0.3)

    def test_output_between_previous_and_raw(self):
        rng = random.Random(7)
        smoother = FocusSmoother(alpha=0.7)
        smoother.update(rng.random())
        for _ in range(500):
            previous = smoother.value
            raw = rng.random()
            smoothed = smoother.update(raw)
            assert min(previous, raw) - 1e-12 <= smoothed <= max(previous, raw) + 1e-12

    def test_monotone_convergence_without_overshoot(self):
        smoother = FocusSmoother(alpha=0.7)
        smoother.update(0.0)
        values = [smoother.update(0.8) for _ in range(40)]
        assert all(b >= a for a, b in zip(values, values[1:]))
        assert all(v <= 0.8 for v in values)
        assert values[-1] == pytest.approx(0.8, abs=1e-4)

    def test_out_of_range_raw_is_clamped(self):
        smoother = FocusSmoother(alpha=0.7)
        smoother.update(0.5)
        assert smoother.update(5.0) == pytest.approx(0.5 * 0.7 + 1.0 * 0.3)
        assert 0.0 <= smoother.update(-3.0) <= 1.0

    def test_nan_raw_is_treated_as_neutral(self):
        smoother = FocusSmoother(alpha=0.7)
        smoother.update(0.2)
        assert smoother.update(math.nan) == pytest.approx(0.2 * 0.7 + 0.5 * 0.3)

    def test_reset(self):
        smoother = FocusSmoother()
        smoother.update(0.9)
        smoother.reset()
        assert smoother.value is None
        assert smoother.update(0.1) == 0.1

    @pytest.mark.parametrize("alpha", [0.0, 1.0, -0.5, 1.5, math.nan])
    def test_invalid_alpha(self, alpha):
        with pytest.raises(ConfigurationError):
            FocusSmoother(alpha=alpha)
