"""Exponential smoothing of the raw focus score."""

from __future__ import annotations

import math

from focus_tempo.exceptions import ConfigurationError
from focus_tempo.focus.scorer import NEUTRAL_DEFAULT, clamp_unit

DEFAULT_ALPHA = 0.7


class FocusSmoother:
    """EWMA filter with weight ``alpha`` on history.

    ``smoothed = previous * alpha + raw * (1 - alpha)``

    The first update seeds ``previous`` with the raw value itself, so a
    session does not start with an artificial dip towards zero.  One
    instance per session; call :meth:`reset` when the session ends.
    """

    def __init__(self, alpha: float = DEFAULT_ALPHA) -> None:
        if not (math.isfinite(alpha) and 0.0 < alpha < 1.0):
            raise ConfigurationError(f"smoothing alpha must be in (0, 1), got {alpha!r}")
        self.alpha = alpha
        self._previous: float | None = None

    @property
    def value(self) -> float | None:
        """Last smoothed value, or ``None`` before the first update."""
        return self._previous

    def update(self, raw: float) -> float:
        raw = clamp_unit(raw) if math.isfinite(raw) else NEUTRAL_DEFAULT
        if self._previous is None:
            self._previous = raw
        else:
            self._previous = clamp_unit(self._previous * self.alpha + raw * (1.0 - self.alpha))
        return self._previous

    def reset(self) -> None:
        self._previous = None
