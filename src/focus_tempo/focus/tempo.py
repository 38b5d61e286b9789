"""Tempo classifier — smoothed focus score → music tempo category.

Two mechanisms keep the category from flip-flopping:

1. **Hysteresis bands.**  Each boundary has separate enter and exit
   thresholds.  With the defaults a score must reach 0.75 to enter
   ``FAST`` but only falls back to ``MEDIUM`` below 0.65; symmetrically,
   ``SLOW`` is entered below 0.35 and left at 0.45 or above.

2. **Count-based debounce.**  A new category is committed only after it has
   been the band logic's output for ``debounce_ticks`` consecutive ticks.
   A single tick back inside the current category cancels the pending
   change.

========  ==========================  ==========================
Current   Leaves when                 Goes to
========  ==========================  ==========================
SLOW      score >= slow_exit          MEDIUM (FAST if >= fast_enter)
MEDIUM    score >= fast_enter         FAST
MEDIUM    score <  slow_enter         SLOW
FAST      score <  fast_exit          MEDIUM (SLOW if < slow_enter)
========  ==========================  ==========================

The first sample of a session starts in the outer category of any dead
zone it falls into (below 0.45 → ``SLOW``, 0.65 and above → ``FAST``,
otherwise ``MEDIUM``).  That assignment is not reported as a change.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Literal

import structlog

from focus_tempo.exceptions import ConfigurationError
from focus_tempo.focus.scorer import NEUTRAL_DEFAULT, clamp_unit
from focus_tempo.models import TempoCategory

logger = structlog.get_logger(__name__)

DEFAULT_DEBOUNCE_TICKS = 2


@dataclass(frozen=True, slots=True)
class TempoThresholds:
    """Enter / exit band edges on the [0, 1] focus scale."""

    slow_enter: float = 0.35
    slow_exit: float = 0.45
    fast_enter: float = 0.75
    fast_exit: float = 0.65

    def validate(self, levels: int) -> None:
        values = (self.slow_enter, self.slow_exit, self.fast_enter, self.fast_exit)
        if not all(math.isfinite(v) and 0.0 <= v <= 1.0 for v in values):
            raise ConfigurationError(f"tempo thresholds must lie in [0, 1]: {self}")
        if self.fast_exit > self.fast_enter:
            raise ConfigurationError(
                f"fast_exit ({self.fast_exit}) must not exceed fast_enter ({self.fast_enter})"
            )
        if levels == 3:
            if self.slow_enter > self.slow_exit:
                raise ConfigurationError(
                    f"slow_enter ({self.slow_enter}) must not exceed slow_exit ({self.slow_exit})"
                )
            if self.slow_exit > self.fast_exit:
                raise ConfigurationError(
                    f"slow band ({self.slow_enter}-{self.slow_exit}) overlaps "
                    f"fast band ({self.fast_exit}-{self.fast_enter})"
                )


@dataclass(frozen=True, slots=True)
class TempoReading:
    """Committed category after one tick."""

    category: TempoCategory
    changed: bool = False
    previous: TempoCategory | None = None


class TempoClassifier:
    """Stateful hysteresis classifier with count-based debounce.

    Parameters
    ----------
    thresholds : TempoThresholds
        Band edges.
    debounce_ticks : int
        Consecutive ticks a new category must persist before it is
        committed.  ``1`` disables the debounce (bands still apply).
    levels : 2 | 3
        ``2`` collapses ``SLOW``/``MEDIUM`` into ``SLOW`` and uses only
        the fast band.
    initial : TempoCategory | None
        Fixed starting category.  ``None`` derives it from the first sample.
    """

    def __init__(
        self,
        thresholds: TempoThresholds | None = None,
        debounce_ticks: int = DEFAULT_DEBOUNCE_TICKS,
        levels: Literal[2, 3] = 3,
        initial: TempoCategory | None = None,
    ) -> None:
        if levels not in (2, 3):
            raise ConfigurationError(f"levels must be 2 or 3, got {levels!r}")
        if debounce_ticks < 1:
            raise ConfigurationError(f"debounce_ticks must be >= 1, got {debounce_ticks!r}")
        self.thresholds = thresholds or TempoThresholds()
        self.thresholds.validate(levels)
        if levels == 2 and initial is TempoCategory.MEDIUM:
            raise ConfigurationError("MEDIUM is not a valid category for the two-level classifier")

        self.levels = levels
        self.debounce_ticks = debounce_ticks
        self._initial = initial
        self._current: TempoCategory | None = None
        self._pending: TempoCategory | None = None
        self._pending_ticks = 0

    @property
    def current(self) -> TempoCategory | None:
        return self._current

    @property
    def categories(self) -> tuple[TempoCategory, ...]:
        if self.levels == 2:
            return (TempoCategory.SLOW, TempoCategory.FAST)
        return tuple(TempoCategory)

    def classify(self, smoothed: float) -> TempoReading:
        score = clamp_unit(smoothed) if math.isfinite(smoothed) else NEUTRAL_DEFAULT

        if self._current is None:
            self._current = self._initial or self._starting_category(score)
            logger.debug("tempo.initial", category=self._current.value, score=round(score, 3))
            return TempoReading(self._current)

        target = self._band_target(self._current, score)
        if target is self._current:
            self._pending = None
            self._pending_ticks = 0
            return TempoReading(self._current)

        if target is self._pending:
            self._pending_ticks += 1
        else:
            self._pending = target
            self._pending_ticks = 1

        if self._pending_ticks < self.debounce_ticks:
            return TempoReading(self._current)

        previous = self._current
        self._current = target
        self._pending = None
        self._pending_ticks = 0
        logger.info(
            "tempo.category_changed",
            previous=previous.value,
            category=target.value,
            score=round(score, 3),
        )
        return TempoReading(target, changed=True, previous=previous)

    def reset(self) -> None:
        self._current = None
        self._pending = None
        self._pending_ticks = 0

    # ── Internals ─────────────────────────────────────────────

    def _starting_category(self, score: float) -> TempoCategory:
        t = self.thresholds
        if score >= t.fast_exit:
            return TempoCategory.FAST
        if self.levels == 2 or score < t.slow_exit:
            return TempoCategory.SLOW
        return TempoCategory.MEDIUM

    def _band_target(self, current: TempoCategory, score: float) -> TempoCategory:
        t = self.thresholds

        if self.levels == 2:
            if current is TempoCategory.FAST:
                return TempoCategory.FAST if score >= t.fast_exit else TempoCategory.SLOW
            return TempoCategory.FAST if score >= t.fast_enter else TempoCategory.SLOW

        if current is TempoCategory.FAST:
            if score >= t.fast_exit:
                return TempoCategory.FAST
            return TempoCategory.SLOW if score < t.slow_enter else TempoCategory.MEDIUM

        if current is TempoCategory.SLOW:
            if score < t.slow_exit:
                return TempoCategory.SLOW
            return TempoCategory.FAST if score >= t.fast_enter else TempoCategory.MEDIUM

        if score >= t.fast_enter:
            return TempoCategory.FAST
        if score < t.slow_enter:
            return TempoCategory.SLOW
        return TempoCategory.MEDIUM
