"""Focus session controller — one detection tick end to end.

Per tick: score → smooth → classify → record → decide.  The decision tells
the surrounding application three things:

1. which tempo category is current (and whether it just changed);
2. whether the sample was recorded into the session history;
3. whether to ask the music service for a new recommendation.

Reselection has two independent triggers besides the first tick of a
session: a committed category change, and a swing of the smoothed score of
more than ``reselect_delta`` since the last reselection, even inside one
category.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

import structlog

from focus_tempo.config import Settings, get_settings
from focus_tempo.exceptions import ConfigurationError
from focus_tempo.focus.aggregator import SessionAggregator
from focus_tempo.focus.scorer import ExpressionScorer, ScoringWeights
from focus_tempo.focus.smoother import FocusSmoother
from focus_tempo.focus.tempo import TempoClassifier, TempoReading, TempoThresholds
from focus_tempo.models import (
    ExpressionVector,
    FocusSample,
    FocusSession,
    ReselectReason,
    TempoCategory,
    utcnow,
)

logger = structlog.get_logger(__name__)

DEFAULT_RESELECT_DELTA = 0.15


@dataclass(frozen=True, slots=True)
class TickDecision:
    """Outcome of :meth:`FocusSessionController.process_tick`."""

    sample: FocusSample
    category: TempoCategory
    category_changed: bool = False
    previous_category: TempoCategory | None = None
    reselect_reason: ReselectReason | None = None
    recorded: bool = False
    face_detected: bool = False

    @property
    def reselect(self) -> bool:
        return self.reselect_reason is not None


class FocusSessionController:
    """Orchestrates scorer, smoother, classifier and aggregator.

    All collaborators are injected; :meth:`from_settings` wires the
    defaults from :class:`~focus_tempo.config.Settings`.  The controller
    is synchronous and single-writer: the async
    :class:`~focus_tempo.streaming.runner.SessionRunner` owns the clock.
    """

    def __init__(
        self,
        scorer: ExpressionScorer | None = None,
        smoother: FocusSmoother | None = None,
        classifier: TempoClassifier | None = None,
        aggregator: SessionAggregator | None = None,
        *,
        reselect_delta: float = DEFAULT_RESELECT_DELTA,
        point_interval: timedelta = timedelta(0),
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if not 0.0 < reselect_delta <= 1.0:
            raise ConfigurationError(f"reselect_delta must be in (0, 1], got {reselect_delta!r}")
        if point_interval < timedelta(0):
            raise ConfigurationError(f"point_interval must not be negative, got {point_interval!r}")

        self.scorer = scorer or ExpressionScorer()
        self.smoother = smoother or FocusSmoother()
        self.classifier = classifier or TempoClassifier()
        self.aggregator = aggregator or SessionAggregator(clock=clock)
        self.reselect_delta = reselect_delta
        self.point_interval = point_interval
        self._clock = clock

        self._active = False
        self._last_reselect_score: float | None = None
        self._last_recorded_at: datetime | None = None
        self._last_decision: TickDecision | None = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> FocusSessionController:
        s = settings or get_settings()
        weights = ScoringWeights(
            neutral=s.weight_neutral,
            happy=s.weight_happy,
            surprised=s.weight_surprised,
            angry=s.weight_angry,
            sad=s.weight_sad,
            fearful=s.weight_fearful,
            disgusted=s.weight_disgusted,
        )
        thresholds = TempoThresholds(
            slow_enter=s.tempo_slow_enter,
            slow_exit=s.tempo_slow_exit,
            fast_enter=s.tempo_fast_enter,
            fast_exit=s.tempo_fast_exit,
        )
        return cls(
            scorer=ExpressionScorer(weights, neutral_default=s.neutral_default),
            smoother=FocusSmoother(alpha=s.smoothing_alpha),
            classifier=TempoClassifier(
                thresholds,
                debounce_ticks=s.tempo_debounce_ticks,
                levels=s.tempo_levels,
            ),
            aggregator=SessionAggregator(
                retention=timedelta(seconds=s.history_retention_seconds),
                max_samples=s.history_max_samples,
                clock=clock,
            ),
            reselect_delta=s.reselect_delta,
            point_interval=timedelta(seconds=s.point_interval_seconds),
            clock=clock,
        )

    # ── State ─────────────────────────────────────────────────

    @property
    def active(self) -> bool:
        return self._active

    @property
    def session(self) -> FocusSession | None:
        return self.aggregator.session

    @property
    def category(self) -> TempoCategory | None:
        return self.classifier.current

    @property
    def last_decision(self) -> TickDecision | None:
        return self._last_decision

    # ── Lifecycle ─────────────────────────────────────────────

    def start(
        self,
        user_id: str = "",
        now: datetime | None = None,
        session_id: str | None = None,
    ) -> FocusSession:
        self._clear()
        session = self.aggregator.start(user_id=user_id, now=now or self._clock(), session_id=session_id)
        self._active = True
        return session

    def stop(self, now: datetime | None = None) -> FocusSession:
        """Finalise the session and reset all per-session state."""
        session = self.aggregator.finalize(now=now or self._clock())
        self._clear()
        return session

    def _clear(self) -> None:
        self._active = False
        self.smoother.reset()
        self.classifier.reset()
        self._last_reselect_score = None
        self._last_recorded_at = None
        self._last_decision = None

    # ── Tick ──────────────────────────────────────────────────

    def process_tick(
        self,
        vector: ExpressionVector | None,
        now: datetime | None = None,
        *,
        detector_ready: bool = True,
    ) -> TickDecision | None:
        """Run one detection result through the pipeline.

        ``vector=None`` means no face was detected; ``detector_ready=False``
        means the detector is still initialising.  Both score as neutral.
        Returns ``None`` when no session is active.
        """
        if not self._active:
            logger.debug("controller.tick_ignored")
            return None

        now = now or self._clock()
        if not detector_ready:
            vector = None

        raw = self.scorer.score(vector)
        smoothed = self.smoother.update(raw)
        reading = self.classifier.classify(smoothed)
        sample = FocusSample(timestamp=now, raw_score=raw, smoothed_score=smoothed)

        recorded = False
        if self._point_due(now):
            recorded = self.aggregator.record(sample)
            if recorded:
                self._last_recorded_at = now

        reason = self._reselect_reason(reading, smoothed)
        if reason is not None:
            self._last_reselect_score = smoothed
            logger.info(
                "controller.reselect",
                reason=reason.value,
                category=reading.category.value,
                score=round(smoothed, 3),
            )

        decision = TickDecision(
            sample=sample,
            category=reading.category,
            category_changed=reading.changed,
            previous_category=reading.previous,
            reselect_reason=reason,
            recorded=recorded,
            face_detected=bool(vector),
        )
        self._last_decision = decision
        return decision

    def _point_due(self, now: datetime) -> bool:
        if self._last_recorded_at is None:
            return True
        return now - self._last_recorded_at >= self.point_interval

    def _reselect_reason(self, reading: TempoReading, smoothed: float) -> ReselectReason | None:
        if self._last_reselect_score is None:
            return ReselectReason.INITIAL
        if reading.changed:
            return ReselectReason.CATEGORY_CHANGE
        if abs(smoothed - self._last_reselect_score) > self.reselect_delta:
            return ReselectReason.SCORE_DELTA
        return None
