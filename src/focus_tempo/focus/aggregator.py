"""Session aggregator — bounded focus history plus session statistics.

Two views of the same stream are kept:

- a **windowed** history, evicted on every :meth:`SessionAggregator.record`
  to the retention window (and optionally a maximum count), used for live
  charts and :meth:`~SessionAggregator.get_average`;
- **full-session** running totals, used by
  :meth:`~SessionAggregator.finalize` so the persisted
  ``average_focus_level`` covers every sample, including those already
  evicted from the window.
"""

from __future__ import annotations

import math
from collections import deque
from datetime import datetime, timedelta
from typing import Callable

import structlog

from focus_tempo.exceptions import ConfigurationError
from focus_tempo.focus.display import to_percent
from focus_tempo.models import FocusSample, FocusSession, utcnow

logger = structlog.get_logger(__name__)

DEFAULT_RETENTION = timedelta(minutes=30)


class SessionAggregator:
    """Single-writer buffer of :class:`FocusSample` for one session at a time.

    Parameters
    ----------
    retention : timedelta
        Samples older than ``latest.timestamp - retention`` are evicted.
    max_samples : int | None
        Optional hard cap on the windowed history length.
    clock : callable
        Source of "now" for session start / end times.
    """

    def __init__(
        self,
        retention: timedelta = DEFAULT_RETENTION,
        max_samples: int | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if retention <= timedelta(0):
            raise ConfigurationError(f"retention must be positive, got {retention!r}")
        if max_samples is not None and max_samples < 1:
            raise ConfigurationError(f"max_samples must be >= 1, got {max_samples!r}")
        self.retention = retention
        self.max_samples = max_samples
        self._clock = clock
        self._reset()

    def _reset(self) -> None:
        self._session: FocusSession | None = None
        self._history: deque[FocusSample] = deque()
        self._latest: datetime | None = None
        self._total = 0.0
        self._count = 0

    # ── Lifecycle ─────────────────────────────────────────────

    @property
    def session(self) -> FocusSession | None:
        """The open session, or ``None`` between sessions."""
        return self._session

    def start(
        self,
        user_id: str = "",
        now: datetime | None = None,
        session_id: str | None = None,
    ) -> FocusSession:
        """Open a new session, discarding any unfinalised state."""
        if self._session is not None:
            logger.warning("aggregator.session_discarded", session_id=self._session.id)
        self._reset()
        fields = {"user_id": user_id, "start_time": now or self._clock()}
        if session_id:
            fields["id"] = session_id
        self._session = FocusSession(**fields)
        logger.info("aggregator.session_started", session_id=self._session.id, user=user_id)
        return self._session

    def finalize(self, now: datetime | None = None) -> FocusSession:
        """Close the session and hand back its summary; the aggregator is reset.

        Finalising without an open session returns an empty, already-closed
        session rather than failing.
        """
        end = now or self._clock()
        session = self._session or FocusSession(start_time=end)
        finalized = session.model_copy(
            update={
                "end_time": end,
                "average_focus_level": self._total / self._count if self._count else 0.0,
                "sample_count": self._count,
                "history": list(self._history),
            }
        )
        logger.info(
            "aggregator.session_finalized",
            session_id=finalized.id,
            samples=finalized.sample_count,
            average=round(finalized.average_focus_level, 3),
            duration_seconds=round(finalized.duration_seconds, 1),
        )
        self._reset()
        return finalized

    # ── Recording ─────────────────────────────────────────────

    def record(self, sample: FocusSample) -> bool:
        """Append a sample and evict what fell out of the window.

        Returns ``False`` (and drops the sample) if it is older than the
        latest recorded one.
        """
        if self._latest is not None and sample.timestamp < self._latest:
            logger.warning(
                "aggregator.out_of_order_sample",
                timestamp=sample.timestamp.isoformat(),
                latest=self._latest.isoformat(),
            )
            return False

        if self._session is None:
            self.start(now=sample.timestamp)

        self._history.append(sample)
        self._latest = sample.timestamp
        self._total += sample.smoothed_score
        self._count += 1
        self._evict(sample.timestamp)
        return True

    def _evict(self, now: datetime) -> None:
        cutoff = now - self.retention
        while self._history and self._history[0].timestamp < cutoff:
            self._history.popleft()
        if self.max_samples is not None:
            while len(self._history) > self.max_samples:
                self._history.popleft()

    # ── Queries ───────────────────────────────────────────────

    def get_history(self) -> list[FocusSample]:
        return list(self._history)

    def get_average(self) -> float:
        """Mean smoothed score over the current window; 0.0 when empty."""
        if not self._history:
            return 0.0
        return math.fsum(s.smoothed_score for s in self._history) / len(self._history)

    @property
    def sample_count(self) -> int:
        """Samples recorded this session, evicted ones included."""
        return self._count

    @property
    def duration(self) -> timedelta:
        """Session start to the latest sample, or to the clock before any sample."""
        if self._session is None:
            return timedelta(0)
        end = self._latest or self._clock()
        return max(timedelta(0), end - self._session.start_time)

    def chart_points(self) -> list[tuple[datetime, int]]:
        return [(s.timestamp, to_percent(s.smoothed_score)) for s in self._history]
