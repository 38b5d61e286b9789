"""Shared pytest fixtures."""

from __future__ import annotations

import asyncio
import logging
import sys
from datetime import UTC, datetime, timedelta

import pytest
import structlog

from focus_tempo.config import get_settings
from focus_tempo.exceptions import PersistenceError, RecommendationError
from focus_tempo.focus.aggregator import SessionAggregator
from focus_tempo.focus.controller import FocusSessionController
from focus_tempo.focus.smoother import FocusSmoother
from focus_tempo.focus.tempo import TempoClassifier
from focus_tempo.models import FocusSample, FocusSession, TempoCategory, TrackDescriptor
from focus_tempo.music.recommender import MusicRecommender
from focus_tempo.storage.repository import SessionStore

T0 = datetime(2026, 1, 10, 10, 0, tzinfo=UTC)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


class FakeRecommender(MusicRecommender):
    """Records calls; optionally blocks each call until released."""

    name = "fake"

    def __init__(self, *, fail: bool = False, block: bool = False) -> None:
        super().__init__()
        self.calls: list[tuple[TempoCategory, float]] = []
        self.fail = fail
        self.block = block
        self.gates: list[asyncio.Event] = []

    async def recommend(self, category: TempoCategory, focus_level: float) -> list[TrackDescriptor]:
        self.calls.append((category, focus_level))
        call_no = len(self.calls)
        if self.block:
            gate = asyncio.Event()
            self.gates.append(gate)
            await gate.wait()
        if self.fail:
            raise RecommendationError("service unavailable")
        return [TrackDescriptor(id=f"t{call_no}", name=f"{category.value} track {call_no}")]


class MemoryStore(SessionStore):
    """In-memory session store with switchable failures."""

    def __init__(self, *, fail_sessions: bool = False, fail_points: bool = False) -> None:
        self.sessions: list[FocusSession] = []
        self.points: list[tuple[str, str, FocusSample]] = []
        self.fail_sessions = fail_sessions
        self.fail_points = fail_points

    async def save_session(self, session: FocusSession) -> None:
        if self.fail_sessions:
            raise PersistenceError("disk full")
        self.sessions.append(session)

    async def save_point(self, session_id: str, user_id: str, sample: FocusSample) -> None:
        if self.fail_points:
            raise PersistenceError("disk full")
        self.points.append((session_id, user_id, sample))

    async def recent_sessions(self, user_id, days=7, now=None):
        return [s for s in self.sessions if s.user_id == user_id]


@pytest.fixture(autouse=True)
def _quiet_logging():
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(logging.WARNING),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )
    yield
    structlog.reset_defaults()


@pytest.fixture
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_controller(clock):
    def _make(
        *,
        alpha: float = 0.7,
        debounce_ticks: int = 2,
        initial: TempoCategory | None = None,
        reselect_delta: float = 0.15,
        point_interval: float = 0.0,
        retention_seconds: float = 1800.0,
    ) -> FocusSessionController:
        return FocusSessionController(
            smoother=FocusSmoother(alpha=alpha),
            classifier=TempoClassifier(debounce_ticks=debounce_ticks, initial=initial),
            aggregator=SessionAggregator(retention=timedelta(seconds=retention_seconds), clock=clock),
            reselect_delta=reselect_delta,
            point_interval=timedelta(seconds=point_interval),
            clock=clock,
        )

    return _make


@pytest.fixture
def controller(make_controller) -> FocusSessionController:
    return make_controller()


def sample_at(seconds: float, smoothed: float, raw: float | None = None) -> FocusSample:
    return FocusSample(
        timestamp=T0 + timedelta(seconds=seconds),
        raw_score=smoothed if raw is None else raw,
        smoothed_score=smoothed,
    )
