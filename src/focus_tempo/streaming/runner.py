"""Async session runner connecting detector → controller → collaborators.

The detection cadence is the scheduling clock.  Each tick awaits one
detection (bounded by a timeout), runs it through the synchronous
:class:`~focus_tempo.focus.controller.FocusSessionController`, and then
schedules side effects (recommendation fetch, focus-point persistence,
callbacks) as background tasks so they never delay the next tick.

Every mutation is guarded by a generation counter: :meth:`SessionRunner.stop`
bumps it before cancelling work, so a detection or recommendation that
completes after teardown is dropped instead of touching the next session.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Coroutine

import structlog

from focus_tempo.detection.base import ExpressionDetector
from focus_tempo.exceptions import CollaboratorError, PersistenceError, RecommendationError
from focus_tempo.focus.controller import FocusSessionController, TickDecision
from focus_tempo.models import FocusSample, FocusSession, TrackDescriptor
from focus_tempo.music.recommender import MusicRecommender
from focus_tempo.storage.repository import SessionStore

logger = structlog.get_logger(__name__)

TracksCallback = Callable[[list[TrackDescriptor], TickDecision], Awaitable[None]]
DecisionCallback = Callable[[TickDecision], Awaitable[None]]
ErrorCallback = Callable[[CollaboratorError], Awaitable[None]]

_STATS_INTERVAL_SECONDS = 60.0


class SessionRunner:
    """Drive one focus session from a detector at a fixed interval.

    Integration::

        runner = SessionRunner(controller, detector, recommender, store)
        await runner.start(user_id="u1")
        ...
        session = await runner.stop()
    """

    def __init__(
        self,
        controller: FocusSessionController,
        detector: ExpressionDetector,
        recommender: MusicRecommender | None = None,
        store: SessionStore | None = None,
        *,
        interval: float = 1.0,
        detection_timeout: float = 5.0,
        on_tracks: TracksCallback | None = None,
        on_decision: DecisionCallback | None = None,
        on_error: ErrorCallback | None = None,
    ) -> None:
        self._controller = controller
        self._detector = detector
        self._recommender = recommender
        self._store = store
        self._interval = interval
        self._detection_timeout = detection_timeout
        self._on_tracks = on_tracks
        self._on_decision = on_decision
        self._on_error = on_error

        self._running = False
        self._generation = 0
        self._request_seq = 0
        self._task: asyncio.Task | None = None
        self._init_task: asyncio.Task | None = None
        self._pending: set[asyncio.Task] = set()

        self.ticks = 0
        self.tracks: list[TrackDescriptor] = []
        self.last_error: CollaboratorError | None = None

    # ── State ─────────────────────────────────────────────────

    @property
    def running(self) -> bool:
        return self._running

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def pending(self) -> int:
        """Side-effect tasks still in flight."""
        return len(self._pending)

    def _is_current(self, generation: int) -> bool:
        return self._running and generation == self._generation

    # ── Lifecycle ─────────────────────────────────────────────

    async def start(
        self,
        user_id: str = "",
        session_id: str | None = None,
        *,
        autorun: bool = True,
    ) -> FocusSession:
        """Open a session and start ticking.

        With ``autorun=False`` no loop is started and the caller drives
        ticks through :meth:`tick`.
        """
        if self._running:
            logger.warning("runner.already_running", generation=self._generation)
            return self._controller.session

        self._generation += 1
        self._running = True
        self.ticks = 0
        self.tracks = []
        session = self._controller.start(user_id=user_id, session_id=session_id)

        generation = self._generation
        self._init_task = asyncio.create_task(self._init_detector(generation))
        if autorun:
            self._task = asyncio.create_task(self._loop(generation))
        logger.info(
            "runner.started",
            session_id=session.id,
            detector=self._detector.name,
            interval=self._interval,
        )
        return session

    async def stop(self) -> FocusSession | None:
        """Cancel all pending work, finalise and persist the session."""
        if not self._running:
            return None

        self._running = False
        self._generation += 1

        tasks = [t for t in (self._task, self._init_task) if t is not None]
        tasks.extend(self._pending)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._pending.clear()
        self._task = None
        self._init_task = None

        session = self._controller.stop()
        try:
            await self._detector.close()
        except Exception as exc:
            logger.warning("runner.detector_close_failed", error=str(exc))

        if self._store is not None:
            try:
                await self._store.save_session(session)
            except CollaboratorError as exc:
                await self._report(exc)

        logger.info("runner.stopped", session_id=session.id, ticks=self.ticks)
        return session

    # ── Loop ──────────────────────────────────────────────────

    async def _init_detector(self, generation: int) -> None:
        try:
            await self._detector.init()
        except Exception as exc:
            # Detector stays not-ready; ticks keep scoring neutral.
            logger.error("runner.detector_init_failed", detector=self._detector.name, error=str(exc))
            return
        if self._is_current(generation):
            logger.info("runner.detector_ready", detector=self._detector.name)

    async def _loop(self, generation: int) -> None:
        loop = asyncio.get_running_loop()
        last_stats = loop.time()
        while self._is_current(generation):
            started = loop.time()
            await self.tick(generation)

            now = loop.time()
            if now - last_stats >= _STATS_INTERVAL_SECONDS:
                logger.info("runner.stats", ticks=self.ticks, pending=self.pending)
                last_stats = now
            await asyncio.sleep(max(0.0, self._interval - (now - started)))

    async def tick(self, generation: int | None = None) -> TickDecision | None:
        """Run one detection tick; returns ``None`` if the tick went stale."""
        if generation is None:
            generation = self._generation
        if not self._is_current(generation):
            return None

        ready = self._detector.ready
        vector = None
        if ready:
            try:
                vector = await asyncio.wait_for(self._detector.detect(), timeout=self._detection_timeout)
            except asyncio.TimeoutError:
                logger.warning("runner.detection_timeout", timeout=self._detection_timeout)
            except Exception as exc:
                logger.warning("runner.detection_failed", error=str(exc))

        if not self._is_current(generation):
            logger.debug("runner.stale_tick_dropped", generation=generation)
            return None

        decision = self._controller.process_tick(vector, detector_ready=ready)
        if decision is None:
            return None
        self.ticks += 1

        session = self._controller.session
        if decision.recorded and self._store is not None and session is not None:
            self._spawn(self._save_point(session.id, session.user_id, decision.sample))
        if decision.reselect and self._recommender is not None:
            self._request_seq += 1
            self._spawn(self._fetch_tracks(generation, self._request_seq, decision))
        if self._on_decision is not None:
            self._spawn(self._on_decision(decision))
        return decision

    # ── Side effects ──────────────────────────────────────────

    def _spawn(self, coro: Coroutine) -> None:
        task = asyncio.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("runner.task_failed", error=str(task.exception()))

    async def _fetch_tracks(self, generation: int, seq: int, decision: TickDecision) -> None:
        try:
            tracks = await self._recommender.recommend(decision.category, decision.sample.smoothed_score)
        except RecommendationError as exc:
            await self._report(exc)
            return
        except Exception as exc:
            await self._report(RecommendationError(str(exc)))
            return

        if not self._is_current(generation) or seq != self._request_seq:
            logger.info("runner.stale_recommendation_dropped", seq=seq, latest=self._request_seq)
            return

        self.tracks = tracks
        if self._on_tracks is not None:
            await self._on_tracks(tracks, decision)

    async def _save_point(self, session_id: str, user_id: str, sample: FocusSample) -> None:
        try:
            await self._store.save_point(session_id, user_id, sample)
        except PersistenceError as exc:
            await self._report(exc)

    async def _report(self, exc: CollaboratorError) -> None:
        self.last_error = exc
        logger.warning("runner.collaborator_error", kind=type(exc).__name__, error=str(exc))
        if self._on_error is None:
            return
        try:
            await self._on_error(exc)
        except Exception as cb_exc:
            logger.error("runner.error_callback_failed", error=str(cb_exc))
