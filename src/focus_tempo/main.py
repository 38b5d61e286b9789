"""Command-line entrypoint — database setup, offline simulation, history."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections import Counter
from datetime import timedelta
from itertools import cycle, islice
from typing import Any, Iterable

from focus_tempo.config import get_settings
from focus_tempo.detection.replay import load_frames, neutral_frame
from focus_tempo.focus.controller import FocusSessionController
from focus_tempo.focus.display import format_elapsed, to_percent
from focus_tempo.logger import setup_logging
from focus_tempo.models import ExpressionVector, utcnow


def simulate(
    controller: FocusSessionController,
    frames: Iterable[ExpressionVector | None],
    interval_seconds: float = 1.0,
) -> dict[str, Any]:
    """Feed frames through the controller on a synthetic clock.

    Returns a summary of the decisions taken and the finalised session.
    """
    start = utcnow()
    controller.start(now=start)
    reasons: Counter[str] = Counter()
    changes = 0
    ticks = 0
    for i, frame in enumerate(frames):
        decision = controller.process_tick(frame, now=start + timedelta(seconds=i * interval_seconds))
        ticks += 1
        if decision.category_changed:
            changes += 1
        if decision.reselect_reason is not None:
            reasons[decision.reselect_reason.value] += 1

    final_category = controller.category
    session = controller.stop(now=start + timedelta(seconds=ticks * interval_seconds))
    return {
        "ticks": ticks,
        "category_changes": changes,
        "reselections": dict(reasons),
        "final_category": final_category.value if final_category else None,
        "average_focus_percent": to_percent(session.average_focus_level),
        "elapsed": format_elapsed(session.duration_seconds),
        "session": session.model_dump(mode="json", exclude={"history"}),
    }


async def _init_db() -> None:
    from focus_tempo.storage.database import dispose_engine, init_db

    try:
        await init_db()
    finally:
        await dispose_engine()


async def _history(user_id: str, days: int) -> list[dict[str, Any]]:
    from focus_tempo.storage.database import dispose_engine, init_db
    from focus_tempo.storage.repository import SqlSessionStore

    await init_db()
    try:
        sessions = await SqlSessionStore().recent_sessions(user_id, days=days)
    finally:
        await dispose_engine()
    return [s.model_dump(mode="json", exclude={"history"}) for s in sessions]


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="focus-tempo",
        description="Focus estimation from facial expressions for adaptive music.",
    )
    sub = parser.add_subparsers(dest="command")

    # ── init-db ───────────────────────────────────────────────
    sub.add_parser("init-db", help="Create database tables.")

    # ── simulate ──────────────────────────────────────────────
    sim = sub.add_parser("simulate", help="Run a synthetic session and print its summary.")
    sim.add_argument("--minutes", type=float, default=5.0)
    sim.add_argument("--interval", type=float, default=None, help="Seconds per tick.")
    sim.add_argument("--levels", type=float, nargs="+", default=[0.2, 0.4],
                     help="Focus levels to cycle through, one per tick.")
    sim.add_argument("--frames", default=None, help="JSON-lines file of expression vectors.")

    # ── history ───────────────────────────────────────────────
    hist = sub.add_parser("history", help="List recent sessions for a user.")
    hist.add_argument("--user", required=True)
    hist.add_argument("--days", type=int, default=None)

    args = parser.parse_args(argv)
    settings = get_settings()
    setup_logging(settings.log_level)

    if args.command == "init-db":
        asyncio.run(_init_db())
        print("Database tables created.")
    elif args.command == "simulate":
        interval = args.interval or settings.detection_interval_seconds
        if args.frames:
            frames: Iterable[ExpressionVector | None] = load_frames(args.frames)
        else:
            count = max(1, int(args.minutes * 60 / interval))
            frames = islice(cycle(neutral_frame(level) for level in args.levels), count)
        summary = simulate(FocusSessionController.from_settings(settings), frames, interval)
        print(json.dumps(summary, indent=2))
    elif args.command == "history":
        rows = asyncio.run(_history(args.user, args.days or settings.history_days))
        print(json.dumps(rows, indent=2))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
