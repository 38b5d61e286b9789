"""Replay detector — feeds recorded or synthetic expression frames."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Iterable

import structlog

from focus_tempo.detection.base import ExpressionDetector
from focus_tempo.models import Emotion, ExpressionVector

logger = structlog.get_logger(__name__)


def neutral_frame(focus: float) -> dict[str, float]:
    """Build a frame whose default score is roughly ``focus``.

    Splits probability mass between ``neutral`` and ``sad`` so that the
    default weights (0.6 neutral, 0.2 sad) map it back to ``focus`` for
    values up to 0.6; higher values add ``happy`` and then ``surprised``.
    """
    focus = max(0.0, min(1.0, focus))
    if focus <= 0.6:
        # 0.6n - 0.2(1 - n) = f  ->  n = (f + 0.2) / 0.8
        neutral = (focus + 0.2) / 0.8
        return {Emotion.NEUTRAL.value: neutral, Emotion.SAD.value: 1.0 - neutral}
    return {
        Emotion.NEUTRAL.value: 1.0,
        Emotion.HAPPY.value: min(1.0, (focus - 0.6) / 0.3),
        Emotion.SURPRISED.value: max(0.0, (focus - 0.9) / 0.1),
    }


def load_frames(path: str | Path) -> list[ExpressionVector | None]:
    """Read a JSON-lines file of expression vectors; ``null`` lines mean no face.

    Lines that are not valid JSON objects are skipped with a warning.
    """
    frames: list[ExpressionVector | None] = []
    with open(path, encoding="utf-8") as fh:
        for lineno, line in enumerate(fh, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                frame = json.loads(line)
            except json.JSONDecodeError as exc:
                logger.warning("replay.bad_line", path=str(path), line=lineno, error=str(exc))
                continue
            if frame is not None and not isinstance(frame, dict):
                logger.warning("replay.bad_line", path=str(path), line=lineno, error="not an object")
                continue
            frames.append(frame)
    return frames


class ReplayDetector(ExpressionDetector):
    """Yield frames from an iterable, one per :meth:`detect` call.

    ``None`` entries replay "no face detected".  When the frames run out
    every further call returns ``None``.

    Parameters
    ----------
    frames : iterable
        Expression vectors (or ``None``) in tick order.
    init_delay : float
        Seconds :meth:`init` takes, to mimic model loading.
    """

    name = "replay"

    def __init__(
        self,
        frames: Iterable[ExpressionVector | None],
        init_delay: float = 0.0,
    ) -> None:
        super().__init__()
        self._frames = iter(frames)
        self._init_delay = init_delay
        self.exhausted = False
        self.calls = 0

    @classmethod
    def from_jsonl(cls, path: str | Path, **kwargs) -> ReplayDetector:
        return cls(load_frames(path), **kwargs)

    async def init(self) -> None:
        if self._init_delay:
            await asyncio.sleep(self._init_delay)
        await super().init()

    async def detect(self) -> ExpressionVector | None:
        self.calls += 1
        try:
            return next(self._frames)
        except StopIteration:
            self.exhausted = True
            return None
