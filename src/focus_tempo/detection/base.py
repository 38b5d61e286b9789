"""Abstract base class for expression detectors."""

from __future__ import annotations

from abc import ABC, abstractmethod

from focus_tempo.models import ExpressionVector


class ExpressionDetector(ABC):
    """Contract for anything that turns camera frames into expression vectors.

    A detector owns its model lifecycle explicitly: construct once, call
    :meth:`init` (which may be slow, e.g. loading model weights), poll
    :meth:`detect` once per tick, then :meth:`close`.  Until :attr:`ready`
    is ``True`` the runner scores ticks as neutral.
    """

    name: str = "base"

    def __init__(self) -> None:
        self._ready = False

    @property
    def ready(self) -> bool:
        return self._ready

    async def init(self) -> None:
        """Load models / open the video source.  Default: nothing to load."""
        self._ready = True

    @abstractmethod
    async def detect(self) -> ExpressionVector | None:
        """Return expression probabilities for the current frame.

        ``None`` means no face was found in the frame.
        """

    async def close(self) -> None:
        """Release any resources held by the detector."""
        self._ready = False
