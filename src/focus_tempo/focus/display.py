"""Presentation helpers: the pipeline works on [0, 1], screens show percent."""

from __future__ import annotations


def to_percent(score: float) -> int:
    """Scale a [0, 1] focus score to a rounded 0-100 percentage."""
    return int(round(max(0.0, min(1.0, score)) * 100))


def focus_label(score: float) -> str:
    """Coarse label used by progress bars: ``high`` / ``moderate`` / ``low``."""
    percent = to_percent(score)
    if percent >= 70:
        return "high"
    if percent >= 40:
        return "moderate"
    return "low"


def format_elapsed(seconds: float) -> str:
    """``HH:MM:SS`` for a session timer."""
    total = max(0, int(seconds))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
