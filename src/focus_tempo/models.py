"""Shared Pydantic models used across the pipeline."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import Mapping

from pydantic import BaseModel, ConfigDict, Field

# ── Enums ─────────────────────────────────────────────────────


class Emotion(str, Enum):
    """Expression labels produced by the upstream face-expression model."""

    NEUTRAL = "neutral"
    HAPPY = "happy"
    SAD = "sad"
    ANGRY = "angry"
    FEARFUL = "fearful"
    DISGUSTED = "disgusted"
    SURPRISED = "surprised"


class TempoCategory(str, Enum):
    """Music energy bucket selected from the smoothed focus score.

    The two-level variant only ever uses ``SLOW`` (calm) and ``FAST``
    (focused).
    """

    SLOW = "slow"
    MEDIUM = "medium"
    FAST = "fast"


class ReselectReason(str, Enum):
    """Why the controller asked for a new music recommendation."""

    INITIAL = "initial"
    CATEGORY_CHANGE = "category_change"
    SCORE_DELTA = "score_delta"


# Probabilities per emotion label; keys may be ``Emotion`` members or their
# string values, and the values need not sum to 1.
ExpressionVector = Mapping[str, float]


def utcnow() -> datetime:
    return datetime.now(UTC)


# ── Focus data ────────────────────────────────────────────────


class FocusSample(BaseModel):
    """One scored detection tick.  Immutable once created."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    raw_score: float = Field(ge=0.0, le=1.0)
    smoothed_score: float = Field(ge=0.0, le=1.0)


class FocusSession(BaseModel):
    """A focus-tracking session, open while ``end_time`` is ``None``.

    ``average_focus_level`` and ``sample_count`` cover every sample recorded
    during the session; ``history`` holds only the samples still inside the
    retention window when the session was finalised.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str = ""
    start_time: datetime = Field(default_factory=utcnow)
    end_time: datetime | None = None
    average_focus_level: float = 0.0
    sample_count: int = 0
    history: list[FocusSample] = Field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return self.end_time is None

    @property
    def duration_seconds(self) -> float:
        end = self.end_time or utcnow()
        return max(0.0, (end - self.start_time).total_seconds())


# ── Music ─────────────────────────────────────────────────────


class TrackDescriptor(BaseModel):
    """A recommended track as returned by the music service."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    name: str
    artist: str = ""
    album: str = ""
    album_art: str = Field("", alias="albumArt")
    duration_ms: int = Field(0, alias="duration")
    preview_url: str | None = Field(None, alias="previewUrl")


class MusicPreferences(BaseModel):
    """User seed genres for the two ends of the tempo range."""

    focused_genres: list[str] = Field(
        default_factory=lambda: ["electronic", "focus", "work"]
    )
    calm_genres: list[str] = Field(
        default_factory=lambda: ["ambient", "classical", "chill"]
    )

    @classmethod
    def from_csv(cls, focused: str, calm: str) -> MusicPreferences:
        return cls(
            focused_genres=[g.strip() for g in focused.split(",") if g.strip()],
            calm_genres=[g.strip() for g in calm.split(",") if g.strip()],
        )
