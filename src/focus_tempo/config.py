"""Centralised application settings loaded from environment / .env file."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_DEFAULT_DB_URL = f"sqlite+aiosqlite:///{_PROJECT_ROOT / 'data' / 'focus_tempo.db'}"


class Settings(BaseSettings):
    """All runtime configuration for the focus-tempo pipeline.

    Values are read from environment variables first, then from a *.env* file
    located at the project root.  Every variable lives in the flat
    ``FOCUS_TEMPO_`` namespace (e.g. ``FOCUS_TEMPO_SMOOTHING_ALPHA=0.8``).

    Range checks on single values happen here; rules that span several
    values (band ordering, overlapping thresholds) are enforced by the
    components themselves when they are built.
    """

    model_config = SettingsConfigDict(
        env_prefix="FOCUS_TEMPO_",
        env_file=str(_PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Expression scoring ────────────────────────────────────
    neutral_default: float = Field(0.5, ge=0.0, le=1.0)
    weight_neutral: float = Field(0.6, ge=0.0)
    weight_happy: float = Field(0.3, ge=0.0)
    weight_surprised: float = Field(0.1, ge=0.0)
    weight_angry: float = Field(0.2, ge=0.0)
    weight_sad: float = Field(0.2, ge=0.0)
    weight_fearful: float = Field(0.2, ge=0.0)
    weight_disgusted: float = Field(0.2, ge=0.0)

    # ── Smoothing ─────────────────────────────────────────────
    smoothing_alpha: float = Field(0.7, gt=0.0, lt=1.0)

    # ── Tempo classification ──────────────────────────────────
    tempo_levels: Literal[2, 3] = 3
    tempo_slow_enter: float = 0.35
    tempo_slow_exit: float = 0.45
    tempo_fast_enter: float = 0.75
    tempo_fast_exit: float = 0.65
    tempo_debounce_ticks: int = Field(2, ge=1)

    # ── Session aggregation ───────────────────────────────────
    history_retention_seconds: float = Field(1800.0, gt=0.0)  # 30 min
    history_max_samples: int | None = Field(None, ge=1)
    point_interval_seconds: float = Field(0.0, ge=0.0)

    # ── Reselection ───────────────────────────────────────────
    reselect_delta: float = Field(0.15, gt=0.0, le=1.0)

    # ── Detection loop ────────────────────────────────────────
    detection_interval_seconds: float = Field(1.0, gt=0.0)
    detection_timeout_seconds: float = Field(5.0, gt=0.0)

    # ── Music recommendation service ─────────────────────────
    music_api_base_url: str = "http://localhost:3000/api/music"
    music_request_timeout: float = 10.0
    music_track_limit: int = Field(5, ge=1, le=100)
    music_focused_genres: str = "electronic,focus,work"
    music_calm_genres: str = "ambient,classical,chill"

    # ── Database ──────────────────────────────────────────────
    database_url: str = _DEFAULT_DB_URL
    history_days: int = Field(7, ge=1)

    # ── Logging ───────────────────────────────────────────────
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Return a cached :class:`Settings` singleton."""
    return Settings()
