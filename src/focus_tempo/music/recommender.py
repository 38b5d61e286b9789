"""Music recommendation adapters.

Architecture
~~~~~~~~~~~~
* **tempo_profile()** — category → target energy / tempo / valence.
* **RecommendationRequest** — the payload sent to the music service.
* **MusicRecommender** — abstract base for recommendation sources.
* **HttpMusicRecommender** — POSTs the request to an HTTP endpoint.

Every failure surfaces as :class:`~focus_tempo.exceptions.RecommendationError`;
callers treat it as "no new recommendation this tick".
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import httpx
import structlog
from pydantic import BaseModel, Field, ValidationError

from focus_tempo.exceptions import RecommendationError
from focus_tempo.models import MusicPreferences, TempoCategory, TrackDescriptor

if TYPE_CHECKING:
    from focus_tempo.config import Settings

logger = structlog.get_logger(__name__)


# ── Tempo profiles ────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class TempoProfile:
    """Audio-feature targets for one tempo category."""

    target_energy: float
    target_tempo: int
    target_valence: float


_PROFILES: dict[TempoCategory, TempoProfile] = {
    TempoCategory.FAST: TempoProfile(target_energy=0.7, target_tempo=120, target_valence=0.7),
    TempoCategory.MEDIUM: TempoProfile(target_energy=0.5, target_tempo=100, target_valence=0.5),
    TempoCategory.SLOW: TempoProfile(target_energy=0.4, target_tempo=90, target_valence=0.4),
}


def tempo_profile(category: TempoCategory) -> TempoProfile:
    return _PROFILES[category]


def seed_genres(category: TempoCategory, preferences: MusicPreferences) -> list[str]:
    """Calm genres for ``SLOW``, focused genres otherwise."""
    if category is TempoCategory.SLOW:
        return list(preferences.calm_genres)
    return list(preferences.focused_genres)


class RecommendationRequest(BaseModel):
    """Payload sent to the recommendation service."""

    category: TempoCategory
    focus_level: float = Field(ge=0.0, le=1.0)
    seed_genres: list[str] = Field(default_factory=list)
    target_energy: float
    target_tempo: int
    target_valence: float
    limit: int = 5


# ── Abstract recommender ──────────────────────────────────────


class MusicRecommender(ABC):
    """Contract for recommendation sources.

    Subclasses implement :meth:`recommend`; :meth:`build_request` is shared.
    """

    name: str = "base"

    def __init__(self, preferences: MusicPreferences | None = None, limit: int = 5) -> None:
        self.preferences = preferences or MusicPreferences()
        self.limit = limit

    def build_request(self, category: TempoCategory, focus_level: float) -> RecommendationRequest:
        profile = tempo_profile(category)
        return RecommendationRequest(
            category=category,
            focus_level=max(0.0, min(1.0, focus_level)),
            seed_genres=seed_genres(category, self.preferences),
            target_energy=profile.target_energy,
            target_tempo=profile.target_tempo,
            target_valence=profile.target_valence,
            limit=self.limit,
        )

    @abstractmethod
    async def recommend(self, category: TempoCategory, focus_level: float) -> list[TrackDescriptor]:
        """Return an ordered list of tracks or raise :class:`RecommendationError`."""

    async def close(self) -> None:
        """Release any resources held by the recommender."""


# ── HTTP recommender ──────────────────────────────────────────


class HttpMusicRecommender(MusicRecommender):
    """POST the request JSON to ``{base_url}/recommendations``.

    The response may be a bare list of tracks or ``{"tracks": [...]}``.
    """

    name = "http"

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        limit: int = 5,
        preferences: MusicPreferences | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(preferences=preferences, limit=limit)
        self._url = base_url.rstrip("/") + "/recommendations"
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> HttpMusicRecommender:
        return cls(
            settings.music_api_base_url,
            timeout=settings.music_request_timeout,
            limit=settings.music_track_limit,
            preferences=MusicPreferences.from_csv(
                settings.music_focused_genres, settings.music_calm_genres
            ),
        )

    async def recommend(self, category: TempoCategory, focus_level: float) -> list[TrackDescriptor]:
        request = self.build_request(category, focus_level)
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.post(self._url, json=request.model_dump(mode="json"))
                resp.raise_for_status()
                payload = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("music.request_failed", url=self._url, category=category.value, error=str(exc))
            raise RecommendationError(f"recommendation request failed: {exc}") from exc

        tracks = self._parse(payload)
        logger.info("music.recommendations", category=category.value, count=len(tracks))
        return tracks

    @staticmethod
    def _parse(payload: Any) -> list[TrackDescriptor]:
        items = payload.get("tracks") if isinstance(payload, dict) else payload
        if not isinstance(items, list):
            raise RecommendationError("unexpected recommendation payload shape")
        try:
            return [TrackDescriptor.model_validate(item) for item in items]
        except ValidationError as exc:
            raise RecommendationError(f"malformed track in response: {exc}") from exc
