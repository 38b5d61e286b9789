from focus_tempo.music.recommender import (
    HttpMusicRecommender,
    MusicRecommender,
    RecommendationRequest,
    TempoProfile,
    seed_genres,
    tempo_profile,
)

__all__ = [
    "HttpMusicRecommender",
    "MusicRecommender",
    "RecommendationRequest",
    "TempoProfile",
    "seed_genres",
    "tempo_profile",
]
