"""
Rating Module - ELO skill estimation and difficulty matching.

Components:
- elo: Rating, RatingEngine, RatingStore, expected_score
- difficulty: DifficultyMatcher, DifficultyBand, SelectionMode, rating views
"""

from ascension.rating.difficulty import (
    DifficultyBand,
    DifficultyMatcher,
    DifficultyRecommendation,
    RatingConfidence,
    SelectionMode,
    elo_to_scaled_score,
    momentum,
    rating_confidence,
    scaled_score_to_elo,
)
from ascension.rating.elo import (
    DEFAULT_DEVIATION,
    DEFAULT_RATING,
    MAX_DEVIATION,
    MAX_RATING,
    MIN_DEVIATION,
    MIN_RATING,
    Rating,
    RatingConfig,
    RatingEngine,
    RatingScope,
    RatingStore,
    RatingUpdate,
    StreakType,
    adaptive_k_factor,
    expected_score,
)

__all__ = [
    "DEFAULT_DEVIATION",
    "DEFAULT_RATING",
    "MAX_DEVIATION",
    "MAX_RATING",
    "MIN_DEVIATION",
    "MIN_RATING",
    "DifficultyBand",
    "DifficultyMatcher",
    "DifficultyRecommendation",
    "Rating",
    "RatingConfidence",
    "RatingConfig",
    "RatingEngine",
    "RatingScope",
    "RatingStore",
    "RatingUpdate",
    "SelectionMode",
    "StreakType",
    "adaptive_k_factor",
    "elo_to_scaled_score",
    "expected_score",
    "momentum",
    "rating_confidence",
    "scaled_score_to_elo",
]
