"""
Difficulty matching on top of the ELO scale.

Provides:
- DifficultyBand: named rating ranges (foundational .. expert)
- SelectionMode: build / prove / review / diagnostic targeting profiles
- DifficultyMatcher: recommended difficulty windows, inverse ELO lookup,
  match scoring
- rating_confidence() / momentum(): read-only views over a Rating
- ELO <-> scaled exam score conversion
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

from ascension.core.validation import require_finite
from ascension.rating.elo import (
    DEFAULT_DEVIATION,
    MAX_RATING,
    MIN_RATING,
    Rating,
    StreakType,
    expected_score,
)


def clamp_rating(value: float) -> int:
    return int(round(max(MIN_RATING, min(MAX_RATING, value))))


class DifficultyBand(str, Enum):
    """Named ranges of the rating scale (lower bound inclusive)."""

    FOUNDATIONAL = "foundational"
    DEVELOPING = "developing"
    COMPETENT = "competent"
    PROFICIENT = "proficient"
    ADVANCED = "advanced"
    EXPERT = "expert"

    @property
    def bounds(self) -> tuple[int, int]:
        return _BAND_BOUNDS[self]

    @property
    def display_name(self) -> str:
        return self.value.title()

    @classmethod
    def for_rating(cls, value: float) -> DifficultyBand:
        for band in cls:
            low, high = band.bounds
            if low <= value < high:
                return band
        return cls.FOUNDATIONAL if value < MIN_RATING else cls.EXPERT


_BAND_BOUNDS = {
    DifficultyBand.FOUNDATIONAL: (100, 250),
    DifficultyBand.DEVELOPING: (250, 400),
    DifficultyBand.COMPETENT: (400, 550),
    DifficultyBand.PROFICIENT: (550, 650),
    DifficultyBand.ADVANCED: (650, 750),
    DifficultyBand.EXPERT: (750, 900),
}


class SelectionMode(str, Enum):
    """How hard questions should be relative to the learner."""

    BUILD = "build"
    PROVE = "prove"
    REVIEW = "review"
    DIAGNOSTIC = "diagnostic"

    @property
    def target_win_rate(self) -> float:
        return {
            SelectionMode.BUILD: 0.75,
            SelectionMode.PROVE: 0.55,
            SelectionMode.REVIEW: 0.80,
            SelectionMode.DIAGNOSTIC: 0.50,
        }[self]

    @property
    def offset(self) -> int:
        return {
            SelectionMode.BUILD: -75,
            SelectionMode.PROVE: 0,
            SelectionMode.REVIEW: -50,
            SelectionMode.DIAGNOSTIC: 0,
        }[self]

    @property
    def spread(self) -> int:
        return {
            SelectionMode.BUILD: 75,
            SelectionMode.PROVE: 50,
            SelectionMode.REVIEW: 50,
            SelectionMode.DIAGNOSTIC: 150,
        }[self]


@dataclass
class DifficultyRecommendation:
    target: int
    minimum: int
    maximum: int
    mode: SelectionMode
    reason: str

    def contains(self, difficulty: float) -> bool:
        return self.minimum <= difficulty <= self.maximum


_MODE_REASONS = {
    SelectionMode.BUILD: "Slightly easier questions to build confidence and momentum",
    SelectionMode.PROVE: "Questions at your level to test true mastery",
    SelectionMode.REVIEW: "Comfortable questions for knowledge reinforcement",
    SelectionMode.DIAGNOSTIC: "Wide range to locate your current level",
}


class DifficultyMatcher:
    """Chooses question difficulty for a learner rating."""

    def recommend(self, rating: float, mode: SelectionMode) -> DifficultyRecommendation:
        require_finite("rating", rating)
        mode = SelectionMode(mode)
        target = clamp_rating(rating + mode.offset)
        return DifficultyRecommendation(
            target=target,
            minimum=max(MIN_RATING, target - mode.spread),
            maximum=min(MAX_RATING, target + mode.spread),
            mode=mode,
            reason=_MODE_REASONS[mode],
        )

    def difficulty_for_win_rate(self, rating: float, win_rate: float) -> int:
        """
        Invert the expected-score curve.

        The win rate is clamped to [0.1, 0.9] so the logarithm stays finite.
        """
        require_finite("win_rate", win_rate)
        p = max(0.1, min(0.9, win_rate))
        return clamp_rating(rating + 400 * math.log10((1 - p) / p))

    def match_score(self, rating: float, difficulty: float, mode: SelectionMode) -> int:
        """0-100 closeness of the expected win rate to the mode's target."""
        actual = expected_score(rating, difficulty)
        gap = abs(actual - SelectionMode(mode).target_win_rate)
        return int(round(max(0.0, 100 - gap * 200)))

    @staticmethod
    def match_quality(score: float) -> str:
        if score >= 85:
            return "excellent"
        if score >= 70:
            return "good"
        if score >= 50:
            return "fair"
        return "poor"


# ---------------------------------------------------------------------------
# Rating views
# ---------------------------------------------------------------------------


@dataclass
class RatingConfidence:
    level: str
    description: str
    percent_confident: float


def rating_confidence(rating: Rating) -> RatingConfidence:
    games = rating.games_played
    if games < 10:
        level, description = "provisional", "Rating is still being established"
    elif games < 30:
        level, description = "establishing", "Rating is converging on true skill"
    elif games < 100:
        level, description = "confident", "Rating is a good estimate of skill"
    else:
        level, description = "stable", "Rating is highly reliable"

    percent = max(0.0, min(100.0, (DEFAULT_DEVIATION - rating.deviation) / 3.2))
    return RatingConfidence(level=level, description=description, percent_confident=percent)


def momentum(rating: Rating) -> str:
    """hot / warm / neutral / cold / slump from the current streak."""
    if rating.streak_type == StreakType.WIN:
        if rating.current_streak >= 5:
            return "hot"
        if rating.current_streak >= 3:
            return "warm"
    elif rating.streak_type == StreakType.LOSS:
        if rating.current_streak >= 5:
            return "slump"
        if rating.current_streak >= 3:
            return "cold"
    return "neutral"


# ---------------------------------------------------------------------------
# Scaled score mapping
# ---------------------------------------------------------------------------

_SCALED_TABLE = [
    (100, 200),
    (200, 300),
    (300, 400),
    (400, 480),
    (500, 550),
    (600, 620),
    (700, 690),
    (800, 750),
    (900, 800),
]


def _interpolate(value: float, table: list[tuple[float, float]]) -> float:
    if value <= table[0][0]:
        return table[0][1]
    if value >= table[-1][0]:
        return table[-1][1]
    for (x0, y0), (x1, y1) in zip(table, table[1:]):
        if x0 <= value <= x1:
            return y0 + (value - x0) * (y1 - y0) / (x1 - x0)
    return table[-1][1]


def elo_to_scaled_score(rating: float) -> int:
    """Estimate a 200-800 exam score from a rating."""
    require_finite("rating", rating)
    return int(round(_interpolate(rating, _SCALED_TABLE)))


def scaled_score_to_elo(score: float) -> int:
    require_finite("score", score)
    return int(round(_interpolate(score, [(s, e) for e, s in _SCALED_TABLE])))
