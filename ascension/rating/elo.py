"""
ELO Rating Engine.

Estimates learner skill per scope (global, section, topic, atom) and moves
it toward observed outcomes against questions of known difficulty.

Update rule:
- expected = 1 / (1 + 10^((opponent - rating) / 400))
- delta = K * (actual - expected), actual in {0, 1}
- K is adaptive unless supplied: 40 / 32 / 24 by games played, then
  max(16, 20 * min(1, deviation / 100)) once the rating is stable
- deviation decays by max(0.95, 1 - games / 500), clamped to [30, 500]

Ratings are created on first encounter of a scope and only ever change
through RatingEngine.apply_outcome().
"""
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from loguru import logger

from ascension.core.errors import NotFound
from ascension.core.validation import require_finite, require_positive

DEFAULT_RATING = 500
MIN_RATING = 100
MAX_RATING = 900

DEFAULT_DEVIATION = 350
MIN_DEVIATION = 30
MAX_DEVIATION = 500

DEFAULT_VOLATILITY = 0.06

RECENT_RESULTS_SIZE = 5


class RatingScope(str, Enum):
    """Granularity a rating is tracked at."""

    GLOBAL = "global"
    SECTION = "section"
    TOPIC = "topic"
    ATOM = "atom"


class StreakType(str, Enum):
    WIN = "win"
    LOSS = "loss"


@dataclass
class Rating:
    """
    Skill estimate for one scope.

    ``streak_type`` is a single field so a rating can never be on a win
    and a loss streak at the same time.
    """

    scope: RatingScope
    scope_key: str
    value: int = DEFAULT_RATING
    deviation: int = DEFAULT_DEVIATION
    volatility: float = DEFAULT_VOLATILITY
    games_played: int = 0
    confidence_level: float = 0.0
    peak_value: int = DEFAULT_RATING
    peak_at: datetime | None = None
    last_results: list[bool] = field(default_factory=list)
    current_streak: int = 0
    streak_type: StreakType | None = None
    updated_at: datetime | None = None

    @classmethod
    def create(
        cls,
        scope: RatingScope,
        scope_key: str,
        value: int = DEFAULT_RATING,
        deviation: int = DEFAULT_DEVIATION,
    ) -> Rating:
        return cls(
            scope=RatingScope(scope),
            scope_key=scope_key,
            value=value,
            deviation=deviation,
            peak_value=value,
        )

    @property
    def key(self) -> tuple[RatingScope, str]:
        return (self.scope, self.scope_key)

    @property
    def recent_win_rate(self) -> float:
        if not self.last_results:
            return 0.0
        return sum(self.last_results) / len(self.last_results)


@dataclass
class RatingUpdate:
    """Audit record of a single apply_outcome() call."""

    scope: RatingScope
    scope_key: str
    opponent_value: float
    was_correct: bool
    expected: float
    k_factor: float
    value_before: int
    value_after: int
    deviation_before: int
    deviation_after: int
    is_new_peak: bool

    @property
    def delta(self) -> int:
        return self.value_after - self.value_before


@dataclass
class RatingConfig:
    """Configuration for the rating engine."""
    default_rating: int = DEFAULT_RATING
    default_deviation: int = DEFAULT_DEVIATION
    fixed_k_factor: float | None = None

    @classmethod
    def from_settings(cls, settings) -> RatingConfig:
        return cls(
            default_rating=settings.default_rating,
            default_deviation=settings.default_deviation,
            fixed_k_factor=settings.fixed_k_factor,
        )


def expected_score(rating: float, opponent: float) -> float:
    """
    Probability that ``rating`` beats ``opponent``.

    Symmetric: expected_score(a, b) + expected_score(b, a) == 1.
    """
    require_finite("rating", rating)
    require_finite("opponent", opponent)
    return 1.0 / (1.0 + 10 ** ((opponent - rating) / 400.0))


def adaptive_k_factor(games_played: int, deviation: float) -> float:
    if games_played < 10:
        return 40
    if games_played < 30:
        return 32
    if games_played < 100:
        return 24
    return max(16, 20 * min(1.0, deviation / 100))


def decay_deviation(deviation: float, games_played: int) -> int:
    """Shrink uncertainty as games accumulate; never leaves [30, 500]."""
    factor = max(0.95, 1 - games_played / 500)
    return int(round(min(MAX_DEVIATION, max(MIN_DEVIATION, deviation * factor))))


class RatingEngine:
    """
    Applies ELO updates to Rating records.

    The engine is stateless; ratings are owned by the caller (or a RatingStore).
    """

    def __init__(self, config: Optional[RatingConfig] = None):
        self.config = config or RatingConfig()

    def new_rating(self, scope: RatingScope, scope_key: str) -> Rating:
        return Rating.create(
            scope,
            scope_key,
            value=self.config.default_rating,
            deviation=self.config.default_deviation,
        )

    def k_factor(self, rating: Rating) -> float:
        if self.config.fixed_k_factor is not None:
            return self.config.fixed_k_factor
        return adaptive_k_factor(rating.games_played, rating.deviation)

    def apply_outcome(
        self,
        rating: Rating,
        opponent_value: float,
        was_correct: bool,
        k_factor: float | None = None,
        now: datetime | None = None,
    ) -> RatingUpdate:
        """
        Update a rating in place after one attempt.

        Args:
            rating: Rating to update
            opponent_value: Difficulty rating of the question
            was_correct: Whether the learner answered correctly
            k_factor: Override for the adaptive K-factor
            now: Timestamp recorded as updated_at / peak_at

        Returns:
            RatingUpdate describing the change
        """
        if k_factor is None:
            k_factor = self.k_factor(rating)
        else:
            require_positive("k_factor", k_factor)

        expected = expected_score(rating.value, opponent_value)
        actual = 1.0 if was_correct else 0.0
        new_value = int(round(rating.value + k_factor * (actual - expected)))

        games = rating.games_played + 1
        new_deviation = decay_deviation(rating.deviation, games)

        if was_correct:
            streak = rating.current_streak + 1 if rating.streak_type == StreakType.WIN else 1
            streak_type = StreakType.WIN
        else:
            streak = rating.current_streak + 1 if rating.streak_type == StreakType.LOSS else 1
            streak_type = StreakType.LOSS

        is_new_peak = new_value > rating.peak_value

        update = RatingUpdate(
            scope=rating.scope,
            scope_key=rating.scope_key,
            opponent_value=opponent_value,
            was_correct=was_correct,
            expected=expected,
            k_factor=k_factor,
            value_before=rating.value,
            value_after=new_value,
            deviation_before=rating.deviation,
            deviation_after=new_deviation,
            is_new_peak=is_new_peak,
        )

        rating.value = new_value
        rating.deviation = new_deviation
        rating.games_played = games
        rating.confidence_level = min(1.0, games / 100)
        rating.last_results = (rating.last_results + [was_correct])[-RECENT_RESULTS_SIZE:]
        rating.current_streak = streak
        rating.streak_type = streak_type
        rating.updated_at = now
        if is_new_peak:
            rating.peak_value = new_value
            rating.peak_at = now

        logger.debug(
            "Rating {}:{} {} -> {} (expected={:.3f}, K={})",
            rating.scope.value, rating.scope_key,
            update.value_before, new_value, expected, k_factor,
        )
        return update


class RatingStore:
    """
    In-memory rating rows keyed by (scope, scope_key).

    Hosts that persist ratings load rows into a store, apply outcomes, then
    write the mutated rows back.
    """

    def __init__(self, engine: Optional[RatingEngine] = None):
        self.engine = engine or RatingEngine()
        self._ratings: dict[tuple[RatingScope, str], Rating] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._ratings)

    def __contains__(self, key: tuple[RatingScope, str]) -> bool:
        return (RatingScope(key[0]), key[1]) in self._ratings

    def add(self, rating: Rating) -> None:
        with self._lock:
            self._ratings[rating.key] = rating

    def get(self, scope: RatingScope, scope_key: str) -> Rating:
        try:
            return self._ratings[(RatingScope(scope), scope_key)]
        except KeyError:
            raise NotFound("rating", f"{RatingScope(scope).value}:{scope_key}") from None

    def get_or_create(self, scope: RatingScope, scope_key: str) -> Rating:
        key = (RatingScope(scope), scope_key)
        with self._lock:
            rating = self._ratings.get(key)
            if rating is None:
                rating = self.engine.new_rating(key[0], scope_key)
                self._ratings[key] = rating
                logger.debug("Created rating {}:{}", key[0].value, scope_key)
            return rating

    def apply_outcome(
        self,
        scope: RatingScope,
        scope_key: str,
        opponent_value: float,
        was_correct: bool,
        k_factor: float | None = None,
        now: datetime | None = None,
    ) -> RatingUpdate:
        """Apply an outcome to an existing rating; unknown scopes raise NotFound."""
        rating = self.get(scope, scope_key)
        with self._lock:
            return self.engine.apply_outcome(rating, opponent_value, was_correct, k_factor, now)

    def all(self) -> list[Rating]:
        return list(self._ratings.values())
