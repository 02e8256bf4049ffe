"""
Anti-grind rules.

Caps the reward for hammering the same atom over and over:
- per-session practice cap with a cooldown after it is reached
- diminishing XP once an atom has been practiced a few times
- streak bonuses only for varied streaks
- cooldown bookkeeping for atoms and gates
"""
from __future__ import annotations

import math
import threading
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from loguru import logger

from ascension.core.validation import require_finite_non_negative
from ascension.planning.models import AntiGrindConfig

INCORRECT_XP_MULTIPLIER = 0.2
MIN_XP_MULTIPLIER = 0.2
DIMINISHING_STEP = 0.2
LOW_DIVERSITY_RATIO = 0.3
STREAK_STEP = 0.05
MAX_STREAK_BONUS = 1.5


@dataclass(frozen=True)
class PracticeAttempt:
    atom_id: str
    timestamp: datetime
    was_correct: bool = True


@dataclass
class PracticeDecision:
    allowed: bool
    reason: str | None = None
    cooldown_remaining_minutes: int | None = None


@dataclass
class XpAward:
    base_xp: float
    multiplier: float
    final_xp: int
    reason: str


@dataclass
class VarietyCheck:
    met: bool
    unique_atoms: int
    required: int


@dataclass
class SessionHealth:
    is_grinding: bool
    variety_score: int
    most_practiced_atom: str | None
    most_practiced_count: int
    recommendations: list[str] = field(default_factory=list)


class AntiGrindGuard:
    """Practice and reward limits for one learner's session."""

    def __init__(self, config: Optional[AntiGrindConfig] = None):
        self.config = config or AntiGrindConfig()

    def can_practice(
        self,
        atom_id: str,
        session_counts: dict[str, int],
        recent_attempts: list[PracticeAttempt],
        now: datetime,
    ) -> PracticeDecision:
        """
        Decide whether the learner may practice an atom right now.

        Args:
            atom_id: Atom the learner wants to practice
            session_counts: Attempts per atom in the current session
            recent_attempts: Recent attempts across sessions, any order
            now: Caller-supplied current time

        Returns:
            PracticeDecision, with the remaining cooldown when denied for it
        """
        cfg = self.config
        count = session_counts.get(atom_id, 0)
        if count >= cfg.max_same_atom_per_session:
            logger.debug("Atom {} capped at {} attempts this session", atom_id, count)
            return PracticeDecision(
                allowed=False,
                reason=f"Maximum {cfg.max_same_atom_per_session} attempts per session reached for this atom",
            )

        for_atom = sorted(
            (a for a in recent_attempts if a.atom_id == atom_id),
            key=lambda a: a.timestamp,
        )
        if len(for_atom) >= cfg.max_same_atom_per_session:
            elapsed_minutes = (now - for_atom[-1].timestamp).total_seconds() / 60
            if elapsed_minutes < cfg.cooldown_minutes:
                remaining = math.ceil(cfg.cooldown_minutes - elapsed_minutes)
                return PracticeDecision(
                    allowed=False,
                    reason=f"Cooldown active. Try again in {remaining} minutes",
                    cooldown_remaining_minutes=remaining,
                )
        return PracticeDecision(allowed=True)

    def xp_multiplier(self, practice_count: int, is_correct: bool) -> float:
        if not is_correct:
            return INCORRECT_XP_MULTIPLIER
        threshold = self.config.diminishing_returns_threshold
        if practice_count < threshold:
            return 1.0
        return max(MIN_XP_MULTIPLIER, 1 - (practice_count - threshold) * DIMINISHING_STEP)

    def calculate_xp(
        self,
        base_xp: float,
        atom_id: str,
        session_counts: dict[str, int],
        is_correct: bool,
    ) -> XpAward:
        require_finite_non_negative("base_xp", base_xp)
        count = session_counts.get(atom_id, 0)
        multiplier = self.xp_multiplier(count, is_correct)

        if not is_correct:
            reason = "Partial XP for attempt"
        elif multiplier < 1.0:
            reason = f"Diminishing returns ({round(multiplier * 100)}% XP, practice other atoms)"
        else:
            reason = "Full XP"
        return XpAward(
            base_xp=base_xp,
            multiplier=multiplier,
            final_xp=round(base_xp * multiplier),
            reason=reason,
        )

    @staticmethod
    def streak_bonus(streak_length: int, unique_atoms: int, total_in_streak: int) -> float:
        """Bonus multiplier for a streak; repetitive streaks earn nothing extra."""
        if total_in_streak <= 0:
            return 1.0
        if unique_atoms / total_in_streak < LOW_DIVERSITY_RATIO:
            return 1.0
        return min(MAX_STREAK_BONUS, 1 + streak_length * STREAK_STEP)

    @staticmethod
    def variety_score(attempts: list[PracticeAttempt]) -> int:
        if not attempts:
            return 100
        unique = len({a.atom_id for a in attempts})
        return min(100, round(unique / len(attempts) * 200))

    def variety_requirement(self, attempts: list[PracticeAttempt]) -> VarietyCheck:
        unique = len({a.atom_id for a in attempts})
        required = self.config.min_variety_per_block
        return VarietyCheck(met=unique >= required, unique_atoms=unique, required=required)

    def variety_recommendations(
        self,
        available_atoms: list[str],
        session_counts: dict[str, int],
        limit: int = 3,
    ) -> list[str]:
        """Atoms not yet touched this session, in the order given."""
        return [a for a in available_atoms if session_counts.get(a, 0) == 0][:limit]

    def session_health(self, attempts: list[PracticeAttempt]) -> SessionHealth:
        counts = Counter(a.atom_id for a in attempts)
        score = self.variety_score(attempts)
        top_atom, top_count = counts.most_common(1)[0] if counts else (None, 0)

        grinding = len(attempts) > 5 and top_count > len(attempts) / 2
        recs = []
        if grinding:
            recs.append("You're focusing heavily on one atom. Mix in other topics for better retention.")
        if score < 50:
            recs.append("Try practicing a wider variety of atoms in each session.")
        if grinding:
            logger.info("Grinding detected on {} ({} of {} attempts)", top_atom, top_count, len(attempts))
        return SessionHealth(
            is_grinding=grinding,
            variety_score=score,
            most_practiced_atom=top_atom,
            most_practiced_count=top_count,
            recommendations=recs,
        )


class CooldownTracker:
    """Cooldown deadlines for atoms and gates, keyed by ``kind:id``."""

    def __init__(self):
        self._until: dict[str, datetime] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _key(kind: str, key: str) -> str:
        return f"{kind}:{key}"

    def start(self, kind: str, key: str, minutes: float, now: datetime) -> datetime:
        require_finite_non_negative("minutes", minutes)
        until = now + timedelta(minutes=minutes)
        with self._lock:
            self._until[self._key(kind, key)] = until
        logger.debug("Cooldown on {} {} until {}", kind, key, until.isoformat())
        return until

    def is_on_cooldown(self, kind: str, key: str, now: datetime) -> bool:
        until = self._until.get(self._key(kind, key))
        return until is not None and now < until

    def remaining(self, kind: str, key: str, now: datetime) -> float:
        """Minutes left on a cooldown, 0 when none is active."""
        until = self._until.get(self._key(kind, key))
        if until is None or now >= until:
            return 0.0
        return (until - now).total_seconds() / 60

    def active(self, now: datetime) -> dict[str, datetime]:
        with self._lock:
            return {k: v for k, v in self._until.items() if now < v}

    def clear_expired(self, now: datetime) -> int:
        with self._lock:
            expired = [k for k, v in self._until.items() if now >= v]
            for k in expired:
                del self._until[k]
        return len(expired)

    def clear_all(self) -> None:
        with self._lock:
            self._until.clear()
