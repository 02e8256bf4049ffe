"""
Priority scoring.

Each candidate atom is scored as the sum of weighted factor contributions.
A factor whose trigger condition does not hold is left out of the list
entirely, so every factor on an item explains part of its score.
"""
from __future__ import annotations

import math
from collections import Counter
from datetime import datetime
from typing import Optional

from loguru import logger

from ascension.planning.models import (
    AtomCandidate,
    FactorType,
    PriorityFactor,
    PriorityItem,
    SchedulerConfig,
    Section,
    SessionContext,
)

REVIEW_OVERDUE_CAP_DAYS = 7
STALENESS_CAP_DAYS = 14
ERROR_MIN_ATTEMPTS = 3
ERROR_RATE_TRIGGER = 0.30
ERROR_AMPLIFIER = 1.5
LOW_MASTERY_TRIGGER = 0.5


def _days_between(earlier: datetime, later: datetime) -> int:
    return math.floor((later - earlier).total_seconds() / 86400)


class PriorityScorer:
    """Ranks candidate atoms for the next block of practice."""

    def __init__(self, config: Optional[SchedulerConfig] = None):
        self.config = config or SchedulerConfig()

    def calculate_priorities(
        self,
        candidates: list[AtomCandidate],
        context: SessionContext,
    ) -> list[PriorityItem]:
        """
        Score and rank candidate atoms.

        Args:
            candidates: Atoms available for practice
            context: Learner state, including the caller-supplied ``now``

        Returns:
            PriorityItems sorted by score descending; equal scores keep the
            order the candidates were given in
        """
        section_counts = Counter(context.recent_sections)
        items = [self.score_atom(c, context, section_counts) for c in candidates]
        items.sort(key=lambda item: -item.score)
        if items:
            logger.debug(
                "Scored {} candidates; top {} ({:.2f})",
                len(items), items[0].atom_id, items[0].score,
            )
        return items

    def score_atom(
        self,
        atom: AtomCandidate,
        context: SessionContext,
        section_counts: Counter | None = None,
    ) -> PriorityItem:
        if section_counts is None:
            section_counts = Counter(context.recent_sections)
        builders = (
            self._blocking_gate(atom, context),
            self._weakness(atom, context),
            self._spaced_repetition(atom, context.now),
            self._section_balance(atom, section_counts, len(context.recent_sections)),
            self._time_since_practice(atom, context.now),
            self._error_frequency(atom),
            self._low_mastery(atom),
        )
        return PriorityItem(
            atom_id=atom.atom_id,
            section=atom.section,
            factors=[f for f in builders if f is not None],
            review_due=atom.review_due,
        )

    def _factor(self, factor_type: FactorType, value: float, reason: str) -> PriorityFactor:
        return PriorityFactor(
            type=factor_type,
            weight=self.config.weights.for_factor(factor_type),
            value=max(0.0, value),
            reason=reason,
        )

    def _blocking_gate(self, atom: AtomCandidate, context: SessionContext) -> PriorityFactor | None:
        gates = [g for g in context.blocking_gates if g.atom_id == atom.atom_id]
        if not gates:
            return None

        best = None
        for gate in gates:
            target = gate.target_progress if gate.target_progress > 0 else 1.0
            gap = min(1.0, max(0.0, (target - gate.current_progress) / target))
            value = 1 - gap if gap > 0 else 1.0
            if best is None or value > best[0]:
                best = (value, gate)
        value, gate = best
        return self._factor(FactorType.BLOCKING_GATE, value, f"Blocking gate: {gate.requirement}")

    def _weakness(self, atom: AtomCandidate, context: SessionContext) -> PriorityFactor | None:
        matches = [w for w in context.weaknesses if w.atom_id == atom.atom_id]
        if not matches:
            return None
        worst = max(matches, key=lambda w: w.severity)
        label = worst.pattern or "recurring errors"
        return self._factor(FactorType.WEAKNESS_CLUSTER, worst.severity, f"Weakness: {label}")

    def _spaced_repetition(self, atom: AtomCandidate, now: datetime) -> PriorityFactor | None:
        if atom.review_due is None:
            return None
        days_overdue = _days_between(atom.review_due, now)
        if atom.review_due > now or days_overdue < 0:
            return None
        reason = "Review due today" if days_overdue == 0 else f"Review {days_overdue} days overdue"
        return self._factor(
            FactorType.SPACED_REPETITION,
            min(1.0, days_overdue / REVIEW_OVERDUE_CAP_DAYS),
            reason,
        )

    def _section_balance(
        self,
        atom: AtomCandidate,
        section_counts: Counter,
        total_recent: int,
    ) -> PriorityFactor | None:
        section = Section(atom.section)
        ratio = section_counts.get(section, 0) / (total_recent or 1)
        target = section.target_share
        if ratio >= target:
            return None
        return self._factor(
            FactorType.SECTION_BALANCE,
            1 - ratio / target,
            f"{section.value} is {round(ratio * 100)}% of recent practice (target {round(target * 100)}%)",
        )

    def _time_since_practice(self, atom: AtomCandidate, now: datetime) -> PriorityFactor | None:
        if atom.last_practiced is None:
            return self._factor(FactorType.TIME_SINCE_PRACTICE, 1.0, "Never practiced")
        days = _days_between(atom.last_practiced, now)
        if days < 1:
            return None
        return self._factor(
            FactorType.TIME_SINCE_PRACTICE,
            min(1.0, days / STALENESS_CAP_DAYS),
            f"Last practiced {days} day{'s' if days != 1 else ''} ago",
        )

    def _error_frequency(self, atom: AtomCandidate) -> PriorityFactor | None:
        if atom.attempt_count < ERROR_MIN_ATTEMPTS:
            return None
        error_rate = 1 - atom.accuracy
        if error_rate < ERROR_RATE_TRIGGER:
            return None
        return self._factor(
            FactorType.ERROR_FREQUENCY,
            min(1.0, error_rate * ERROR_AMPLIFIER),
            f"{round(error_rate * 100)}% error rate",
        )

    def _low_mastery(self, atom: AtomCandidate) -> PriorityFactor | None:
        if atom.mastery >= LOW_MASTERY_TRIGGER:
            return None
        return self._factor(
            FactorType.LOW_MASTERY,
            1 - atom.mastery / LOW_MASTERY_TRIGGER,
            f"Mastery at {round(atom.mastery * 100)}%",
        )
