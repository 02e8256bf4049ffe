"""
Abandonment tracking.

Records questions the learner walked away from and mines the history for
habits: giving up early, struggling far past the budget, or guessing
strategically near the end of the budget (the healthy one).
"""
from __future__ import annotations

import threading
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from loguru import logger

from ascension.core.validation import require_finite_non_negative, require_positive
from ascension.timing.budget import QuestionType


class AbandonReason(str, Enum):
    TIMEOUT = "timeout"
    GAVE_UP = "gave-up"
    SKIPPED = "skipped"
    STRATEGIC = "strategic"


class PatternType(str, Enum):
    EARLY_ABANDON = "early-abandon"
    LATE_STRUGGLE = "late-struggle"
    STRATEGIC = "strategic"


@dataclass
class AbandonmentConfig:
    """Thresholds as fractions of the standard budget."""
    strategic_threshold: float = 0.7
    early_threshold: float = 0.3
    min_events_for_patterns: int = 3
    min_events_per_pattern: int = 2

    @classmethod
    def from_settings(cls, settings) -> AbandonmentConfig:
        return cls(
            strategic_threshold=settings.strategic_guess_threshold,
            early_threshold=settings.early_abandon_threshold,
        )


@dataclass(frozen=True)
class AbandonmentEvent:
    question_id: str
    question_type: QuestionType
    elapsed_seconds: float
    percent_budget_used: float
    reason: AbandonReason
    was_strategic_guess: bool
    explicit_reason: bool = True


@dataclass
class AbandonmentPattern:
    type: PatternType
    description: str
    frequency: float
    question_types: list[QuestionType]
    count: int


@dataclass
class TypeAbandonmentStats:
    count: int
    average_seconds: float
    average_percent: float


@dataclass
class AbandonmentStats:
    total: int = 0
    average_seconds: float = 0.0
    average_percent_budget_used: float = 0.0
    strategic_guess_rate: float = 0.0
    by_question_type: dict[QuestionType, TypeAbandonmentStats] = field(default_factory=dict)
    by_reason: dict[AbandonReason, int] = field(default_factory=dict)


@dataclass
class AbandonThreshold:
    recommended_percent: int
    reasoning: str


class AbandonmentTracker:
    """Accumulates abandonment events for one learner."""

    def __init__(self, config: Optional[AbandonmentConfig] = None):
        self.config = config or AbandonmentConfig()
        self._events: list[AbandonmentEvent] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._events)

    @property
    def events(self) -> list[AbandonmentEvent]:
        return list(self._events)

    def clear(self) -> None:
        with self._lock:
            self._events = []

    def infer_reason(self, percent_budget_used: float) -> AbandonReason:
        fraction = percent_budget_used / 100
        if fraction >= 1.0:
            return AbandonReason.TIMEOUT
        if fraction >= self.config.strategic_threshold:
            return AbandonReason.STRATEGIC
        if fraction < self.config.early_threshold:
            return AbandonReason.SKIPPED
        return AbandonReason.GAVE_UP

    def record(
        self,
        question_id: str,
        question_type: QuestionType | str,
        elapsed_seconds: float,
        reason: AbandonReason | str | None = None,
        budget_seconds: float | None = None,
    ) -> AbandonmentEvent:
        """
        Record one abandoned question.

        Args:
            question_id: Question that was abandoned
            question_type: Its type (decides the standard budget)
            elapsed_seconds: Time spent before abandoning
            reason: Explicit reason, inferred from budget use when omitted
            budget_seconds: Override for the standard budget

        Returns:
            The recorded AbandonmentEvent
        """
        qtype = QuestionType.parse(question_type)
        require_finite_non_negative("elapsed_seconds", elapsed_seconds)
        budget = budget_seconds if budget_seconds is not None else qtype.standard_seconds
        require_positive("budget_seconds", budget)

        percent = elapsed_seconds / budget * 100
        explicit = reason is not None
        resolved = AbandonReason(reason) if explicit else self.infer_reason(percent)

        strategic = resolved is AbandonReason.STRATEGIC or (
            percent >= self.config.strategic_threshold * 100 and resolved is not AbandonReason.GAVE_UP
        )

        event = AbandonmentEvent(
            question_id=question_id,
            question_type=qtype,
            elapsed_seconds=elapsed_seconds,
            percent_budget_used=percent,
            reason=resolved,
            was_strategic_guess=strategic,
            explicit_reason=explicit,
        )
        with self._lock:
            self._events.append(event)
        logger.debug(
            "Abandoned {} after {:.0f}% of budget ({})",
            question_id, percent, resolved.value,
        )
        return event

    def patterns(self) -> list[AbandonmentPattern]:
        """Habits visible in the event history (needs a minimum number of events)."""
        events = self.events
        cfg = self.config
        if len(events) < cfg.min_events_for_patterns:
            return []

        groups = [
            (
                PatternType.EARLY_ABANDON,
                "Tendency to give up quickly on challenging questions",
                [e for e in events if e.percent_budget_used < cfg.early_threshold * 100],
            ),
            (
                PatternType.LATE_STRUGGLE,
                "Spending too much time before abandoning difficult questions",
                [e for e in events if e.percent_budget_used > 100 and not e.was_strategic_guess],
            ),
            (
                PatternType.STRATEGIC,
                "Good use of strategic guessing to maintain pace",
                [e for e in events if e.was_strategic_guess],
            ),
        ]

        found = []
        for pattern_type, description, matched in groups:
            if len(matched) < cfg.min_events_per_pattern:
                continue
            types = list(dict.fromkeys(e.question_type for e in matched))
            found.append(AbandonmentPattern(
                type=pattern_type,
                description=description,
                frequency=len(matched) / len(events),
                question_types=types,
                count=len(matched),
            ))
            logger.info("Abandonment pattern {} ({} events)", pattern_type.value, len(matched))
        return found

    def statistics(self) -> AbandonmentStats:
        events = self.events
        if not events:
            return AbandonmentStats()

        by_type: dict[QuestionType, list[AbandonmentEvent]] = {}
        for event in events:
            by_type.setdefault(event.question_type, []).append(event)

        n = len(events)
        return AbandonmentStats(
            total=n,
            average_seconds=sum(e.elapsed_seconds for e in events) / n,
            average_percent_budget_used=sum(e.percent_budget_used for e in events) / n,
            strategic_guess_rate=sum(1 for e in events if e.was_strategic_guess) / n,
            by_question_type={
                qtype: TypeAbandonmentStats(
                    count=len(group),
                    average_seconds=sum(e.elapsed_seconds for e in group) / len(group),
                    average_percent=sum(e.percent_budget_used for e in group) / len(group),
                )
                for qtype, group in by_type.items()
            },
            by_reason=dict(Counter(e.reason for e in events)),
        )

    def recommendations(self) -> list[str]:
        stats = self.statistics()
        patterns = {p.type: p for p in self.patterns()}
        recs = []

        if stats.total > 5 and stats.strategic_guess_rate < 0.3:
            recs.append(
                "Consider making strategic guesses earlier when stuck. Unanswered questions cost more than wrong ones."
            )

        early = patterns.get(PatternType.EARLY_ABANDON)
        if early and early.frequency > 0.3:
            names = ", ".join(t.display_name for t in early.question_types)
            recs.append(
                f"You often abandon {names} questions quickly. Try spending a bit more time - you might solve them."
            )

        late = patterns.get(PatternType.LATE_STRUGGLE)
        if late and late.frequency > 0.3:
            recs.append(
                "When a question takes more than 1.5x the budget, consider making an educated guess and moving on."
            )

        for qtype, type_stats in stats.by_question_type.items():
            if type_stats.count >= 3 and type_stats.average_percent > 100:
                recs.append(f"{qtype.display_name} questions cause overtime. Review strategies for this type.")
        return recs

    def optimal_abandon_threshold(self, question_type: QuestionType | str) -> AbandonThreshold:
        qtype = QuestionType.parse(question_type)
        typed = [e for e in self._events if e.question_type is qtype]
        if len(typed) < 5:
            return AbandonThreshold(80, "Default threshold - not enough data for a personal recommendation")

        strategic = [e for e in typed if e.was_strategic_guess]
        if strategic:
            avg = sum(e.percent_budget_used for e in strategic) / len(strategic)
            return AbandonThreshold(
                round(avg),
                f"Based on your {len(strategic)} strategic guesses on this type",
            )
        return AbandonThreshold(75, "Consider guessing at 75% of the time budget if stuck")
