"""
Per-question time budgets.

A budget starts from a fixed standard time per question type and is
stretched according to the learner's level:

    levels 1-2   learning         x3.0  warn at 100%
    levels 3-4   extended         x1.5  warn at 90%
    levels 5-6   standard         x1.0  warn at 80%
    levels 7-8   strict           x1.0  warn at 70%, enforced
    levels 9-10  test-realistic   x1.0  warn at 60%, enforced

Levels outside 1-10 are clamped.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from ascension.core.errors import InvalidInput
from ascension.core.validation import (
    require_finite,
    require_finite_non_negative,
    require_positive,
)


class QuestionType(str, Enum):
    PROBLEM_SOLVING = "problem-solving"
    DATA_SUFFICIENCY = "data-sufficiency"
    READING_COMPREHENSION = "reading-comprehension"
    CRITICAL_REASONING = "critical-reasoning"
    SENTENCE_CORRECTION = "sentence-correction"
    MULTI_SOURCE_REASONING = "multi-source-reasoning"
    TABLE_ANALYSIS = "table-analysis"
    GRAPHICS_INTERPRETATION = "graphics-interpretation"
    TWO_PART_ANALYSIS = "two-part-analysis"
    ANALYTICAL_WRITING = "analytical-writing"

    @classmethod
    def parse(cls, value: QuestionType | str) -> QuestionType:
        try:
            return cls(value)
        except ValueError:
            raise InvalidInput(f"Unknown question type: {value!r}") from None

    @property
    def standard_seconds(self) -> int:
        return STANDARD_BUDGETS[self]

    @property
    def display_name(self) -> str:
        return self.value.replace("-", " ")


STANDARD_BUDGETS: dict[QuestionType, int] = {
    QuestionType.PROBLEM_SOLVING: 120,
    QuestionType.DATA_SUFFICIENCY: 120,
    QuestionType.READING_COMPREHENSION: 150,
    QuestionType.CRITICAL_REASONING: 120,
    QuestionType.SENTENCE_CORRECTION: 90,
    QuestionType.MULTI_SOURCE_REASONING: 150,
    QuestionType.TABLE_ANALYSIS: 150,
    QuestionType.GRAPHICS_INTERPRETATION: 120,
    QuestionType.TWO_PART_ANALYSIS: 180,
    QuestionType.ANALYTICAL_WRITING: 1800,
}


class TimingMode(str, Enum):
    LEARNING = "learning"
    EXTENDED = "extended"
    STANDARD = "standard"
    STRICT = "strict"
    TEST_REALISTIC = "test-realistic"

    @classmethod
    def for_level(cls, level: int) -> TimingMode:
        require_finite("level", level)
        clamped = max(1, min(10, int(level)))
        if clamped <= 2:
            return cls.LEARNING
        if clamped <= 4:
            return cls.EXTENDED
        if clamped <= 6:
            return cls.STANDARD
        if clamped <= 8:
            return cls.STRICT
        return cls.TEST_REALISTIC

    @property
    def multiplier(self) -> float:
        return {
            TimingMode.LEARNING: 3.0,
            TimingMode.EXTENDED: 1.5,
        }.get(self, 1.0)

    @property
    def warning_threshold(self) -> float:
        return {
            TimingMode.LEARNING: 1.0,
            TimingMode.EXTENDED: 0.9,
            TimingMode.STANDARD: 0.8,
            TimingMode.STRICT: 0.7,
            TimingMode.TEST_REALISTIC: 0.6,
        }[self]

    @property
    def strict_enforcement(self) -> bool:
        return self in (TimingMode.STRICT, TimingMode.TEST_REALISTIC)

    @property
    def description(self) -> str:
        return {
            TimingMode.LEARNING: "Learning mode - take your time to understand concepts",
            TimingMode.EXTENDED: "Extended time - 50% extra to build confidence",
            TimingMode.STANDARD: "Standard timing - exam pace",
            TimingMode.STRICT: "Strict timing - budget is enforced",
            TimingMode.TEST_REALISTIC: "Test-realistic - exam conditions with early warnings",
        }[self]


class TimingCategory(str, Enum):
    FAST = "fast"
    OPTIMAL = "optimal"
    SLOW = "slow"
    OVERTIME = "overtime"


@dataclass(frozen=True)
class TimeBudget:
    standard_seconds: int
    adjusted_seconds: int
    warning_threshold: float
    strict_enforcement: bool
    mode: TimingMode
    question_type: QuestionType | None = None

    def __post_init__(self):
        if self.adjusted_seconds < 1:
            raise InvalidInput(f"Time budget must be at least 1 second, got {self.adjusted_seconds}")


@dataclass(frozen=True)
class TimingResult:
    """Immutable record of a finished timed question."""
    question_id: str
    question_type: QuestionType
    budget_seconds: float
    actual_seconds: float
    time_ratio: float
    was_overtime: bool
    percent_used: float
    timing_category: TimingCategory

    @classmethod
    def from_times(
        cls,
        question_id: str,
        question_type: QuestionType | str,
        budget_seconds: float,
        actual_seconds: float,
    ) -> TimingResult:
        ratio = time_ratio(actual_seconds, budget_seconds)
        return cls(
            question_id=question_id,
            question_type=QuestionType.parse(question_type),
            budget_seconds=budget_seconds,
            actual_seconds=actual_seconds,
            time_ratio=ratio,
            was_overtime=ratio > 1.0,
            percent_used=ratio * 100,
            timing_category=category_for_ratio(ratio),
        )


def time_ratio(actual_seconds: float, budget_seconds: float) -> float:
    require_finite_non_negative("actual_seconds", actual_seconds)
    require_positive("budget_seconds", budget_seconds)
    return actual_seconds / budget_seconds


def category_for_ratio(ratio: float) -> TimingCategory:
    if ratio > 1.0:
        return TimingCategory.OVERTIME
    if ratio >= 0.8:
        return TimingCategory.SLOW
    if ratio < 0.6:
        return TimingCategory.FAST
    return TimingCategory.OPTIMAL


def categorize_time_usage(actual_seconds: float, budget_seconds: float) -> TimingCategory:
    """fast < 0.6 <= optimal < 0.8 <= slow <= 1.0 < overtime."""
    return category_for_ratio(time_ratio(actual_seconds, budget_seconds))


@dataclass
class BlockBudget:
    total_seconds: int
    budgets: list[TimeBudget]

    @property
    def average_per_question(self) -> float:
        return self.total_seconds / len(self.budgets) if self.budgets else 0.0


@dataclass
class PaceRecommendation:
    seconds_per_question: float
    warning: str | None = None


@dataclass
class RemainingMessage:
    message: str
    urgency: str  # 'none', 'low', 'medium', 'high'


class BudgetCalculator:
    """Derives time budgets from question type and learner level."""

    MIN_REALISTIC_SECONDS = 60
    MAX_REALISTIC_SECONDS = 300

    def timing_mode(self, level: int) -> TimingMode:
        return TimingMode.for_level(level)

    def calculate(
        self,
        question_type: QuestionType | str,
        level: int,
        custom_multiplier: float | None = None,
    ) -> TimeBudget:
        """
        Compute the budget for one question.

        Args:
            question_type: Question type (enum or its string value)
            level: Learner level, clamped to 1-10
            custom_multiplier: Extra stretch factor (e.g. accommodations)

        Returns:
            TimeBudget
        """
        qtype = QuestionType.parse(question_type)
        mode = self.timing_mode(level)
        multiplier = mode.multiplier
        if custom_multiplier is not None:
            multiplier *= require_positive("custom_multiplier", custom_multiplier)

        standard = qtype.standard_seconds
        return TimeBudget(
            standard_seconds=standard,
            adjusted_seconds=int(round(standard * multiplier)),
            warning_threshold=mode.warning_threshold,
            strict_enforcement=mode.strict_enforcement,
            mode=mode,
            question_type=qtype,
        )

    def block_budget(self, question_types: Iterable[QuestionType | str], level: int) -> BlockBudget:
        budgets = [self.calculate(qt, level) for qt in question_types]
        return BlockBudget(
            total_seconds=sum(b.adjusted_seconds for b in budgets),
            budgets=budgets,
        )

    def recommended_pace(self, target_minutes: float, question_count: int) -> PaceRecommendation:
        require_positive("target_minutes", target_minutes)
        require_positive("question_count", question_count)
        per_question = target_minutes * 60 / question_count

        warning = None
        if per_question < self.MIN_REALISTIC_SECONDS:
            warning = (
                f"Target pace of {round(per_question)}s per question is very aggressive. "
                "Consider more time or fewer questions."
            )
        elif per_question > self.MAX_REALISTIC_SECONDS:
            warning = (
                f"Target pace of {round(per_question)}s per question is slower than needed. "
                "You have extra time."
            )
        return PaceRecommendation(seconds_per_question=per_question, warning=warning)

    def time_remaining_message(self, remaining_seconds: float, budget: TimeBudget) -> RemainingMessage:
        require_finite("remaining_seconds", remaining_seconds)
        if remaining_seconds <= 0:
            text = "Time expired!" if budget.strict_enforcement else "Over time - consider wrapping up"
            return RemainingMessage(text, "high")

        used = 1 - remaining_seconds / budget.adjusted_seconds
        seconds_left = round(remaining_seconds)
        if used >= budget.warning_threshold:
            left_pct = round((1 - used) * 100)
            return RemainingMessage(f"{seconds_left}s remaining - {left_pct}% of budget left", "medium")
        if used >= budget.warning_threshold - 0.2:
            return RemainingMessage(f"{seconds_left}s remaining", "low")
        return RemainingMessage(f"{seconds_left}s remaining", "none")

