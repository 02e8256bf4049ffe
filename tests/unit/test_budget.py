"""
Unit tests for time budgets and time-usage categories.
"""

import pytest

from ascension.core import InvalidInput
from ascension.timing import (
    BudgetCalculator,
    QuestionType,
    TimingCategory,
    TimingMode,
    TimingResult,
    categorize_time_usage,
)


@pytest.fixture
def calculator():
    return BudgetCalculator()


class TestTimingMode:
    """Tests for the level -> timing mode table."""

    @pytest.mark.parametrize("level,mode", [
        (1, TimingMode.LEARNING),
        (2, TimingMode.LEARNING),
        (3, TimingMode.EXTENDED),
        (5, TimingMode.STANDARD),
        (7, TimingMode.STRICT),
        (9, TimingMode.TEST_REALISTIC),
        (10, TimingMode.TEST_REALISTIC),
        (0, TimingMode.LEARNING),
        (42, TimingMode.TEST_REALISTIC),
    ])
    def test_levels_clamped(self, level, mode):
        """Levels outside 1-10 are clamped rather than rejected."""
        assert TimingMode.for_level(level) is mode

    def test_enforcement(self):
        """Only strict and test-realistic modes enforce the budget."""
        assert TimingMode.STRICT.strict_enforcement
        assert TimingMode.TEST_REALISTIC.warning_threshold == 0.6
        assert not TimingMode.STANDARD.strict_enforcement


class TestCalculate:
    """Tests for BudgetCalculator.calculate()."""

    def test_learning_triples_budget(self, calculator):
        budget = calculator.calculate("problem-solving", 1)
        assert budget.standard_seconds == 120
        assert budget.adjusted_seconds == 360
        assert budget.mode is TimingMode.LEARNING
        assert budget.question_type is QuestionType.PROBLEM_SOLVING

    def test_custom_multiplier(self, calculator):
        budget = calculator.calculate(QuestionType.SENTENCE_CORRECTION, 3, custom_multiplier=1.2)
        assert budget.adjusted_seconds == 162

    def test_long_form_budget(self, calculator):
        assert calculator.calculate("analytical-writing", 6).adjusted_seconds == 1800

    def test_unknown_type(self, calculator):
        with pytest.raises(InvalidInput):
            calculator.calculate("essay", 5)

    def test_bad_multiplier(self, calculator):
        with pytest.raises(InvalidInput):
            calculator.calculate("problem-solving", 5, custom_multiplier=0)

    def test_budget_below_one_second(self, calculator):
        with pytest.raises(InvalidInput):
            calculator.calculate("sentence-correction", 5, custom_multiplier=0.004)

    def test_block_budget(self, calculator):
        block = calculator.block_budget(["problem-solving", "sentence-correction"], 5)
        assert block.total_seconds == 210
        assert block.average_per_question == 105

    def test_recommended_pace(self, calculator):
        assert calculator.recommended_pace(60, 30).warning is None
        aggressive = calculator.recommended_pace(10, 30)
        assert aggressive.seconds_per_question == 20
        assert "aggressive" in aggressive.warning

    @pytest.mark.parametrize("remaining,urgency", [
        (100, "none"),
        (40, "low"),
        (10, "medium"),
        (0, "high"),
    ])
    def test_time_remaining_message(self, calculator, remaining, urgency):
        budget = calculator.calculate("problem-solving", 5)
        assert calculator.time_remaining_message(remaining, budget).urgency == urgency


class TestCategorize:
    """Tests for categorize_time_usage() and TimingResult."""

    def test_overtime_scenario(self):
        """Budget 120s, actual 150s -> overtime at 125%."""
        assert categorize_time_usage(150, 120) is TimingCategory.OVERTIME

        result = TimingResult.from_times("q1", "problem-solving", 120, 150)
        assert result.was_overtime
        assert result.percent_used == pytest.approx(125)
        assert result.timing_category is TimingCategory.OVERTIME

    @pytest.mark.parametrize("actual,category", [
        (0, TimingCategory.FAST),
        (71, TimingCategory.FAST),
        (72, TimingCategory.OPTIMAL),
        (95, TimingCategory.OPTIMAL),
        (96, TimingCategory.SLOW),
        (120, TimingCategory.SLOW),
        (121, TimingCategory.OVERTIME),
    ])
    def test_boundaries(self, actual, category):
        """fast < 0.6 <= optimal < 0.8 <= slow <= 1.0 < overtime."""
        assert categorize_time_usage(actual, 120) is category

    def test_idempotent(self):
        """Same inputs, same category."""
        assert categorize_time_usage(100, 120) is categorize_time_usage(100, 120)

    @pytest.mark.parametrize("actual,budget", [
        (-1, 120),
        (float("nan"), 120),
        (60, 0),
        (60, -5),
        (float("inf"), 120),
    ])
    def test_rejects_bad_input(self, actual, budget):
        """Negative, non-finite or zero-budget inputs fail fast."""
        with pytest.raises(InvalidInput):
            categorize_time_usage(actual, budget)
