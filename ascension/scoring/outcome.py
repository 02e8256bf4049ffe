"""
Attempt outcome classification, XP and feedback.

Every finished attempt lands in exactly one outcome. The rules in
``OUTCOME_RULES`` are checked in order and the first match wins.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from loguru import logger

from ascension.core.validation import require_probability
from ascension.rating.elo import expected_score
from ascension.timing.budget import TimingCategory, category_for_ratio, time_ratio

XP_BASE = 10
XP_FAST_BONUS = 5
XP_CLEAN_BONUS = 5
XP_UPSET_BONUS = 10
XP_GUESS_PENALTY = 5

UPSET_WIN_BELOW = 0.4
UPSET_LOSS_ABOVE = 0.6


class OutcomeType(str, Enum):
    CLEAN_WIN = "clean_win"
    SLOW_WIN = "slow_win"
    LUCKY_WIN = "lucky_win"
    EXPECTED_LOSS = "expected_loss"
    UPSET_LOSS = "upset_loss"
    TIMEOUT = "timeout"

    @property
    def is_win(self) -> bool:
        return self in (OutcomeType.CLEAN_WIN, OutcomeType.SLOW_WIN, OutcomeType.LUCKY_WIN)

    @property
    def requires_reflection(self) -> bool:
        return self is not OutcomeType.CLEAN_WIN


class DifficultyCategory(str, Enum):
    EASY = "easy"
    MODERATE = "moderate"
    HARD = "hard"
    STRETCH = "stretch"


@dataclass(frozen=True)
class AttemptFacts:
    """What happened on one attempt, as seen by the classifier."""
    is_correct: bool
    was_overtime: bool
    was_guessed: bool
    expected_win_rate: float


OutcomeRule = tuple[Callable[[AttemptFacts], bool], OutcomeType]

OUTCOME_RULES: tuple[OutcomeRule, ...] = (
    (lambda f: not f.is_correct and f.was_overtime, OutcomeType.TIMEOUT),
    (lambda f: not f.is_correct and f.expected_win_rate > UPSET_LOSS_ABOVE, OutcomeType.UPSET_LOSS),
    (lambda f: not f.is_correct, OutcomeType.EXPECTED_LOSS),
    (lambda f: f.was_guessed, OutcomeType.LUCKY_WIN),
    (lambda f: f.was_overtime, OutcomeType.SLOW_WIN),
    (lambda f: True, OutcomeType.CLEAN_WIN),
)


def classify(facts: AttemptFacts) -> OutcomeType:
    for matches, outcome in OUTCOME_RULES:
        if matches(facts):
            return outcome
    raise AssertionError("outcome rules are exhaustive")


def difficulty_category(expected_win_rate: float) -> DifficultyCategory:
    if expected_win_rate >= 0.75:
        return DifficultyCategory.EASY
    if expected_win_rate >= 0.55:
        return DifficultyCategory.MODERATE
    if expected_win_rate >= 0.35:
        return DifficultyCategory.HARD
    return DifficultyCategory.STRETCH


def is_upset(is_correct: bool, expected_win_rate: float) -> bool:
    if is_correct:
        return expected_win_rate < UPSET_WIN_BELOW
    return expected_win_rate > UPSET_LOSS_ABOVE


def xp_for(outcome: OutcomeType, was_upset: bool) -> int:
    """Guess penalty first, then the upset bonus; never below zero."""
    if not outcome.is_win:
        return 0
    xp = XP_BASE
    if outcome is OutcomeType.CLEAN_WIN:
        xp += XP_FAST_BONUS + XP_CLEAN_BONUS
    elif outcome is OutcomeType.LUCKY_WIN:
        xp -= XP_GUESS_PENALTY
    if was_upset:
        xp += XP_UPSET_BONUS
    return max(0, xp)


REFLECTION_PROMPTS: dict[OutcomeType, list[str]] = {
    OutcomeType.CLEAN_WIN: [],
    OutcomeType.SLOW_WIN: [
        "What step took the longest?",
        "Is there a faster method you could have used?",
    ],
    OutcomeType.LUCKY_WIN: [
        "What made you unsure?",
        "What concept do you need to review?",
    ],
    OutcomeType.EXPECTED_LOSS: [
        "What concept did you not understand?",
        "What pattern should you recognize next time?",
        "What prerequisite knowledge were you missing?",
    ],
    OutcomeType.UPSET_LOSS: [
        "Did you misread the question?",
        "Did you fall for a trap answer?",
        "Was this a calculation error?",
        "Did you skip a step in your process?",
    ],
    OutcomeType.TIMEOUT: [
        "Where did you get stuck?",
        "Should you have guessed earlier?",
        "What strategy would help you move faster?",
    ],
}


def reflection_prompts(outcome: OutcomeType | str) -> list[str]:
    return list(REFLECTION_PROMPTS[OutcomeType(outcome)])


@dataclass
class Feedback:
    headline: str
    message: str
    suggestions: list[str] = field(default_factory=list)
    requires_reflection: bool = False
    reflection_prompt: str | None = None


def feedback_for(outcome: OutcomeType, ratio: float, difficulty: DifficultyCategory) -> Feedback:
    if outcome is OutcomeType.CLEAN_WIN:
        if difficulty in (DifficultyCategory.HARD, DifficultyCategory.STRETCH):
            return Feedback("🔥 Excellent!", "You nailed a challenging question!")
        return Feedback("🎯 Clean Win!", "Great job! You got it right within the time budget.")

    if outcome is OutcomeType.SLOW_WIN:
        fb = Feedback(
            "✓ Correct, but slow",
            f"You got it right but took {round(ratio * 100)}% of the allowed time.",
            ["Practice similar questions to improve speed", "Look for faster solution methods"],
        )
    elif outcome is OutcomeType.LUCKY_WIN:
        fb = Feedback(
            "🍀 Lucky Guess",
            "You got it right, but guessing won't work on test day.",
            ["Review the explanation to understand the concept"],
            reflection_prompt="What made you unsure about this question?",
        )
    elif outcome is OutcomeType.EXPECTED_LOSS:
        fb = Feedback(
            "✗ Incorrect",
            "This was a challenging question. Let's learn from it.",
            ["Review the explanation carefully", "Identify the concept gap"],
            reflection_prompt="What concept or pattern did you miss?",
        )
    elif outcome is OutcomeType.UPSET_LOSS:
        fb = Feedback(
            "⚠️ Careless Error?",
            "You should have gotten this one. What happened?",
            ["Check your work process", "Watch for trap answers"],
            reflection_prompt="Was this a careless error, misread, or concept gap?",
        )
    else:
        fb = Feedback(
            "⏱️ Time Out",
            "You ran out of time on this question.",
            ["Practice time management", "Know when to guess and move on"],
            reflection_prompt="Where did you get stuck or spend too much time?",
        )

    fb.requires_reflection = True
    if fb.reflection_prompt is None:
        fb.reflection_prompt = REFLECTION_PROMPTS[outcome][0]
    return fb


@dataclass
class OutcomeEvaluation:
    outcome: OutcomeType
    xp_earned: int
    was_upset: bool
    expected_win_rate: float
    difficulty: DifficultyCategory
    time_ratio: float
    timing_category: TimingCategory
    feedback: Feedback

    @property
    def requires_reflection(self) -> bool:
        return self.feedback.requires_reflection


class OutcomeEvaluator:
    """Classifies finished attempts and prices them in XP."""

    def evaluate(
        self,
        is_correct: bool,
        time_seconds: float,
        budget_seconds: float,
        expected_win_rate: float,
        was_guessed: bool = False,
    ) -> OutcomeEvaluation:
        """
        Evaluate one finished attempt.

        Args:
            is_correct: Whether the answer was right
            time_seconds: Time taken
            budget_seconds: Time allowed
            expected_win_rate: Learner's expected score against the question
            was_guessed: Learner flagged the answer as a guess

        Returns:
            OutcomeEvaluation with outcome, XP and feedback
        """
        require_probability("expected_win_rate", expected_win_rate)
        ratio = time_ratio(time_seconds, budget_seconds)
        facts = AttemptFacts(
            is_correct=is_correct,
            was_overtime=ratio > 1.0,
            was_guessed=was_guessed,
            expected_win_rate=expected_win_rate,
        )
        outcome = classify(facts)
        upset = is_upset(is_correct, expected_win_rate)
        difficulty = difficulty_category(expected_win_rate)
        xp = xp_for(outcome, upset)

        logger.debug(
            "Outcome {} (expected {:.2f}, ratio {:.2f}, xp {})",
            outcome.value, expected_win_rate, ratio, xp,
        )
        return OutcomeEvaluation(
            outcome=outcome,
            xp_earned=xp,
            was_upset=upset,
            expected_win_rate=expected_win_rate,
            difficulty=difficulty,
            time_ratio=ratio,
            timing_category=category_for_ratio(ratio),
            feedback=feedback_for(outcome, ratio, difficulty),
        )

    def evaluate_ratings(
        self,
        is_correct: bool,
        time_seconds: float,
        budget_seconds: float,
        learner_rating: float,
        question_rating: float,
        was_guessed: bool = False,
    ) -> OutcomeEvaluation:
        """Same as ``evaluate`` with the expected win rate derived from ratings."""
        return self.evaluate(
            is_correct,
            time_seconds,
            budget_seconds,
            expected_score(learner_rating, question_rating),
            was_guessed=was_guessed,
        )
