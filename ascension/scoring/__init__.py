"""
Scoring Module - Attempt outcomes, XP and feedback.

Components:
- outcome: OutcomeEvaluator, OutcomeType, reflection prompts
"""

from ascension.scoring.outcome import (
    DifficultyCategory,
    Feedback,
    OutcomeEvaluation,
    OutcomeEvaluator,
    OutcomeType,
    classify,
    difficulty_category,
    is_upset,
    reflection_prompts,
    xp_for,
)

__all__ = [
    "DifficultyCategory",
    "Feedback",
    "OutcomeEvaluation",
    "OutcomeEvaluator",
    "OutcomeType",
    "classify",
    "difficulty_category",
    "is_upset",
    "reflection_prompts",
    "xp_for",
]
