"""
Review Module - SM-2 spaced repetition.

Components:
- sm2: ReviewItem, ReviewScheduler, ReviewQueue, quality_from_outcome
"""

from ascension.review.sm2 import (
    DEFAULT_EASE_FACTOR,
    MIN_EASE_FACTOR,
    Confidence,
    ReviewItem,
    ReviewQueue,
    ReviewQueueStats,
    ReviewScheduler,
    next_ease_factor,
    quality_from_outcome,
)

__all__ = [
    "DEFAULT_EASE_FACTOR",
    "MIN_EASE_FACTOR",
    "Confidence",
    "ReviewItem",
    "ReviewQueue",
    "ReviewQueueStats",
    "ReviewScheduler",
    "next_ease_factor",
    "quality_from_outcome",
]
