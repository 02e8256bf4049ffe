"""
SM-2 Spaced Repetition Scheduler.

Decides when a previously seen atom must be revisited.

Algorithm (per review, quality q in 0..5):
- EF' = max(1.3, EF + 0.1 - (5 - q) * (0.08 + (5 - q) * 0.02))
- q < 3: repetitions reset to 0, interval back to 1 day
- q >= 3: repetitions += 1; interval 1, then 6, then round(interval * EF')
- due date = now + interval days

Quality comes from the raw outcome: correct answers map easy/medium/hard
to 5/4/3, incorrect answers to 2/1/0 (a confident miss is the worst sign).
"""
from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Optional

from loguru import logger

from ascension.core.errors import InvalidInput, NotFound
from ascension.core.validation import require_in_range, require_positive

DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
PASSING_QUALITY = 3


class Confidence(str, Enum):
    """Self-reported difficulty of an answered question."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


def quality_from_outcome(is_correct: bool, confidence: Confidence | str) -> int:
    """Map a raw outcome to an SM-2 quality score."""
    try:
        confidence = Confidence(confidence)
    except ValueError:
        raise InvalidInput(f"Unknown confidence: {confidence!r}") from None

    if is_correct:
        return {Confidence.EASY: 5, Confidence.MEDIUM: 4, Confidence.HARD: 3}[confidence]
    return {Confidence.EASY: 2, Confidence.MEDIUM: 1, Confidence.HARD: 0}[confidence]


def next_ease_factor(ease_factor: float, quality: int) -> float:
    miss = 5 - quality
    return max(MIN_EASE_FACTOR, ease_factor + 0.1 - miss * (0.08 + miss * 0.02))


@dataclass
class ReviewItem:
    """Scheduling state for one atom the learner has seen."""
    atom_id: str
    ease_factor: float = DEFAULT_EASE_FACTOR
    interval_days: int = 1
    repetitions: int = 0
    due_date: datetime | None = None
    last_reviewed_at: datetime | None = None
    suspended: bool = False
    suspended_until: datetime | None = None
    user_id: str | None = None

    def is_suspended(self, as_of: datetime) -> bool:
        if not self.suspended:
            return False
        return self.suspended_until is None or as_of < self.suspended_until

    def is_due(self, as_of: datetime) -> bool:
        if self.due_date is None or self.is_suspended(as_of):
            return False
        return self.due_date <= as_of


class ReviewScheduler:
    """SM-2 interval computation and due-item queries."""

    def process_review(
        self,
        item: ReviewItem | None,
        quality: int,
        now: datetime,
        atom_id: str | None = None,
    ) -> ReviewItem:
        """
        Apply one review and return the updated item.

        Args:
            item: Existing review item, or None for a first review
            quality: SM-2 quality, 0-5
            now: Review timestamp
            atom_id: Required when item is None

        Returns:
            A new ReviewItem (the input is not mutated)
        """
        if isinstance(quality, bool) or not isinstance(quality, int):
            raise InvalidInput(f"quality must be an integer 0-5, got {quality!r}")
        require_in_range("quality", quality, 0, 5)

        if item is None:
            if atom_id is None:
                raise InvalidInput("atom_id is required for a first review")
            passed = quality >= PASSING_QUALITY
            created = ReviewItem(
                atom_id=atom_id,
                ease_factor=DEFAULT_EASE_FACTOR,
                interval_days=1,
                repetitions=1 if passed else 0,
                due_date=now + timedelta(days=1),
                last_reviewed_at=now,
            )
            logger.debug("New review item {} (q={})", atom_id, quality)
            return created

        ease = next_ease_factor(item.ease_factor, quality)
        if quality < PASSING_QUALITY:
            repetitions = 0
            interval = 1
        else:
            repetitions = item.repetitions + 1
            if repetitions == 1:
                interval = 1
            elif repetitions == 2:
                interval = 6
            else:
                interval = max(1, round(item.interval_days * ease))

        logger.debug(
            "Review {} q={} -> interval {}d, EF {:.2f}, reps {}",
            item.atom_id, quality, interval, ease, repetitions,
        )
        return replace(
            item,
            ease_factor=ease,
            interval_days=interval,
            repetitions=repetitions,
            due_date=now + timedelta(days=interval),
            last_reviewed_at=now,
        )

    def get_items_due(self, items: list[ReviewItem], as_of: datetime) -> list[ReviewItem]:
        """Items due at ``as_of`` (inclusive), oldest due date first."""
        due = [item for item in items if item.is_due(as_of)]
        return sorted(due, key=lambda item: item.due_date)

    def suspend(self, item: ReviewItem, until: datetime | None = None) -> ReviewItem:
        return replace(item, suspended=True, suspended_until=until)

    def unsuspend(self, item: ReviewItem) -> ReviewItem:
        return replace(item, suspended=False, suspended_until=None)

    def retention_score(self, items: list[ReviewItem], as_of: datetime) -> int:
        """
        0-100 estimate of how well the review backlog is kept up.

        Items not yet due score 100; overdue items lose 10 points per full day.
        """
        if not items:
            return 100

        total = 0.0
        for item in items:
            if item.due_date is None or item.due_date > as_of:
                total += 100
            else:
                days_overdue = (as_of - item.due_date).days
                total += max(0, 100 - days_overdue * 10)
        return round(total / len(items))

    def forecast_due_counts(
        self,
        items: list[ReviewItem],
        start: date,
        days: int = 7,
    ) -> dict[date, int]:
        """Number of items falling due on each of the next ``days`` calendar days."""
        require_positive("days", days)
        forecast = {start + timedelta(days=d): 0 for d in range(int(days))}
        for item in items:
            if item.due_date is None:
                continue
            key = item.due_date.date()
            if key in forecast:
                forecast[key] += 1
        return forecast

    def predict_intervals(self, item: ReviewItem, quality: int, reviews: int) -> list[int]:
        """Intervals the item would get over ``reviews`` reviews at a constant quality."""
        require_positive("reviews", reviews)
        intervals = []
        current = item
        clock = item.last_reviewed_at or item.due_date or datetime(1970, 1, 1)
        for _ in range(int(reviews)):
            current = self.process_review(current, quality, clock)
            intervals.append(current.interval_days)
            clock = current.due_date
        return intervals


@dataclass
class ReviewQueueStats:
    total: int
    due: int
    upcoming: int
    retention: int


class ReviewQueue:
    """
    Review items for one learner, keyed by atom id.

    Wraps ReviewScheduler so hosts can load persisted rows, process reviews
    and write the updated rows back.
    """

    def __init__(self, scheduler: Optional[ReviewScheduler] = None):
        self.scheduler = scheduler or ReviewScheduler()
        self._items: dict[str, ReviewItem] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, atom_id: str) -> bool:
        return atom_id in self._items

    def load(self, items: list[ReviewItem]) -> None:
        with self._lock:
            self._items = {item.atom_id: item for item in items}

    def add(self, item: ReviewItem) -> None:
        with self._lock:
            self._items[item.atom_id] = item

    def get(self, atom_id: str) -> ReviewItem:
        try:
            return self._items[atom_id]
        except KeyError:
            raise NotFound("review item", atom_id) from None

    def remove(self, atom_id: str) -> ReviewItem:
        with self._lock:
            try:
                return self._items.pop(atom_id)
            except KeyError:
                raise NotFound("review item", atom_id) from None

    def process_review(self, atom_id: str, quality: int, now: datetime) -> ReviewItem:
        with self._lock:
            existing = self._items.get(atom_id)
            updated = self.scheduler.process_review(existing, quality, now, atom_id=atom_id)
            self._items[atom_id] = updated
            return updated

    def due(self, as_of: datetime) -> list[ReviewItem]:
        return self.scheduler.get_items_due(list(self._items.values()), as_of)

    def next_due(self, as_of: datetime) -> ReviewItem | None:
        due = self.due(as_of)
        return due[0] if due else None

    def items(self) -> list[ReviewItem]:
        return list(self._items.values())

    def stats(self, as_of: datetime) -> ReviewQueueStats:
        items = list(self._items.values())
        tomorrow = as_of + timedelta(days=1)
        return ReviewQueueStats(
            total=len(items),
            due=len(self.scheduler.get_items_due(items, as_of)),
            upcoming=sum(
                1 for i in items
                if i.due_date is not None and as_of < i.due_date <= tomorrow
            ),
            retention=self.scheduler.retention_score(items, as_of),
        )
