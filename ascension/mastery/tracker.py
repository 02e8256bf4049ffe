"""
Per-atom mastery tracking.

Each atom keeps lifetime totals plus a rolling window of its last ten
outcomes. Three gates are derived from that state after every attempt:

- accuracy: recent accuracy >= 0.85 with at least 5 recent attempts
- volume: at least 10 lifetime attempts
- streak: trailing run of at least 5 correct answers

The mastery level moves through an explicit transition table:

    unstarted -> learning -> practicing -> mastered <-> reviewing

A level only ever advances one step per recorded attempt and learning
can never be skipped.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from loguru import logger

from ascension.core.errors import NotFound
from ascension.core.validation import require_finite_non_negative


class MasteryLevel(str, Enum):
    """Lifecycle state of a single atom."""

    UNSTARTED = "unstarted"
    LEARNING = "learning"
    PRACTICING = "practicing"
    MASTERED = "mastered"
    REVIEWING = "reviewing"

    @property
    def display_name(self) -> str:
        return self.value.title()

    @property
    def is_mastered(self) -> bool:
        return self is MasteryLevel.MASTERED


@dataclass
class MasteryConfig:
    """Thresholds for the per-atom gates."""
    recent_window: int = 10
    accuracy_threshold: float = 0.85
    min_recent_attempts: int = 5
    volume_threshold: int = 10
    streak_threshold: int = 5
    review_threshold: float = 0.70
    practicing_after: int = 5

    @classmethod
    def from_settings(cls, settings) -> MasteryConfig:
        return cls(
            recent_window=settings.mastery_recent_window,
            accuracy_threshold=settings.mastery_accuracy_threshold,
            min_recent_attempts=settings.mastery_min_recent_attempts,
            volume_threshold=settings.mastery_volume_threshold,
            streak_threshold=settings.mastery_streak_threshold,
            review_threshold=settings.mastery_review_threshold,
        )


@dataclass
class AtomMastery:
    """Mastery state for one atom. Invariant: correct_attempts <= total_attempts."""

    atom_id: str
    total_attempts: int = 0
    correct_attempts: int = 0
    recent_attempts: list[bool] = field(default_factory=list)
    recent_accuracy: float = 0.0
    avg_time_seconds: float = 0.0
    best_time_seconds: float | None = None
    meets_accuracy_gate: bool = False
    meets_volume_gate: bool = False
    meets_streak_gate: bool = False
    mastery_level: MasteryLevel = MasteryLevel.UNSTARTED
    last_attempt_at: datetime | None = None
    mastered_at: datetime | None = None

    @property
    def accuracy(self) -> float:
        """Lifetime accuracy."""
        if self.total_attempts == 0:
            return 0.0
        return self.correct_attempts / self.total_attempts

    @property
    def trailing_streak(self) -> int:
        return trailing_correct_run(self.recent_attempts)

    @property
    def all_gates_met(self) -> bool:
        return self.meets_accuracy_gate and self.meets_volume_gate and self.meets_streak_gate


def trailing_correct_run(results: list[bool]) -> int:
    """Length of the run of True values at the end of ``results``."""
    run = 0
    for result in reversed(results):
        if not result:
            break
        run += 1
    return run


# ---------------------------------------------------------------------------
# Transition table
# ---------------------------------------------------------------------------

Guard = Callable[[AtomMastery, MasteryConfig], bool]


@dataclass(frozen=True)
class Transition:
    source: MasteryLevel
    target: MasteryLevel
    guard: Guard
    label: str


TRANSITIONS: dict[MasteryLevel, tuple[Transition, ...]] = {
    MasteryLevel.UNSTARTED: (
        Transition(
            MasteryLevel.UNSTARTED, MasteryLevel.LEARNING,
            lambda m, c: m.total_attempts > 0,
            "first attempt recorded",
        ),
    ),
    MasteryLevel.LEARNING: (
        Transition(
            MasteryLevel.LEARNING, MasteryLevel.PRACTICING,
            lambda m, c: m.total_attempts >= c.practicing_after,
            "enough attempts to practice",
        ),
    ),
    MasteryLevel.PRACTICING: (
        Transition(
            MasteryLevel.PRACTICING, MasteryLevel.MASTERED,
            lambda m, c: m.all_gates_met,
            "all gates met",
        ),
    ),
    MasteryLevel.MASTERED: (
        Transition(
            MasteryLevel.MASTERED, MasteryLevel.REVIEWING,
            lambda m, c: m.recent_accuracy < c.review_threshold,
            "recent accuracy dropped",
        ),
    ),
    MasteryLevel.REVIEWING: (
        Transition(
            MasteryLevel.REVIEWING, MasteryLevel.MASTERED,
            lambda m, c: m.all_gates_met,
            "all gates met again",
        ),
    ),
}


def next_level(mastery: AtomMastery, config: MasteryConfig) -> MasteryLevel:
    """Apply the first matching transition out of the current level."""
    for transition in TRANSITIONS[mastery.mastery_level]:
        if transition.guard(mastery, config):
            return transition.target
    return mastery.mastery_level


@dataclass
class MasteryUpdate:
    """Result of one record_attempt() call."""
    atom_id: str
    was_correct: bool
    previous_level: MasteryLevel
    new_level: MasteryLevel
    recent_accuracy: float

    @property
    def level_changed(self) -> bool:
        return self.previous_level != self.new_level

    @property
    def became_mastered(self) -> bool:
        return self.level_changed and self.new_level is MasteryLevel.MASTERED


class MasteryTracker:
    """
    Holds AtomMastery rows and applies attempts to them.

    Rows can be seeded from persisted state with load(); snapshot() hands
    copies of the rows to gate evaluation and planning.
    """

    def __init__(self, config: Optional[MasteryConfig] = None):
        self.config = config or MasteryConfig()
        self._rows: dict[str, AtomMastery] = {}
        self._lock = threading.Lock()

    def load(self, rows: list[AtomMastery]) -> None:
        with self._lock:
            for row in rows:
                self._rows[row.atom_id] = row

    def get(self, atom_id: str) -> AtomMastery:
        try:
            return self._rows[atom_id]
        except KeyError:
            raise NotFound("atom mastery", atom_id) from None

    def get_or_create(self, atom_id: str) -> AtomMastery:
        with self._lock:
            return self._rows.setdefault(atom_id, AtomMastery(atom_id=atom_id))

    def snapshot(self) -> list[AtomMastery]:
        with self._lock:
            return [replace(r, recent_attempts=list(r.recent_attempts)) for r in self._rows.values()]

    def record_attempt(
        self,
        atom_id: str,
        was_correct: bool,
        time_seconds: float,
        now: datetime | None = None,
    ) -> MasteryUpdate:
        """
        Record one attempt and advance the atom's state.

        Args:
            atom_id: Atom the question belongs to
            was_correct: Whether the answer was correct
            time_seconds: Time spent on the question
            now: Timestamp of the attempt (caller-supplied)

        Returns:
            MasteryUpdate with the before/after level
        """
        require_finite_non_negative("time_seconds", time_seconds)
        mastery = self.get_or_create(atom_id)

        with self._lock:
            previous = mastery.mastery_level
            self._apply(mastery, was_correct, time_seconds, now)
            new = next_level(mastery, self.config)
            mastery.mastery_level = new
            if new is MasteryLevel.MASTERED and mastery.mastered_at is None:
                mastery.mastered_at = now

        update = MasteryUpdate(
            atom_id=atom_id,
            was_correct=was_correct,
            previous_level=previous,
            new_level=new,
            recent_accuracy=mastery.recent_accuracy,
        )
        if update.level_changed:
            logger.info("Atom {} mastery {} -> {}", atom_id, previous.value, new.value)
        else:
            logger.debug(
                "Atom {} attempt recorded (correct={}, recent={:.2f})",
                atom_id, was_correct, mastery.recent_accuracy,
            )
        return update

    def _apply(
        self,
        mastery: AtomMastery,
        was_correct: bool,
        time_seconds: float,
        now: datetime | None,
    ) -> None:
        cfg = self.config

        mastery.total_attempts += 1
        if was_correct:
            mastery.correct_attempts += 1

        mastery.recent_attempts = (mastery.recent_attempts + [was_correct])[-cfg.recent_window:]
        mastery.recent_accuracy = sum(mastery.recent_attempts) / len(mastery.recent_attempts)

        # Running average over all attempts
        n = mastery.total_attempts
        mastery.avg_time_seconds += (time_seconds - mastery.avg_time_seconds) / n
        if was_correct and (mastery.best_time_seconds is None or time_seconds < mastery.best_time_seconds):
            mastery.best_time_seconds = time_seconds

        mastery.meets_accuracy_gate = (
            mastery.recent_accuracy >= cfg.accuracy_threshold
            and len(mastery.recent_attempts) >= cfg.min_recent_attempts
        )
        mastery.meets_volume_gate = mastery.total_attempts >= cfg.volume_threshold
        mastery.meets_streak_gate = mastery.trailing_streak >= cfg.streak_threshold
        mastery.last_attempt_at = now
