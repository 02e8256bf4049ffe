"""
Timer sessions for timed questions.

State machine:

    idle --start--> running --pause--> paused --resume--> running
    running --complete--> completed
    running --expire--> expired

completed and expired are terminal. Elapsed time is always
``now - started_at - total_paused`` and never negative; while paused it is
frozen at the pause instant.

Nothing here runs a clock: every operation takes a caller-supplied ``now``
and expiry is detected by comparing it with the budget (see
TimerRegistry.tick).

TimerRegistry holds sessions for many learners. Each session has its own
lock; the map itself has another. Callers only ever receive immutable
TimerSnapshot / TimingResult values, never the live session objects.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional
from uuid import uuid4

from loguru import logger

from ascension.core.errors import InvalidInput, NotFound
from ascension.core.validation import require_positive
from ascension.timing.budget import BudgetCalculator, QuestionType, TimeBudget, TimingResult


class TimerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    EXPIRED = "expired"
    COMPLETED = "completed"

    @property
    def is_terminal(self) -> bool:
        return self in (TimerState.EXPIRED, TimerState.COMPLETED)

    @property
    def is_active(self) -> bool:
        return self in (TimerState.RUNNING, TimerState.PAUSED)


TRANSITIONS: dict[tuple[TimerState, str], TimerState] = {
    (TimerState.IDLE, "start"): TimerState.RUNNING,
    (TimerState.RUNNING, "pause"): TimerState.PAUSED,
    (TimerState.PAUSED, "resume"): TimerState.RUNNING,
    (TimerState.RUNNING, "complete"): TimerState.COMPLETED,
    (TimerState.RUNNING, "expire"): TimerState.EXPIRED,
}


class WarningType(str, Enum):
    APPROACHING_LIMIT = "approaching-limit"
    OVER_TIME = "over-time"


@dataclass(frozen=True)
class TimerWarning:
    type: WarningType
    issued_at: datetime
    percent_used: float
    message: str


@dataclass
class TimerSession:
    """Live state of one timed question. Not thread-safe on its own."""

    session_id: str
    question_id: str
    user_id: str
    budget: TimeBudget
    state: TimerState = TimerState.IDLE
    started_at: datetime | None = None
    paused_at: datetime | None = None
    ended_at: datetime | None = None
    total_paused: timedelta = field(default_factory=timedelta)
    final_elapsed: float | None = None
    warnings: list[TimerWarning] = field(default_factory=list)

    def _target(self, event: str) -> TimerState:
        """State reached by ``event`` from the current state; nothing is changed."""
        target = TRANSITIONS.get((self.state, event))
        if target is None:
            raise InvalidInput(
                f"Timer {self.session_id}: illegal transition {event} from {self.state.value}"
            )
        return target

    def _check_clock(self, now: datetime) -> None:
        latest = self.paused_at or self.started_at
        if latest is not None and now < latest:
            raise InvalidInput(f"Timer {self.session_id}: clock went backwards ({now} < {latest})")

    def elapsed_seconds(self, now: datetime) -> float:
        if self.final_elapsed is not None:
            return self.final_elapsed
        if self.started_at is None:
            return 0.0
        reference = self.paused_at if self.state is TimerState.PAUSED else now
        elapsed = (reference - self.started_at - self.total_paused).total_seconds()
        return max(0.0, elapsed)

    def start(self, now: datetime) -> None:
        self.state = self._target("start")
        self.started_at = now

    def pause(self, now: datetime) -> None:
        target = self._target("pause")
        self._check_clock(now)
        self.state = target
        self.paused_at = now

    def resume(self, now: datetime) -> None:
        target = self._target("resume")
        self._check_clock(now)
        self.state = target
        self.total_paused += now - self.paused_at
        self.paused_at = None

    def complete(self, now: datetime) -> TimingResult:
        target = self._target("complete")
        self._check_clock(now)
        elapsed = self.elapsed_seconds(now)
        self.state = target
        self.ended_at = now
        self.final_elapsed = elapsed
        return self.result()

    def expire(self, now: datetime) -> TimingResult:
        target = self._target("expire")
        self._check_clock(now)
        self.state = target
        self.ended_at = now
        # The learner ran out of time: elapsed is pinned to the budget
        self.final_elapsed = float(self.budget.adjusted_seconds)
        return self.result()

    def check_warnings(self, now: datetime) -> TimerWarning | None:
        """Emit each warning type at most once per session."""
        if self.state is not TimerState.RUNNING:
            return None

        used = self.elapsed_seconds(now) / self.budget.adjusted_seconds
        issued = {w.type for w in self.warnings}

        if used >= 1.0:
            if WarningType.OVER_TIME in issued:
                return None
            message = "Time has expired!" if self.budget.strict_enforcement else "You are over the time budget"
            warning = TimerWarning(WarningType.OVER_TIME, now, used * 100, message)
        elif used >= self.budget.warning_threshold:
            if WarningType.APPROACHING_LIMIT in issued:
                return None
            remaining = round(self.budget.adjusted_seconds - self.elapsed_seconds(now))
            warning = TimerWarning(
                WarningType.APPROACHING_LIMIT, now, used * 100, f"{remaining} seconds remaining"
            )
        else:
            return None

        self.warnings.append(warning)
        return warning

    def result(self) -> TimingResult:
        if self.final_elapsed is None:
            raise InvalidInput(f"Timer {self.session_id} has not finished")
        return TimingResult.from_times(
            question_id=self.question_id,
            question_type=self.budget.question_type,
            budget_seconds=self.budget.adjusted_seconds,
            actual_seconds=self.final_elapsed,
        )

    def snapshot(self, now: datetime) -> TimerSnapshot:
        elapsed = self.elapsed_seconds(now)
        return TimerSnapshot(
            session_id=self.session_id,
            question_id=self.question_id,
            user_id=self.user_id,
            state=self.state,
            budget=self.budget,
            elapsed_seconds=elapsed,
            remaining_seconds=max(0.0, self.budget.adjusted_seconds - elapsed),
            progress_percent=elapsed / self.budget.adjusted_seconds * 100,
            warnings=tuple(self.warnings),
        )


@dataclass(frozen=True)
class TimerSnapshot:
    """Read-only view of a session at a point in time."""
    session_id: str
    question_id: str
    user_id: str
    state: TimerState
    budget: TimeBudget
    elapsed_seconds: float
    remaining_seconds: float
    progress_percent: float
    warnings: tuple[TimerWarning, ...] = ()


class TimerRegistry:
    """
    Timer sessions for many concurrent learners, keyed by session id.

    Each session is guarded by its own lock so operations on different
    sessions never contend or observe each other. The map lock is only held
    while looking sessions up, adding or removing them.
    """

    def __init__(self, budget_calculator: Optional[BudgetCalculator] = None):
        self.budget_calculator = budget_calculator or BudgetCalculator()
        self._sessions: dict[str, TimerSession] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._map_lock = threading.Lock()

    def __len__(self) -> int:
        with self._map_lock:
            return len(self._sessions)

    def _entry(self, session_id: str) -> tuple[TimerSession, threading.Lock]:
        with self._map_lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise NotFound("timer session", session_id)
            return session, self._locks[session_id]

    def start(
        self,
        question_id: str,
        user_id: str,
        question_type: QuestionType | str,
        level: int,
        now: datetime,
        custom_multiplier: float | None = None,
        session_id: str | None = None,
    ) -> TimerSnapshot:
        """Create a session, start it and return its first snapshot."""
        budget = self.budget_calculator.calculate(question_type, level, custom_multiplier)
        session = TimerSession(
            session_id=session_id or f"timer-{uuid4().hex}",
            question_id=question_id,
            user_id=user_id,
            budget=budget,
        )
        session.start(now)
        snapshot = session.snapshot(now)

        with self._map_lock:
            if session.session_id in self._sessions:
                raise InvalidInput(f"Timer session already exists: {session.session_id}")
            self._sessions[session.session_id] = session
            self._locks[session.session_id] = threading.Lock()

        logger.debug(
            "Timer {} started for {} ({}s, {})",
            session.session_id, question_id, budget.adjusted_seconds, budget.mode.value,
        )
        return snapshot

    def get(self, session_id: str, now: datetime) -> TimerSnapshot:
        session, lock = self._entry(session_id)
        with lock:
            return session.snapshot(now)

    def pause(self, session_id: str, now: datetime) -> TimerSnapshot:
        session, lock = self._entry(session_id)
        with lock:
            session.pause(now)
            return session.snapshot(now)

    def resume(self, session_id: str, now: datetime) -> TimerSnapshot:
        session, lock = self._entry(session_id)
        with lock:
            session.resume(now)
            return session.snapshot(now)

    def complete(self, session_id: str, now: datetime) -> TimingResult:
        session, lock = self._entry(session_id)
        with lock:
            result = session.complete(now)
        logger.debug("Timer {} completed: {}", session_id, result.timing_category.value)
        return result

    def expire(self, session_id: str, now: datetime) -> TimingResult:
        session, lock = self._entry(session_id)
        with lock:
            result = session.expire(now)
        logger.info("Timer {} expired after {}s", session_id, result.budget_seconds)
        return result

    def check_warnings(self, session_id: str, now: datetime) -> TimerWarning | None:
        session, lock = self._entry(session_id)
        with lock:
            return session.check_warnings(now)

    def remaining(self, session_id: str, now: datetime) -> float:
        return self.get(session_id, now).remaining_seconds

    def progress_percent(self, session_id: str, now: datetime) -> float:
        return self.get(session_id, now).progress_percent

    def tick(self, now: datetime) -> list[TimingResult]:
        """
        Expire every running, strictly enforced session that is over budget.

        Returns:
            TimingResults for the sessions expired by this call
        """
        with self._map_lock:
            entries = [(s, self._locks[sid]) for sid, s in self._sessions.items()]

        expired = []
        for session, lock in entries:
            with lock:
                if (
                    session.state is TimerState.RUNNING
                    and session.budget.strict_enforcement
                    and session.elapsed_seconds(now) >= session.budget.adjusted_seconds
                ):
                    expired.append(session.expire(now))
                    logger.info("Timer {} expired on tick", session.session_id)
        return expired

    def active_sessions(self, user_id: str, now: datetime) -> list[TimerSnapshot]:
        with self._map_lock:
            entries = [(s, self._locks[sid]) for sid, s in self._sessions.items() if s.user_id == user_id]

        active = []
        for session, lock in entries:
            with lock:
                if session.state.is_active:
                    active.append(session.snapshot(now))
        return active

    def cleanup(self, now: datetime, max_age_seconds: float = 3600) -> int:
        """Drop sessions that ended (or started, if still open) more than max_age ago."""
        require_positive("max_age_seconds", max_age_seconds)
        cutoff = now - timedelta(seconds=max_age_seconds)
        removed = 0
        with self._map_lock:
            for session_id in list(self._sessions):
                session = self._sessions[session_id]
                with self._locks[session_id]:
                    reference = session.ended_at or session.started_at
                    if reference is not None and reference < cutoff:
                        del self._sessions[session_id]
                        del self._locks[session_id]
                        removed += 1
        if removed:
            logger.debug("Cleaned up {} timer sessions", removed)
        return removed
