"""
Unit tests for timer sessions and the timer registry.

Tests:
- State machine transitions (legal and illegal)
- Elapsed time with pauses, frozen while paused
- Expiry pinning elapsed to the budget
- Warnings issued once per type
- Registry lookups, tick(), active sessions and cleanup
"""

from datetime import timedelta

import pytest

from ascension.core import InvalidInput, NotFound
from ascension.timing import (
    BudgetCalculator,
    TimerRegistry,
    TimerSession,
    TimerState,
    TimingCategory,
    WarningType,
)


def seconds(n):
    return timedelta(seconds=n)


@pytest.fixture
def session():
    budget = BudgetCalculator().calculate("problem-solving", 5)  # 120s, warn at 80%
    return TimerSession(session_id="s1", question_id="q1", user_id="u1", budget=budget)


@pytest.fixture
def registry():
    return TimerRegistry()


class TestTimerSession:
    """Tests for the TimerSession state machine."""

    def test_pause_resume_complete(self, session, now):
        """Paused time is excluded from elapsed."""
        session.start(now)
        session.pause(now + seconds(30))
        assert session.elapsed_seconds(now + seconds(80)) == 30  # frozen while paused

        session.resume(now + seconds(90))
        result = session.complete(now + seconds(120))

        assert session.state is TimerState.COMPLETED
        assert result.actual_seconds == 60
        assert result.timing_category is TimingCategory.FAST

    def test_expire_pins_elapsed(self, session, now):
        """An expired session reports exactly its budget."""
        session.start(now)
        result = session.expire(now + seconds(300))
        assert result.actual_seconds == 120
        assert session.elapsed_seconds(now + seconds(900)) == 120

    @pytest.mark.parametrize("action", ["pause", "resume", "complete", "expire"])
    def test_idle_only_starts(self, session, now, action):
        """Nothing but start is legal from idle."""
        with pytest.raises(InvalidInput, match="illegal transition"):
            getattr(session, action)(now)

    def test_paused_cannot_complete(self, session, now):
        session.start(now)
        session.pause(now + seconds(5))
        with pytest.raises(InvalidInput):
            session.complete(now + seconds(10))
        with pytest.raises(InvalidInput):
            session.expire(now + seconds(10))

    def test_start_while_paused_keeps_elapsed(self, session, now):
        """A rejected start leaves a paused session untouched."""
        session.start(now)
        session.pause(now + seconds(60))
        with pytest.raises(InvalidInput, match="illegal transition"):
            session.start(now + seconds(90))
        assert session.state is TimerState.PAUSED
        assert session.elapsed_seconds(now + seconds(100)) == 60

    def test_resume_while_idle_changes_nothing(self, session, now):
        with pytest.raises(InvalidInput):
            session.resume(now)
        assert session.state is TimerState.IDLE
        assert session.started_at is None

    def test_terminal_states(self, session, now):
        """No transitions leave completed."""
        session.start(now)
        session.complete(now + seconds(10))
        for action in ("start", "pause", "resume", "complete", "expire"):
            with pytest.raises(InvalidInput):
                getattr(session, action)(now + seconds(20))

    def test_clock_going_backwards(self, session, now):
        session.start(now)
        with pytest.raises(InvalidInput, match="backwards"):
            session.pause(now - seconds(1))

    def test_elapsed_never_negative(self, session, now):
        session.start(now)
        assert session.elapsed_seconds(now - seconds(10)) == 0.0

    def test_warnings_issued_once(self, session, now):
        """Approaching-limit then over-time, each only once."""
        session.start(now)
        assert session.check_warnings(now + seconds(60)) is None

        warning = session.check_warnings(now + seconds(100))
        assert warning.type is WarningType.APPROACHING_LIMIT
        assert warning.message == "20 seconds remaining"
        assert session.check_warnings(now + seconds(101)) is None

        over = session.check_warnings(now + seconds(130))
        assert over.type is WarningType.OVER_TIME
        assert session.check_warnings(now + seconds(140)) is None
        assert len(session.warnings) == 2

    def test_result_before_finish(self, session, now):
        session.start(now)
        with pytest.raises(InvalidInput):
            session.result()


class TestTimerRegistry:
    """Tests for TimerRegistry."""

    def test_lifecycle(self, registry, now):
        snap = registry.start("q1", "u1", "problem-solving", 5, now, session_id="t1")
        assert snap.state is TimerState.RUNNING
        assert snap.remaining_seconds == 120

        registry.pause("t1", now + seconds(30))
        assert registry.remaining("t1", now + seconds(200)) == 90
        registry.resume("t1", now + seconds(40))
        assert registry.progress_percent("t1", now + seconds(70)) == pytest.approx(50)

        result = registry.complete("t1", now + seconds(100))
        assert result.actual_seconds == 90
        assert result.timing_category is TimingCategory.OPTIMAL

    def test_unknown_session(self, registry, now):
        with pytest.raises(NotFound):
            registry.get("missing", now)
        with pytest.raises(NotFound):
            registry.complete("missing", now)

    def test_duplicate_id(self, registry, now):
        registry.start("q1", "u1", "problem-solving", 5, now, session_id="t1")
        with pytest.raises(InvalidInput):
            registry.start("q2", "u1", "problem-solving", 5, now, session_id="t1")

    def test_sub_second_budget_not_registered(self, registry, now):
        """A budget that rounds to zero seconds is refused before the session is stored."""
        with pytest.raises(InvalidInput):
            registry.start("q1", "u1", "sentence-correction", 5, now, custom_multiplier=0.004)
        assert len(registry) == 0

    def test_generated_ids_are_unique(self, registry, now):
        a = registry.start("q1", "u1", "problem-solving", 5, now)
        b = registry.start("q1", "u1", "problem-solving", 5, now)
        assert a.session_id != b.session_id
        assert len(registry) == 2

    def test_tick_expires_strict_sessions_only(self, registry, now):
        """Only enforced budgets expire on tick."""
        registry.start("q1", "u1", "problem-solving", 7, now, session_id="strict")
        registry.start("q2", "u1", "problem-solving", 5, now, session_id="standard")

        assert registry.tick(now + seconds(119)) == []
        expired = registry.tick(now + seconds(121))

        assert [r.question_id for r in expired] == ["q1"]
        assert registry.get("strict", now + seconds(121)).state is TimerState.EXPIRED
        assert registry.get("standard", now + seconds(121)).state is TimerState.RUNNING

    def test_active_sessions_per_user(self, registry, now):
        registry.start("q1", "u1", "problem-solving", 5, now, session_id="a")
        registry.start("q2", "u2", "problem-solving", 5, now, session_id="b")
        registry.start("q3", "u1", "problem-solving", 5, now, session_id="c")
        registry.complete("c", now + seconds(10))

        active = registry.active_sessions("u1", now + seconds(20))
        assert [s.session_id for s in active] == ["a"]

    def test_cleanup(self, registry, now):
        registry.start("q1", "u1", "problem-solving", 5, now, session_id="old")
        registry.complete("old", now + seconds(30))
        registry.start("q2", "u1", "problem-solving", 5, now + seconds(4000), session_id="new")

        removed = registry.cleanup(now + seconds(4000), max_age_seconds=3600)
        assert removed == 1
        assert len(registry) == 1
        with pytest.raises(NotFound):
            registry.get("old", now)
