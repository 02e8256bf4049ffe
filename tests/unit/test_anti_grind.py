"""
Unit tests for anti-grind rules and cooldown tracking.
"""

from datetime import timedelta

import pytest

from ascension.core import InvalidInput
from ascension.planning import (
    AntiGrindConfig,
    AntiGrindGuard,
    CooldownTracker,
    PracticeAttempt,
)


@pytest.fixture
def guard():
    return AntiGrindGuard()


def attempts(now, atom_ids, spacing_minutes=2):
    """Attempts ending at ``now``, oldest first."""
    count = len(atom_ids)
    return [
        PracticeAttempt(atom_id, now - timedelta(minutes=spacing_minutes * (count - 1 - i)))
        for i, atom_id in enumerate(atom_ids)
    ]


class TestCanPractice:
    """Tests for AntiGrindGuard.can_practice()."""

    def test_allowed_under_cap(self, guard, now):
        assert guard.can_practice("ratios", {"ratios": 4}, [], now).allowed

    def test_session_cap(self, guard, now):
        """Five attempts in a session is the cap."""
        decision = guard.can_practice("ratios", {"ratios": 5}, [], now)
        assert not decision.allowed
        assert "Maximum 5" in decision.reason

    def test_cooldown_after_cap(self, guard, now):
        """A capped atom stays blocked for the cooldown, even in a new session."""
        history = attempts(now - timedelta(minutes=10), ["ratios"] * 5)
        decision = guard.can_practice("ratios", {}, history, now)

        assert not decision.allowed
        assert decision.cooldown_remaining_minutes == 20

    def test_cooldown_lapses(self, guard, now):
        history = attempts(now - timedelta(minutes=31), ["ratios"] * 5)
        assert guard.can_practice("ratios", {}, history, now).allowed

    def test_other_atoms_unaffected(self, guard, now):
        history = attempts(now, ["ratios"] * 5)
        assert guard.can_practice("percentages", {"ratios": 5}, history, now).allowed


class TestCalculateXp:
    """Tests for AntiGrindGuard.calculate_xp()."""

    def test_diminishing_multiplier(self, guard):
        """practiceCount 5 with threshold 3 -> multiplier 0.6."""
        award = guard.calculate_xp(10, "ratios", {"ratios": 5}, True)
        assert award.multiplier == pytest.approx(0.6)
        assert award.final_xp == 6
        assert "Diminishing" in award.reason

    @pytest.mark.parametrize("count,multiplier", [
        (0, 1.0),
        (2, 1.0),
        (3, 1.0),
        (4, 0.8),
        (7, 0.2),
        (50, 0.2),
    ])
    def test_ramp_with_floor(self, guard, count, multiplier):
        assert guard.xp_multiplier(count, True) == pytest.approx(multiplier)

    def test_incorrect_earns_partial(self, guard):
        """Wrong answers always earn 20%, never zero."""
        award = guard.calculate_xp(10, "ratios", {}, False)
        assert award.multiplier == 0.2
        assert award.final_xp == 2

    def test_custom_threshold(self):
        guard = AntiGrindGuard(AntiGrindConfig(diminishing_returns_threshold=1))
        assert guard.calculate_xp(10, "ratios", {"ratios": 2}, True).final_xp == 8

    def test_rejects_negative_base(self, guard):
        with pytest.raises(InvalidInput):
            guard.calculate_xp(-1, "ratios", {}, True)


class TestVariety:
    """Tests for streak bonus, variety score and session health."""

    def test_streak_bonus(self, guard):
        """Repetitive streaks earn nothing; varied streaks up to 1.5x."""
        assert guard.streak_bonus(10, 2, 10) == 1.0
        assert guard.streak_bonus(4, 3, 4) == pytest.approx(1.2)
        assert guard.streak_bonus(20, 20, 20) == 1.5
        assert guard.streak_bonus(0, 0, 0) == 1.0

    def test_variety_score(self, guard, now):
        assert guard.variety_score([]) == 100
        assert guard.variety_score(attempts(now, ["a", "b", "a", "b"])) == 100
        assert guard.variety_score(attempts(now, ["a", "a", "a", "b"])) == 100
        assert guard.variety_score(attempts(now, ["a"] * 5)) == 40

    def test_variety_requirement(self, guard, now):
        assert not guard.variety_requirement(attempts(now, ["a", "b", "a"])).met
        check = guard.variety_requirement(attempts(now, ["a", "b", "c"]))
        assert check.met
        assert (check.unique_atoms, check.required) == (3, 3)

    def test_variety_recommendations(self, guard):
        recs = guard.variety_recommendations(["a", "b", "c", "d", "e"], {"a": 2, "c": 1})
        assert recs == ["b", "d", "e"]

    def test_session_health(self, guard, now):
        grinding = guard.session_health(attempts(now, ["a"] * 5 + ["b"]))
        assert grinding.is_grinding
        assert grinding.most_practiced_atom == "a"
        assert grinding.variety_score == 67
        assert len(grinding.recommendations) == 1

        narrow = guard.session_health(attempts(now, ["a"] * 9 + ["b"]))
        assert narrow.variety_score == 40
        assert len(narrow.recommendations) == 2

        healthy = guard.session_health(attempts(now, ["a", "b", "c", "d", "a", "b"]))
        assert not healthy.is_grinding
        assert healthy.recommendations == []


class TestCooldownTracker:
    """Tests for CooldownTracker."""

    def test_lifecycle(self, now):
        cooldowns = CooldownTracker()
        cooldowns.start("atom", "ratios", 30, now)
        cooldowns.start("gate", "level-3", 5, now)

        assert cooldowns.is_on_cooldown("atom", "ratios", now + timedelta(minutes=10))
        assert cooldowns.remaining("atom", "ratios", now + timedelta(minutes=10)) == pytest.approx(20)
        assert not cooldowns.is_on_cooldown("gate", "ratios", now)

        later = now + timedelta(minutes=6)
        assert set(cooldowns.active(later)) == {"atom:ratios"}
        assert cooldowns.clear_expired(later) == 1
        assert cooldowns.remaining("gate", "level-3", later) == 0.0

        cooldowns.clear_all()
        assert not cooldowns.is_on_cooldown("atom", "ratios", later)
