"""
XP levels and level-up checks.

Ten levels from Novice (0 XP) to Ascended (75,000 XP). Reaching the XP
threshold of the next level is necessary but not sufficient: every gate
attached to that level must also be passed.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from ascension.core.validation import require_finite_non_negative
from ascension.mastery.gates import GateEvaluation


@dataclass(frozen=True)
class Level:
    number: int
    name: str
    min_xp: int
    perk: str


LEVELS: tuple[Level, ...] = (
    Level(1, "Novice", 0, "Access to Build mode"),
    Level(2, "Apprentice", 500, "Streak tracking"),
    Level(3, "Student", 1500, "Access to Prove mode"),
    Level(4, "Scholar", 3500, "Advanced analytics"),
    Level(5, "Practitioner", 7000, "Custom training blocks"),
    Level(6, "Expert", 12000, "Generated questions"),
    Level(7, "Master", 20000, "Diagnostic assessments"),
    Level(8, "Grandmaster", 32000, "All features unlocked"),
    Level(9, "Legend", 50000, "Legend status"),
    Level(10, "Ascended", 75000, "You have ascended"),
)

MAX_LEVEL = LEVELS[-1].number


@dataclass
class LevelProgress:
    current_level: Level
    next_level: Level | None
    xp: int
    xp_to_next_level: int
    percent_to_next: int
    gates_passed: int = 0
    gates_required: int = 0
    can_level_up: bool = False
    blocked_by: list[str] = field(default_factory=list)


class LevelManager:
    """Maps XP to levels and decides whether a learner can advance."""

    def __init__(self, levels: tuple[Level, ...] = LEVELS):
        self.levels = levels

    def level_for_xp(self, xp: int) -> Level:
        require_finite_non_negative("xp", xp)
        for level in reversed(self.levels):
            if xp >= level.min_xp:
                return level
        return self.levels[0]

    def get_level(self, number: int) -> Level:
        """Look up a level by number, clamping to the valid range."""
        number = max(self.levels[0].number, min(self.levels[-1].number, int(number)))
        return self.levels[number - self.levels[0].number]

    def xp_to_next_level(self, xp: int) -> tuple[int, int, Level | None]:
        """
        Returns:
            (xp still needed, percent through the current level, next level or None at max)
        """
        current = self.level_for_xp(xp)
        index = self.levels.index(current)
        if index == len(self.levels) - 1:
            return 0, 100, None

        nxt = self.levels[index + 1]
        span = nxt.min_xp - current.min_xp
        percent = min(100, round((xp - current.min_xp) / span * 100))
        return nxt.min_xp - xp, percent, nxt

    def progress(self, xp: int, next_level_gates: list[GateEvaluation] | None = None) -> LevelProgress:
        """
        Level progress including gates attached to the next level.

        Args:
            xp: Total XP earned
            next_level_gates: Evaluations of the gates guarding the next level
        """
        gates = next_level_gates or []
        current = self.level_for_xp(xp)
        needed, percent, nxt = self.xp_to_next_level(xp)

        passed = sum(1 for g in gates if g.passed)
        blocked_by = []
        if nxt is not None and xp < nxt.min_xp:
            blocked_by.append(f"Need {needed} more XP")
        for gate in gates:
            if not gate.passed:
                blocked_by.append(f"Gate not passed: {gate.progress.description or gate.gate_id}")

        return LevelProgress(
            current_level=current,
            next_level=nxt,
            xp=xp,
            xp_to_next_level=needed,
            percent_to_next=percent,
            gates_passed=passed,
            gates_required=len(gates),
            can_level_up=nxt is not None and not blocked_by,
            blocked_by=blocked_by,
        )

    def can_advance(self, level_number: int, xp: int, gates: list[GateEvaluation]) -> bool:
        """True when ``xp`` reaches the level after ``level_number`` and every gate passed."""
        if level_number >= self.levels[-1].number:
            return False
        target = self.get_level(level_number + 1)
        return xp >= target.min_xp and all(g.passed for g in gates)
