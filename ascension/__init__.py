"""
Ascension - adaptive training scheduler.

Decides what a learner should practice next, how hard it should be and how
long it should take, then turns each attempt into rating, mastery, review
and reward updates.

Subpackages:
- core: errors, input guards, logging setup
- rating: ELO ratings and difficulty matching
- mastery: per-atom mastery state machine, gates, levels
- review: SM-2 spaced repetition
- timing: budgets, timer sessions, drift, abandonment
- planning: priority scoring, anti-grind rules, daily plans
- scoring: attempt outcomes and XP

Callers own persistence and the clock: every time-dependent operation takes
``now`` explicitly.
"""

__version__ = "1.0.0"
