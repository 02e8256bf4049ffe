"""
Mastery Module - Per-atom mastery, level-unlock gates and XP levels.

Components:
- tracker: AtomMastery, MasteryTracker, MasteryLevel transition table
- gates: GateEvaluator and pydantic requirement models
- levels: LevelManager (XP thresholds plus gate checks)
"""

from ascension.mastery.gates import (
    AccuracyRequirement,
    CompositeRequirement,
    ConsistencyRequirement,
    GateEvaluation,
    GateEvaluator,
    GateProgress,
    GateRequirement,
    GateStatus,
    GateSummary,
    MasteryGate,
    StreakRequirement,
    TimingRequirement,
    TimingSample,
    VolumeRequirement,
    parse_gate,
    parse_requirement,
    percent_complete,
    standard_atom_gate,
)
from ascension.mastery.levels import LEVELS, Level, LevelManager, LevelProgress
from ascension.mastery.tracker import (
    TRANSITIONS,
    AtomMastery,
    MasteryConfig,
    MasteryLevel,
    MasteryTracker,
    MasteryUpdate,
    trailing_correct_run,
)

__all__ = [
    "LEVELS",
    "TRANSITIONS",
    "AccuracyRequirement",
    "AtomMastery",
    "CompositeRequirement",
    "ConsistencyRequirement",
    "GateEvaluation",
    "GateEvaluator",
    "GateProgress",
    "GateRequirement",
    "GateStatus",
    "GateSummary",
    "Level",
    "LevelManager",
    "LevelProgress",
    "MasteryConfig",
    "MasteryGate",
    "MasteryLevel",
    "MasteryTracker",
    "MasteryUpdate",
    "StreakRequirement",
    "TimingRequirement",
    "TimingSample",
    "VolumeRequirement",
    "parse_gate",
    "parse_requirement",
    "percent_complete",
    "standard_atom_gate",
    "trailing_correct_run",
]
