"""
Planning Module - Priority scoring, anti-grind rules and daily plans.

Components:
- models: AtomCandidate, SessionContext, PriorityItem, DailyPlan, SchedulerConfig
- priority: PriorityScorer (weighted factor scoring)
- anti_grind: AntiGrindGuard, CooldownTracker
- daily_planner: DailyPlanner (gate -> weakness -> review -> build blocks)
"""

from ascension.planning.anti_grind import (
    AntiGrindGuard,
    CooldownTracker,
    PracticeAttempt,
    PracticeDecision,
    SessionHealth,
    VarietyCheck,
    XpAward,
)
from ascension.planning.daily_planner import DailyPlanner, adjust_distribution
from ascension.planning.models import (
    AntiGrindConfig,
    AtomCandidate,
    BlockDistribution,
    BlockType,
    DailyPlan,
    FactorType,
    GateInfo,
    PlannedBlock,
    PriorityFactor,
    PriorityItem,
    PriorityWeights,
    SchedulerConfig,
    Section,
    SessionContext,
    WeaknessInfo,
)
from ascension.planning.priority import PriorityScorer

__all__ = [
    "AntiGrindConfig",
    "AntiGrindGuard",
    "AtomCandidate",
    "BlockDistribution",
    "BlockType",
    "CooldownTracker",
    "DailyPlan",
    "DailyPlanner",
    "FactorType",
    "GateInfo",
    "PlannedBlock",
    "PracticeAttempt",
    "PracticeDecision",
    "PriorityFactor",
    "PriorityItem",
    "PriorityScorer",
    "PriorityWeights",
    "SchedulerConfig",
    "Section",
    "SessionContext",
    "SessionHealth",
    "VarietyCheck",
    "WeaknessInfo",
    "XpAward",
    "adjust_distribution",
]
