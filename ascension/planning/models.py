"""
Planning data models and scheduler configuration.

Everything here is an input snapshot or a derived view: PriorityItem and
PlannedBlock are recomputed on every planning call and never persisted.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

from ascension.core.errors import InvalidInput
from ascension.core.validation import require_finite_non_negative, require_probability


class Section(str, Enum):
    QUANT = "quant"
    VERBAL = "verbal"
    DATA_INSIGHTS = "di"

    @property
    def target_share(self) -> float:
        """Share of recent practice this section should get."""
        return 0.2 if self is Section.DATA_INSIGHTS else 0.4


class FactorType(str, Enum):
    BLOCKING_GATE = "blocking-gate"
    WEAKNESS_CLUSTER = "weakness-cluster"
    SPACED_REPETITION = "spaced-repetition"
    SECTION_BALANCE = "section-balance"
    TIME_SINCE_PRACTICE = "time-since-practice"
    ERROR_FREQUENCY = "error-frequency"
    LOW_MASTERY = "low-mastery"


class BlockType(str, Enum):
    """Block kinds in the order they are scheduled within a day."""

    GATE = "gate"
    WEAKNESS = "weakness"
    REVIEW = "review"
    BUILD = "build"

    @property
    def precedence(self) -> int:
        return list(BlockType).index(self)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass
class PriorityWeights:
    blocking_gate: float = 10.0
    weakness_cluster: float = 5.0
    error_frequency: float = 4.0
    spaced_repetition: float = 4.0
    low_mastery: float = 3.0
    time_since_practice: float = 3.0
    section_balance: float = 2.0

    def for_factor(self, factor: FactorType) -> float:
        return getattr(self, factor.name.lower())


@dataclass
class BlockDistribution:
    """Share of the daily target given to each block type; shares sum to 1."""
    gate: float = 0.10
    weakness: float = 0.20
    review: float = 0.30
    build: float = 0.40

    def __post_init__(self):
        for name in ("gate", "weakness", "review", "build"):
            require_probability(name, getattr(self, name))
        if abs(self.gate + self.weakness + self.review + self.build - 1.0) > 1e-6:
            raise InvalidInput("Block distribution shares must sum to 1")

    def share(self, block_type: BlockType) -> float:
        return getattr(self, block_type.value)


@dataclass
class AntiGrindConfig:
    max_same_atom_per_session: int = 5
    cooldown_minutes: int = 30
    min_variety_per_block: int = 3
    diminishing_returns_threshold: int = 3

    @classmethod
    def from_settings(cls, settings) -> AntiGrindConfig:
        return cls(
            max_same_atom_per_session=settings.max_same_atom_per_session,
            cooldown_minutes=settings.cooldown_minutes,
            min_variety_per_block=settings.min_variety_per_block,
            diminishing_returns_threshold=settings.diminishing_returns_threshold,
        )


@dataclass
class SchedulerConfig:
    """Configuration for priority scoring and daily planning."""
    daily_minutes: int = 60
    min_block_minutes: int = 5
    max_block_minutes: int = 30
    questions_per_minute: float = 0.5
    top_priorities: int = 10
    weights: PriorityWeights = field(default_factory=PriorityWeights)
    distribution: BlockDistribution = field(default_factory=BlockDistribution)
    anti_grind: AntiGrindConfig = field(default_factory=AntiGrindConfig)

    @classmethod
    def from_settings(cls, settings) -> SchedulerConfig:
        return cls(
            daily_minutes=settings.daily_minutes,
            min_block_minutes=settings.min_block_minutes,
            max_block_minutes=settings.max_block_minutes,
            questions_per_minute=settings.questions_per_minute,
            anti_grind=AntiGrindConfig.from_settings(settings),
        )


# ---------------------------------------------------------------------------
# Planning inputs
# ---------------------------------------------------------------------------


@dataclass
class AtomCandidate:
    """Snapshot of one atom as seen by the planner."""
    atom_id: str
    section: Section
    name: str = ""
    attempt_count: int = 0
    accuracy: float = 0.0
    mastery: float = 0.0
    last_practiced: datetime | None = None
    review_due: datetime | None = None

    def __post_init__(self):
        self.section = Section(self.section)
        require_finite_non_negative("attempt_count", self.attempt_count)
        require_probability("accuracy", self.accuracy)
        require_probability("mastery", self.mastery)


@dataclass
class GateInfo:
    """A gate currently blocking progression, tied to the atom that clears it."""
    gate_id: str
    atom_id: str
    requirement: str
    current_progress: float
    target_progress: float = 1.0


@dataclass
class WeaknessInfo:
    atom_id: str
    severity: float
    pattern: str = ""
    priority: float = 0.0

    def __post_init__(self):
        require_probability("severity", self.severity)


@dataclass
class SessionContext:
    """Learner state for one planning call. ``now`` is always caller-supplied."""
    now: datetime
    user_id: str = ""
    completed_minutes_today: float = 0.0
    recent_sections: list[Section] = field(default_factory=list)
    blocking_gates: list[GateInfo] = field(default_factory=list)
    weaknesses: list[WeaknessInfo] = field(default_factory=list)

    def __post_init__(self):
        require_finite_non_negative("completed_minutes_today", self.completed_minutes_today)
        self.recent_sections = [Section(s) for s in self.recent_sections]


# ---------------------------------------------------------------------------
# Planning outputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PriorityFactor:
    type: FactorType
    weight: float
    value: float
    reason: str

    @property
    def contribution(self) -> float:
        return self.weight * self.value


@dataclass
class PriorityItem:
    atom_id: str
    section: Section
    factors: list[PriorityFactor] = field(default_factory=list)
    review_due: datetime | None = None

    @property
    def score(self) -> float:
        return sum(f.contribution for f in self.factors)

    def factor(self, factor_type: FactorType) -> PriorityFactor | None:
        return next((f for f in self.factors if f.type is factor_type), None)


@dataclass
class PlannedBlock:
    block_id: str
    type: BlockType
    minutes: int
    target_questions: int
    focus_atoms: list[str]
    reason: str
    estimated_xp: int
    gate_id: str | None = None


@dataclass
class DailyPlan:
    user_id: str
    plan_date: date
    target_minutes: int
    remaining_minutes: float
    blocks: list[PlannedBlock]
    priorities: list[PriorityItem]

    @property
    def planned_minutes(self) -> int:
        return sum(b.minutes for b in self.blocks)

    @property
    def estimated_xp(self) -> int:
        return sum(b.estimated_xp for b in self.blocks)
