"""
Timing Module - Budgets, timer sessions, drift and abandonment analysis.

Components:
- budget: BudgetCalculator, TimeBudget, TimingResult, categorize_time_usage
- timer: TimerSession state machine, TimerRegistry (per-session locking)
- drift: DriftDetector
- abandonment: AbandonmentTracker
- analytics: TimingAnalytics
"""

from ascension.timing.abandonment import (
    AbandonmentConfig,
    AbandonmentEvent,
    AbandonmentPattern,
    AbandonmentStats,
    AbandonmentTracker,
    AbandonReason,
    PatternType,
)
from ascension.timing.analytics import (
    BenchmarkComparison,
    SessionTimingSummary,
    TimingAnalytics,
    TimingStats,
)
from ascension.timing.budget import (
    STANDARD_BUDGETS,
    BudgetCalculator,
    QuestionType,
    TimeBudget,
    TimingCategory,
    TimingMode,
    TimingResult,
    categorize_time_usage,
)
from ascension.timing.drift import (
    DriftAnalysis,
    DriftConfig,
    DriftDetector,
    DriftMode,
    DriftSeverity,
    DriftTrend,
)
from ascension.timing.timer import (
    TimerRegistry,
    TimerSession,
    TimerSnapshot,
    TimerState,
    TimerWarning,
    WarningType,
)

__all__ = [
    "STANDARD_BUDGETS",
    "AbandonReason",
    "AbandonmentConfig",
    "AbandonmentEvent",
    "AbandonmentPattern",
    "AbandonmentStats",
    "AbandonmentTracker",
    "BenchmarkComparison",
    "BudgetCalculator",
    "DriftAnalysis",
    "DriftConfig",
    "DriftDetector",
    "DriftMode",
    "DriftSeverity",
    "DriftTrend",
    "PatternType",
    "QuestionType",
    "SessionTimingSummary",
    "TimeBudget",
    "TimerRegistry",
    "TimerSession",
    "TimerSnapshot",
    "TimerState",
    "TimerWarning",
    "TimingAnalytics",
    "TimingCategory",
    "TimingMode",
    "TimingResult",
    "TimingStats",
    "WarningType",
    "categorize_time_usage",
]
