"""
Timing drift detection.

Drift is a systematic slowdown over a session: later questions taking a
larger share of their budget than earlier ones.

Two comparison modes:
- WINDOWS: sliding windows of ``window_size`` results, first vs last
- HALVES: first half vs second half of the sequence

magnitude = (later_mean_ratio - earlier_mean_ratio) / earlier_mean_ratio

Severity: none < 0.15 <= mild < 0.25 <= moderate < 0.40 <= severe.
Fewer than 2 * window_size results is not an error; the analysis simply
reports severity ``none``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from loguru import logger

from ascension.core.validation import require_positive
from ascension.timing.budget import QuestionType, TimingResult


class DriftSeverity(str, Enum):
    NONE = "none"
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"


class DriftTrend(str, Enum):
    STABLE = "stable"
    INCREASING = "increasing"
    DECREASING = "decreasing"


class DriftMode(str, Enum):
    WINDOWS = "windows"
    HALVES = "halves"


@dataclass
class DriftConfig:
    """Configuration for drift detection."""
    window_size: int = 5
    mild_threshold: float = 0.15
    moderate_threshold: float = 0.25
    severe_threshold: float = 0.40
    mode: DriftMode = DriftMode.WINDOWS

    @classmethod
    def from_settings(cls, settings) -> DriftConfig:
        return cls(window_size=settings.drift_window_size)


@dataclass
class DriftAnalysis:
    detected: bool
    severity: DriftSeverity
    magnitude: float
    trend: DriftTrend
    description: str
    recommendations: list[str] = field(default_factory=list)
    sample_count: int = 0


@dataclass
class RealtimeDriftCheck:
    warning: bool
    message: str | None = None


def _mean_ratio(results: list[TimingResult]) -> float:
    if not results:
        return 0.0
    return sum(r.time_ratio for r in results) / len(results)


class DriftDetector:
    """Compares early and late pacing within a sequence of timing results."""

    def __init__(self, config: Optional[DriftConfig] = None):
        self.config = config or DriftConfig()
        require_positive("window_size", self.config.window_size)

    def severity_for(self, magnitude: float) -> DriftSeverity:
        cfg = self.config
        if magnitude >= cfg.severe_threshold:
            return DriftSeverity.SEVERE
        if magnitude >= cfg.moderate_threshold:
            return DriftSeverity.MODERATE
        if magnitude >= cfg.mild_threshold:
            return DriftSeverity.MILD
        return DriftSeverity.NONE

    def window_means(self, results: list[TimingResult]) -> list[float]:
        w = self.config.window_size
        return [_mean_ratio(results[i:i + w]) for i in range(len(results) - w + 1)]

    def analyze(self, results: list[TimingResult], mode: DriftMode | None = None) -> DriftAnalysis:
        """
        Analyze a session's results in order.

        Args:
            results: Timing results, oldest first
            mode: Override for the configured comparison mode

        Returns:
            DriftAnalysis (severity none when there is too little data)
        """
        mode = DriftMode(mode or self.config.mode)
        w = self.config.window_size

        if len(results) < 2 * w:
            return DriftAnalysis(
                detected=False,
                severity=DriftSeverity.NONE,
                magnitude=0.0,
                trend=DriftTrend.STABLE,
                description="Not enough data to detect drift",
                sample_count=len(results),
            )

        windows = self.window_means(results)
        if mode is DriftMode.HALVES:
            mid = len(results) // 2
            earlier, later = _mean_ratio(results[:mid]), _mean_ratio(results[mid:])
        else:
            earlier, later = windows[0], windows[-1]

        magnitude = (later - earlier) / earlier if earlier > 0 else 0.0
        severity = self.severity_for(magnitude)
        trend = self.trend(windows)

        analysis = DriftAnalysis(
            detected=severity is not DriftSeverity.NONE,
            severity=severity,
            magnitude=magnitude,
            trend=trend,
            description=self._describe(severity, magnitude),
            recommendations=self._recommend(severity, results),
            sample_count=len(results),
        )
        if analysis.detected:
            logger.info("Timing drift {} (magnitude {:.2f})", severity.value, magnitude)
        return analysis

    def analyze_by_type(self, results: list[TimingResult]) -> dict[QuestionType, DriftAnalysis]:
        """Per-question-type analysis; types with too few results are left out."""
        by_type: dict[QuestionType, list[TimingResult]] = {}
        for result in results:
            by_type.setdefault(result.question_type, []).append(result)
        return {
            qtype: self.analyze(typed)
            for qtype, typed in by_type.items()
            if len(typed) >= 2 * self.config.window_size
        }

    def realtime_check(self, results: list[TimingResult]) -> RealtimeDriftCheck:
        """Warn when the last three questions run 30% over the session average."""
        if len(results) < 3:
            return RealtimeDriftCheck(warning=False)

        session_avg = _mean_ratio(results)
        recent_avg = _mean_ratio(results[-3:])
        if recent_avg > session_avg * 1.3:
            return RealtimeDriftCheck(
                warning=True,
                message="Your recent pace has slowed. Try to maintain your earlier rhythm.",
            )
        return RealtimeDriftCheck(warning=False)

    @staticmethod
    def trend(windows: list[float]) -> DriftTrend:
        if len(windows) < 2:
            return DriftTrend.STABLE

        increases = decreases = 0
        for prev, cur in zip(windows, windows[1:]):
            diff = cur - prev
            if diff > 0.05:
                increases += 1
            elif diff < -0.05:
                decreases += 1

        if increases > decreases * 1.5:
            return DriftTrend.INCREASING
        if decreases > increases * 1.5:
            return DriftTrend.DECREASING
        return DriftTrend.STABLE

    @staticmethod
    def _describe(severity: DriftSeverity, magnitude: float) -> str:
        pct = round(magnitude * 100)
        return {
            DriftSeverity.NONE: "Your pacing is consistent throughout the session.",
            DriftSeverity.MILD: f"Slight timing drift detected. Time per question increased by ~{pct}% toward the end.",
            DriftSeverity.MODERATE: f"Noticeable timing drift. You spent {pct}% more time on later questions.",
            DriftSeverity.SEVERE: f"Significant timing drift. Later questions took {pct}% longer than early ones.",
        }[severity]

    @staticmethod
    def _recommend(severity: DriftSeverity, results: list[TimingResult]) -> list[str]:
        if severity is DriftSeverity.NONE:
            return []

        recommendations = ["Take a brief mental break every 10-15 questions"]
        if severity in (DriftSeverity.MODERATE, DriftSeverity.SEVERE):
            recommendations.append("Practice with the full number of questions to build endurance")
            recommendations.append("Check if fatigue or loss of focus is causing the slowdown")

        later = results[len(results) // 2:]
        overtime_rate = sum(1 for r in later if r.was_overtime) / len(later)
        if overtime_rate > 0.3:
            recommendations.append("Consider strategic guessing on difficult later questions to maintain pace")
        return recommendations
