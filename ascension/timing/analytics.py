"""
Timing analytics over accumulated TimingResults.

- per-type statistics (mean, median, spread, category mix)
- session summaries with drift folded in
- pace recommendations
- comparison against the standard budget (+-20% is on pace)
"""
from __future__ import annotations

import math
import statistics
from collections import Counter
from dataclasses import dataclass, field
from typing import Optional

from ascension.timing.budget import QuestionType, TimingCategory, TimingResult
from ascension.timing.drift import DriftDetector, DriftMode


@dataclass
class TimingStats:
    question_type: QuestionType
    sample_count: int
    mean_seconds: float
    median_seconds: float
    std_dev_seconds: float
    min_seconds: float
    max_seconds: float
    percent_fast: float
    percent_optimal: float
    percent_slow: float
    percent_overtime: float


@dataclass
class SessionTimingSummary:
    total_questions: int
    total_seconds: float
    average_seconds: float
    category_counts: dict[TimingCategory, int]
    drift_detected: bool
    drift_magnitude: float
    by_question_type: dict[QuestionType, TimingStats] = field(default_factory=dict)


@dataclass
class BenchmarkComparison:
    user_average: float
    benchmark: float
    percent_diff: float
    assessment: str  # 'faster', 'on-pace', 'slower'


def compute_stats(question_type: QuestionType, results: list[TimingResult]) -> TimingStats:
    times = sorted(r.actual_seconds for r in results)
    n = len(times)
    mean = sum(times) / n
    categories = Counter(r.timing_category for r in results)
    return TimingStats(
        question_type=question_type,
        sample_count=n,
        mean_seconds=mean,
        median_seconds=statistics.median(times),
        std_dev_seconds=math.sqrt(sum((t - mean) ** 2 for t in times) / n),
        min_seconds=times[0],
        max_seconds=times[-1],
        percent_fast=categories[TimingCategory.FAST] / n * 100,
        percent_optimal=categories[TimingCategory.OPTIMAL] / n * 100,
        percent_slow=categories[TimingCategory.SLOW] / n * 100,
        percent_overtime=categories[TimingCategory.OVERTIME] / n * 100,
    )


class TimingAnalytics:
    """Collects results for one learner and reports on them."""

    def __init__(self, min_samples: int = 5, drift_detector: Optional[DriftDetector] = None):
        self.min_samples = min_samples
        self.drift_detector = drift_detector or DriftDetector()
        self._results: list[TimingResult] = []

    def add(self, *results: TimingResult) -> None:
        self._results.extend(results)

    def clear(self) -> None:
        self._results = []

    def stats_for(self, question_type: QuestionType | str) -> TimingStats | None:
        """Stats for one type, or None below the minimum sample count."""
        qtype = QuestionType.parse(question_type)
        typed = [r for r in self._results if r.question_type is qtype]
        if len(typed) < self.min_samples:
            return None
        return compute_stats(qtype, typed)

    def all_stats(self) -> dict[QuestionType, TimingStats]:
        types = dict.fromkeys(r.question_type for r in self._results)
        found = {t: self.stats_for(t) for t in types}
        return {t: s for t, s in found.items() if s is not None}

    def session_summary(self, results: list[TimingResult]) -> SessionTimingSummary:
        total = sum(r.actual_seconds for r in results)
        counts = Counter(r.timing_category for r in results)
        drift = self.drift_detector.analyze(results, mode=DriftMode.HALVES)

        by_type: dict[QuestionType, list[TimingResult]] = {}
        for r in results:
            by_type.setdefault(r.question_type, []).append(r)

        return SessionTimingSummary(
            total_questions=len(results),
            total_seconds=total,
            average_seconds=total / len(results) if results else 0.0,
            category_counts={c: counts[c] for c in TimingCategory},
            drift_detected=drift.detected,
            drift_magnitude=drift.magnitude,
            by_question_type={
                qtype: compute_stats(qtype, typed)
                for qtype, typed in by_type.items()
                if len(typed) >= 2
            },
        )

    def pace_recommendations(self, results: list[TimingResult]) -> list[str]:
        summary = self.session_summary(results)
        recs = []
        if summary.total_questions == 0:
            return recs

        overtime_pct = summary.category_counts[TimingCategory.OVERTIME] / summary.total_questions * 100
        if overtime_pct > 30:
            recs.append(f"{round(overtime_pct)}% of questions went overtime. Practice time management techniques.")

        if summary.drift_detected:
            recs.append("Timing drift detected - you slow down as the session progresses. Take short mental breaks.")

        for qtype, stats in summary.by_question_type.items():
            if stats.percent_overtime > 40:
                recs.append(
                    f"{qtype.display_name} questions often go overtime "
                    f"({round(stats.percent_overtime)}%). Focus practice here."
                )

        if summary.category_counts[TimingCategory.FAST] > summary.total_questions * 0.5:
            recs.append("Many answers submitted very quickly. Ensure you are reading questions thoroughly.")
        return recs

    def compare_to_benchmark(self, question_type: QuestionType | str) -> BenchmarkComparison | None:
        stats = self.stats_for(question_type)
        if stats is None:
            return None

        benchmark = stats.question_type.standard_seconds
        diff = (stats.mean_seconds - benchmark) / benchmark * 100
        if diff < -20:
            assessment = "faster"
        elif diff > 20:
            assessment = "slower"
        else:
            assessment = "on-pace"
        return BenchmarkComparison(stats.mean_seconds, benchmark, diff, assessment)
