"""
Integration tests: one learner's training day across all engines.

Plan -> timed attempts -> outcome/XP -> rating, mastery and review updates
-> re-plan, plus concurrent timer sessions for many learners.
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest

from ascension.mastery import MasteryConfig, MasteryLevel, MasteryTracker
from ascension.planning import (
    AntiGrindGuard,
    AtomCandidate,
    BlockType,
    DailyPlanner,
    SchedulerConfig,
    Section,
    SessionContext,
    WeaknessInfo,
)
from ascension.rating import RatingConfig, RatingEngine, RatingScope, RatingStore
from ascension.review import ReviewItem, ReviewQueue, quality_from_outcome
from ascension.scoring import OutcomeEvaluator, OutcomeType
from ascension.timing import TimerRegistry, TimerState, TimingCategory


def candidates_from(tracker, queue):
    """Planner snapshots built from tracked mastery and review state."""
    candidates = []
    for row in tracker.snapshot():
        review = queue.get(row.atom_id) if row.atom_id in queue else None
        candidates.append(AtomCandidate(
            atom_id=row.atom_id,
            section=Section.QUANT,
            attempt_count=row.total_attempts,
            accuracy=row.accuracy,
            mastery=row.recent_accuracy,
            last_practiced=row.last_attempt_at,
            review_due=review.due_date if review else None,
        ))
    return candidates


@pytest.fixture
def day(settings, mastery_rows, now):
    tracker = MasteryTracker(MasteryConfig.from_settings(settings))
    tracker.load(mastery_rows)

    queue = ReviewQueue()
    queue.load([
        ReviewItem(atom_id="ratios", interval_days=6, repetitions=2, due_date=now - timedelta(days=1)),
        ReviewItem(atom_id="linear-equations", interval_days=15, repetitions=3, due_date=now + timedelta(days=9)),
    ])

    ratings = RatingStore(RatingEngine(RatingConfig.from_settings(settings)))
    ratings.get_or_create(RatingScope.GLOBAL, "u1")

    config = SchedulerConfig.from_settings(settings)
    return {
        "tracker": tracker,
        "queue": queue,
        "ratings": ratings,
        "planner": DailyPlanner(config),
        "guard": AntiGrindGuard(config.anti_grind),
        "timers": TimerRegistry(),
    }


class TestTrainingDay:
    """End-to-end flow for a single learner."""

    def test_plan_practice_replan(self, day, now):
        tracker, queue, ratings = day["tracker"], day["queue"], day["ratings"]
        weaknesses = [WeaknessInfo("ratios", severity=0.7, pattern="part-to-whole setups")]

        # Morning plan
        context = SessionContext(now=now, user_id="u1", weaknesses=weaknesses)
        plan = day["planner"].generate_daily_plan(candidates_from(tracker, queue), context)

        assert [b.type for b in plan.blocks] == [BlockType.WEAKNESS, BlockType.REVIEW, BlockType.BUILD]
        assert [b.minutes for b in plan.blocks] == [12, 18, 30]
        review_block = plan.blocks[1]
        assert review_block.focus_atoms == ["ratios"]
        assert plan.priorities[0].atom_id == "ratios"

        # Work the review block: three timed ratios questions, all correct
        session_counts: dict[str, int] = {}
        clock = now
        total_xp = 0
        for i in range(3):
            timer = day["timers"].start(f"ratios-q{i}", "u1", "problem-solving", 5, clock)
            clock += timedelta(seconds=60)
            timing = day["timers"].complete(timer.session_id, clock)
            assert timing.timing_category is TimingCategory.FAST

            learner = ratings.get(RatingScope.GLOBAL, "u1")
            evaluation = OutcomeEvaluator().evaluate_ratings(
                True, timing.actual_seconds, timing.budget_seconds, learner.value, 500,
            )
            assert evaluation.outcome is OutcomeType.CLEAN_WIN

            session_counts["ratios"] = session_counts.get("ratios", 0) + 1
            award = day["guard"].calculate_xp(evaluation.xp_earned, "ratios", session_counts, True)
            total_xp += award.final_xp

            ratings.apply_outcome(RatingScope.GLOBAL, "u1", 500, True, now=clock)
            tracker.record_attempt("ratios", True, timing.actual_seconds, now=clock)

        reviewed = queue.process_review("ratios", quality_from_outcome(True, "medium"), clock)

        assert total_xp == 60
        learner = ratings.get(RatingScope.GLOBAL, "u1")
        assert learner.games_played == 3
        assert learner.value > 500
        ratios = tracker.get("ratios")
        assert ratios.total_attempts == 9
        assert ratios.mastery_level is MasteryLevel.PRACTICING
        assert reviewed.interval_days == 15
        assert not queue.due(clock)

        # Afternoon re-plan: review cleared, 18 minutes done
        context = SessionContext(
            now=clock,
            user_id="u1",
            completed_minutes_today=18,
            weaknesses=weaknesses,
        )
        replan = day["planner"].generate_daily_plan(
            candidates_from(tracker, queue), context, session_counts=session_counts,
        )
        assert BlockType.REVIEW not in [b.type for b in replan.blocks]
        assert replan.planned_minutes <= 42

    def test_capped_atom_dropped_from_plan(self, day, now):
        context = SessionContext(now=now, user_id="u1")
        plan = day["planner"].generate_daily_plan(
            candidates_from(day["tracker"], day["queue"]),
            context,
            session_counts={"ratios": 5},
        )
        assert BlockType.REVIEW not in [b.type for b in plan.blocks]
        assert all("ratios" not in b.focus_atoms for b in plan.blocks)


class TestConcurrentTimers:
    """Timer sessions for different learners do not interfere."""

    def test_parallel_sessions(self, now):
        registry = TimerRegistry()

        def run(i):
            session_id = f"s{i}"
            registry.start(f"q{i}", f"user-{i}", "problem-solving", 5, now, session_id=session_id)
            registry.pause(session_id, now + timedelta(seconds=10 + i))
            registry.resume(session_id, now + timedelta(seconds=20 + i))
            return registry.complete(session_id, now + timedelta(seconds=50 + i))

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(run, range(16)))

        assert [r.actual_seconds for r in results] == [40 + i for i in range(16)]
        assert [r.question_id for r in results] == [f"q{i}" for i in range(16)]
        assert len(registry) == 16
        for i in range(16):
            assert registry.get(f"s{i}", now).state is TimerState.COMPLETED
