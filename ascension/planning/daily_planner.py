"""
Daily planner.

Turns ranked priorities and a minutes budget into time-boxed blocks.
Blocks are laid out gate -> weakness -> review -> build so the hardest
work lands while attention is freshest; leftover time becomes extra
build blocks.
"""
from __future__ import annotations

import math
from dataclasses import replace
from typing import Optional

from loguru import logger

from ascension.core.validation import require_positive
from ascension.planning.anti_grind import AntiGrindGuard, PracticeAttempt
from ascension.planning.models import (
    AtomCandidate,
    BlockDistribution,
    BlockType,
    DailyPlan,
    PlannedBlock,
    SchedulerConfig,
    SessionContext,
)
from ascension.planning.priority import PriorityScorer

XP_PER_MINUTE = 5
GATE_XP_MULTIPLIER = 1.5
WEAKNESS_XP_MULTIPLIER = 0.8
GATE_FOCUS = 1
WEAKNESS_FOCUS = 3
REVIEW_FOCUS = 5
BUILD_FOCUS = 5


def adjust_distribution(
    distribution: BlockDistribution,
    has_gates: bool,
    has_weaknesses: bool,
) -> BlockDistribution:
    """Move shares of empty categories to the ones that have work."""
    gate, weakness = distribution.gate, distribution.weakness
    review, build = distribution.review, distribution.build
    if not has_gates:
        build += gate
        gate = 0.0
    if not has_weaknesses:
        build += weakness / 2
        review += weakness / 2
        weakness = 0.0
    return BlockDistribution(gate=gate, weakness=weakness, review=review, build=build)


class DailyPlanner:
    """Builds a DailyPlan from candidates and learner context."""

    def __init__(
        self,
        config: Optional[SchedulerConfig] = None,
        scorer: Optional[PriorityScorer] = None,
        guard: Optional[AntiGrindGuard] = None,
    ):
        self.config = config or SchedulerConfig()
        self.scorer = scorer or PriorityScorer(self.config)
        self.guard = guard or AntiGrindGuard(self.config.anti_grind)

    def generate_daily_plan(
        self,
        candidates: list[AtomCandidate],
        context: SessionContext,
        target_minutes: int | None = None,
        session_counts: dict[str, int] | None = None,
        recent_attempts: list[PracticeAttempt] | None = None,
    ) -> DailyPlan:
        """
        Plan the rest of today's practice.

        Args:
            candidates: Atoms available for practice
            context: Learner state with blocking gates, weaknesses and ``now``
            target_minutes: Daily budget, defaults to the configured minutes
            session_counts: Attempts per atom so far today
            recent_attempts: Recent attempts used for cooldown checks

        Returns:
            DailyPlan with blocks in gate, weakness, review, build order
        """
        cfg = self.config
        target = target_minutes if target_minutes is not None else cfg.daily_minutes
        require_positive("target_minutes", target)
        plan_date = context.now.date()

        counts = session_counts or {}
        attempts = recent_attempts or []
        priorities = self.scorer.calculate_priorities(candidates, context)
        eligible = [p for p in priorities if self._allowed(p.atom_id, context, counts, attempts)]
        gates = [g for g in context.blocking_gates if self._allowed(g.atom_id, context, counts, attempts)]
        weaknesses = [w for w in context.weaknesses if self._allowed(w.atom_id, context, counts, attempts)]
        remaining = max(0.0, target - context.completed_minutes_today)

        plan = DailyPlan(
            user_id=context.user_id,
            plan_date=plan_date,
            target_minutes=target,
            remaining_minutes=remaining,
            blocks=[],
            priorities=priorities[:cfg.top_priorities],
        )
        if context.completed_minutes_today >= target:
            logger.info("Daily target of {} minutes already met for {}", target, context.user_id or "learner")
            return plan

        shares = adjust_distribution(
            cfg.distribution,
            has_gates=bool(gates),
            has_weaknesses=bool(weaknesses),
        )
        blocks: list[PlannedBlock] = []

        if gates:
            gate = gates[0]
            remaining = self._add_block(
                blocks, BlockType.GATE, target * shares.gate, remaining,
                focus=[gate.atom_id],
                reason=f"Clear blocking gate: {gate.requirement}",
                gate_id=gate.gate_id,
            )

        if weaknesses:
            ranked = sorted(weaknesses, key=lambda w: (-w.priority, -w.severity, w.atom_id))
            focus = list(dict.fromkeys(w.atom_id for w in ranked))[:WEAKNESS_FOCUS]
            remaining = self._add_block(
                blocks, BlockType.WEAKNESS, target * shares.weakness, remaining,
                focus=focus,
                reason=f"Address weakness in {len(focus)} area(s)",
            )

        due = [p for p in eligible if p.review_due is not None and p.review_due <= context.now]
        if due:
            remaining = self._add_block(
                blocks, BlockType.REVIEW, target * shares.review, remaining,
                focus=[p.atom_id for p in due[:REVIEW_FOCUS]],
                reason=f"{len(due)} review(s) due",
            )

        build_focus = [p.atom_id for p in eligible[:BUILD_FOCUS]]
        remaining = self._add_block(
            blocks, BlockType.BUILD, target * shares.build, remaining,
            focus=build_focus,
            reason="Build skills with new material",
        )

        while remaining >= cfg.min_block_minutes:
            before = remaining
            remaining = self._add_block(
                blocks, BlockType.BUILD, min(cfg.max_block_minutes, remaining), remaining,
                focus=build_focus,
                reason="Build skills with new material",
            )
            if remaining == before:
                break

        blocks.sort(key=lambda b: b.type.precedence)
        plan.blocks = [replace(b, block_id=f"{plan_date.isoformat()}-{i}") for i, b in enumerate(blocks)]
        logger.info(
            "Planned {} blocks ({} min, ~{} XP) for {}",
            len(plan.blocks), plan.planned_minutes, plan.estimated_xp, plan_date.isoformat(),
        )
        return plan

    def _allowed(
        self,
        atom_id: str,
        context: SessionContext,
        session_counts: dict[str, int],
        recent_attempts: list[PracticeAttempt],
    ) -> bool:
        decision = self.guard.can_practice(atom_id, session_counts, recent_attempts, context.now)
        if not decision.allowed:
            logger.debug("Skipping {}: {}", atom_id, decision.reason)
        return decision.allowed

    def block_minutes(self, requested: float, remaining: float) -> int:
        """Requested minutes rounded, clamped to block bounds and to what is left."""
        cfg = self.config
        minutes = min(cfg.max_block_minutes, max(cfg.min_block_minutes, round(requested)))
        return min(minutes, math.floor(remaining))

    def _add_block(
        self,
        blocks: list[PlannedBlock],
        block_type: BlockType,
        requested: float,
        remaining: float,
        focus: list[str],
        reason: str,
        gate_id: str | None = None,
    ) -> float:
        minutes = self.block_minutes(requested, remaining)
        if minutes < self.config.min_block_minutes:
            return remaining

        blocks.append(PlannedBlock(
            block_id="",
            type=block_type,
            minutes=minutes,
            target_questions=math.floor(minutes * self.config.questions_per_minute),
            focus_atoms=list(focus),
            reason=reason,
            estimated_xp=self.estimate_xp(block_type, minutes),
            gate_id=gate_id,
        ))
        return remaining - minutes

    @staticmethod
    def estimate_xp(block_type: BlockType, minutes: int) -> int:
        base = minutes * XP_PER_MINUTE
        if block_type is BlockType.GATE:
            return round(base * GATE_XP_MULTIPLIER)
        if block_type is BlockType.WEAKNESS:
            return round(base * WEAKNESS_XP_MULTIPLIER)
        return round(base)
