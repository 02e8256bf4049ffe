"""
Mastery gate evaluation.

Gates are level-unlock requirements that may span many atoms. They are
scored against a snapshot of AtomMastery rows and never stored: every
call recomputes a GateProgress from the rows it is given.

Requirement types:
- accuracy: mean accuracy (or recent accuracy when window_size > 0)
- volume: total (or correct-only) attempts
- streak: best trailing correct run across atoms
- consistency: spread of recent binary outcomes
- timing: share of correct answers inside the time budget
- composite: all / any / weighted combination of child requirements

Requirement definitions are pydantic models; parse_requirement() and
parse_gate() turn raw dicts into models and report schema problems as
InvalidInput.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Any, Iterable, Literal, Optional, Union

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from ascension.core.errors import InvalidInput
from ascension.mastery.tracker import AtomMastery, MasteryConfig, trailing_correct_run


class GateStatus(str, Enum):
    LOCKED = "locked"
    IN_PROGRESS = "in_progress"
    PASSED = "passed"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Requirement models
# ---------------------------------------------------------------------------


class _Requirement(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    description: str = ""
    weight: float = Field(default=1.0, gt=0)
    atom_ids: tuple[str, ...] = ()


class AccuracyRequirement(_Requirement):
    type: Literal["accuracy"] = "accuracy"
    threshold: float = Field(gt=0, le=1)
    min_attempts: int = Field(default=0, ge=0)
    window_size: int = Field(default=0, ge=0)


class VolumeRequirement(_Requirement):
    type: Literal["volume"] = "volume"
    threshold: int = Field(gt=0)
    correct_only: bool = False


class StreakRequirement(_Requirement):
    type: Literal["streak"] = "streak"
    threshold: int = Field(gt=0)


class ConsistencyRequirement(_Requirement):
    """Passes when the std-dev of recent binary outcomes is at most ``threshold``."""
    type: Literal["consistency"] = "consistency"
    threshold: float = Field(gt=0, le=1)
    window_size: int = Field(default=10, gt=0)


class TimingRequirement(_Requirement):
    type: Literal["timing"] = "timing"
    threshold: float = Field(gt=0, le=1)
    budget_multiplier: float = Field(default=1.0, gt=0)


class CompositeRequirement(_Requirement):
    type: Literal["composite"] = "composite"
    requirements: list[GateRequirement] = Field(min_length=1)
    mode: Literal["all", "any", "weighted"] = "all"
    threshold: float = Field(default=1.0, gt=0, le=1)


GateRequirement = Annotated[
    Union[
        AccuracyRequirement,
        VolumeRequirement,
        StreakRequirement,
        ConsistencyRequirement,
        TimingRequirement,
        CompositeRequirement,
    ],
    Field(discriminator="type"),
]

CompositeRequirement.model_rebuild()


class MasteryGate(BaseModel):
    """A named set of requirements guarding one level or unlock."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    gate_id: str
    name: str
    description: str = ""
    level: int = Field(default=0, ge=0)
    atom_ids: tuple[str, ...] = ()
    requirements: list[GateRequirement] = Field(min_length=1)


_requirement_adapter: TypeAdapter = TypeAdapter(GateRequirement)


def parse_requirement(data: Any) -> GateRequirement:
    """Validate a raw requirement definition."""
    if isinstance(data, _Requirement):
        return data
    try:
        return _requirement_adapter.validate_python(data)
    except ValidationError as exc:
        logger.warning("Malformed gate requirement: {}", exc.errors())
        raise InvalidInput(f"Malformed gate requirement: {exc}") from exc


def parse_gate(data: Any) -> MasteryGate:
    if isinstance(data, MasteryGate):
        return data
    try:
        return MasteryGate.model_validate(data)
    except ValidationError as exc:
        logger.warning("Malformed gate: {}", exc.errors())
        raise InvalidInput(f"Malformed gate: {exc}") from exc


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass
class TimingSample:
    """One answered question with its time budget, used by timing requirements."""
    atom_id: str
    time_seconds: float
    budget_seconds: float
    was_correct: bool = True


@dataclass
class GateProgress:
    """Derived progress for a requirement. Never persisted."""
    requirement_type: str
    status: GateStatus
    current_value: float
    required_value: float
    percent_complete: int
    description: str = ""
    details: str = ""
    children: list[GateProgress] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.status is GateStatus.PASSED


@dataclass
class GateEvaluation:
    gate_id: str
    passed: bool
    progress: GateProgress
    blockers: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)


@dataclass
class GateSummary:
    total_gates: int
    passed_gates: int
    in_progress_gates: int
    locked_gates: int
    next_gate_id: str | None
    blocking_gate_ids: list[str]


def percent_complete(current: float, required: float) -> int:
    """round(min(100, current / required * 100)), floored at 0."""
    if required <= 0:
        return 100
    return int(round(max(0.0, min(100.0, current / required * 100))))


def _filter_rows(rows: Iterable[AtomMastery], atom_ids: tuple[str, ...]) -> list[AtomMastery]:
    if not atom_ids:
        return list(rows)
    wanted = set(atom_ids)
    return [r for r in rows if r.atom_id in wanted]


# ---------------------------------------------------------------------------
# Evaluator
# ---------------------------------------------------------------------------


class GateEvaluator:
    """Scores requirements and gates against mastery snapshots."""

    def evaluate_requirement(
        self,
        requirement: GateRequirement | dict,
        rows: Iterable[AtomMastery],
        timing_samples: Iterable[TimingSample] = (),
    ) -> GateProgress:
        req = parse_requirement(requirement)
        rows = _filter_rows(rows, req.atom_ids)
        samples = list(timing_samples)

        if isinstance(req, AccuracyRequirement):
            return self._accuracy(req, rows)
        if isinstance(req, VolumeRequirement):
            return self._volume(req, rows)
        if isinstance(req, StreakRequirement):
            return self._streak(req, rows)
        if isinstance(req, ConsistencyRequirement):
            return self._consistency(req, rows)
        if isinstance(req, TimingRequirement):
            return self._timing(req, samples)
        return self._composite(req, rows, samples)

    def _accuracy(self, req: AccuracyRequirement, rows: list[AtomMastery]) -> GateProgress:
        if req.window_size > 0:
            attempts = sum(len(r.recent_attempts) for r in rows)
            values = [r.recent_accuracy for r in rows]
        else:
            attempts = sum(r.total_attempts for r in rows)
            values = [r.accuracy for r in rows]

        if attempts == 0:
            return GateProgress(
                requirement_type=req.type,
                status=GateStatus.LOCKED,
                current_value=0.0,
                required_value=req.threshold,
                percent_complete=0,
                description=req.description,
                details="No attempts yet",
            )

        accuracy = sum(values) / len(values)
        passed = accuracy >= req.threshold and attempts >= req.min_attempts
        return GateProgress(
            requirement_type=req.type,
            status=GateStatus.PASSED if passed else GateStatus.IN_PROGRESS,
            current_value=accuracy,
            required_value=req.threshold,
            percent_complete=percent_complete(accuracy, req.threshold),
            description=req.description,
            details=f"{round(accuracy * 100)}% accuracy on {attempts} attempts",
        )

    def _volume(self, req: VolumeRequirement, rows: list[AtomMastery]) -> GateProgress:
        if req.correct_only:
            count = sum(r.correct_attempts for r in rows)
        else:
            count = sum(r.total_attempts for r in rows)

        if count >= req.threshold:
            status = GateStatus.PASSED
        elif count > 0:
            status = GateStatus.IN_PROGRESS
        else:
            status = GateStatus.LOCKED

        qualifier = "correct " if req.correct_only else ""
        return GateProgress(
            requirement_type=req.type,
            status=status,
            current_value=count,
            required_value=req.threshold,
            percent_complete=percent_complete(count, req.threshold),
            description=req.description,
            details=f"{count} of {req.threshold} {qualifier}attempts",
        )

    def _streak(self, req: StreakRequirement, rows: list[AtomMastery]) -> GateProgress:
        best = max((trailing_correct_run(r.recent_attempts) for r in rows), default=0)

        if best >= req.threshold:
            status = GateStatus.PASSED
        elif best > 0:
            status = GateStatus.IN_PROGRESS
        else:
            status = GateStatus.LOCKED

        return GateProgress(
            requirement_type=req.type,
            status=status,
            current_value=best,
            required_value=req.threshold,
            percent_complete=percent_complete(best, req.threshold),
            description=req.description,
            details=f"Best streak: {best} of {req.threshold}",
        )

    def _consistency(self, req: ConsistencyRequirement, rows: list[AtomMastery]) -> GateProgress:
        results: list[bool] = []
        for row in rows:
            results.extend(row.recent_attempts[-req.window_size:])

        if not results or len(results) < req.window_size / 2:
            return GateProgress(
                requirement_type=req.type,
                status=GateStatus.LOCKED,
                current_value=1.0,
                required_value=req.threshold,
                percent_complete=0,
                description=req.description,
                details="Need more attempts to measure consistency",
            )

        mean = sum(results) / len(results)
        variance = sum((float(r) - mean) ** 2 for r in results) / len(results)
        std_dev = math.sqrt(variance)
        passed = std_dev <= req.threshold
        percent = int(round(max(0.0, min(100.0, (req.threshold - std_dev) / req.threshold * 100))))
        if passed:
            percent = 100

        return GateProgress(
            requirement_type=req.type,
            status=GateStatus.PASSED if passed else GateStatus.IN_PROGRESS,
            current_value=std_dev,
            required_value=req.threshold,
            percent_complete=percent,
            description=req.description,
            details=f"Spread: {std_dev:.2f} (need <= {req.threshold})",
        )

    def _timing(self, req: TimingRequirement, samples: list[TimingSample]) -> GateProgress:
        wanted = set(req.atom_ids)
        relevant = [
            s for s in samples
            if s.was_correct and (not wanted or s.atom_id in wanted)
        ]
        if not relevant:
            return GateProgress(
                requirement_type=req.type,
                status=GateStatus.LOCKED,
                current_value=0.0,
                required_value=req.threshold,
                percent_complete=0,
                description=req.description,
                details="No timing data available",
            )

        within = sum(1 for s in relevant if s.time_seconds <= s.budget_seconds * req.budget_multiplier)
        rate = within / len(relevant)
        passed = rate >= req.threshold
        return GateProgress(
            requirement_type=req.type,
            status=GateStatus.PASSED if passed else GateStatus.IN_PROGRESS,
            current_value=rate,
            required_value=req.threshold,
            percent_complete=percent_complete(rate, req.threshold),
            description=req.description,
            details=f"{round(rate * 100)}% within time budget",
        )

    def _composite(
        self,
        req: CompositeRequirement,
        rows: list[AtomMastery],
        samples: list[TimingSample],
    ) -> GateProgress:
        children = [self.evaluate_requirement(child, rows, samples) for child in req.requirements]
        passed_count = sum(1 for c in children if c.passed)

        if req.mode == "all":
            passed = passed_count == len(children)
            percent = sum(c.percent_complete for c in children) / len(children)
        elif req.mode == "any":
            passed = passed_count > 0
            percent = max(c.percent_complete for c in children)
        else:
            total_weight = sum(child.weight for child in req.requirements)
            score = sum(
                child.weight / total_weight
                for child, result in zip(req.requirements, children)
                if result.passed
            )
            passed = score >= req.threshold
            percent = score / req.threshold * 100

        if passed:
            status = GateStatus.PASSED
        elif passed_count > 0 or any(c.status is GateStatus.IN_PROGRESS for c in children):
            status = GateStatus.IN_PROGRESS
        else:
            status = GateStatus.LOCKED

        return GateProgress(
            requirement_type=req.type,
            status=status,
            current_value=passed_count,
            required_value=len(children),
            percent_complete=int(round(max(0.0, min(100.0, percent)))),
            description=req.description,
            details=f"{passed_count} of {len(children)} sub-requirements passed",
            children=children,
        )

    def evaluate_gate(
        self,
        gate: MasteryGate | dict,
        rows: Iterable[AtomMastery],
        timing_samples: Iterable[TimingSample] = (),
    ) -> GateEvaluation:
        """
        Evaluate every requirement of a gate.

        A gate passes only when all of its requirements pass.

        Args:
            gate: Gate definition (model or raw dict)
            rows: Mastery snapshot
            timing_samples: Answer timings for timing requirements

        Returns:
            GateEvaluation with progress, blockers and suggestions
        """
        gate = parse_gate(gate)
        rows = _filter_rows(rows, gate.atom_ids)
        samples = list(timing_samples)
        results = [self.evaluate_requirement(req, rows, samples) for req in gate.requirements]

        passed_count = sum(1 for r in results if r.passed)
        all_passed = passed_count == len(results)
        if all_passed:
            status = GateStatus.PASSED
        elif any(r.status is GateStatus.IN_PROGRESS for r in results) or passed_count > 0:
            status = GateStatus.IN_PROGRESS
        else:
            status = GateStatus.LOCKED

        blockers = [r.details or r.description for r in results if not r.passed]
        suggestions = []
        for r in results:
            if r.passed:
                continue
            if r.requirement_type == "accuracy" and r.current_value < r.required_value:
                suggestions.append(f"Focus on accuracy - currently at {round(r.current_value * 100)}%")
            elif r.requirement_type == "volume":
                suggestions.append(f"Need {int(r.required_value - r.current_value)} more attempts")
            elif r.requirement_type == "streak":
                suggestions.append(f"Build a streak of {int(r.required_value)} correct answers")
            elif r.requirement_type == "timing":
                suggestions.append("Work on pacing - answer more questions within the time budget")

        progress = GateProgress(
            requirement_type="gate",
            status=status,
            current_value=passed_count,
            required_value=len(results),
            percent_complete=int(round(sum(r.percent_complete for r in results) / len(results))),
            description=gate.description,
            details=f"{passed_count} of {len(results)} requirements met",
            children=results,
        )
        logger.debug("Gate {} -> {} ({}%)", gate.gate_id, status.value, progress.percent_complete)
        return GateEvaluation(
            gate_id=gate.gate_id,
            passed=all_passed,
            progress=progress,
            blockers=blockers,
            suggestions=suggestions,
        )

    def summarize(self, evaluations: list[GateEvaluation]) -> GateSummary:
        """Counts plus the gates that are not passed and under 50% complete."""
        next_gate = next(
            (e.gate_id for e in evaluations if not e.passed),
            None,
        )
        return GateSummary(
            total_gates=len(evaluations),
            passed_gates=sum(1 for e in evaluations if e.passed),
            in_progress_gates=sum(
                1 for e in evaluations
                if not e.passed and e.progress.status is GateStatus.IN_PROGRESS
            ),
            locked_gates=sum(1 for e in evaluations if e.progress.status is GateStatus.LOCKED),
            next_gate_id=next_gate,
            blocking_gate_ids=[
                e.gate_id for e in evaluations
                if not e.passed and e.progress.percent_complete < 50
            ],
        )


def standard_atom_gate(
    atom_id: str,
    atom_name: str | None = None,
    config: Optional[MasteryConfig] = None,
) -> MasteryGate:
    """Gate mirroring the per-atom mastery rules (accuracy, volume, streak)."""
    cfg = config or MasteryConfig()
    name = atom_name or atom_id
    return MasteryGate(
        gate_id=f"atom:{atom_id}",
        name=f"Master: {name}",
        description=f"Demonstrate mastery of {name}",
        atom_ids=(atom_id,),
        requirements=[
            AccuracyRequirement(
                threshold=cfg.accuracy_threshold,
                window_size=cfg.recent_window,
                min_attempts=cfg.min_recent_attempts,
                description=f"{round(cfg.accuracy_threshold * 100)}% recent accuracy",
            ),
            VolumeRequirement(
                threshold=cfg.volume_threshold,
                description=f"{cfg.volume_threshold} attempts",
            ),
            StreakRequirement(
                threshold=cfg.streak_threshold,
                description=f"{cfg.streak_threshold} correct in a row",
            ),
        ],
    )
