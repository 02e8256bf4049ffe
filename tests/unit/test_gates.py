"""
Unit tests for gate requirements, gate evaluation and XP levels.

Fixture rows (see conftest.mastery_rows):
- linear-equations: 15 attempts, 14 correct, recent 9/10, trailing streak 5
- ratios: 6 attempts, 2 correct, last answer wrong
- probability: no attempts
"""

import pytest

from ascension.core import InvalidInput
from ascension.mastery import (
    AccuracyRequirement,
    CompositeRequirement,
    ConsistencyRequirement,
    GateEvaluator,
    GateStatus,
    LevelManager,
    StreakRequirement,
    TimingRequirement,
    TimingSample,
    VolumeRequirement,
    parse_gate,
    parse_requirement,
    percent_complete,
    standard_atom_gate,
)


@pytest.fixture
def evaluator():
    return GateEvaluator()


class TestRequirementParsing:
    """Tests for the pydantic requirement schema."""

    def test_parse_dict(self):
        """Dicts are dispatched on their type field."""
        req = parse_requirement({"type": "volume", "threshold": 20, "correct_only": True})
        assert isinstance(req, VolumeRequirement)
        assert req.correct_only

    def test_parse_nested_composite(self):
        """Composite requirements parse their children."""
        req = parse_requirement({
            "type": "composite",
            "mode": "any",
            "requirements": [
                {"type": "streak", "threshold": 3},
                {"type": "accuracy", "threshold": 0.8},
            ],
        })
        assert isinstance(req, CompositeRequirement)
        assert isinstance(req.requirements[0], StreakRequirement)

    @pytest.mark.parametrize("data", [
        {"type": "accuracy", "threshold": 1.5},
        {"type": "volume", "threshold": 0},
        {"type": "bogus", "threshold": 1},
        {"type": "streak", "threshold": 3, "unexpected": True},
        {"type": "composite", "requirements": []},
    ])
    def test_malformed_requirements(self, data):
        """Schema violations surface as InvalidInput."""
        with pytest.raises(InvalidInput):
            parse_requirement(data)

    def test_malformed_gate(self):
        """A gate without requirements is rejected."""
        with pytest.raises(InvalidInput):
            parse_gate({"gate_id": "g1", "name": "Empty", "requirements": []})

    @pytest.mark.parametrize("current,required,expected", [
        (0, 10, 0),
        (5, 10, 50),
        (10, 10, 100),
        (30, 10, 100),
        (-5, 10, 0),
        (1, 0, 100),
    ])
    def test_percent_complete_bounds(self, current, required, expected):
        """Percent is always within [0, 100]."""
        assert percent_complete(current, required) == expected


class TestSingleRequirements:
    """Tests for each requirement type."""

    def test_zero_attempts_is_locked(self, evaluator, mastery_rows):
        """An atom with no attempts is always locked."""
        for req in (
            AccuracyRequirement(threshold=0.5, atom_ids=("probability",)),
            VolumeRequirement(threshold=1, atom_ids=("probability",)),
            StreakRequirement(threshold=1, atom_ids=("probability",)),
        ):
            progress = evaluator.evaluate_requirement(req, mastery_rows)
            assert progress.status is GateStatus.LOCKED
            assert progress.percent_complete == 0

    def test_accuracy_exact_threshold_passes(self, evaluator, mastery_factory):
        """Meeting the threshold exactly counts as passed."""
        row = mastery_factory("ratios", [True, True, True, True, False])
        progress = evaluator.evaluate_requirement(AccuracyRequirement(threshold=0.8), [row])
        assert progress.status is GateStatus.PASSED
        assert progress.percent_complete == 100

    def test_accuracy_needs_min_attempts(self, evaluator, mastery_factory):
        """High accuracy on too few attempts stays in progress."""
        row = mastery_factory("ratios", [True, True])
        req = AccuracyRequirement(threshold=0.8, min_attempts=5)
        assert evaluator.evaluate_requirement(req, [row]).status is GateStatus.IN_PROGRESS

    def test_accuracy_recent_window(self, evaluator, mastery_rows):
        """window_size switches to recent accuracy."""
        req = AccuracyRequirement(threshold=0.95, window_size=10, atom_ids=("linear-equations",))
        progress = evaluator.evaluate_requirement(req, mastery_rows)
        assert progress.current_value == pytest.approx(0.9)
        assert progress.status is GateStatus.IN_PROGRESS
        assert progress.percent_complete == 95

    def test_volume_sums_filtered_atoms(self, evaluator, mastery_rows):
        """Volume adds attempts across the filtered atoms."""
        total = evaluator.evaluate_requirement(VolumeRequirement(threshold=20), mastery_rows)
        assert total.current_value == 21
        assert total.passed

        correct = evaluator.evaluate_requirement(
            VolumeRequirement(threshold=20, correct_only=True), mastery_rows
        )
        assert correct.current_value == 16
        assert correct.status is GateStatus.IN_PROGRESS
        assert correct.percent_complete == 80

    def test_streak_best_across_atoms(self, evaluator, mastery_rows):
        """The best trailing run across atoms is used."""
        progress = evaluator.evaluate_requirement(StreakRequirement(threshold=5), mastery_rows)
        assert progress.current_value == 5
        assert progress.passed

        ratios_only = evaluator.evaluate_requirement(
            StreakRequirement(threshold=5, atom_ids=("ratios",)), mastery_rows
        )
        assert ratios_only.status is GateStatus.LOCKED

    def test_consistency(self, evaluator, mastery_rows):
        """Low spread passes; a noisy record stays in progress."""
        steady = evaluator.evaluate_requirement(
            ConsistencyRequirement(threshold=0.35, atom_ids=("linear-equations",)), mastery_rows
        )
        assert steady.passed
        assert steady.percent_complete == 100

        noisy = evaluator.evaluate_requirement(
            ConsistencyRequirement(threshold=0.35, atom_ids=("ratios",)), mastery_rows
        )
        assert noisy.status is GateStatus.IN_PROGRESS
        assert noisy.percent_complete == 0

    def test_timing_counts_correct_answers(self, evaluator):
        """Only correct answers count toward the timing rate."""
        samples = [
            TimingSample("ratios", 100, 120),
            TimingSample("ratios", 110, 120),
            TimingSample("ratios", 150, 120),
            TimingSample("ratios", 300, 120, was_correct=False),
        ]
        req = TimingRequirement(threshold=0.6)
        progress = evaluator.evaluate_requirement(req, [], samples)
        assert progress.current_value == pytest.approx(2 / 3)
        assert progress.passed

    def test_timing_without_samples_is_locked(self, evaluator):
        """No timing data means locked."""
        progress = evaluator.evaluate_requirement(TimingRequirement(threshold=0.5), [])
        assert progress.status is GateStatus.LOCKED


class TestCompositeRequirements:
    """Tests for all / any / weighted composites."""

    @pytest.fixture
    def children(self):
        return [
            VolumeRequirement(threshold=20, weight=3),     # passes (21)
            StreakRequirement(threshold=10, weight=1),     # fails (5)
        ]

    def test_all(self, evaluator, mastery_rows, children):
        progress = evaluator.evaluate_requirement(
            CompositeRequirement(requirements=children, mode="all"), mastery_rows
        )
        assert not progress.passed
        assert progress.status is GateStatus.IN_PROGRESS
        assert progress.percent_complete == 75
        assert len(progress.children) == 2

    def test_any(self, evaluator, mastery_rows, children):
        progress = evaluator.evaluate_requirement(
            CompositeRequirement(requirements=children, mode="any"), mastery_rows
        )
        assert progress.passed

    def test_weighted(self, evaluator, mastery_rows, children):
        """Passed weight share is compared against the threshold."""
        passing = evaluator.evaluate_requirement(
            CompositeRequirement(requirements=children, mode="weighted", threshold=0.75), mastery_rows
        )
        assert passing.passed

        failing = evaluator.evaluate_requirement(
            CompositeRequirement(requirements=children, mode="weighted", threshold=0.8), mastery_rows
        )
        assert not failing.passed
        assert failing.percent_complete == 94


class TestGateEvaluation:
    """Tests for evaluate_gate() and summarize()."""

    def test_standard_atom_gate_passes(self, evaluator, mastery_rows):
        """The strong atom clears its standard gate."""
        gate = standard_atom_gate("linear-equations", "Linear equations")
        evaluation = evaluator.evaluate_gate(gate, mastery_rows)

        assert evaluation.passed
        assert evaluation.progress.status is GateStatus.PASSED
        assert evaluation.blockers == []

    def test_gate_from_dict_with_blockers(self, evaluator, mastery_rows):
        """Failing requirements become blockers and suggestions."""
        evaluation = evaluator.evaluate_gate(
            {
                "gate_id": "level-3",
                "name": "Student",
                "atom_ids": ["ratios"],
                "requirements": [
                    {"type": "accuracy", "threshold": 0.7},
                    {"type": "volume", "threshold": 10},
                ],
            },
            mastery_rows,
        )
        assert not evaluation.passed
        assert evaluation.progress.status is GateStatus.IN_PROGRESS
        assert len(evaluation.blockers) == 2
        assert "Need 4 more attempts" in evaluation.suggestions
        assert 0 <= evaluation.progress.percent_complete <= 100

    def test_untouched_gate_is_locked(self, evaluator, mastery_rows):
        """A gate over untouched atoms reports locked."""
        evaluation = evaluator.evaluate_gate(standard_atom_gate("probability"), mastery_rows)
        assert evaluation.progress.status is GateStatus.LOCKED

    def test_summarize(self, evaluator, mastery_rows):
        """Summary counts and the blocking list."""
        evaluations = [
            evaluator.evaluate_gate(standard_atom_gate(atom), mastery_rows)
            for atom in ("linear-equations", "ratios", "probability")
        ]
        summary = evaluator.summarize(evaluations)

        assert summary.total_gates == 3
        assert summary.passed_gates == 1
        assert summary.locked_gates == 1
        assert summary.next_gate_id == "atom:ratios"
        assert "atom:probability" in summary.blocking_gate_ids


class TestLevels:
    """Tests for LevelManager."""

    @pytest.fixture
    def levels(self):
        return LevelManager()

    @pytest.mark.parametrize("xp,name", [
        (0, "Novice"),
        (499, "Novice"),
        (500, "Apprentice"),
        (1499, "Apprentice"),
        (75000, "Ascended"),
        (10**6, "Ascended"),
    ])
    def test_level_for_xp(self, levels, xp, name):
        assert levels.level_for_xp(xp).name == name

    def test_xp_to_next_level(self, levels):
        """Half way from Apprentice to Student."""
        needed, percent, nxt = levels.xp_to_next_level(1000)
        assert (needed, percent, nxt.name) == (500, 50, "Student")
        assert levels.xp_to_next_level(80000) == (0, 100, None)

    def test_get_level_clamps(self, levels):
        assert levels.get_level(0).number == 1
        assert levels.get_level(42).number == 10

    def test_gates_block_level_up(self, levels, evaluator, mastery_rows):
        """Enough XP is not sufficient while a gate is failing."""
        failing = evaluator.evaluate_gate(standard_atom_gate("ratios"), mastery_rows)
        progress = levels.progress(600, [failing])

        assert progress.current_level.name == "Apprentice"
        assert not progress.can_level_up
        assert progress.gates_required == 1
        assert progress.gates_passed == 0
        assert not levels.can_advance(1, 600, [failing])
        assert levels.can_advance(1, 500, [])
        assert not levels.can_advance(1, 499, [])
        assert not levels.can_advance(10, 10**6, [])
