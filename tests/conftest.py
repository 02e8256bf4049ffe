"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import pytest
import sys
from datetime import datetime, timezone
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from ascension.mastery.tracker import AtomMastery  # noqa: E402
from config import Settings  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests across engines")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def now():
    """A fixed, timezone-aware clock reading."""
    return datetime(2024, 3, 15, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def settings(monkeypatch):
    """Settings built from defaults only, ignoring the host environment."""
    monkeypatch.chdir(PROJECT_ROOT / "tests")
    return Settings(_env_file=None)


def make_mastery(atom_id: str, results: list[bool]) -> AtomMastery:
    """Build an AtomMastery row whose totals and window match ``results``."""
    recent = results[-10:]
    return AtomMastery(
        atom_id=atom_id,
        total_attempts=len(results),
        correct_attempts=sum(results),
        recent_attempts=list(recent),
        recent_accuracy=sum(recent) / len(recent) if recent else 0.0,
    )


@pytest.fixture
def mastery_factory():
    """Factory for AtomMastery rows from a list of outcomes."""
    return make_mastery


@pytest.fixture
def mastery_rows():
    """A small snapshot: one strong atom, one weak atom, one untouched atom."""
    return [
        make_mastery("linear-equations", [True] * 9 + [False] + [True] * 5),
        make_mastery("ratios", [False, True, False, False, True, False]),
        make_mastery("probability", []),
    ]
