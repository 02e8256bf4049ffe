"""
Input guards shared by every engine.

Each guard returns the value it checked so it can be used inline, and logs
a warning before raising InvalidInput.
"""
from __future__ import annotations

import math

from loguru import logger

from ascension.core.errors import InvalidInput


def _reject(message: str) -> InvalidInput:
    logger.warning("Rejected input: {}", message)
    return InvalidInput(message)


def require_finite(name: str, value: float) -> float:
    if value is None or isinstance(value, bool) or not isinstance(value, (int, float)):
        raise _reject(f"{name} must be a number, got {value!r}")
    if not math.isfinite(value):
        raise _reject(f"{name} must be finite, got {value!r}")
    return value


def require_finite_non_negative(name: str, value: float) -> float:
    require_finite(name, value)
    if value < 0:
        raise _reject(f"{name} must be >= 0, got {value!r}")
    return value


def require_positive(name: str, value: float) -> float:
    require_finite(name, value)
    if value <= 0:
        raise _reject(f"{name} must be > 0, got {value!r}")
    return value


def require_in_range(name: str, value: float, low: float, high: float) -> float:
    """Check ``low <= value <= high`` (both bounds inclusive)."""
    require_finite(name, value)
    if value < low or value > high:
        raise _reject(f"{name} must be in [{low}, {high}], got {value!r}")
    return value


def require_probability(name: str, value: float) -> float:
    return require_in_range(name, value, 0.0, 1.0)
