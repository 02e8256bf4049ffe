"""
Core Module - Shared error taxonomy, input guards and logging setup.

Components:
- errors: AscensionError, NotFound, InvalidInput
- validation: require_* guards used at every public entry point
- log_config: configure_logging() for host processes
"""

from ascension.core.errors import AscensionError, InvalidInput, NotFound
from ascension.core.log_config import configure_logging
from ascension.core.validation import (
    require_finite,
    require_finite_non_negative,
    require_in_range,
    require_positive,
    require_probability,
)

__all__ = [
    "AscensionError",
    "InvalidInput",
    "NotFound",
    "configure_logging",
    "require_finite",
    "require_finite_non_negative",
    "require_in_range",
    "require_positive",
    "require_probability",
]
