"""
Error taxonomy for the training scheduler.

- NotFound: a referenced rating, atom, gate or timer session does not exist
- InvalidInput: out-of-range or non-finite input, malformed requirement,
  illegal state transition

"Not enough data" is never an error: evaluators return a definite
no-signal result instead (drift severity ``none``, gate status ``locked``).
"""


class AscensionError(Exception):
    """Base class for all scheduler errors."""


class NotFound(AscensionError, LookupError):
    """Raised when a referenced record does not exist."""

    def __init__(self, kind: str, key: object):
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} not found: {key!r}")


class InvalidInput(AscensionError, ValueError):
    """Raised when an input falls outside its documented domain."""
