"""Aggregation errors.

None of these escape the engine: they are caught at the event boundary and
the offending event degrades to a no-op.
"""

from __future__ import annotations


class KpmError(Exception):
    """Base class for aggregation errors."""
    pass


class MalformedEventError(KpmError):
    """Raised when an event lacks a required field (e.g. its path)."""
    pass


class AmbiguousChangeError(KpmError):
    """Raised when an event carries more than one simultaneous content change."""

    def __init__(self, message: str, record_count: int | None = None):
        super().__init__(message)
        self.record_count = record_count
