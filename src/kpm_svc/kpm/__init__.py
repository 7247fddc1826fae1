"""Keystroke aggregation core - classification, counters and the window store."""

from .classifier import ChangeKind, Classification, classify_change, classify_records
from .engine import AggregationEngine, StatusFileState
from .errors import AmbiguousChangeError, KpmError, MalformedEventError
from .events import ChangeEvent, ChangeRecord, CloseEvent, OpenEvent
from .store import AggregationStore
from .types import (
    PASTE_THRESHOLD,
    UNNAMED_ROOT,
    UNTITLED_WORKSPACE,
    FileCounter,
    ProjectAggregate,
    ProjectRoot,
)

__all__ = [
    # Classification
    "ChangeKind",
    "Classification",
    "classify_change",
    "classify_records",
    # Aggregation
    "AggregationEngine",
    "AggregationStore",
    "StatusFileState",
    "FileCounter",
    "ProjectAggregate",
    "ProjectRoot",
    # Events
    "ChangeEvent",
    "ChangeRecord",
    "CloseEvent",
    "OpenEvent",
    # Errors
    "AmbiguousChangeError",
    "KpmError",
    "MalformedEventError",
    # Constants
    "PASTE_THRESHOLD",
    "UNNAMED_ROOT",
    "UNTITLED_WORKSPACE",
]
