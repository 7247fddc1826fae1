"""Telemetry delivery - flush scheduling and non-blocking payload submission."""

from .dispatcher import SubmissionQueue
from .scheduler import FlushScheduler, SchedulerState

__all__ = [
    "SubmissionQueue",
    "FlushScheduler",
    "SchedulerState",
]
