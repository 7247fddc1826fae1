"""Aggregation store - the window's project aggregates, keyed by root path."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Iterator

from .types import ProjectAggregate


logger = logging.getLogger(__name__)


@dataclass
class AggregationStore:
    """
    Thread-safe mapping from root-path key to ProjectAggregate.

    The only long-lived mutable state in the aggregator. The engine writes
    to it; the flush scheduler drains it. Every access goes through one
    re-entrant lock so a drain can never interleave with an event being
    applied to the same aggregate.
    """
    _aggregates: dict[str, ProjectAggregate] = field(default_factory=dict, init=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False)

    @contextmanager
    def locked(self) -> Iterator[AggregationStore]:
        """Hold the store lock across several operations."""
        with self._lock:
            yield self

    def get(self, key: str) -> ProjectAggregate | None:
        with self._lock:
            return self._aggregates.get(key)

    def get_or_create(
        self,
        key: str,
        factory: Callable[[], ProjectAggregate],
    ) -> ProjectAggregate:
        """Get the aggregate for a key, creating it with `factory` if absent."""
        with self._lock:
            aggregate = self._aggregates.get(key)
            if aggregate is None:
                aggregate = factory()
                self._aggregates[key] = aggregate
                logger.debug(f"Opened aggregation window for {key}")
            return aggregate

    def drain(self) -> list[ProjectAggregate]:
        """
        Atomically remove and return every aggregate.

        Events arriving after this call build the next window.
        """
        with self._lock:
            drained = list(self._aggregates.values())
            self._aggregates = {}
        return drained

    def __len__(self) -> int:
        with self._lock:
            return len(self._aggregates)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._aggregates

    @property
    def stats(self) -> dict:
        """Store statistics."""
        with self._lock:
            return {
                "projects": len(self._aggregates),
                "files": sum(len(a.source) for a in self._aggregates.values()),
            }
