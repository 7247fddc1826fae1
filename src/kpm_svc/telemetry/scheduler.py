"""Flush scheduler - drains the aggregation store on a fixed interval."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from ..kpm.store import AggregationStore
from ..kpm.types import DEFAULT_FLUSH_INTERVAL_SECONDS, ProjectAggregate


logger = logging.getLogger(__name__)


class SchedulerState(str, Enum):
    """Scheduler lifecycle state."""
    IDLE = "idle"
    DRAINING = "draining"


@dataclass
class FlushScheduler:
    """
    Periodically drains completed aggregates and hands them off for delivery.

    Each tick atomically empties the store, so events arriving during the
    tick already build the next window. Aggregates without activity are
    discarded. Submission is fire-and-forget: the scheduler never waits on
    the sink and never retries.

    Stopping cancels the timer immediately. Activity accumulated since the
    last tick is not flushed.
    """
    store: AggregationStore

    # Receives one serialized payload; must not block
    submit: Callable[[dict[str, Any]], Any] | None = None

    flush_interval_seconds: float = DEFAULT_FLUSH_INTERVAL_SECONDS

    # Internal state
    _state: SchedulerState = field(default=SchedulerState.IDLE, init=False)
    _task: asyncio.Task | None = field(default=None, init=False)
    _last_flush: float = field(default_factory=time.time, init=False)
    _stats: dict = field(default_factory=dict, init=False)

    def __post_init__(self):
        self._stats = {
            "ticks": 0,
            "submitted": 0,
            "discarded": 0,
            "errors": 0,
        }

    def tick(self) -> list[ProjectAggregate]:
        """
        Run one drain pass.

        Returns the aggregates that were handed to the sink.
        """
        self._state = SchedulerState.DRAINING
        submitted: list[ProjectAggregate] = []
        try:
            drained = self.store.drain()
            now = time.time()
            for aggregate in drained:
                if not aggregate.has_activity():
                    self._stats["discarded"] += 1
                    continue
                aggregate.end = now
                self._submit(aggregate)
                submitted.append(aggregate)
            self._last_flush = now
        finally:
            self._stats["ticks"] += 1
            self._state = SchedulerState.IDLE

        if submitted:
            logger.info(f"Flushed {len(submitted)} project aggregates")
        return submitted

    def _submit(self, aggregate: ProjectAggregate) -> None:
        if self.submit is None:
            logger.warning(f"No submitter configured, discarding aggregate for {aggregate.directory}")
            self._stats["discarded"] += 1
            return
        try:
            self.submit(aggregate.to_payload())
            self._stats["submitted"] += 1
        except Exception as e:
            logger.error(f"Failed to submit aggregate for {aggregate.directory}: {e}")
            self._stats["errors"] += 1

    async def timer_loop(self) -> None:
        """
        Background loop that ticks on interval.

        Runs until cancelled. A failing tick is logged and the loop keeps going.
        """
        logger.info(f"Flush scheduler started (interval={self.flush_interval_seconds}s)")

        while True:
            try:
                await asyncio.sleep(self.flush_interval_seconds)
                self.tick()
            except asyncio.CancelledError:
                logger.info("Flush scheduler cancelled")
                break
            except Exception as e:
                logger.error(f"Flush scheduler tick error: {e}")
                self._stats["errors"] += 1

    def start(self) -> asyncio.Task:
        """Schedule the timer loop on the running event loop."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.timer_loop())
        return self._task

    async def stop(self) -> None:
        """Cancel the timer. No final flush is performed."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info(f"Flush scheduler stopped. Stats: {self._stats}")

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def stats(self) -> dict:
        """Get scheduler statistics."""
        return {
            **self._stats,
            "state": self._state.value,
            "pending_projects": len(self.store),
            "seconds_since_flush": time.time() - self._last_flush,
        }
