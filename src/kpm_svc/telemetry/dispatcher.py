"""Non-blocking payload submission."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable


logger = logging.getLogger(__name__)

Payload = dict[str, Any]


@dataclass
class SubmissionQueue:
    """
    Fire-and-forget delivery of payloads to a sink.

    Payloads are placed in a bounded asyncio queue and delivered by a small
    pool of worker tasks. Callers never wait on delivery, and a slow or
    failing sink never holds up the next aggregation window.

    Features:
    - Non-blocking submit (drops when full)
    - Bounded concurrency (one in-flight delivery per worker)
    - No retries: a failed delivery is logged and counted
    """
    # Delivery function: receives one payload
    sink: Callable[[Payload], Awaitable[None]] | None = None

    # Maximum queued payloads
    max_queue_size: int = 1000

    # Concurrent deliveries
    workers: int = 2

    # Internal state
    _queue: asyncio.Queue | None = field(default=None, init=False)
    _tasks: list[asyncio.Task] = field(default_factory=list, init=False)
    _busy: set[asyncio.Task] = field(default_factory=set, init=False)
    _closed: bool = field(default=False, init=False)
    _stats: dict = field(default_factory=dict, init=False)

    def __post_init__(self):
        self._stats = {
            "submitted": 0,
            "delivered": 0,
            "dropped": 0,
            "errors": 0,
        }

    async def start(self) -> None:
        """Create the queue and spawn workers (call on startup)."""
        self._closed = False
        self._queue = asyncio.Queue(maxsize=self.max_queue_size)
        self._tasks = [
            asyncio.create_task(self._worker()) for _ in range(max(1, self.workers))
        ]
        logger.info(
            f"Submission queue started (max_queue={self.max_queue_size}, workers={len(self._tasks)})"
        )

    async def stop(self) -> None:
        """
        Stop accepting payloads and release idle workers.

        In-flight deliveries are left to finish on their own; they are
        neither cancelled nor awaited. Payloads still queued are abandoned.
        """
        self._closed = True
        for task in self._tasks:
            if task not in self._busy:
                task.cancel()
        self._tasks = []
        if self._queue is not None:
            abandoned = self._queue.qsize()
            if abandoned:
                logger.warning(f"Abandoning {abandoned} queued payloads on shutdown")
        self._queue = None
        logger.info(f"Submission queue stopped. Stats: {self._stats}")

    def submit(self, payload: Payload) -> bool:
        """
        Queue a payload for delivery (non-blocking).

        Returns True if queued, False if dropped.
        """
        if self._queue is None:
            logger.warning("Submission queue not running, dropping payload")
            self._stats["dropped"] += 1
            return False

        try:
            self._queue.put_nowait(payload)
            self._stats["submitted"] += 1
            return True
        except asyncio.QueueFull:
            logger.warning(f"Submission queue full, dropping payload for {payload.get('directory')}")
            self._stats["dropped"] += 1
            return False

    async def join(self) -> None:
        """Wait until every queued payload has been handled."""
        if self._queue is not None:
            await self._queue.join()

    async def _worker(self) -> None:
        queue = self._queue
        task = asyncio.current_task()
        while not self._closed:
            try:
                payload = await queue.get()
            except asyncio.CancelledError:
                break
            self._busy.add(task)
            try:
                await self._deliver(payload)
            finally:
                self._busy.discard(task)
                queue.task_done()

    async def _deliver(self, payload: Payload) -> None:
        if self.sink is None:
            logger.warning("No sink configured, discarding payload")
            self._stats["dropped"] += 1
            return
        try:
            await self.sink(payload)
            self._stats["delivered"] += 1
        except Exception as e:
            logger.error(f"Failed to deliver payload for {payload.get('directory')}: {e}")
            self._stats["errors"] += 1

    @property
    def queue_depth(self) -> int:
        """Current queue depth."""
        return self._queue.qsize() if self._queue else 0

    @property
    def stats(self) -> dict:
        """Get submission statistics."""
        return {
            **self._stats,
            "queue_depth": self.queue_depth,
            "workers": len(self._tasks),
        }
