"""Service layer - wires the aggregation core to scheduled delivery.

Flow:
1. Editor integration calls handle_open / handle_close / handle_change
2. Engine classifies and accumulates into the AggregationStore
3. Every flush interval the scheduler drains the store
4. Active aggregates are queued for the sink, never awaited
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from .config import Config
from .kpm.engine import AggregationEngine
from .kpm.events import ChangeEvent, CloseEvent, OpenEvent
from .kpm.store import AggregationStore
from .kpm.types import UNNAMED_ROOT, FileCounter, ProjectAggregate, ProjectRoot
from .telemetry.dispatcher import SubmissionQueue
from .telemetry.scheduler import FlushScheduler
from .telemetry.sinks.base import PayloadSink, create_sink


logger = logging.getLogger(__name__)

# File key used by the first-run bootstrap payload
BOOTSTRAP_FILE = "Untitled"


@dataclass
class KpmService:
    """
    One aggregator per editor process.

    Owns the store and hands the same instance to the engine (writer) and the
    scheduler (drainer).
    """
    config: Config = field(default_factory=Config)
    sink: PayloadSink | None = None
    resolve_root: Callable[[str], ProjectRoot | None] | None = None

    store: AggregationStore = field(init=False)
    engine: AggregationEngine = field(init=False)
    queue: SubmissionQueue = field(init=False)
    scheduler: FlushScheduler = field(init=False)
    _started: bool = field(default=False, init=False)

    def __post_init__(self):
        agg = self.config.aggregator
        if self.sink is None:
            self.sink = create_sink(self.config.sink.sink_type, self.config.sink.sink_config)

        self.store = AggregationStore()
        self.engine = AggregationEngine(
            store=self.store,
            resolve_root=self.resolve_root,
            fallback_project_name=agg.fallback_project_name,
            status_file=agg.status_file,
            transient_path_patterns=tuple(agg.transient_path_patterns),
        )
        self.queue = SubmissionQueue(
            sink=self.sink.send,
            max_queue_size=self.config.sink.max_queue_size,
            workers=self.config.sink.workers,
        )
        self.scheduler = FlushScheduler(
            store=self.store,
            submit=self.queue.submit,
            flush_interval_seconds=agg.flush_interval_seconds,
        )

    async def start(self) -> None:
        """Start the sink, the submission workers and the flush timer."""
        if self._started:
            return
        await self.sink.start()
        await self.queue.start()
        self.scheduler.start()
        self._started = True
        logger.info("KPM aggregator started")

    async def stop(self) -> None:
        """
        Cancel the timer and the submission workers.

        Un-flushed activity and in-flight deliveries are abandoned.
        """
        if not self._started:
            return
        await self.scheduler.stop()
        await self.queue.stop()
        await self.sink.stop()
        self._started = False
        logger.info("KPM aggregator stopped")

    def handle_open(self, event: OpenEvent) -> None:
        self.engine.handle_open(event)

    def handle_close(self, event: CloseEvent) -> None:
        self.engine.handle_close(event)

    def handle_change(self, event: ChangeEvent) -> None:
        self.engine.handle_change(event)

    def flush_now(self) -> list[ProjectAggregate]:
        """Run a flush pass outside the timer."""
        return self.scheduler.tick()

    def build_bootstrap_payload(self) -> ProjectAggregate:
        """
        Build a minimal one-keystroke aggregate for first-run telemetry.

        Lets the ingestion side register the install before any real
        editing happens.
        """
        aggregate = ProjectAggregate(
            directory=UNNAMED_ROOT,
            name=self.config.aggregator.fallback_project_name,
            keystrokes=1,
        )
        counter = FileCounter(add=1)
        counter.recompute_netkeys()
        aggregate.source[BOOTSTRAP_FILE] = counter
        return aggregate

    def send_bootstrap(self) -> bool:
        """Queue the bootstrap payload without waiting on delivery."""
        aggregate = self.build_bootstrap_payload()
        aggregate.end = aggregate.start
        return self.queue.submit(aggregate.to_payload())

    @property
    def running(self) -> bool:
        return self._started

    @property
    def stats(self) -> dict:
        """Aggregated statistics for health reporting."""
        return {
            "engine": self.engine.stats,
            "store": self.store.stats,
            "scheduler": self.scheduler.stats,
            "queue": self.queue.stats,
        }
