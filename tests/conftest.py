"""Shared test fixtures for the KPM aggregator."""

from __future__ import annotations

from typing import Any

import pytest

from kpm_svc.kpm.engine import AggregationEngine
from kpm_svc.kpm.events import ChangeRecord
from kpm_svc.kpm.store import AggregationStore
from kpm_svc.kpm.types import ProjectRoot
from kpm_svc.telemetry.sinks.base import PayloadSink


class RecordingSink(PayloadSink):
    """Sink that keeps every payload it receives."""

    def __init__(self, fail: bool = False):
        self.payloads: list[dict[str, Any]] = []
        self.fail = fail
        self.started = False
        self.stopped = False

    async def send(self, payload: dict[str, Any]) -> None:
        if self.fail:
            raise ConnectionError("ingestion endpoint unavailable")
        self.payloads.append(payload)

    async def start(self) -> None:
        self.started = True

    async def stop(self) -> None:
        self.stopped = True


def insert(text: str) -> tuple[ChangeRecord, ...]:
    """A single-record change inserting `text`."""
    return (ChangeRecord(inserted_text=text, removed_extent=0),)


def remove(extent: int) -> tuple[ChangeRecord, ...]:
    """A single-record change removing `extent` characters."""
    return (ChangeRecord(inserted_text="", removed_extent=extent),)


def resolve_under_p(path: str) -> ProjectRoot | None:
    """Root resolver: everything under /p belongs to project 'p'."""
    if path.startswith("/p/"):
        return ProjectRoot(directory="/p", name="p")
    return None


@pytest.fixture
def store() -> AggregationStore:
    return AggregationStore()


@pytest.fixture
def engine(store) -> AggregationEngine:
    return AggregationEngine(store=store, resolve_root=resolve_under_p)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()
