"""Base sink interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class PayloadSink(ABC):
    """
    Abstract base class for payload sinks.

    A sink receives one serialized ProjectAggregate at a time and delivers
    it out of process. Delivery guarantees and retries are the sink's own
    business; the aggregator never waits on it.
    """

    @abstractmethod
    async def send(self, payload: dict[str, Any]) -> None:
        """Deliver one project payload."""
        ...

    async def start(self) -> None:
        """Initialize the sink (called on startup)."""
        pass

    async def stop(self) -> None:
        """Clean up the sink (called on shutdown)."""
        pass

    async def health_check(self) -> bool:
        """Check if the sink is healthy."""
        return True


def create_sink(sink_type: str, sink_config: dict[str, Any] | None = None) -> PayloadSink:
    """Build a sink from its configured type name."""
    from .console import ConsoleSink
    from .file import FileSink, RotatingFileSink
    from .http import HttpSink
    from .zmq import ZmqSink

    sink_config = sink_config or {}

    if sink_type == "console":
        return ConsoleSink(**sink_config)
    elif sink_type == "file":
        return RotatingFileSink(**sink_config)
    elif sink_type == "jsonl":
        return FileSink(**sink_config)
    elif sink_type == "http":
        return HttpSink(**sink_config)
    elif sink_type == "zmq":
        return ZmqSink(**sink_config)
    raise ValueError(f"Unknown sink type: {sink_type}")
