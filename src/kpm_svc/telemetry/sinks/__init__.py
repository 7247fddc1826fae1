"""Payload sinks - destinations for completed project aggregates."""

from .base import PayloadSink, create_sink
from .console import ConsoleSink
from .file import FileSink, RotatingFileSink
from .http import HttpSink
from .zmq import ZmqSink

__all__ = [
    "PayloadSink",
    "create_sink",
    "ConsoleSink",
    "FileSink",
    "RotatingFileSink",
    "HttpSink",
    "ZmqSink",
]
