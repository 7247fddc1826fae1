"""
KPM Aggregator - Editor Keystroke Telemetry

An in-process aggregator sitting between an editor and a remote ingestion
endpoint:
- Classifies raw edit notifications (add, delete, paste, line break)
- Accumulates per-file counters under per-project aggregates
- Drains completed aggregates on a fixed schedule
- Hands payloads to pluggable sinks without waiting on delivery
"""

__version__ = "0.1.0"
