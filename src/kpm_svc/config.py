"""Configuration for the KPM aggregator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .kpm.engine import DEFAULT_TRANSIENT_PATTERNS
from .kpm.types import DEFAULT_FLUSH_INTERVAL_SECONDS, UNTITLED_WORKSPACE


@dataclass
class ServerConfig:
    """HTTP event intake configuration."""
    host: str = "127.0.0.1"
    port: int = 5050
    log_level: str = "INFO"


@dataclass
class AggregatorConfig:
    """Aggregation window configuration."""
    flush_interval_seconds: float = DEFAULT_FLUSH_INTERVAL_SECONDS

    # Project display name when no workspace name resolves
    fallback_project_name: str = UNTITLED_WORKSPACE

    # The aggregator's own status/dashboard file (never counted)
    status_file: str | None = None

    # Globs for temporary workspaces whose events are discarded
    transient_path_patterns: list[str] = field(
        default_factory=lambda: list(DEFAULT_TRANSIENT_PATTERNS)
    )


@dataclass
class SinkConfig:
    """Payload delivery configuration."""
    sink_type: str = "console"  # console | file | jsonl | http | zmq
    sink_config: dict[str, Any] = field(default_factory=dict)

    # Submission queue
    max_queue_size: int = 1000
    workers: int = 2


@dataclass
class Config:
    """Main configuration container."""
    server: ServerConfig = field(default_factory=ServerConfig)
    aggregator: AggregatorConfig = field(default_factory=AggregatorConfig)
    sink: SinkConfig = field(default_factory=SinkConfig)

    @classmethod
    def from_dict(cls, data: dict) -> Config:
        """Create config from dictionary."""
        return cls(
            server=ServerConfig(**data.get("server", {})),
            aggregator=AggregatorConfig(**data.get("aggregator", {})),
            sink=SinkConfig(**data.get("sink", {})),
        )

    @classmethod
    def from_yaml(cls, path: str) -> Config:
        """Load config from YAML file."""
        import yaml
        with open(path, "r") as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data or {})

    @classmethod
    def from_json(cls, path: str) -> Config:
        """Load config from JSON file."""
        import json
        with open(path, "r") as f:
            data = json.load(f)
        return cls.from_dict(data)
