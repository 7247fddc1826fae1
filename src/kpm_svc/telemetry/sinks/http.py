"""HTTP sink - posts payloads to a remote ingestion endpoint."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from .base import PayloadSink


logger = logging.getLogger(__name__)


@dataclass
class HttpSink(PayloadSink):
    """
    Sink that POSTs each payload as JSON.

    Config:
        url: Ingestion endpoint (e.g., "https://api.example.com/data")
        timeout: Request timeout in seconds
        headers: Extra headers (auth tokens, plugin identifiers)

    Each delivery uses its own client, so stopping the sink never cuts off
    a request already in flight. Non-2xx responses raise and are counted as
    delivery errors by the submission queue. Nothing is retried.
    """
    url: str = "http://localhost:5000/data"
    timeout: float = 10.0
    headers: dict[str, str] = field(default_factory=dict)

    # Injectable transport (tests, proxies)
    transport: httpx.AsyncBaseTransport | None = None

    async def start(self) -> None:
        logger.info(f"HTTP sink posting to {self.url}")

    async def send(self, payload: dict[str, Any]) -> None:
        async with httpx.AsyncClient(
            timeout=self.timeout,
            headers=self.headers,
            transport=self.transport,
        ) as client:
            response = await client.post(self.url, json=payload)
            response.raise_for_status()
