"""FastAPI application - HTTP event intake for the KPM aggregator.

For editor integrations that cannot host the aggregator in-process: the
plugin forwards open/close/change notifications here and the service
aggregates and flushes them exactly as the in-process engine would.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from .config import Config
from .kpm.events import ChangeEvent, ChangeRecord, CloseEvent, OpenEvent
from .service import KpmService


logger = logging.getLogger(__name__)


# Request models
class ChangeRecordBody(BaseModel):
    inserted_text: str = ""
    removed_extent: int = Field(default=0, ge=0)


class OpenEventBody(BaseModel):
    path: str | None = None
    is_tracked_metrics_file: bool = False
    length: int | None = None


class CloseEventBody(BaseModel):
    path: str | None = None
    is_tracked_metrics_file: bool = False
    final_length: int = 0


class ChangeEventBody(BaseModel):
    path: str | None = None
    language_id: str = ""
    line_count: int = 0
    current_length: int = 0
    change_records: list[ChangeRecordBody] = []
    is_tracked_metrics_file: bool = False


# Response models
class AcceptedResponse(BaseModel):
    accepted: bool = True


class FlushResponse(BaseModel):
    submitted: int
    directories: list[str]


class HealthResponse(BaseModel):
    status: str
    stats: dict


def load_config() -> Config:
    """Load config from $KPM_CONFIG if set, otherwise defaults."""
    path = os.environ.get("KPM_CONFIG")
    if path and os.path.exists(path):
        logger.info(f"Loading config from {path}")
        if path.endswith(".json"):
            return Config.from_json(path)
        return Config.from_yaml(path)
    return Config()


def create_app(service: KpmService | None = None) -> FastAPI:
    """Build the intake app around a service (created from config if omitted)."""
    holder: dict[str, KpmService] = {}

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        svc = service or KpmService(config=load_config())
        await svc.start()
        holder["service"] = svc
        logger.info("KPM intake started")

        yield

        logger.info("Shutting down KPM intake...")
        await svc.stop()
        holder.pop("service", None)

    app = FastAPI(
        title="KPM Aggregator",
        description="Aggregates editor keystroke events into per-project payloads.",
        version="0.1.0",
        lifespan=lifespan,
    )

    def _service() -> KpmService:
        svc = holder.get("service")
        if svc is None:
            raise HTTPException(status_code=503, detail="Service not initialized")
        return svc

    @app.get("/health", response_model=HealthResponse)
    async def health():
        """Health check endpoint."""
        svc = _service()
        return HealthResponse(status="healthy", stats=svc.stats)

    @app.post("/events/open", response_model=AcceptedResponse, status_code=202)
    async def open_event(body: OpenEventBody):
        _service().handle_open(OpenEvent(
            path=body.path,
            is_tracked_metrics_file=body.is_tracked_metrics_file,
            length=body.length,
        ))
        return AcceptedResponse()

    @app.post("/events/close", response_model=AcceptedResponse, status_code=202)
    async def close_event(body: CloseEventBody):
        _service().handle_close(CloseEvent(
            path=body.path,
            is_tracked_metrics_file=body.is_tracked_metrics_file,
            final_length=body.final_length,
        ))
        return AcceptedResponse()

    @app.post("/events/change", response_model=AcceptedResponse, status_code=202)
    async def change_event(body: ChangeEventBody):
        _service().handle_change(ChangeEvent(
            path=body.path,
            language_id=body.language_id,
            line_count=body.line_count,
            current_length=body.current_length,
            change_records=tuple(
                ChangeRecord(inserted_text=r.inserted_text, removed_extent=r.removed_extent)
                for r in body.change_records
            ),
            is_tracked_metrics_file=body.is_tracked_metrics_file,
        ))
        return AcceptedResponse()

    @app.post("/flush", response_model=FlushResponse)
    async def flush():
        """Run a flush pass immediately."""
        submitted = _service().flush_now()
        return FlushResponse(
            submitted=len(submitted),
            directories=[a.directory for a in submitted],
        )

    return app


app = create_app()
