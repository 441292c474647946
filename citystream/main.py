"""
main.py

Purpose:
  FastAPI application factory for the smart-city telemetry service.

Routers:
  - /health
  - /generator/*   live record synthesis (start/stop/config/once/stream)
  - /analytics/*   windowed snapshot + chart views
  - /alerts/*      deduplicated, severity-ordered alert feed
  - /sectors/*     per-sector metric statistics
  - /dashboard/*   background polling state

Run:
  uvicorn citystream.main:app --reload --port 8000
"""
from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from citystream.api import (
    routes_alerts,
    routes_analytics,
    routes_dashboard,
    routes_generator,
    routes_health,
    routes_sectors,
)
from citystream.config import Settings
from citystream.deps import get_generator, get_poller, get_settings, get_store
from citystream.logging_config import configure_logging

logger = logging.getLogger(__name__)


def _resolve(app: FastAPI, dep):
    return app.dependency_overrides.get(dep, dep)()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("citystream starting")
    yield
    # Timers belong to this event loop; cancel them before it closes.
    _resolve(app, get_generator).stop()
    _resolve(app, get_poller).stop()
    store = _resolve(app, get_store)
    close = getattr(store, "close", None)
    if callable(close):
        close()
    logger.info("citystream stopped")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title="CityStream Backend",
        version="0.1.0",
        description="Synthetic smart-city telemetry, windowed analytics and alert dedup (demo build).",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    app.include_router(routes_health.router)
    app.include_router(routes_generator.router, prefix="/generator", tags=["generator"])
    app.include_router(routes_analytics.router, prefix="/analytics", tags=["analytics"])
    app.include_router(routes_alerts.router, prefix="/alerts", tags=["alerts"])
    app.include_router(routes_sectors.router, prefix="/sectors", tags=["sectors"])
    app.include_router(routes_dashboard.router, prefix="/dashboard", tags=["dashboard"])
    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run("citystream.main:app", host="0.0.0.0", port=8000)
