"""
routes_generator.py

Purpose:
  Operator controls for the live telemetry generator.

Endpoints:
  - **POST /generator/start** / **POST /generator/stop**: idempotent; a
    duplicate start or stop is ignored and just returns the status.
  - **GET /generator/status**: generated/error tallies and settings.
  - **PUT /generator/config**: interval (2-30s) and sector rotation; only
    while stopped (409 otherwise).
  - **POST /generator/once**: one synthesize-and-submit cycle, outside the timer.
  - **GET /generator/stream**: SSE of the most recently generated record.
"""
from __future__ import annotations

import asyncio
import json

from fastapi import APIRouter, Depends, HTTPException
from sse_starlette.sse import EventSourceResponse

from citystream.deps import get_generator
from citystream.errors import GeneratorRunningError
from citystream.models.domain import GeneratorConfigRequest, GeneratorStatus, TelemetryRecord
from citystream.services.scheduler import LiveGenerationService

router = APIRouter()


@router.get("/status", response_model=GeneratorStatus)
async def generator_status(gen: LiveGenerationService = Depends(get_generator)) -> GeneratorStatus:
    return gen.status()


@router.post("/start", response_model=GeneratorStatus)
async def generator_start(gen: LiveGenerationService = Depends(get_generator)) -> GeneratorStatus:
    gen.start()
    return gen.status()


@router.post("/stop", response_model=GeneratorStatus)
async def generator_stop(gen: LiveGenerationService = Depends(get_generator)) -> GeneratorStatus:
    gen.stop()
    return gen.status()


@router.put("/config", response_model=GeneratorStatus)
async def generator_config(
    body: GeneratorConfigRequest,
    gen: LiveGenerationService = Depends(get_generator),
) -> GeneratorStatus:
    try:
        gen.configure(interval_s=body.interval_s, sector_rotation=body.sector_rotation)
    except GeneratorRunningError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    return gen.status()


@router.post("/once", response_model=TelemetryRecord)
async def generator_once(gen: LiveGenerationService = Depends(get_generator)) -> TelemetryRecord:
    record = await asyncio.to_thread(gen.run_once)
    if record is None:
        raise HTTPException(status_code=502, detail="Record store rejected the submission")
    return record


@router.get("/stream", response_class=EventSourceResponse)
async def generator_stream(gen: LiveGenerationService = Depends(get_generator)):
    """
    Pushes each newly generated record once (checked every 1s).
    """

    async def event_generator():
        last_sent = None
        while True:
            latest = gen.latest
            if latest is not None and latest is not last_sent:
                last_sent = latest
                yield {"event": "record", "data": json.dumps(latest.model_dump(mode="json"))}
            await asyncio.sleep(1.0)

    return EventSourceResponse(event_generator())
