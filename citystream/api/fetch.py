from __future__ import annotations

import asyncio
from typing import List

from fastapi import HTTPException

from citystream.errors import StoreError
from citystream.models.domain import AlertEvent, TelemetryRecord
from citystream.services.store import RecordStore


async def fetch_records(store: RecordStore) -> List[TelemetryRecord]:
    try:
        return await asyncio.to_thread(store.list_records)
    except StoreError as e:
        raise HTTPException(status_code=502, detail=f"Record store unavailable: {e}") from e


async def fetch_alerts(store: RecordStore) -> List[AlertEvent]:
    try:
        return await asyncio.to_thread(store.list_alerts)
    except StoreError as e:
        raise HTTPException(status_code=502, detail=f"Alert feed unavailable: {e}") from e
