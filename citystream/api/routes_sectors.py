from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from citystream.api.fetch import fetch_alerts, fetch_records
from citystream.deps import get_clock, get_store
from citystream.models.domain import Sector, SectorDetailResponse, TimeWindow
from citystream.services import aggregator
from citystream.services import alerts as alert_svc
from citystream.services.clock import Clock
from citystream.services.store import RecordStore

router = APIRouter()


@router.get("/{sector}/stats", response_model=SectorDetailResponse)
async def sector_stats(
    sector: Sector,
    window: TimeWindow = Query(TimeWindow.ALL, description="all | lastHour | lastDay"),
    store: RecordStore = Depends(get_store),
    clock: Clock = Depends(get_clock),
) -> SectorDetailResponse:
    """
    Latest reading and window average per metric, plus the sector's live alerts.
    """
    records = await fetch_records(store)
    raw = await fetch_alerts(store)

    windowed = aggregator.filter_by_window(records, window, clock.now())
    live = alert_svc.reduce_alerts(raw)
    return SectorDetailResponse(
        stats=aggregator.sector_statistics(windowed, sector),
        alerts=alert_svc.filter_alerts(live, sector=sector.value),
    )
