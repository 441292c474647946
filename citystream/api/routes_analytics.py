from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from citystream.api.fetch import fetch_records
from citystream.deps import get_clock, get_store
from citystream.models.domain import AnalyticsSnapshot, AnalyticsViews, TimeWindow
from citystream.services import aggregator
from citystream.services.clock import Clock
from citystream.services.store import RecordStore

router = APIRouter()


@router.get("/snapshot", response_model=Optional[AnalyticsSnapshot])
async def analytics_snapshot(
    window: TimeWindow = Query(TimeWindow.ALL, description="all | lastHour | lastDay"),
    store: RecordStore = Depends(get_store),
    clock: Clock = Depends(get_clock),
) -> Optional[AnalyticsSnapshot]:
    """
    Gas/latency stats and sector/provider counts for the window.
    `null` when the window holds no records.
    """
    records = await fetch_records(store)
    windowed = aggregator.filter_by_window(records, window, clock.now())
    return aggregator.compute_snapshot(windowed)


@router.get("/views", response_model=AnalyticsViews)
async def analytics_views(
    window: TimeWindow = Query(TimeWindow.ALL, description="all | lastHour | lastDay"),
    limit: int = Query(aggregator.DEFAULT_VIEW_LIMIT, ge=1, le=500, description="Max points per series"),
    store: RecordStore = Depends(get_store),
    clock: Clock = Depends(get_clock),
) -> AnalyticsViews:
    records = await fetch_records(store)
    windowed = aggregator.filter_by_window(records, window, clock.now())
    return aggregator.build_views(windowed, limit)
