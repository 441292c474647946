"""
routes_alerts.py

Purpose:
  Disaster alert feed for the operator console.

Contract:
  - The store returns the full current alert set, never deduplicated, so
    every request re-runs the reduction on the whole set.
  - Filters apply after dedup and sorting, so totals describe the live set
    and the list describes the filtered view.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict

from fastapi import APIRouter, Depends, Query

from citystream.api.fetch import fetch_alerts
from citystream.deps import get_store
from citystream.models.domain import AlertListResponse, SectorAlertSummary
from citystream.services import alerts as alert_svc
from citystream.services.store import RecordStore

router = APIRouter()


@router.get("", response_model=AlertListResponse)
async def alerts_list(
    severity: str = Query("ALL", pattern="^(ALL|CRITICAL|WARNING|CAUTION)$"),
    sector: str = Query("ALL", pattern="^(ALL|sector[1-5])$"),
    store: RecordStore = Depends(get_store),
) -> AlertListResponse:
    raw = await fetch_alerts(store)
    live = alert_svc.reduce_alerts(raw)
    return AlertListResponse(
        ts=datetime.now(timezone.utc).isoformat(),
        alerts=alert_svc.filter_alerts(live, severity=severity, sector=sector),
        totals=alert_svc.severity_totals(live),
    )


@router.get("/sectors", response_model=Dict[str, SectorAlertSummary])
async def alerts_by_sector(store: RecordStore = Depends(get_store)) -> Dict[str, SectorAlertSummary]:
    raw = await fetch_alerts(store)
    return alert_svc.sector_alert_summary(alert_svc.reduce_alerts(raw))
