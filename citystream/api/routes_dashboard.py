"""
routes_dashboard.py

Purpose:
  Background fetch-and-recompute cycle. The poller refreshes the whole
  dashboard state every 3-5s; clients read the last good state plus the
  last fetch error, if any.
"""
from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, Query

from citystream.deps import get_poller
from citystream.models.domain import DashboardState, TimeWindow
from citystream.services.scheduler import AnalyticsPoller

router = APIRouter()


@router.get("/state", response_model=DashboardState)
async def dashboard_state(poller: AnalyticsPoller = Depends(get_poller)) -> DashboardState:
    return poller.state()


@router.post("/refresh", response_model=DashboardState)
async def dashboard_refresh(poller: AnalyticsPoller = Depends(get_poller)) -> DashboardState:
    return await asyncio.to_thread(poller.run_once)


@router.put("/window", response_model=DashboardState)
async def dashboard_window(
    window: TimeWindow = Query(..., description="all | lastHour | lastDay"),
    poller: AnalyticsPoller = Depends(get_poller),
) -> DashboardState:
    poller.set_window(window)
    return await asyncio.to_thread(poller.run_once)


@router.post("/poller/start")
async def poller_start(poller: AnalyticsPoller = Depends(get_poller)) -> dict:
    started = poller.start()
    return {"running": poller.running, "started": started, "interval_s": poller.interval_s}


@router.post("/poller/stop")
async def poller_stop(poller: AnalyticsPoller = Depends(get_poller)) -> dict:
    stopped = poller.stop()
    return {"running": poller.running, "stopped": stopped, "interval_s": poller.interval_s}
