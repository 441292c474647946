"""
scheduler.py

Purpose:
  Cooperative timers that drive the two periodic cycles:
    - generation: synthesize one record and submit it to the store
    - polling: fetch records + alerts and recompute the dashboard state

Concurrency model:
  - One asyncio task per timer. Each firing runs its cycle to completion
    (blocking store I/O goes through `asyncio.to_thread`) before the next
    sleep starts.
  - Each service serializes its own `run_once()` under a lock, so a
    manual trigger or a restart while a worker thread is still inside the
    store waits for that cycle instead of overlapping it.
  - An `UnknownDomainValue` from a cycle ends the timer; any other
    exception is logged and the next firing proceeds.
  - `start()` on a running timer and `stop()` on a stopped one are no-ops.
  - `stop()` cancels the task; no further firings are armed. A cycle
    already handed to the store is not recalled.
  - `run_once()` executes a single cycle synchronously, with no timer,
    for tests and manual triggers.
"""
from __future__ import annotations

import asyncio
import logging
import threading
from datetime import datetime
from typing import Callable, Dict, List, Optional

from citystream.config import clamp_generator_interval, clamp_poll_interval
from citystream.errors import GeneratorRunningError, StoreError, UnknownDomainValue
from citystream.models.domain import (
    SECTORS,
    AlertEvent,
    DashboardState,
    GeneratorStatus,
    SectorStatistics,
    TelemetryRecord,
    TimeWindow,
)
from citystream.services import aggregator, alerts
from citystream.services.clock import Clock, SystemClock
from citystream.services.rules import coerce
from citystream.services.store import RecordStore
from citystream.services.synthesizer import SynthConfig, TelemetrySynthesizer

logger = logging.getLogger(__name__)


# ============================================================
# TIMER
# ============================================================

class RepeatingTimer:
    def __init__(self, interval_s: float, callback: Callable[[], object], name: str = "timer"):
        self.interval_s = float(interval_s)
        self._callback = callback
        self.name = name
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> bool:
        if self.running:
            return False
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)
        logger.info("%s started (every %.1fs)", self.name, self.interval_s)
        return True

    def stop(self) -> bool:
        if not self.running:
            self._task = None
            return False
        self._task.cancel()
        self._task = None
        logger.info("%s stopped", self.name)
        return True

    async def _run(self) -> None:
        # First firing is immediate; the next is armed only after it finishes.
        while True:
            try:
                await asyncio.to_thread(self._callback)
            except UnknownDomainValue:
                logger.exception("%s stopped on an unknown domain value", self.name)
                return
            except Exception:
                logger.exception("%s cycle failed", self.name)
            await asyncio.sleep(self.interval_s)


# ============================================================
# GENERATION
# ============================================================

class LiveGenerationService:
    def __init__(
        self,
        synthesizer: TelemetrySynthesizer,
        store: RecordStore,
        interval_s: int = 5,
        sector_rotation: bool = True,
    ):
        self.synthesizer = synthesizer
        self.store = store
        self.sector_rotation = bool(sector_rotation)

        self.generated = 0
        self.errors = 0
        self.last_generated: Optional[datetime] = None
        self.latest: Optional[TelemetryRecord] = None
        self._cycle_lock = threading.Lock()

        self._timer = RepeatingTimer(clamp_generator_interval(interval_s), self.run_once, name="generator")

    @property
    def interval_s(self) -> int:
        return int(self._timer.interval_s)

    @property
    def running(self) -> bool:
        return self._timer.running

    def configure(self, interval_s: Optional[int] = None, sector_rotation: Optional[bool] = None) -> None:
        if self.running:
            raise GeneratorRunningError("stop the generator before changing its settings")
        if interval_s is not None:
            self._timer.interval_s = float(clamp_generator_interval(interval_s))
        if sector_rotation is not None:
            self.sector_rotation = bool(sector_rotation)

    def run_once(self) -> Optional[TelemetryRecord]:
        """
        One synthesize-and-submit cycle. Store failures are tallied, never raised.
        """
        with self._cycle_lock:
            record = self.synthesizer.next(SynthConfig(sector_rotation=self.sector_rotation))
            try:
                self.store.submit(record)
            except StoreError as e:
                self.errors += 1
                logger.warning("record submission failed (%d errors so far): %s", self.errors, e)
                return None

            self.generated += 1
            self.last_generated = record.created_at
            self.latest = record
            return record

    def start(self) -> bool:
        return self._timer.start()

    def stop(self) -> bool:
        return self._timer.stop()

    def status(self) -> GeneratorStatus:
        return GeneratorStatus(
            running=self.running,
            generated=self.generated,
            errors=self.errors,
            last_generated=self.last_generated,
            interval_s=self.interval_s,
            sector_rotation=self.sector_rotation,
        )


# ============================================================
# POLLING
# ============================================================

def compute_dashboard(
    records: List[TelemetryRecord],
    raw_alerts: List[AlertEvent],
    window: TimeWindow,
    now: datetime,
    view_limit: int = aggregator.DEFAULT_VIEW_LIMIT,
) -> DashboardState:
    """Derive every dashboard view from one fetched snapshot."""
    windowed = aggregator.filter_by_window(records, window, now)
    deduped = alerts.reduce_alerts(raw_alerts)
    stats: Dict[str, SectorStatistics] = {
        s.value: aggregator.sector_statistics(windowed, s) for s in SECTORS
    }
    return DashboardState(
        ts=now,
        window=window,
        snapshot=aggregator.compute_snapshot(windowed),
        views=aggregator.build_views(windowed, view_limit),
        alerts=deduped,
        sector_alerts=alerts.sector_alert_summary(deduped),
        sector_stats=stats,
        last_error=None,
    )


class AnalyticsPoller:
    def __init__(
        self,
        store: RecordStore,
        clock: Optional[Clock] = None,
        window: TimeWindow | str = TimeWindow.ALL,
        interval_s: int = 5,
        view_limit: int = aggregator.DEFAULT_VIEW_LIMIT,
    ):
        self.store = store
        self.clock = clock or SystemClock()
        self.window: TimeWindow = coerce(TimeWindow, window, "window")
        self.view_limit = int(view_limit)
        self._state = DashboardState(window=self.window)
        self._cycle_lock = threading.Lock()
        self._timer = RepeatingTimer(clamp_poll_interval(interval_s), self.run_once, name="poller")

    @property
    def running(self) -> bool:
        return self._timer.running

    @property
    def interval_s(self) -> int:
        return int(self._timer.interval_s)

    def set_window(self, window: TimeWindow | str) -> None:
        self.window = coerce(TimeWindow, window, "window")

    def run_once(self) -> DashboardState:
        """
        One fetch-and-recompute cycle. On a store failure the previous state
        is kept and the error is surfaced through `last_error`; the next
        firing retries.
        """
        with self._cycle_lock:
            try:
                records = self.store.list_records()
                raw_alerts = self.store.list_alerts()
            except StoreError as e:
                logger.warning("dashboard refresh failed: %s", e)
                self._state = self._state.model_copy(update={"last_error": str(e)})
                return self._state

            self._state = compute_dashboard(records, raw_alerts, self.window, self.clock.now(), self.view_limit)
            return self._state

    def state(self) -> DashboardState:
        return self._state

    def start(self) -> bool:
        return self._timer.start()

    def stop(self) -> bool:
        return self._timer.stop()
