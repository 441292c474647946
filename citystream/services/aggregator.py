"""
aggregator.py

Purpose:
  Windowed analytics over a collection of telemetry records: scalar
  gas/latency statistics, categorical distributions, chart series and a
  fixed gas-cost histogram. Also per-sector metric statistics.

Contract:
  - Every pass recomputes from scratch; nothing is carried between passes
    except the record window itself.
  - Input order is arrival order and is preserved by the window filter.
  - Grouped outputs iterate sectors/providers in enum declaration order,
    then any unrecognized keys in first-seen order, then `"unknown"`.
  - Empty input is "no data" (None / empty lists), never an error.

Rounding (presentation contract, halves round up):
  - gas average: 0 dp; latency avg/min/max: 2 dp
  - sector average gas: integer; provider average latency: 2 dp
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

from citystream.models.domain import (
    PROVIDERS,
    SECTORS,
    AnalyticsSnapshot,
    AnalyticsViews,
    DistributionSlice,
    GasLatencyPoint,
    GasPoint,
    GasStats,
    HistogramBin,
    LatencyPoint,
    LatencyStats,
    LatestReadings,
    MetricAverages,
    ProviderLatency,
    Sector,
    SectorGas,
    SectorStatistics,
    TelemetryRecord,
    TimeWindow,
)
from citystream.services.rules import coerce
from citystream.services.sampler import round_half_up

UNKNOWN = "unknown"
DEFAULT_VIEW_LIMIT = 50

WINDOW_SPANS: Dict[TimeWindow, Optional[timedelta]] = {
    TimeWindow.ALL: None,
    TimeWindow.LAST_HOUR: timedelta(hours=1),
    TimeWindow.LAST_DAY: timedelta(days=1),
}

# Half-open [lo, hi) bins; a value equal to the last upper bound lands nowhere.
GAS_HIST_LO = 40000
GAS_HIST_HI = 70000
GAS_HIST_STEP = 5000


# ============================================================
# 0) HELPERS
# ============================================================

def _sector_key(r: TelemetryRecord) -> str:
    return r.sector.value if r.sector is not None else UNKNOWN


def _provider_key(r: TelemetryRecord) -> str:
    return r.provider_type.value if r.provider_type is not None else UNKNOWN


def _ordered_keys(seen: Iterable[str], canonical: Sequence[str]) -> List[str]:
    seen_list = list(dict.fromkeys(seen))
    present = set(seen_list)
    head = [k for k in canonical if k in present]
    extra = [k for k in seen_list if k not in canonical and k != UNKNOWN]
    tail = [UNKNOWN] if UNKNOWN in present else []
    return head + extra + tail


def _count_by(records: Sequence[TelemetryRecord], key_fn, canonical: Sequence[str]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for r in records:
        k = key_fn(r)
        counts[k] = counts.get(k, 0) + 1
    return {k: counts[k] for k in _ordered_keys(counts.keys(), canonical)}


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values)


_SECTOR_NAMES = [s.value for s in SECTORS]
_PROVIDER_NAMES = [p.value for p in PROVIDERS]


# ============================================================
# 1) WINDOW FILTER
# ============================================================

def filter_by_window(
    records: Iterable[TelemetryRecord],
    window: TimeWindow | str,
    now: datetime,
) -> List[TelemetryRecord]:
    """
    Keep records with `created_at` in [now - span, now]. `all` keeps everything.
    """
    w = coerce(TimeWindow, window, "window")
    span = WINDOW_SPANS[w]
    if span is None:
        return list(records)
    cutoff = now - span
    return [r for r in records if cutoff <= r.created_at <= now]


# ============================================================
# 2) SNAPSHOT
# ============================================================

def compute_snapshot(records: Sequence[TelemetryRecord]) -> Optional[AnalyticsSnapshot]:
    if not records:
        return None

    gas_costs = [r.gas_cost for r in records if r.gas_cost is not None]
    latencies = [r.auth_latency_sec for r in records if r.auth_latency_sec is not None]

    gas: Optional[GasStats] = None
    if gas_costs:
        gas = GasStats(
            avg=round_half_up(_mean(gas_costs)),
            min=min(gas_costs),
            max=max(gas_costs),
            total=sum(gas_costs),
        )

    latency: Optional[LatencyStats] = None
    if latencies:
        latency = LatencyStats(
            avg=round_half_up(_mean(latencies), 2),
            min=round_half_up(min(latencies), 2),
            max=round_half_up(max(latencies), 2),
        )

    return AnalyticsSnapshot(
        gas=gas,
        latency=latency,
        sectors=_count_by(records, _sector_key, _SECTOR_NAMES),
        providers=_count_by(records, _provider_key, _PROVIDER_NAMES),
        total_records=len(records),
    )


# ============================================================
# 3) DERIVED VIEWS
# ============================================================

def gas_over_time(records: Sequence[TelemetryRecord], limit: int = DEFAULT_VIEW_LIMIT) -> List[GasPoint]:
    rows = [r for r in records if r.gas_cost][-limit:] if limit > 0 else []
    return [GasPoint(index=i + 1, gas=r.gas_cost, time=r.created_at) for i, r in enumerate(rows)]


def latency_over_time(records: Sequence[TelemetryRecord], limit: int = DEFAULT_VIEW_LIMIT) -> List[LatencyPoint]:
    rows = [r for r in records if r.auth_latency_sec][-limit:] if limit > 0 else []
    return [LatencyPoint(index=i + 1, latency=r.auth_latency_sec, time=r.created_at) for i, r in enumerate(rows)]


def gas_vs_latency(records: Sequence[TelemetryRecord], limit: int = DEFAULT_VIEW_LIMIT) -> List[GasLatencyPoint]:
    rows = list(records)[-limit:] if limit > 0 else []
    return [GasLatencyPoint(gas=r.gas_cost, latency=r.auth_latency_sec) for r in rows]


def gas_by_sector(records: Sequence[TelemetryRecord]) -> List[SectorGas]:
    totals: Dict[str, int] = {}
    counts: Dict[str, int] = {}
    for r in records:
        if not r.gas_cost:
            continue
        k = _sector_key(r)
        totals[k] = totals.get(k, 0) + r.gas_cost
        counts[k] = counts.get(k, 0) + 1

    return [
        SectorGas(sector=k, avg_gas=int(round_half_up(totals[k] / counts[k])), total_gas=totals[k], count=counts[k])
        for k in _ordered_keys(totals.keys(), _SECTOR_NAMES)
    ]


def latency_by_provider(records: Sequence[TelemetryRecord]) -> List[ProviderLatency]:
    totals: Dict[str, float] = {}
    counts: Dict[str, int] = {}
    for r in records:
        if not r.auth_latency_sec:
            continue
        k = _provider_key(r)
        totals[k] = totals.get(k, 0.0) + r.auth_latency_sec
        counts[k] = counts.get(k, 0) + 1

    return [
        ProviderLatency(provider=k, avg_latency=round_half_up(totals[k] / counts[k], 2), count=counts[k])
        for k in _ordered_keys(totals.keys(), _PROVIDER_NAMES)
    ]


def sector_distribution(snapshot: Optional[AnalyticsSnapshot]) -> List[DistributionSlice]:
    if snapshot is None:
        return []
    return [DistributionSlice(name=k, value=v) for k, v in snapshot.sectors.items()]


def empty_gas_bins() -> List[HistogramBin]:
    bins: List[HistogramBin] = []
    for lo in range(GAS_HIST_LO, GAS_HIST_HI, GAS_HIST_STEP):
        hi = lo + GAS_HIST_STEP
        bins.append(HistogramBin(range=f"{lo // 1000}-{hi // 1000}k", min=lo, max=hi))
    return bins


def gas_histogram(records: Sequence[TelemetryRecord]) -> List[HistogramBin]:
    bins = empty_gas_bins()
    for r in records:
        gas = r.gas_cost
        if not gas:
            continue
        for b in bins:
            if b.min <= gas < b.max:
                b.count += 1
                break
    return bins


def build_views(records: Sequence[TelemetryRecord], limit: int = DEFAULT_VIEW_LIMIT) -> AnalyticsViews:
    """
    All chart views over one filtered window. `limit` truncates only the
    per-record series (time series, scatter); grouped views use the full window.
    """
    snapshot = compute_snapshot(records)
    return AnalyticsViews(
        gas_over_time=gas_over_time(records, limit),
        latency_over_time=latency_over_time(records, limit),
        gas_vs_latency=gas_vs_latency(records, limit),
        gas_by_sector=gas_by_sector(records),
        latency_by_provider=latency_by_provider(records),
        sector_distribution=sector_distribution(snapshot),
        gas_histogram=gas_histogram(records),
    )


# ============================================================
# 4) SECTOR STATISTICS
# ============================================================

_METRIC_ATTRS = {
    "temperature": "temperature_c",
    "aqi": "air_quality_index",
    "traffic": "traffic_density",
    "energy": "energy_kwh",
}


def sector_statistics(records: Sequence[TelemetryRecord], sector: Sector | str) -> SectorStatistics:
    """
    `latest`: most recent non-null value per metric (by `created_at`; equal
    timestamps resolve to the later arrival). `averages`: mean of non-null
    values over the window, 2 dp, None if the metric never appeared.
    """
    s = coerce(Sector, sector, "sector")
    rows = [r for r in records if r.sector is s]

    latest: Dict[str, Optional[float]] = {}
    averages: Dict[str, Optional[float]] = {}
    for name, attr in _METRIC_ATTRS.items():
        newest: Optional[TelemetryRecord] = None
        values: List[float] = []
        for r in rows:
            v = getattr(r, attr)
            if v is None:
                continue
            values.append(float(v))
            if newest is None or r.created_at >= newest.created_at:
                newest = r
        latest[name] = getattr(newest, attr) if newest is not None else None
        averages[name] = round_half_up(_mean(values), 2) if values else None

    last_ts = max((r.created_at for r in rows), default=None)

    return SectorStatistics(
        sector=s,
        record_count=len(rows),
        latest=LatestReadings(timestamp=last_ts, **latest),
        averages=MetricAverages(**averages),
    )
