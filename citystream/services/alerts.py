"""
alerts.py

Purpose:
  Client-side reduction of the external monitor's full alert set.

Dedup contract (`reduce_alerts`):
  - key = (sector, type, metric); timestamp and value are not part of it
  - per key keep the latest timestamp; strict `>` so equal timestamps keep
    the first-seen alert
  - result is stably sorted by severity rank CRITICAL < WARNING < CAUTION,
    equal severities keep their post-dedup (first-seen key) order
  - output length <= number of distinct keys

The store does not dedupe, so callers re-run this on every full fetch.
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Tuple

from citystream.models.domain import (
    SECTORS,
    AlertEvent,
    SectorAlertSummary,
    SectorStatus,
    Severity,
    SeverityTotals,
)
from citystream.services.rules import coerce

ALL = "ALL"

SEVERITY_RANK: Dict[Severity, int] = {
    Severity.CRITICAL: 0,
    Severity.WARNING: 1,
    Severity.CAUTION: 2,
}

# Sector status escalates to WARNING above this many live alerts.
WARNING_ALERT_COUNT = 2


def reduce_alerts(alerts: Iterable[AlertEvent]) -> List[AlertEvent]:
    latest: Dict[Tuple[str, str, str], AlertEvent] = {}
    for alert in alerts:
        key = alert.dedup_key()
        kept = latest.get(key)
        if kept is None or alert.timestamp > kept.timestamp:
            # Replacing a value keeps the key's original insertion slot.
            latest[key] = alert

    return sorted(latest.values(), key=lambda a: SEVERITY_RANK[a.severity])


def filter_alerts(
    alerts: Iterable[AlertEvent],
    severity: Severity | str = ALL,
    sector: str = ALL,
) -> List[AlertEvent]:
    wanted = None if severity == ALL else coerce(Severity, severity, "severity")
    out: List[AlertEvent] = []
    for a in alerts:
        if wanted is not None and a.severity is not wanted:
            continue
        if sector != ALL and a.sector != sector:
            continue
        out.append(a)
    return out


def severity_totals(alerts: Iterable[AlertEvent]) -> SeverityTotals:
    totals = SeverityTotals()
    for a in alerts:
        if a.severity is Severity.CRITICAL:
            totals.critical += 1
        elif a.severity is Severity.WARNING:
            totals.warning += 1
        else:
            totals.caution += 1
        totals.total += 1
    return totals


def _status_for(summary: SectorAlertSummary) -> SectorStatus:
    if summary.critical > 0:
        return SectorStatus.CRITICAL
    if summary.alerts > WARNING_ALERT_COUNT:
        return SectorStatus.WARNING
    if summary.alerts > 0:
        return SectorStatus.CAUTION
    return SectorStatus.NORMAL


def sector_alert_summary(alerts: Iterable[AlertEvent]) -> Dict[str, SectorAlertSummary]:
    """
    Per-sector alert tally for the five known sectors (always all present).
    Alerts naming any other sector are ignored here.
    """
    out: Dict[str, SectorAlertSummary] = {s.value: SectorAlertSummary() for s in SECTORS}
    for a in alerts:
        summary = out.get(a.sector)
        if summary is None:
            continue
        summary.alerts += 1
        if a.severity is Severity.CRITICAL:
            summary.critical += 1

    for summary in out.values():
        summary.status = _status_for(summary)
    return out
