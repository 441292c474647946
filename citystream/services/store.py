"""
store.py

Purpose:
  Ports and adapters for the external record/alert store. The core only
  ever appends one record per generation cycle and reads full snapshots
  per polling cycle.

Adapters:
  - `HttpRecordStore`: the dashboard REST backend, over httpx.
  - `InMemoryRecordStore`: process-local store for offline demos and tests.

Wire format (REST backend):
  - upload body is flat: {"ownerRole", "Sector", "Data_Provider_Type", ...}
  - listed rows nest the readings: {"metadata": {...}, "policy", "createdAt"}
  - alerts come back whole: {"alerts": [...]}
"""
from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

import httpx
from pydantic import ValidationError

from citystream.errors import StoreError
from citystream.models.domain import AlertEvent, TelemetryRecord

logger = logging.getLogger(__name__)

# model attribute -> wire key
WIRE_FIELDS: Dict[str, str] = {
    "owner_role": "ownerRole",
    "sector": "Sector",
    "provider_type": "Data_Provider_Type",
    "category": "Data_Category",
    "temperature_c": "Temperature_C",
    "air_quality_index": "Air_Quality_Index",
    "traffic_density": "Traffic_Density",
    "energy_kwh": "Energy_Consumption_kWh",
    "gas_cost": "Blockchain_Tx_Cost_Gas",
    "auth_latency_sec": "Authorization_Latency_sec",
}


class RecordStore(Protocol):
    def submit(self, record: TelemetryRecord) -> None: ...

    def list_records(self, since: Optional[datetime] = None) -> List[TelemetryRecord]: ...

    def list_alerts(self) -> List[AlertEvent]: ...


# ============================================================
# WIRE MAPPING
# ============================================================

def record_to_wire(record: TelemetryRecord) -> Dict[str, Any]:
    data = record.model_dump(mode="json")
    payload = {wire: data[attr] for attr, wire in WIRE_FIELDS.items()}
    payload["policy"] = data["policy"]
    payload["createdAt"] = data["created_at"]
    return payload


def record_from_wire(row: Dict[str, Any]) -> TelemetryRecord:
    meta = row.get("metadata")
    if not isinstance(meta, dict):
        meta = row
    values = {attr: meta.get(wire) for attr, wire in WIRE_FIELDS.items()}
    values["policy"] = row.get("policy", meta.get("policy"))
    values["created_at"] = row.get("createdAt", meta.get("createdAt"))
    return TelemetryRecord(**values)


def _since_filter(records: List[TelemetryRecord], since: Optional[datetime]) -> List[TelemetryRecord]:
    if since is None:
        return records
    return [r for r in records if r.created_at >= since]


# ============================================================
# HTTP ADAPTER
# ============================================================

class HttpRecordStore:
    def __init__(
        self,
        base_url: str,
        *,
        timeout_s: float = 5.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._client = client or httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout_s)
        self.skipped_rows = 0

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            r = self._client.request(method, path, **kwargs)
            r.raise_for_status()
            return r.json() if r.content else None
        except httpx.HTTPError as e:
            raise StoreError(f"{method} {path} failed: {e}") from e
        except ValueError as e:
            raise StoreError(f"{method} {path} returned invalid JSON") from e

    def submit(self, record: TelemetryRecord) -> None:
        self._request("POST", "/dataset/upload", json=record_to_wire(record))

    def list_records(self, since: Optional[datetime] = None) -> List[TelemetryRecord]:
        params = {"since": since.isoformat()} if since is not None else None
        rows = self._request("GET", "/dataset", params=params)
        if not isinstance(rows, list):
            raise StoreError("GET /dataset did not return a list")

        out: List[TelemetryRecord] = []
        for row in rows:
            try:
                out.append(record_from_wire(row))
            except (ValidationError, AttributeError) as e:
                # Rows with unparseable timestamps or out-of-domain enums are dropped.
                self.skipped_rows += 1
                logger.warning("skipping malformed dataset row: %s", e)
        return _since_filter(out, since)

    def list_alerts(self) -> List[AlertEvent]:
        body = self._request("GET", "/disaster/alerts")
        if not isinstance(body, dict):
            raise StoreError("GET /disaster/alerts did not return an object")
        try:
            return [AlertEvent(**a) for a in body.get("alerts") or []]
        except (ValidationError, TypeError) as e:
            raise StoreError(f"invalid alert payload: {e}") from e


# ============================================================
# IN-MEMORY ADAPTER
# ============================================================

class InMemoryRecordStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: List[TelemetryRecord] = []
        self._alerts: List[AlertEvent] = []

    def submit(self, record: TelemetryRecord) -> None:
        with self._lock:
            self._records.append(record)

    def list_records(self, since: Optional[datetime] = None) -> List[TelemetryRecord]:
        with self._lock:
            records = list(self._records)
        return _since_filter(records, since)

    def list_alerts(self) -> List[AlertEvent]:
        with self._lock:
            return list(self._alerts)

    def publish_alerts(self, alerts: List[AlertEvent]) -> None:
        """Replace the full alert set (what an external monitor would do)."""
        with self._lock:
            self._alerts = list(alerts)
