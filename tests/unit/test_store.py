import json

import httpx
import pytest

from citystream.errors import StoreError
from citystream.models.domain import DataCategory, Sector, Severity
from citystream.services.store import HttpRecordStore, InMemoryRecordStore, record_from_wire, record_to_wire


def _store(handler) -> HttpRecordStore:
    client = httpx.Client(base_url="http://store.test", transport=httpx.MockTransport(handler))
    return HttpRecordStore("http://store.test", client=client)


def test_upload_payload_is_flat(record_factory):
    payload = record_to_wire(record_factory())

    assert payload["Sector"] == "sector1"
    assert payload["Data_Provider_Type"] == "Utility Meter"
    assert payload["Data_Category"] == "Utility"
    assert payload["Energy_Consumption_kWh"] == 250.0
    assert payload["Temperature_C"] is None
    assert payload["Blockchain_Tx_Cost_Gas"] == 55000
    assert payload["ownerRole"] == "CityAuthority"
    assert payload["createdAt"].startswith("2025-06-01T12:00:00")


def test_listed_row_with_nested_metadata():
    row = {
        "metadata": {
            "Sector": "sector2",
            "Data_Category": "Traffic",
            "Traffic_Density": 120,
            "Blockchain_Tx_Cost_Gas": 51000,
        },
        "policy": "role:CityAuthority",
        "createdAt": "2025-06-01T10:00:00Z",
    }
    r = record_from_wire(row)

    assert r.sector is Sector.SECTOR2
    assert r.category is DataCategory.TRAFFIC
    assert r.traffic_density == 120
    assert r.provider_type is None
    assert r.created_at.tzinfo is not None


def test_submit_posts_to_upload(record_factory):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json={"ok": True})

    _store(handler).submit(record_factory())

    assert seen["method"] == "POST"
    assert seen["path"] == "/dataset/upload"
    assert seen["body"]["Sector"] == "sector1"


def test_list_records_skips_malformed_rows():
    rows = [
        {"metadata": {"Sector": "sector1"}, "createdAt": "2025-06-01T10:00:00Z"},
        {"metadata": {"Sector": "sector1"}, "createdAt": "not-a-date"},
        {"metadata": {"Sector": "sector42"}, "createdAt": "2025-06-01T10:00:00Z"},
    ]
    store = _store(lambda request: httpx.Response(200, json=rows))

    records = store.list_records()
    assert len(records) == 1
    assert store.skipped_rows == 2


def test_list_alerts():
    body = {"alerts": [{
        "sector": "sector1", "type": "HEATWAVE", "metric": "temperature", "value": 41.2,
        "severity": "CRITICAL", "message": "m", "recommendation": "r", "actions": ["a"],
        "timestamp": "2025-06-01T10:00:00Z",
    }]}
    store = _store(lambda request: httpx.Response(200, json=body))

    out = store.list_alerts()
    assert len(out) == 1
    assert out[0].severity is Severity.CRITICAL


def test_invalid_alert_payload_is_store_error():
    store = _store(lambda request: httpx.Response(200, json={"alerts": [{"sector": "sector1"}]}))
    with pytest.raises(StoreError):
        store.list_alerts()


@pytest.mark.parametrize("handler", [
    lambda request: httpx.Response(500, json={"detail": "boom"}),
    lambda request: httpx.Response(200, content=b"<html>"),
    lambda request: httpx.Response(200, json={"not": "a list"}),
])
def test_bad_responses_raise_store_error(handler):
    with pytest.raises(StoreError):
        _store(handler).list_records()


def test_transport_failure_is_store_error(record_factory):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(StoreError):
        _store(handler).submit(record_factory())


def test_in_memory_since_filter(record_factory, clock):
    store = InMemoryRecordStore()
    early = record_factory(created_at=clock.now())
    late = record_factory(created_at=clock.advance(60))
    store.submit(early)
    store.submit(late)

    assert store.list_records() == [early, late]
    assert store.list_records(since=clock.now()) == [late]
