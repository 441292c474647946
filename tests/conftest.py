from __future__ import annotations

import random
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from citystream.config import Settings
from citystream.deps import get_clock, get_generator, get_poller, get_store
from citystream.main import create_app
from citystream.models.domain import (
    AlertEvent,
    DataCategory,
    OwnerRole,
    ProviderType,
    Sector,
    Severity,
    TelemetryRecord,
)
from citystream.services.clock import ManualClock
from citystream.services.scheduler import AnalyticsPoller, LiveGenerationService
from citystream.services.store import InMemoryRecordStore
from citystream.services.synthesizer import TelemetrySynthesizer

NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_record(**overrides) -> TelemetryRecord:
    values = dict(
        owner_role=OwnerRole.CITY_AUTHORITY,
        sector=Sector.SECTOR1,
        provider_type=ProviderType.UTILITY_METER,
        category=DataCategory.UTILITY,
        energy_kwh=250.0,
        gas_cost=55000,
        auth_latency_sec=2.3,
        policy="role:CityAuthority OR role:Researcher AND attribute:sensitivity=private",
        created_at=NOW,
    )
    values.update(overrides)
    return TelemetryRecord(**values)


def make_alert(**overrides) -> AlertEvent:
    values = dict(
        sector="sector1",
        type="HEATWAVE",
        metric="temperature",
        value=41.0,
        severity=Severity.WARNING,
        message="High temperature",
        recommendation="Stay indoors",
        actions=["Open cooling centers"],
        timestamp=NOW,
    )
    values.update(overrides)
    return AlertEvent(**values)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(NOW)


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def synthesizer(clock) -> TelemetrySynthesizer:
    return TelemetrySynthesizer(rng=random.Random(7), clock=clock)


@pytest.fixture
def generator(synthesizer, store) -> LiveGenerationService:
    return LiveGenerationService(synthesizer, store, interval_s=2, sector_rotation=True)


@pytest.fixture
def poller(store, clock) -> AnalyticsPoller:
    return AnalyticsPoller(store, clock=clock, interval_s=3)


@pytest.fixture
def app(store, clock, generator, poller):
    application = create_app(Settings())
    application.dependency_overrides[get_store] = lambda: store
    application.dependency_overrides[get_clock] = lambda: clock
    application.dependency_overrides[get_generator] = lambda: generator
    application.dependency_overrides[get_poller] = lambda: poller
    return application


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def record_factory():
    return make_record


@pytest.fixture
def alert_factory():
    return make_alert
