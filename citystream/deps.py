"""
deps.py

Purpose:
  Dependency container for the application. Holds singleton instances of
  the store adapter, synthesizer, generator and poller so that counters and
  timer handles survive across requests.

Services Managed:
  - `RecordStore` (HTTP adapter when `STORE_URL` is set, in-memory otherwise)
  - `LiveGenerationService` (synthesize-and-submit timer)
  - `AnalyticsPoller` (fetch-and-recompute timer)

Pattern:
  - `lru_cache` singletons; routes take them through `Depends(...)` so tests
    can swap any of them via `app.dependency_overrides`.
"""
from __future__ import annotations

import random
from functools import lru_cache

from citystream.config import Settings, load_settings
from citystream.services.clock import Clock, SystemClock
from citystream.services.scheduler import AnalyticsPoller, LiveGenerationService
from citystream.services.store import HttpRecordStore, InMemoryRecordStore, RecordStore
from citystream.services.synthesizer import TelemetrySynthesizer


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()


@lru_cache(maxsize=1)
def get_clock() -> Clock:
    return SystemClock()


@lru_cache(maxsize=1)
def get_store() -> RecordStore:
    settings = get_settings()
    if settings.store_url:
        return HttpRecordStore(settings.store_url, timeout_s=settings.store_timeout_s)
    return InMemoryRecordStore()


@lru_cache(maxsize=1)
def get_generator() -> LiveGenerationService:
    settings = get_settings()
    rng = random.Random(settings.seed) if settings.seed is not None else random.Random()
    synth = TelemetrySynthesizer(rng=rng, clock=get_clock())
    return LiveGenerationService(
        synth,
        get_store(),
        interval_s=settings.generator_interval_s,
        sector_rotation=settings.generator_sector_rotation,
    )


@lru_cache(maxsize=1)
def get_poller() -> AnalyticsPoller:
    settings = get_settings()
    return AnalyticsPoller(get_store(), clock=get_clock(), interval_s=settings.poll_interval_s)


def reset_singletons() -> None:
    for fn in (get_settings, get_clock, get_store, get_generator, get_poller):
        fn.cache_clear()
