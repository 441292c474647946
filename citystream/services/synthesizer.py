"""
synthesizer.py

Purpose:
  Produces one complete, constraint-satisfying `TelemetryRecord` per call.

Flow (per `next()`):
  1. provider uniform over the 4 providers
  2. owner role derived from the provider
  3. category uniform over the provider's candidates
  4. sector: round-robin on the generation counter, or uniform
  5. four domain metrics + gas cost + auth latency sampled unconditionally
  6. metrics outside the category's allowed set are nulled
  7. policy from the category, `created_at` from the injected clock

State:
  - `counter` only drives sector rotation. It advances once per call,
    whichever sector mode is used.
"""
from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Dict, Optional

from citystream.models.domain import (
    PROVIDERS,
    SECTORS,
    MetricField,
    TelemetryRecord,
)
from citystream.services import rules
from citystream.services.clock import Clock, SystemClock
from citystream.services.sampler import VariateSampler, round_half_up


@dataclass(frozen=True)
class MetricDistribution:
    mean: float
    std_dev: float
    lo: float
    hi: float
    # None -> integer rounding
    decimals: Optional[int] = 2


TEMPERATURE = MetricDistribution(27.0, 6.0, 15.0, 40.0, 2)
AQI = MetricDistribution(170.0, 60.0, 50.0, 300.0, None)
TRAFFIC = MetricDistribution(100.0, 45.0, 10.0, 200.0, None)
ENERGY = MetricDistribution(250.0, 130.0, 5.0, 500.0, 2)
GAS_COST = MetricDistribution(55000.0, 8500.0, 40000.0, 70000.0, None)
AUTH_LATENCY = MetricDistribution(2.3, 1.0, 0.5, 4.0, 2)


@dataclass(frozen=True)
class SynthConfig:
    sector_rotation: bool = True


class TelemetrySynthesizer:
    def __init__(
        self,
        rng: Optional[random.Random] = None,
        clock: Optional[Clock] = None,
    ):
        self.rng = rng or random.Random()
        self.sampler = VariateSampler(self.rng)
        self.clock = clock or SystemClock()
        self.counter = 0

    def _draw(self, dist: MetricDistribution) -> float | int:
        value = self.sampler.sample(dist.mean, dist.std_dev, dist.lo, dist.hi)
        if dist.decimals is None:
            return int(round_half_up(value))
        return round_half_up(value, dist.decimals)

    def next(self, config: SynthConfig = SynthConfig()) -> TelemetryRecord:
        provider = self.rng.choice(PROVIDERS)
        owner_role = rules.owner_role_for(provider, self.rng)
        category = self.rng.choice(rules.candidate_categories(provider))

        if config.sector_rotation:
            sector = SECTORS[self.counter % len(SECTORS)]
        else:
            sector = self.rng.choice(SECTORS)
        self.counter += 1

        metrics: Dict[MetricField, float | int] = {
            MetricField.TEMPERATURE: self._draw(TEMPERATURE),
            MetricField.AQI: self._draw(AQI),
            MetricField.TRAFFIC: self._draw(TRAFFIC),
            MetricField.ENERGY: self._draw(ENERGY),
        }
        gas_cost = self._draw(GAS_COST)
        latency = self._draw(AUTH_LATENCY)

        allowed = rules.allowed_fields(category)

        def keep(field: MetricField) -> Optional[float | int]:
            return metrics[field] if field in allowed else None

        return TelemetryRecord(
            owner_role=owner_role,
            sector=sector,
            provider_type=provider,
            category=category,
            temperature_c=keep(MetricField.TEMPERATURE),
            air_quality_index=keep(MetricField.AQI),
            traffic_density=keep(MetricField.TRAFFIC),
            energy_kwh=keep(MetricField.ENERGY),
            gas_cost=int(gas_cost),
            auth_latency_sec=float(latency),
            policy=rules.policy_for(category),
            created_at=self.clock.now(),
        )
