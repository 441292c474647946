"""
sampler.py

Purpose:
  Bounded Gaussian variates for the telemetry synthesizer.

Math:
  - **Box-Muller**: `z = sqrt(-2 ln u1) * cos(2 pi u2)` with `u1` in (0, 1]
    so `ln(0)` can never occur.
  - Output is `clamp(z * std_dev + mean, lo, hi)`; the clamp is a hard
    post-condition, however far the raw tail extends.
  - `round_half_up` is the rounding used for every presented value.

Randomness:
  - All entropy comes from an injected `random.Random` so a seeded source
    reproduces the same sequence in tests.
"""
from __future__ import annotations

import math
import random
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(value, hi))


def round_half_up(value: float, decimals: int = 0) -> float:
    # Halves round away from zero on the exact binary value.
    exp = Decimal(1).scaleb(-decimals)
    return float(Decimal(value).quantize(exp, rounding=ROUND_HALF_UP))


class VariateSampler:
    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def _unit_open_low(self) -> float:
        # random() is in [0, 1); 1 - random() is in (0, 1]
        return 1.0 - self.rng.random()

    def standard_normal(self) -> float:
        u1 = self._unit_open_low()
        u2 = self.rng.random()
        return math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)

    def sample(self, mean: float, std_dev: float, lo: float, hi: float) -> float:
        if lo > hi:
            raise ValueError(f"empty range [{lo}, {hi}]")
        z = self.standard_normal()
        return float(clamp(z * std_dev + mean, lo, hi))
