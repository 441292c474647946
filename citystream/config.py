from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List, Optional

_TRUE = {"1", "true", "yes", "on"}

# Generation cadence is operator-configurable; polling is fixed to a short band.
GENERATOR_INTERVAL_MIN_S = 2
GENERATOR_INTERVAL_MAX_S = 30
POLL_INTERVAL_MIN_S = 3
POLL_INTERVAL_MAX_S = 5


def env_flag(name: str, default: bool = False) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in _TRUE


def env_int(name: str, default: int) -> int:
    val = os.getenv(name)
    if val is None:
        return default
    try:
        return int(val.strip())
    except ValueError:
        return default


def env_float(name: str, default: float) -> float:
    val = os.getenv(name)
    if val is None:
        return default
    try:
        return float(val.strip())
    except ValueError:
        return default


def env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    return val.strip()


def clamp_generator_interval(interval_s: float) -> int:
    return int(max(GENERATOR_INTERVAL_MIN_S, min(GENERATOR_INTERVAL_MAX_S, int(interval_s))))


def clamp_poll_interval(interval_s: float) -> int:
    return int(max(POLL_INTERVAL_MIN_S, min(POLL_INTERVAL_MAX_S, int(interval_s))))


@dataclass(frozen=True)
class Settings:
    store_url: Optional[str] = None
    store_timeout_s: float = 5.0

    generator_interval_s: int = 5
    generator_sector_rotation: bool = True
    poll_interval_s: int = 5

    # None -> unseeded RNG
    seed: Optional[int] = None

    log_level: str = "INFO"
    log_dir: Optional[str] = None

    allowed_origins: str = "*"

    def origins(self) -> List[str]:
        if self.allowed_origins == "*":
            return ["*"]
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]


def load_settings() -> Settings:
    seed_raw = env_str("DEMO_SEED")
    seed: Optional[int] = None
    if seed_raw is not None:
        try:
            seed = int(seed_raw)
        except ValueError:
            seed = None

    return Settings(
        store_url=env_str("STORE_URL"),
        store_timeout_s=env_float("STORE_TIMEOUT_S", 5.0),
        generator_interval_s=clamp_generator_interval(env_int("GENERATOR_INTERVAL_S", 5)),
        generator_sector_rotation=env_flag("GENERATOR_SECTOR_ROTATION", True),
        poll_interval_s=clamp_poll_interval(env_int("POLL_INTERVAL_S", 5)),
        seed=seed,
        log_level=(env_str("LOG_LEVEL", "INFO") or "INFO").upper(),
        log_dir=env_str("LOG_DIR"),
        allowed_origins=env_str("ALLOWED_ORIGINS", "*") or "*",
    )
