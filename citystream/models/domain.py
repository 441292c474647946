from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


def _as_utc(value: datetime) -> datetime:
    # Store payloads may carry naive timestamps; treat them as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ============================================================
# 0) ENUMS (closed domains)
# ============================================================

class OwnerRole(str, Enum):
    CITIZEN = "Citizen"
    CITY_AUTHORITY = "CityAuthority"
    RESEARCHER = "Researcher"


class Sector(str, Enum):
    SECTOR1 = "sector1"
    SECTOR2 = "sector2"
    SECTOR3 = "sector3"
    SECTOR4 = "sector4"
    SECTOR5 = "sector5"


class ProviderType(str, Enum):
    IOT_SENSOR = "IoT Sensor"
    PUBLIC_AGENCY = "Public Agency"
    TRAFFIC_CAMERA = "Traffic Camera"
    UTILITY_METER = "Utility Meter"


class DataCategory(str, Enum):
    ENVIRONMENTAL = "Environmental"
    UTILITY = "Utility"
    CITIZEN_SERVICE = "Citizen Service"
    TRAFFIC = "Traffic"


class MetricField(str, Enum):
    TEMPERATURE = "Temperature"
    AQI = "AQI"
    TRAFFIC = "Traffic"
    ENERGY = "Energy"


class Severity(str, Enum):
    CRITICAL = "CRITICAL"
    WARNING = "WARNING"
    CAUTION = "CAUTION"


class SectorStatus(str, Enum):
    NORMAL = "NORMAL"
    CAUTION = "CAUTION"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


class TimeWindow(str, Enum):
    ALL = "all"
    LAST_HOUR = "lastHour"
    LAST_DAY = "lastDay"


# Declaration order is the canonical iteration order everywhere.
SECTORS: List[Sector] = list(Sector)
PROVIDERS: List[ProviderType] = list(ProviderType)


# ============================================================
# 1) TELEMETRY & ALERTS
# ============================================================

class TelemetryRecord(BaseModel):
    """
    One synthetic or real observation.

    `sector` / `provider_type` are optional only so that loosely-typed store
    rows still parse; the synthesizer always fills them.
    """
    owner_role: Optional[OwnerRole] = None
    sector: Optional[Sector] = None
    provider_type: Optional[ProviderType] = None
    category: Optional[DataCategory] = None

    # Present iff the category allows the field
    temperature_c: Optional[float] = None
    air_quality_index: Optional[int] = None
    traffic_density: Optional[int] = None
    energy_kwh: Optional[float] = None

    gas_cost: Optional[int] = None
    auth_latency_sec: Optional[float] = None

    policy: Optional[str] = None
    created_at: datetime

    model_config = {"frozen": True}

    @field_validator("created_at")
    @classmethod
    def _created_at_utc(cls, v: datetime) -> datetime:
        return _as_utc(v)


class AlertEvent(BaseModel):
    sector: str
    type: str
    metric: str
    value: Optional[float] = None
    severity: Severity
    message: str = ""
    recommendation: str = ""
    actions: List[str] = Field(default_factory=list)
    timestamp: datetime

    @field_validator("timestamp")
    @classmethod
    def _timestamp_utc(cls, v: datetime) -> datetime:
        return _as_utc(v)

    def dedup_key(self) -> tuple[str, str, str]:
        return (self.sector, self.type, self.metric)


# ============================================================
# 2) AGGREGATES
# ============================================================

class GasStats(BaseModel):
    avg: float      # rounded to 0 dp
    min: int
    max: int
    total: int


class LatencyStats(BaseModel):
    avg: float      # all rounded to 2 dp
    min: float
    max: float


class AnalyticsSnapshot(BaseModel):
    gas: Optional[GasStats] = None
    latency: Optional[LatencyStats] = None
    sectors: Dict[str, int]
    providers: Dict[str, int]
    total_records: int


class GasPoint(BaseModel):
    index: int
    gas: int
    time: datetime


class LatencyPoint(BaseModel):
    index: int
    latency: float
    time: datetime


class GasLatencyPoint(BaseModel):
    gas: Optional[int] = None
    latency: Optional[float] = None


class SectorGas(BaseModel):
    sector: str
    avg_gas: int
    total_gas: int
    count: int


class ProviderLatency(BaseModel):
    provider: str
    avg_latency: float
    count: int


class DistributionSlice(BaseModel):
    name: str
    value: int


class HistogramBin(BaseModel):
    range: str
    min: int
    max: int
    count: int = 0


class AnalyticsViews(BaseModel):
    gas_over_time: List[GasPoint]
    latency_over_time: List[LatencyPoint]
    gas_vs_latency: List[GasLatencyPoint]
    gas_by_sector: List[SectorGas]
    latency_by_provider: List[ProviderLatency]
    sector_distribution: List[DistributionSlice]
    gas_histogram: List[HistogramBin]


class LatestReadings(BaseModel):
    temperature: Optional[float] = None
    aqi: Optional[float] = None
    traffic: Optional[float] = None
    energy: Optional[float] = None
    timestamp: Optional[datetime] = None


class MetricAverages(BaseModel):
    temperature: Optional[float] = None
    aqi: Optional[float] = None
    traffic: Optional[float] = None
    energy: Optional[float] = None


class SectorStatistics(BaseModel):
    sector: Sector
    record_count: int
    latest: LatestReadings
    averages: MetricAverages


class SectorAlertSummary(BaseModel):
    alerts: int = 0
    critical: int = 0
    status: SectorStatus = SectorStatus.NORMAL


class SeverityTotals(BaseModel):
    critical: int = 0
    warning: int = 0
    caution: int = 0
    total: int = 0


# ============================================================
# 3) SCHEDULER STATE
# ============================================================

class GeneratorStatus(BaseModel):
    running: bool
    generated: int
    errors: int
    last_generated: Optional[datetime] = None
    interval_s: int
    sector_rotation: bool


class DashboardState(BaseModel):
    """Latest fetch-and-recompute result; replaced whole on each successful poll."""
    ts: Optional[datetime] = None
    window: TimeWindow = TimeWindow.ALL
    snapshot: Optional[AnalyticsSnapshot] = None
    views: Optional[AnalyticsViews] = None
    alerts: List[AlertEvent] = Field(default_factory=list)
    sector_alerts: Dict[str, SectorAlertSummary] = Field(default_factory=dict)
    sector_stats: Dict[str, SectorStatistics] = Field(default_factory=dict)
    last_error: Optional[str] = None


# ============================================================
# 4) API RESPONSE SCHEMAS
# ============================================================

class HealthResponse(BaseModel):
    status: str
    ts: str


class GeneratorConfigRequest(BaseModel):
    interval_s: int = Field(5, ge=2, le=30)
    sector_rotation: bool = True


class AlertListResponse(BaseModel):
    ts: str
    alerts: List[AlertEvent]
    totals: SeverityTotals


class SectorDetailResponse(BaseModel):
    stats: SectorStatistics
    alerts: List[AlertEvent]
