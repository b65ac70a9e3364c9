from datetime import datetime
from typing import Literal

from pydantic import BaseModel

HealthState = Literal["healthy", "unhealthy"]


class DependenciesOut(BaseModel):
    database: HealthState
    redis: HealthState


class MetricsSummaryOut(BaseModel):
    total_vehicles: int
    total_orders: int
    total_users: int
    average_order_value: float
    cache_hit_rate: float
    request_latency: float


class HealthOut(BaseModel):
    status: HealthState
    timestamp: datetime
    uptime: float
    dependencies: DependenciesOut
    metrics: MetricsSummaryOut


class SystemInfoOut(BaseModel):
    python_version: str
    platform: str
    arch: str
    pid: int
    uptime: float
    environment: str
    max_rss_kb: int | None = None
    timestamp: datetime


class IngestionRunSummaryOut(BaseModel):
    started_at: datetime
    finished_at: datetime
    applied: int
    not_found: int
    failed: int
    sources: list[str]


class ProcessingStatusOut(BaseModel):
    is_processing: bool
    queue_length: int
    started_at: datetime | None = None
    last_run: IngestionRunSummaryOut | None = None


class TriggerOut(BaseModel):
    status: str
    message: str
