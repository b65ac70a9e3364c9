from __future__ import annotations

import os
import platform
import resource
import sys
import time
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from vehiculos.core import metrics
from vehiculos.core.cache import cache_client
from vehiculos.core.config import get_settings
from vehiculos.db.session import check_database
from vehiculos.models import Order, OrderStatus, User
from vehiculos.schemas.health import DependenciesOut, HealthOut, MetricsSummaryOut, SystemInfoOut
from vehiculos.services.vehicles import VehicleRepository

STARTED_AT = time.monotonic()


def uptime_seconds() -> float:
    return round(time.monotonic() - STARTED_AT, 3)


def metrics_summary(db: Session) -> MetricsSummaryOut:
    total_orders = db.execute(select(func.count(Order.id))).scalar_one()
    total_users = db.execute(select(func.count(User.id))).scalar_one()
    average = db.execute(
        select(func.avg(Order.total_amount)).where(Order.status != OrderStatus.CANCELLED.value)
    ).scalar_one()
    return MetricsSummaryOut(
        total_vehicles=VehicleRepository(db).count(),
        total_orders=int(total_orders),
        total_users=int(total_users),
        average_order_value=round(float(average or 0), 2),
        cache_hit_rate=round(metrics.cache_hit_rate(), 4),
        request_latency=round(metrics.average_request_latency(), 6),
    )


def health_check(db: Session) -> HealthOut:
    db_healthy = check_database(db)
    redis_healthy = cache_client.ping()
    summary = metrics_summary(db) if db_healthy else MetricsSummaryOut(
        total_vehicles=0,
        total_orders=0,
        total_users=0,
        average_order_value=0.0,
        cache_hit_rate=round(metrics.cache_hit_rate(), 4),
        request_latency=round(metrics.average_request_latency(), 6),
    )
    return HealthOut(
        status="healthy" if db_healthy and redis_healthy else "unhealthy",
        timestamp=datetime.now(timezone.utc),
        uptime=uptime_seconds(),
        dependencies=DependenciesOut(
            database="healthy" if db_healthy else "unhealthy",
            redis="healthy" if redis_healthy else "unhealthy",
        ),
        metrics=summary,
    )


def system_info() -> SystemInfoOut:
    return SystemInfoOut(
        python_version=sys.version.split()[0],
        platform=sys.platform,
        arch=platform.machine(),
        pid=os.getpid(),
        uptime=uptime_seconds(),
        environment=get_settings().env,
        max_rss_kb=resource.getrusage(resource.RUSAGE_SELF).ru_maxrss,
        timestamp=datetime.now(timezone.utc),
    )
