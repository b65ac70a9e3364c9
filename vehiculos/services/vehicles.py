from __future__ import annotations

import hashlib
import logging
import math
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from vehiculos.core import metrics
from vehiculos.core.cache import cache_client
from vehiculos.core.config import get_settings
from vehiculos.core.errors import not_found
from vehiculos.models import Vehicle, VehicleStatus
from vehiculos.schemas.vehicles import BrandsOut, ModelsOut, VehicleCreate, VehicleListOut, VehicleOut, VehicleUpdate

logger = logging.getLogger(__name__)

GENERATION_KEY = "vehicles:generation"
NULLABLE_FIELDS = {"description", "main_photo"}

BRANDS = [
    "Toyota", "Honda", "Ford", "Volkswagen", "BMW", "Mercedes-Benz",
    "Audi", "Nissan", "Chevrolet", "Hyundai", "Kia", "Mazda",
    "Subaru", "Lexus", "Acura", "Infiniti", "Volvo", "Porsche",
]

MODELS_BY_BRAND: dict[str, list[str]] = {
    "Toyota": ["Corolla", "Camry", "RAV4", "Highlander", "Tacoma", "Tundra"],
    "Honda": ["Civic", "Accord", "CR-V", "Pilot", "Ridgeline"],
    "Ford": ["Focus", "Fusion", "Escape", "Explorer", "F-150"],
    "BMW": ["3 Series", "5 Series", "X3", "X5", "M3", "M5"],
    "Mercedes-Benz": ["C-Class", "E-Class", "S-Class", "GLC", "GLE"],
}


@dataclass
class VehicleFilters:
    brand: str | None = None
    model: str | None = None
    year_min: int | None = None
    year_max: int | None = None
    price_min: float | None = None
    price_max: float | None = None
    mileage_max: int | None = None
    status: VehicleStatus | None = None
    page: int = 1
    limit: int = 20

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def _to_decimal(value: float | Decimal) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def _like(value: str) -> str:
    return f"%{value.strip().lower()}%"


class VehicleRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def _active(self):
        return select(Vehicle).where(Vehicle.deleted_at.is_(None))

    def get(self, vehicle_id: str) -> Vehicle | None:
        return self.db.execute(self._active().where(Vehicle.id == vehicle_id)).scalar_one_or_none()

    def create(self, payload: VehicleCreate) -> Vehicle:
        vehicle = Vehicle(
            brand=payload.brand.strip(),
            model=payload.model.strip(),
            year=payload.year,
            mileage=payload.mileage,
            price=_to_decimal(payload.price),
            description=payload.description,
            main_photo=str(payload.main_photo) if payload.main_photo else None,
            technical_specs=payload.technical_specs.model_dump(exclude_none=True),
            status=payload.status.value,
        )
        self.db.add(vehicle)
        self.db.commit()
        self.db.refresh(vehicle)
        return vehicle

    def search(self, filters: VehicleFilters) -> tuple[list[Vehicle], int]:
        conditions: list[Any] = [Vehicle.deleted_at.is_(None)]
        if filters.brand:
            conditions.append(func.lower(Vehicle.brand).like(_like(filters.brand)))
        if filters.model:
            conditions.append(func.lower(Vehicle.model).like(_like(filters.model)))
        if filters.year_min is not None:
            conditions.append(Vehicle.year >= filters.year_min)
        if filters.year_max is not None:
            conditions.append(Vehicle.year <= filters.year_max)
        if filters.price_min is not None:
            conditions.append(Vehicle.price >= _to_decimal(filters.price_min))
        if filters.price_max is not None:
            conditions.append(Vehicle.price <= _to_decimal(filters.price_max))
        if filters.mileage_max is not None:
            conditions.append(Vehicle.mileage <= filters.mileage_max)
        if filters.status is not None:
            conditions.append(Vehicle.status == filters.status.value)

        total = self.db.execute(select(func.count(Vehicle.id)).where(*conditions)).scalar_one()
        rows = self.db.execute(
            select(Vehicle)
            .where(*conditions)
            .order_by(Vehicle.created_at.desc(), Vehicle.id)
            .limit(filters.limit)
            .offset(filters.offset)
        ).scalars().all()
        return list(rows), int(total)

    def update(self, vehicle_id: str, payload: VehicleUpdate) -> Vehicle | None:
        vehicle = self.get(vehicle_id)
        if vehicle is None:
            return None
        changes = payload.model_dump(exclude_unset=True)
        for field, value in changes.items():
            if value is None and field not in NULLABLE_FIELDS:
                continue
            if field == "price" and value is not None:
                value = _to_decimal(value)
            elif field == "main_photo" and value is not None:
                value = str(value)
            elif field == "status" and value is not None:
                value = VehicleStatus(value).value
            elif field == "technical_specs" and value is not None:
                value = {key: item for key, item in value.items() if item is not None}
            setattr(vehicle, field, value)
        self.db.commit()
        self.db.refresh(vehicle)
        return vehicle

    def update_price(self, vehicle_id: str, price: float | Decimal) -> Vehicle | None:
        vehicle = self.get(vehicle_id)
        if vehicle is None:
            return None
        vehicle.price = _to_decimal(price)
        self.db.commit()
        self.db.refresh(vehicle)
        return vehicle

    def update_status(self, vehicle_id: str, status: VehicleStatus) -> Vehicle | None:
        vehicle = self.get(vehicle_id)
        if vehicle is None:
            return None
        vehicle.status = status.value
        self.db.commit()
        self.db.refresh(vehicle)
        return vehicle

    def soft_delete(self, vehicle_id: str) -> bool:
        vehicle = self.get(vehicle_id)
        if vehicle is None:
            return False
        vehicle.deleted_at = datetime.now(timezone.utc)
        self.db.commit()
        return True

    def count(self) -> int:
        return int(self.db.execute(select(func.count(Vehicle.id)).where(Vehicle.deleted_at.is_(None))).scalar_one())


def _build_cache_key(filters: VehicleFilters) -> str:
    settings = get_settings()
    generation = cache_client.get(GENERATION_KEY) or "0"
    fingerprint = "|".join(
        [
            filters.brand or "",
            filters.model or "",
            str(filters.year_min or ""),
            str(filters.year_max or ""),
            str(filters.price_min if filters.price_min is not None else ""),
            str(filters.price_max if filters.price_max is not None else ""),
            str(filters.mileage_max if filters.mileage_max is not None else ""),
            filters.status.value if filters.status else "",
            str(filters.page),
            str(filters.limit),
        ]
    )
    digest = hashlib.sha256(fingerprint.encode("utf-8")).hexdigest()
    return f"vehicles:{digest}:g:{generation}:v:{settings.cache_schema_version}"


def invalidate_vehicle_cache() -> None:
    cache_client.incr(GENERATION_KEY)


def list_vehicles(db: Session, filters: VehicleFilters) -> VehicleListOut:
    key = _build_cache_key(filters)
    cached = cache_client.get_json(key)
    if cached.hit:
        return VehicleListOut.model_validate(cached.value)

    vehicles, total = VehicleRepository(db).search(filters)
    result = VehicleListOut(
        items=[VehicleOut.model_validate(vehicle) for vehicle in vehicles],
        total=total,
        page=filters.page,
        limit=filters.limit,
        total_pages=math.ceil(total / filters.limit) if total else 0,
    )
    cache_client.set_json(key, result.model_dump(mode="json"), ttl_seconds=get_settings().vehicle_cache_ttl_seconds)
    return result


def create_vehicle(db: Session, payload: VehicleCreate) -> Vehicle:
    vehicle = VehicleRepository(db).create(payload)
    metrics.VEHICLES_CREATED.inc()
    invalidate_vehicle_cache()
    logger.info("Vehicle %s created (%s %s)", vehicle.id, vehicle.brand, vehicle.model)
    return vehicle


def get_vehicle(db: Session, vehicle_id: str) -> Vehicle:
    vehicle = VehicleRepository(db).get(vehicle_id)
    if vehicle is None:
        raise not_found("Vehicle", vehicle_id=vehicle_id)
    return vehicle


def update_vehicle(db: Session, vehicle_id: str, payload: VehicleUpdate) -> Vehicle:
    vehicle = VehicleRepository(db).update(vehicle_id, payload)
    if vehicle is None:
        raise not_found("Vehicle", vehicle_id=vehicle_id)
    invalidate_vehicle_cache()
    return vehicle


def change_price(db: Session, vehicle_id: str, price: float) -> Vehicle:
    vehicle = VehicleRepository(db).update_price(vehicle_id, price)
    if vehicle is None:
        raise not_found("Vehicle", vehicle_id=vehicle_id)
    invalidate_vehicle_cache()
    logger.info("Vehicle %s price set to %s", vehicle.id, vehicle.price)
    return vehicle


def change_status(db: Session, vehicle_id: str, status: VehicleStatus) -> Vehicle:
    vehicle = VehicleRepository(db).update_status(vehicle_id, status)
    if vehicle is None:
        raise not_found("Vehicle", vehicle_id=vehicle_id)
    invalidate_vehicle_cache()
    return vehicle


def delete_vehicle(db: Session, vehicle_id: str) -> None:
    if not VehicleRepository(db).soft_delete(vehicle_id):
        raise not_found("Vehicle", vehicle_id=vehicle_id)
    invalidate_vehicle_cache()
    logger.info("Vehicle %s deleted", vehicle_id)


def list_brands() -> BrandsOut:
    return BrandsOut(brands=BRANDS)


def list_models(brand: str) -> ModelsOut:
    for known, models in MODELS_BY_BRAND.items():
        if known.lower() == brand.strip().lower():
            return ModelsOut(brand=known, models=models)
    return ModelsOut(brand=brand, models=[])


def apply_price_update(session_factory: Callable[[], Session], vehicle_id: str, price: Decimal) -> bool:
    """Write one feed price to storage; returns False when the vehicle does not exist."""
    with session_factory() as db:
        updated = VehicleRepository(db).update_price(vehicle_id, price)
    if updated is None:
        return False
    invalidate_vehicle_cache()
    return True
