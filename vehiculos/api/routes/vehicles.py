from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from vehiculos.api.deps import require_admin, require_staff
from vehiculos.db.session import get_db
from vehiculos.models import VehicleStatus
from vehiculos.schemas.vehicles import (
    BrandsOut,
    ModelsOut,
    VehicleCreate,
    VehicleListOut,
    VehicleOut,
    VehiclePriceUpdate,
    VehicleStatusUpdate,
    VehicleUpdate,
)
from vehiculos.services import vehicles as vehicle_service
from vehiculos.services.vehicles import VehicleFilters

router = APIRouter(prefix="/vehicles", tags=["vehicles"])


@router.get("", response_model=VehicleListOut)
def list_vehicles(
    brand: str | None = Query(default=None, max_length=50),
    model: str | None = Query(default=None, max_length=50),
    year_min: int | None = Query(default=None, ge=1900),
    year_max: int | None = Query(default=None, ge=1900),
    price_min: float | None = Query(default=None, ge=0),
    price_max: float | None = Query(default=None, ge=0),
    mileage_max: int | None = Query(default=None, ge=0),
    status: VehicleStatus | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
) -> VehicleListOut:
    filters = VehicleFilters(
        brand=brand,
        model=model,
        year_min=year_min,
        year_max=year_max,
        price_min=price_min,
        price_max=price_max,
        mileage_max=mileage_max,
        status=status,
        page=page,
        limit=limit,
    )
    return vehicle_service.list_vehicles(db, filters)


@router.get("/brands", response_model=BrandsOut)
def brands() -> BrandsOut:
    return vehicle_service.list_brands()


@router.get("/brands/{brand}/models", response_model=ModelsOut)
def models(brand: str) -> ModelsOut:
    return vehicle_service.list_models(brand)


@router.get("/{vehicle_id}", response_model=VehicleOut)
def vehicle_detail(vehicle_id: str, db: Session = Depends(get_db)) -> VehicleOut:
    return VehicleOut.model_validate(vehicle_service.get_vehicle(db, vehicle_id))


@router.post("", response_model=VehicleOut, status_code=201, dependencies=[Depends(require_staff)])
def create_vehicle(payload: VehicleCreate, db: Session = Depends(get_db)) -> VehicleOut:
    return VehicleOut.model_validate(vehicle_service.create_vehicle(db, payload))


@router.put("/{vehicle_id}", response_model=VehicleOut, dependencies=[Depends(require_staff)])
def update_vehicle(vehicle_id: str, payload: VehicleUpdate, db: Session = Depends(get_db)) -> VehicleOut:
    return VehicleOut.model_validate(vehicle_service.update_vehicle(db, vehicle_id, payload))


@router.delete("/{vehicle_id}", status_code=204, dependencies=[Depends(require_admin)])
def delete_vehicle(vehicle_id: str, db: Session = Depends(get_db)) -> Response:
    vehicle_service.delete_vehicle(db, vehicle_id)
    return Response(status_code=204)


@router.patch("/{vehicle_id}/price", response_model=VehicleOut, dependencies=[Depends(require_admin)])
def update_price(vehicle_id: str, payload: VehiclePriceUpdate, db: Session = Depends(get_db)) -> VehicleOut:
    return VehicleOut.model_validate(vehicle_service.change_price(db, vehicle_id, payload.price))


@router.patch("/{vehicle_id}/status", response_model=VehicleOut, dependencies=[Depends(require_staff)])
def update_status(vehicle_id: str, payload: VehicleStatusUpdate, db: Session = Depends(get_db)) -> VehicleOut:
    return VehicleOut.model_validate(vehicle_service.change_status(db, vehicle_id, payload.status))
