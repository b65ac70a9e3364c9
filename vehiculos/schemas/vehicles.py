from datetime import datetime, timezone
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, HttpUrl

from vehiculos.models import VehicleStatus


def _max_model_year() -> int:
    return datetime.now(timezone.utc).year + 1


def _check_model_year(value: int) -> int:
    if value > _max_model_year():
        raise ValueError("Year must be between 1900 and next year")
    return value


ModelYear = Annotated[int, Field(ge=1900), AfterValidator(_check_model_year)]


class TechnicalSpecs(BaseModel):
    engine: str = Field(min_length=1, max_length=200)
    transmission: str = Field(min_length=1, max_length=100)
    fuel_type: str = Field(min_length=1, max_length=50)
    color: str = Field(min_length=1, max_length=50)
    doors: int = Field(ge=2, le=5)
    seats: int = Field(ge=2, le=9)
    power: int | None = Field(default=None, ge=0)
    displacement: int | None = Field(default=None, ge=0)


class VehicleCreate(BaseModel):
    brand: str = Field(min_length=1, max_length=100)
    model: str = Field(min_length=1, max_length=100)
    year: ModelYear
    mileage: int = Field(ge=0)
    price: float = Field(ge=0)
    description: str | None = Field(default=None, max_length=1000)
    main_photo: HttpUrl | None = None
    technical_specs: TechnicalSpecs
    status: VehicleStatus = VehicleStatus.AVAILABLE


class VehicleUpdate(BaseModel):
    brand: str | None = Field(default=None, min_length=1, max_length=100)
    model: str | None = Field(default=None, min_length=1, max_length=100)
    year: ModelYear | None = None
    mileage: int | None = Field(default=None, ge=0)
    price: float | None = Field(default=None, ge=0)
    description: str | None = Field(default=None, max_length=1000)
    main_photo: HttpUrl | None = None
    technical_specs: TechnicalSpecs | None = None
    status: VehicleStatus | None = None


class VehiclePriceUpdate(BaseModel):
    price: float = Field(ge=0)


class VehicleStatusUpdate(BaseModel):
    status: VehicleStatus


class VehicleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    brand: str
    model: str
    year: int
    mileage: int
    price: float
    description: str | None = None
    main_photo: str | None = None
    technical_specs: dict[str, Any] = Field(default_factory=dict)
    status: str
    created_at: datetime
    updated_at: datetime


class VehicleListOut(BaseModel):
    items: list[VehicleOut]
    total: int
    page: int
    limit: int
    total_pages: int


class BrandsOut(BaseModel):
    brands: list[str]


class ModelsOut(BaseModel):
    brand: str
    models: list[str]
