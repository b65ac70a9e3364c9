from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from vehiculos.models import OrderStatus


class OrderCreate(BaseModel):
    vehicle_id: str = Field(min_length=1, max_length=36)
    total_amount: float = Field(ge=0)
    down_payment: float | None = Field(default=None, ge=0)
    notes: str | None = Field(default=None, max_length=1000)

    @model_validator(mode="after")
    def down_payment_within_total(self) -> "OrderCreate":
        if self.down_payment is not None and self.down_payment > self.total_amount:
            raise ValueError("Down payment cannot exceed the total amount")
        return self


class OrderUpdate(BaseModel):
    status: OrderStatus | None = None
    total_amount: float | None = Field(default=None, ge=0)
    down_payment: float | None = Field(default=None, ge=0)
    notes: str | None = Field(default=None, max_length=1000)


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    vehicle_id: str
    user_id: str
    status: str
    total_amount: float
    down_payment: float | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime


class OrderListOut(BaseModel):
    items: list[OrderOut]
    total: int
    page: int
    limit: int
    total_pages: int


class OrderStatisticsOut(BaseModel):
    total_orders: int
    total_revenue: float
    average_order_value: float
    orders_by_status: dict[str, int]
