from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from vehiculos.api.deps import get_current_user, require_admin, require_staff
from vehiculos.db.session import get_db
from vehiculos.models import OrderStatus, User
from vehiculos.schemas.orders import (
    OrderCreate,
    OrderListOut,
    OrderOut,
    OrderStatisticsOut,
    OrderStatusUpdate,
    OrderUpdate,
)
from vehiculos.services import orders as order_service

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", response_model=OrderOut, status_code=201)
def create_order(payload: OrderCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> OrderOut:
    return OrderOut.model_validate(order_service.create_order(db, user, payload))


@router.get("/my", response_model=OrderListOut)
def my_orders(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> OrderListOut:
    return order_service.list_orders(db, page, limit, user_id=user.id)


@router.get("", response_model=OrderListOut, dependencies=[Depends(require_staff)])
def list_orders(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    status: OrderStatus | None = Query(default=None),
    db: Session = Depends(get_db),
) -> OrderListOut:
    return order_service.list_orders(db, page, limit, status=status)


@router.get("/statistics", response_model=OrderStatisticsOut, dependencies=[Depends(require_staff)])
def statistics(db: Session = Depends(get_db)) -> OrderStatisticsOut:
    return order_service.order_statistics(db)


@router.get("/vehicle/{vehicle_id}", response_model=list[OrderOut], dependencies=[Depends(require_staff)])
def orders_for_vehicle(vehicle_id: str, db: Session = Depends(get_db)) -> list[OrderOut]:
    return order_service.list_orders_for_vehicle(db, vehicle_id)


@router.get("/{order_id}", response_model=OrderOut)
def order_detail(order_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> OrderOut:
    return OrderOut.model_validate(order_service.get_order(db, order_id, viewer=user))


@router.put("/{order_id}", response_model=OrderOut, dependencies=[Depends(require_staff)])
def update_order(order_id: str, payload: OrderUpdate, db: Session = Depends(get_db)) -> OrderOut:
    return OrderOut.model_validate(order_service.update_order(db, order_id, payload))


@router.patch("/{order_id}/status", response_model=OrderOut, dependencies=[Depends(require_staff)])
def update_order_status(order_id: str, payload: OrderStatusUpdate, db: Session = Depends(get_db)) -> OrderOut:
    return OrderOut.model_validate(order_service.update_order_status(db, order_id, payload.status))


@router.delete("/{order_id}", status_code=204, dependencies=[Depends(require_admin)])
def delete_order(order_id: str, db: Session = Depends(get_db)) -> Response:
    order_service.delete_order(db, order_id)
    return Response(status_code=204)
