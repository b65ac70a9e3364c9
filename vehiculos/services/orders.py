from __future__ import annotations

import logging
import math
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from vehiculos.core import metrics
from vehiculos.core.errors import ApiError, AppHTTPException, conflict, not_found
from vehiculos.models import Order, OrderStatus, User, UserRole, VehicleStatus
from vehiculos.schemas.orders import (
    OrderCreate,
    OrderListOut,
    OrderOut,
    OrderStatisticsOut,
    OrderUpdate,
)
from vehiculos.services.vehicles import VehicleRepository

logger = logging.getLogger(__name__)

STAFF_ROLES = {UserRole.ADMIN.value, UserRole.SALES.value}


def _money(value: float | None) -> Decimal | None:
    return Decimal(str(value)) if value is not None else None


def _page(db: Session, stmt, page: int, limit: int) -> OrderListOut:
    total = db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
    rows = db.execute(
        stmt.order_by(Order.created_at.desc(), Order.id).limit(limit).offset((page - 1) * limit)
    ).scalars().all()
    return OrderListOut(
        items=[OrderOut.model_validate(order) for order in rows],
        total=total,
        page=page,
        limit=limit,
        total_pages=math.ceil(total / limit) if total else 0,
    )


def create_order(db: Session, user: User, payload: OrderCreate) -> Order:
    vehicle = VehicleRepository(db).get(payload.vehicle_id)
    if vehicle is None:
        raise not_found("Vehicle", vehicle_id=payload.vehicle_id)
    if vehicle.status != VehicleStatus.AVAILABLE.value:
        raise conflict("vehicle_unavailable", "Vehicle is not available", status=vehicle.status)

    order = Order(
        vehicle_id=vehicle.id,
        user_id=user.id,
        status=OrderStatus.PENDING.value,
        total_amount=_money(payload.total_amount),
        down_payment=_money(payload.down_payment),
        notes=payload.notes,
    )
    db.add(order)
    db.commit()
    db.refresh(order)
    metrics.ORDERS_CREATED.inc()
    logger.info("Order %s created for vehicle %s by user %s", order.id, vehicle.id, user.id)
    return order


def get_order(db: Session, order_id: str, viewer: User | None = None) -> Order:
    order = db.get(Order, order_id)
    # Customers only see their own orders; anything else looks like a missing order.
    if order is None or (viewer is not None and viewer.role not in STAFF_ROLES and order.user_id != viewer.id):
        raise not_found("Order", order_id=order_id)
    return order


def list_orders(
    db: Session,
    page: int,
    limit: int,
    user_id: str | None = None,
    status: OrderStatus | None = None,
) -> OrderListOut:
    stmt = select(Order)
    if user_id is not None:
        stmt = stmt.where(Order.user_id == user_id)
    if status is not None:
        stmt = stmt.where(Order.status == status.value)
    return _page(db, stmt, page, limit)


def list_orders_for_vehicle(db: Session, vehicle_id: str) -> list[OrderOut]:
    rows = db.execute(
        select(Order).where(Order.vehicle_id == vehicle_id).order_by(Order.created_at.desc())
    ).scalars().all()
    return [OrderOut.model_validate(order) for order in rows]


def update_order(db: Session, order_id: str, payload: OrderUpdate) -> Order:
    order = get_order(db, order_id)
    changes = payload.model_dump(exclude_unset=True)
    total = changes.get("total_amount", order.total_amount)
    down_payment = changes.get("down_payment", order.down_payment)
    if total is not None and down_payment is not None and Decimal(str(down_payment)) > Decimal(str(total)):
        raise AppHTTPException(
            status_code=422,
            error=ApiError(code="validation_error", message="Down payment cannot exceed the total amount"),
        )
    if changes.get("status") is not None:
        order.status = OrderStatus(changes["status"]).value
    if changes.get("total_amount") is not None:
        order.total_amount = _money(changes["total_amount"])
    if "down_payment" in changes:
        order.down_payment = _money(changes["down_payment"])
    if "notes" in changes:
        order.notes = changes["notes"]
    db.commit()
    db.refresh(order)
    return order


def update_order_status(db: Session, order_id: str, status: OrderStatus) -> Order:
    order = get_order(db, order_id)
    order.status = status.value
    db.commit()
    db.refresh(order)
    logger.info("Order %s moved to %s", order.id, order.status)
    return order


def delete_order(db: Session, order_id: str) -> None:
    order = get_order(db, order_id)
    db.delete(order)
    db.commit()


def order_statistics(db: Session) -> OrderStatisticsOut:
    counts = dict(db.execute(select(Order.status, func.count(Order.id)).group_by(Order.status)).all())
    total_orders = sum(counts.values())
    revenue_row = db.execute(
        select(func.coalesce(func.sum(Order.total_amount), 0), func.count(Order.id)).where(
            Order.status != OrderStatus.CANCELLED.value
        )
    ).one()
    revenue = float(revenue_row[0] or 0)
    billable = int(revenue_row[1] or 0)
    return OrderStatisticsOut(
        total_orders=total_orders,
        total_revenue=round(revenue, 2),
        average_order_value=round(revenue / billable, 2) if billable else 0.0,
        orders_by_status={str(status): int(count) for status, count in counts.items()},
    )
