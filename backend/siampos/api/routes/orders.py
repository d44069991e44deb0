"""Order routes.

Every route is tenant scoped: the caller must belong to the restaurant
that owns the order. Id-addressed orders are loaded first so that another
restaurant's order yields 403 rather than 404.
"""

import logging
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Query, Request, status

from siampos.core.errors import ValidationError
from siampos.core.rate_limit import READ_LIMIT, WRITE_LIMIT, limiter
from siampos.core.rbac import AuthenticatedUser, RequireStaff, ensure_restaurant_access
from siampos.core.responses import paginated_response, success_response
from siampos.db.session import DbSession
from siampos.models.order import Order, OrderStatus, PaymentStatus
from siampos.models.restaurant import Restaurant
from siampos.schemas.order import (
    OrderCancel,
    OrderCreate,
    OrderOut,
    OrderStatusUpdate,
    PaymentUpdate,
    PromptPayQROut,
)
from siampos.services import order_service
from siampos.services.promptpay import build_promptpay_payload, render_qr

logger = logging.getLogger("orders")

router = APIRouter()


def _order_out(order: Order) -> dict:
    return OrderOut.model_validate(order).model_dump(mode="json")


def _load_scoped_order(db, order_id: str, user: AuthenticatedUser) -> Order:
    order = order_service.get_order(db, order_id)
    ensure_restaurant_access(user, order.restaurant_id)
    return order


@router.post("", status_code=status.HTTP_201_CREATED)
@limiter.limit(WRITE_LIMIT)
def create_order(request: Request, body: OrderCreate, current_user: RequireStaff, db: DbSession):
    """Create an order with its items, computing totals and the order number."""
    ensure_restaurant_access(current_user, body.restaurant_id)
    order = order_service.create_order(db, body, body.user_id or current_user.id)
    return success_response(_order_out(order), message="สร้างออเดอร์สำเร็จ")


@router.get("/restaurant/{restaurant_id}")
@limiter.limit(READ_LIMIT)
def list_orders(
    request: Request,
    restaurant_id: str,
    current_user: RequireStaff,
    db: DbSession,
    status: Optional[OrderStatus] = None,
    payment_status: Optional[PaymentStatus] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    table_id: Optional[str] = None,
    customer_name: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
):
    ensure_restaurant_access(current_user, restaurant_id)
    orders, total = order_service.list_orders(
        db,
        restaurant_id,
        status=status,
        payment_status=payment_status,
        date_from=date_from,
        date_to=date_to,
        table_id=table_id,
        customer_name=customer_name,
        page=page,
        limit=limit,
    )
    return paginated_response([_order_out(o) for o in orders], total, page=page, limit=limit)


@router.get("/restaurant/{restaurant_id}/stats")
@limiter.limit(READ_LIMIT)
def get_order_stats(
    request: Request,
    restaurant_id: str,
    current_user: RequireStaff,
    db: DbSession,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
):
    ensure_restaurant_access(current_user, restaurant_id)
    stats = order_service.order_stats(db, restaurant_id, date_from=date_from, date_to=date_to)
    return success_response(
        {
            **stats,
            "total_revenue": str(stats["total_revenue"]),
            "average_order_value": str(stats["average_order_value"]),
        }
    )


@router.get("/{order_id}")
@limiter.limit(READ_LIMIT)
def get_order(request: Request, order_id: str, current_user: RequireStaff, db: DbSession):
    order = _load_scoped_order(db, order_id, current_user)
    return success_response(_order_out(order))


@router.patch("/{order_id}/status")
@limiter.limit(WRITE_LIMIT)
def update_order_status(
    request: Request, order_id: str, body: OrderStatusUpdate, current_user: RequireStaff, db: DbSession
):
    order = _load_scoped_order(db, order_id, current_user)
    order = order_service.update_order_status(db, order, body.status)
    return success_response(_order_out(order), message="อัปเดตสถานะออเดอร์สำเร็จ")


@router.patch("/{order_id}/payment")
@limiter.limit(WRITE_LIMIT)
def update_payment_status(
    request: Request, order_id: str, body: PaymentUpdate, current_user: RequireStaff, db: DbSession
):
    order = _load_scoped_order(db, order_id, current_user)
    order = order_service.update_payment_status(db, order, body.payment_status, body.payment_method)
    return success_response(_order_out(order), message="อัปเดตสถานะการชำระเงินสำเร็จ")


@router.patch("/{order_id}/cancel")
@limiter.limit(WRITE_LIMIT)
def cancel_order(request: Request, order_id: str, body: OrderCancel, current_user: RequireStaff, db: DbSession):
    order = _load_scoped_order(db, order_id, current_user)
    order = order_service.cancel_order(db, order, body.reason)
    return success_response(_order_out(order), message="ยกเลิกออเดอร์สำเร็จ")


@router.get("/{order_id}/promptpay-qr")
@limiter.limit(READ_LIMIT)
def get_promptpay_qr(
    request: Request,
    order_id: str,
    current_user: RequireStaff,
    db: DbSession,
    format: Literal["png", "svg"] = "png",
):
    """PromptPay payment QR for the order total."""
    order = _load_scoped_order(db, order_id, current_user)
    if order.status == OrderStatus.CANCELLED or order.payment_status == PaymentStatus.PAID:
        raise ValidationError("Order is not awaiting payment", code="ORDER_NOT_PAYABLE")

    restaurant = db.get(Restaurant, order.restaurant_id)
    if not restaurant.promptpay_id:
        raise ValidationError(
            "Restaurant has no PromptPay ID configured", code="PROMPTPAY_NOT_CONFIGURED"
        )

    payload = build_promptpay_payload(restaurant.promptpay_id, order.total)
    qr = PromptPayQROut(
        order_id=order.id,
        order_number=order.order_number,
        amount=order.total,
        payload=payload,
        format=format,
        image=render_qr(payload, format),
    )
    return success_response(qr.model_dump(mode="json"))
