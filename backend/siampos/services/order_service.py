"""Order service: totals, date-scoped order numbering and the status lifecycle.

Order numbers have the form ``YYYYMMDD-NNN``. The day is the calendar day
in ``settings.timezone`` and NNN restarts at 001 for every restaurant and
day. Numbers come from a per-day counter row that is bumped in the same
transaction as the order insert, and the unique index on
``(restaurant_id, order_number)`` backs it up.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, NamedTuple, Optional, Tuple
from zoneinfo import ZoneInfo

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from siampos.core.config import settings
from siampos.core.errors import ConflictError, NotFoundError, ValidationError
from siampos.models.menu import Menu
from siampos.models.order import (
    CANCELLABLE_STATUSES,
    Order,
    OrderItem,
    OrderSequence,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)
from siampos.models.restaurant import Restaurant
from siampos.models.table import DiningTable
from siampos.models.user import User

logger = logging.getLogger("orders")

CENT = Decimal("0.01")
MAX_RATE = Decimal("20")
# Statuses counted as "pending" on the dashboard
OPEN_STATUSES = (OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.COOKING)


def round2(value) -> Decimal:
    """Round half-up to satang (2 decimal places)."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


class LineItem(NamedTuple):
    unit_price: Decimal
    quantity: int


@dataclass
class OrderTotals:
    subtotal: Decimal
    service_charge: Decimal
    tax: Decimal
    total: Decimal
    line_totals: List[Decimal] = field(default_factory=list)


def _rate(name: str, value) -> Decimal:
    rate = Decimal(str(value))
    if rate < 0 or rate > MAX_RATE:
        raise ValidationError(
            f"{name} must be between 0 and {MAX_RATE}",
            code="INVALID_RATE",
            details={"field": name, "value": str(value)},
        )
    return rate


def calculate_order_totals(
    items: Iterable[LineItem],
    service_charge_percentage=10,
    tax_rate=7,
) -> OrderTotals:
    """Compute subtotal, service charge, tax and total for a list of lines.

    Service charge and tax are each a percentage of the subtotal, rounded
    half-up to 2 places separately. Neither compounds on the other.

    Raises:
        ValidationError: empty item list, non-positive price or quantity,
            or a rate outside [0, 20].
    """
    items = list(items)
    if not items:
        raise ValidationError("Order must have at least one item", code="EMPTY_ORDER")

    service_rate = _rate("service_charge_percentage", service_charge_percentage)
    tax_pct = _rate("tax_rate", tax_rate)

    line_totals = []
    for index, item in enumerate(items):
        unit_price = Decimal(str(item.unit_price))
        quantity = item.quantity
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValidationError(
                "Quantity must be a positive integer",
                code="INVALID_QUANTITY",
                details={"item": index, "quantity": str(quantity)},
            )
        if unit_price <= 0:
            raise ValidationError(
                "Unit price must be positive",
                code="INVALID_PRICE",
                details={"item": index, "unit_price": str(unit_price)},
            )
        line_totals.append(round2(unit_price * quantity))

    subtotal = sum(line_totals, Decimal("0.00"))
    service_charge = round2(subtotal * service_rate / 100)
    tax = round2(subtotal * tax_pct / 100)
    return OrderTotals(
        subtotal=subtotal,
        service_charge=service_charge,
        tax=tax,
        total=subtotal + service_charge + tax,
        line_totals=line_totals,
    )


# ---------------------------------------------------------------------------
# Order numbering
# ---------------------------------------------------------------------------

def business_today() -> date:
    """Current calendar day in the restaurant timezone."""
    return datetime.now(ZoneInfo(settings.timezone)).date()


def _next_sequence(db: Session, restaurant_id: str, prefix: str) -> int:
    """One more than the highest suffix already used for ``prefix``."""
    numbers = (
        db.query(Order.order_number)
        .filter(
            Order.restaurant_id == restaurant_id,
            Order.order_number.like(f"{prefix}-%"),
        )
        .all()
    )
    highest = 0
    for (number,) in numbers:
        suffix = number.rsplit("-", 1)[-1]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return highest + 1


def allocate_order_number(db: Session, restaurant_id: str, today: Optional[date] = None) -> str:
    """Reserve the next ``YYYYMMDD-NNN`` number for a restaurant.

    Must be the first write of the transaction that inserts the order. The
    counter UPDATE takes the write lock up front, so concurrent callers queue
    behind it instead of reading the same sequence. The reservation is only
    kept if the caller commits.

    The first order of a day seeds the counter from existing order numbers,
    and the counter never falls behind rows inserted without it.
    """
    today = today or business_today()
    prefix = today.strftime("%Y%m%d")
    key = (OrderSequence.restaurant_id == restaurant_id, OrderSequence.business_date == prefix)

    bumped = db.execute(
        update(OrderSequence)
        .where(*key)
        .values(last_seq=OrderSequence.last_seq + 1)
        .execution_options(synchronize_session=False)
    ).rowcount
    floor = _next_sequence(db, restaurant_id, prefix)

    if not bumped:
        db.add(OrderSequence(restaurant_id=restaurant_id, business_date=prefix, last_seq=floor))
        db.flush()
        return f"{prefix}-{floor:03d}"

    seq = db.query(OrderSequence.last_seq).filter(*key).scalar()
    if seq < floor:
        db.execute(
            update(OrderSequence)
            .where(*key)
            .values(last_seq=floor)
            .execution_options(synchronize_session=False)
        )
        seq = floor
    return f"{prefix}-{seq:03d}"


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

def get_order(db: Session, order_id: str) -> Order:
    order = (
        db.query(Order)
        .options(selectinload(Order.items).selectinload(OrderItem.menu))
        .filter(Order.id == order_id)
        .first()
    )
    if order is None:
        raise NotFoundError("Order not found", code="ORDER_NOT_FOUND")
    return order


def _check_references(db: Session, data, user_id: str) -> None:
    if db.get(Restaurant, data.restaurant_id) is None:
        raise NotFoundError("Restaurant not found", code="RESTAURANT_NOT_FOUND")

    user = db.get(User, user_id)
    if user is None or user.restaurant_id != data.restaurant_id:
        raise NotFoundError("User not found", code="USER_NOT_FOUND")

    if data.table_id is not None:
        table = db.get(DiningTable, data.table_id)
        if table is None or table.restaurant_id != data.restaurant_id:
            raise NotFoundError("Table not found", code="TABLE_NOT_FOUND")

    menu_ids = {item.menu_id for item in data.order_items}
    found = {
        menu_id
        for (menu_id,) in db.query(Menu.id).filter(
            Menu.id.in_(menu_ids), Menu.restaurant_id == data.restaurant_id
        )
    }
    missing = sorted(menu_ids - found)
    if missing:
        raise NotFoundError("Menu item not found", code="MENU_NOT_FOUND", details={"menu_ids": missing})


def create_order(db: Session, data, user_id: str) -> Order:
    """Validate, price, number and insert an order with all of its items.

    The order number is reserved from the per-day counter in the same
    transaction that inserts the order and its items. If a concurrent
    request wins the race to create a new day's counter row, the unit of
    work is rolled back and retried, up to
    ``settings.order_number_max_retries`` attempts.
    """
    totals = calculate_order_totals(
        [LineItem(item.unit_price_thb, item.quantity) for item in data.order_items],
        data.service_charge_percentage,
        data.tax_rate,
    )
    _check_references(db, data, user_id)

    attempts = settings.order_number_max_retries
    for attempt in range(1, attempts + 1):
        order_number = None
        try:
            order_number = allocate_order_number(db, data.restaurant_id)
            order = Order(
                restaurant_id=data.restaurant_id,
                table_id=data.table_id,
                user_id=user_id,
                order_number=order_number,
                customer_name=data.customer_name,
                customer_phone=data.customer_phone,
                notes=data.notes,
                payment_method=data.payment_method,
                subtotal=totals.subtotal,
                service_charge=totals.service_charge,
                tax=totals.tax,
                total=totals.total,
                status=OrderStatus.PENDING,
                payment_status=PaymentStatus.PENDING,
            )
            order.items = [
                OrderItem(
                    menu_id=item.menu_id,
                    quantity=item.quantity,
                    unit_price=round2(item.unit_price_thb),
                    total_price=line_total,
                    notes=item.notes,
                )
                for item, line_total in zip(data.order_items, totals.line_totals)
            ]
            db.add(order)
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.warning(
                f"Order number {order_number or '(new day)'} collided for restaurant "
                f"{data.restaurant_id} (attempt {attempt}/{attempts}), retrying"
            )
            continue

        logger.info(f"Created order {order_number} ({order.id}) total={totals.total}")
        return get_order(db, order.id)

    logger.error(f"Gave up numbering order for restaurant {data.restaurant_id} after {attempts} attempts")
    raise ConflictError(
        "Could not allocate an order number, please retry",
        code="ORDER_NUMBER_CONFLICT",
    )


def _coerce_status(status) -> OrderStatus:
    try:
        return OrderStatus(status)
    except ValueError:
        raise ValidationError("Invalid order status", code="INVALID_STATUS", details={"status": str(status)})


def _ensure_cancellable(order: Order) -> None:
    if order.status not in CANCELLABLE_STATUSES:
        raise ValidationError(
            f"Order in status {order.status.value} cannot be cancelled",
            code="ORDER_NOT_CANCELLABLE",
        )


def update_order_status(db: Session, order: Order, status) -> Order:
    """Move an order to ``status``.

    Any transition is allowed except cancelling an order that has already
    left the kitchen. Moving to PAID marks the payment as PAID too.
    """
    target = _coerce_status(status)
    if target == OrderStatus.CANCELLED:
        _ensure_cancellable(order)

    previous = order.status
    order.status = target
    if target == OrderStatus.PAID:
        order.payment_status = PaymentStatus.PAID
    db.commit()
    logger.info(f"Order {order.order_number}: {previous.value} -> {target.value}")
    return get_order(db, order.id)


def update_payment_status(
    db: Session,
    order: Order,
    payment_status: PaymentStatus,
    payment_method: Optional[PaymentMethod] = None,
) -> Order:
    order.payment_status = payment_status
    if payment_method is not None:
        order.payment_method = payment_method
    db.commit()
    logger.info(f"Order {order.order_number}: payment {payment_status.value}")
    return get_order(db, order.id)


def cancel_order(db: Session, order: Order, reason: Optional[str] = None) -> Order:
    _ensure_cancellable(order)
    order.status = OrderStatus.CANCELLED
    if reason:
        order.notes = f"{order.notes or ''}\n[ยกเลิก]: {reason}"
    db.commit()
    logger.info(f"Order {order.order_number} cancelled")
    return get_order(db, order.id)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _date_range(query, date_from: Optional[datetime], date_to: Optional[datetime]):
    date_from, date_to = _naive_utc(date_from), _naive_utc(date_to)
    if date_from is not None:
        query = query.filter(Order.created_at >= date_from)
    if date_to is not None:
        query = query.filter(Order.created_at <= date_to)
    return query


def list_orders(
    db: Session,
    restaurant_id: str,
    status: Optional[OrderStatus] = None,
    payment_status: Optional[PaymentStatus] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    table_id: Optional[str] = None,
    customer_name: Optional[str] = None,
    page: int = 1,
    limit: int = 50,
) -> Tuple[List[Order], int]:
    """Newest-first page of a restaurant's orders plus the filtered total."""
    query = db.query(Order).filter(Order.restaurant_id == restaurant_id)
    if status is not None:
        query = query.filter(Order.status == status)
    if payment_status is not None:
        query = query.filter(Order.payment_status == payment_status)
    if table_id:
        query = query.filter(Order.table_id == table_id)
    if customer_name:
        query = query.filter(Order.customer_name.ilike(f"%{customer_name}%"))
    query = _date_range(query, date_from, date_to)

    total = query.count()
    orders = (
        query.options(selectinload(Order.items).selectinload(OrderItem.menu))
        .order_by(Order.created_at.desc(), Order.order_number.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return orders, total


def order_stats(
    db: Session,
    restaurant_id: str,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
) -> dict:
    base = _date_range(db.query(Order).filter(Order.restaurant_id == restaurant_id), date_from, date_to)

    counts = dict(
        base.with_entities(Order.status, func.count(Order.id)).group_by(Order.status).all()
    )
    revenue = base.filter(Order.status != OrderStatus.CANCELLED).with_entities(func.sum(Order.total)).scalar()

    total_orders = sum(counts.values())
    cancelled = counts.get(OrderStatus.CANCELLED, 0)
    billable = total_orders - cancelled
    total_revenue = round2(revenue or 0)
    return {
        "total_orders": total_orders,
        "total_revenue": total_revenue,
        "pending_orders": sum(counts.get(s, 0) for s in OPEN_STATUSES),
        "completed_orders": counts.get(OrderStatus.PAID, 0),
        "cancelled_orders": cancelled,
        "average_order_value": round2(total_revenue / billable) if billable else round2(0),
    }
