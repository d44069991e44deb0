"""Restaurant helpers: Thai tax ID checks and dashboard statistics."""

from datetime import datetime, timedelta, timezone
from typing import Literal
from zoneinfo import ZoneInfo

from sqlalchemy import func
from sqlalchemy.orm import Session

from siampos.core.config import settings
from siampos.models.menu import Menu
from siampos.models.order import Order, OrderStatus
from siampos.models.user import User
from siampos.services.order_service import round2

Period = Literal["today", "week", "month"]


def is_valid_thai_tax_id(tax_id: str) -> bool:
    """13 digits whose last digit is the mod-11 check digit of the first 12."""
    if len(tax_id) != 13 or not tax_id.isdigit():
        return False
    total = sum(int(digit) * (13 - i) for i, digit in enumerate(tax_id[:12]))
    return (11 - total % 11) % 10 == int(tax_id[12])


def period_start(period: Period, now: datetime | None = None) -> datetime:
    """Naive UTC start of ``period``; "today" starts at local midnight."""
    now = now or datetime.now(ZoneInfo(settings.timezone))
    if period == "today":
        start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    elif period == "week":
        start = now - timedelta(days=7)
    else:
        start = now - timedelta(days=30)
    return start.astimezone(timezone.utc).replace(tzinfo=None)


def restaurant_stats(db: Session, restaurant_id: str, period: Period) -> dict:
    since = period_start(period)
    orders = db.query(Order).filter(Order.restaurant_id == restaurant_id, Order.created_at >= since)
    revenue = (
        orders.filter(Order.status != OrderStatus.CANCELLED)
        .with_entities(func.sum(Order.total))
        .scalar()
    )
    return {
        "totalOrders": orders.count(),
        "totalRevenue": str(round2(revenue or 0)),
        "menuCount": db.query(Menu).filter(Menu.restaurant_id == restaurant_id).count(),
        "userCount": db.query(User).filter(User.restaurant_id == restaurant_id).count(),
        "period": period,
    }
