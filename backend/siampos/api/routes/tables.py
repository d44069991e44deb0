"""Dining table routes: CRUD, live status and floor-plan positions."""

import logging
from typing import Optional

from fastapi import APIRouter, Request, status
from sqlalchemy import func

from siampos.core.errors import ConflictError, NotFoundError, ValidationError
from siampos.core.rate_limit import READ_LIMIT, WRITE_LIMIT, limiter
from siampos.core.rbac import RequireManager, RequireStaff, ensure_restaurant_access
from siampos.core.responses import success_response
from siampos.db.session import DbSession
from siampos.models.order import Order, OrderStatus
from siampos.models.table import DiningTable, TableStatus
from siampos.schemas.table import (
    TableCreate,
    TableOut,
    TablePositionsUpdate,
    TableStats,
    TableStatusUpdate,
    TableUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# Orders still occupying a table
ACTIVE_ORDER_STATUSES = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.COOKING,
    OrderStatus.READY,
    OrderStatus.SERVED,
)


def _table_out(db, table: DiningTable) -> dict:
    data = TableOut.model_validate(table).model_dump(mode="json")
    data["order_count"] = db.query(Order).filter(Order.table_id == table.id).count()
    return data


def _get_table(db, table_id: str) -> DiningTable:
    table = db.get(DiningTable, table_id)
    if table is None:
        raise NotFoundError("Table not found", code="TABLE_NOT_FOUND")
    return table


def _ensure_number_free(db, restaurant_id: str, table_number: str, exclude_id: Optional[str] = None) -> None:
    query = db.query(DiningTable).filter(
        DiningTable.restaurant_id == restaurant_id,
        DiningTable.table_number == table_number,
    )
    if exclude_id:
        query = query.filter(DiningTable.id != exclude_id)
    if query.first() is not None:
        raise ConflictError("Table number already exists in this restaurant", code="TABLE_NUMBER_EXISTS")


@router.get("/item/{table_id}")
@limiter.limit(READ_LIMIT)
def get_table(request: Request, table_id: str, current_user: RequireStaff, db: DbSession):
    """Table with its most recent active order, if any."""
    table = _get_table(db, table_id)
    ensure_restaurant_access(current_user, table.restaurant_id)
    current_order = (
        db.query(Order)
        .filter(Order.table_id == table_id, Order.status.in_(ACTIVE_ORDER_STATUSES))
        .order_by(Order.created_at.desc())
        .first()
    )
    data = _table_out(db, table)
    data["current_order"] = (
        {
            "id": current_order.id,
            "order_number": current_order.order_number,
            "status": current_order.status.value,
            "total": str(current_order.total),
        }
        if current_order
        else None
    )
    return success_response(data)


@router.get("/{restaurant_id}")
@limiter.limit(READ_LIMIT)
def list_tables(
    request: Request,
    restaurant_id: str,
    current_user: RequireStaff,
    db: DbSession,
    status: Optional[TableStatus] = None,
):
    ensure_restaurant_access(current_user, restaurant_id)
    query = db.query(DiningTable).filter(DiningTable.restaurant_id == restaurant_id)
    if status is not None:
        query = query.filter(DiningTable.status == status)
    tables = query.order_by(DiningTable.table_number).all()
    return success_response([_table_out(db, t) for t in tables])


@router.get("/{restaurant_id}/stats")
@limiter.limit(READ_LIMIT)
def get_table_stats(request: Request, restaurant_id: str, current_user: RequireStaff, db: DbSession):
    ensure_restaurant_access(current_user, restaurant_id)
    counts = dict(
        db.query(DiningTable.status, func.count(DiningTable.id))
        .filter(DiningTable.restaurant_id == restaurant_id)
        .group_by(DiningTable.status)
        .all()
    )
    stats = TableStats(
        total=sum(counts.values()),
        available=counts.get(TableStatus.AVAILABLE, 0),
        occupied=counts.get(TableStatus.OCCUPIED, 0),
        reserved=counts.get(TableStatus.RESERVED, 0),
        cleaning=counts.get(TableStatus.CLEANING, 0),
        outOfService=counts.get(TableStatus.OUT_OF_SERVICE, 0),
    )
    return success_response(stats.model_dump())


@router.post("", status_code=status.HTTP_201_CREATED)
@limiter.limit(WRITE_LIMIT)
def create_table(request: Request, body: TableCreate, current_user: RequireManager, db: DbSession):
    ensure_restaurant_access(current_user, body.restaurant_id)
    _ensure_number_free(db, body.restaurant_id, body.table_number)
    table = DiningTable(**body.model_dump())
    db.add(table)
    db.commit()
    db.refresh(table)
    return success_response(_table_out(db, table), message="เพิ่มโต๊ะสำเร็จ")


@router.put("/{table_id}")
@limiter.limit(WRITE_LIMIT)
def update_table(request: Request, table_id: str, body: TableUpdate, current_user: RequireManager, db: DbSession):
    table = _get_table(db, table_id)
    ensure_restaurant_access(current_user, table.restaurant_id)
    changes = body.model_dump(exclude_unset=True)
    if changes.get("table_number") and changes["table_number"] != table.table_number:
        _ensure_number_free(db, table.restaurant_id, changes["table_number"], exclude_id=table_id)
    for key, value in changes.items():
        setattr(table, key, value)
    db.commit()
    db.refresh(table)
    return success_response(_table_out(db, table), message="อัปเดตโต๊ะสำเร็จ")


@router.delete("/{table_id}")
@limiter.limit(WRITE_LIMIT)
def delete_table(request: Request, table_id: str, current_user: RequireManager, db: DbSession):
    table = _get_table(db, table_id)
    ensure_restaurant_access(current_user, table.restaurant_id)
    if db.query(Order.id).filter(Order.table_id == table_id).first() is not None:
        raise ValidationError(
            "Cannot delete a table that has orders",
            code="TABLE_IN_USE",
        )
    db.delete(table)
    db.commit()
    logger.info(f"Table {table_id} deleted by {current_user.id}")
    return success_response(message="ลบโต๊ะสำเร็จ")


@router.patch("/{table_id}/status")
@limiter.limit(WRITE_LIMIT)
def update_table_status(
    request: Request, table_id: str, body: TableStatusUpdate, current_user: RequireStaff, db: DbSession
):
    table = _get_table(db, table_id)
    ensure_restaurant_access(current_user, table.restaurant_id)
    table.status = body.status
    db.commit()
    db.refresh(table)
    return success_response(_table_out(db, table), message="อัปเดตสถานะโต๊ะสำเร็จ")


@router.patch("/{restaurant_id}/positions")
@limiter.limit(WRITE_LIMIT)
def update_table_positions(
    request: Request,
    restaurant_id: str,
    body: TablePositionsUpdate,
    current_user: RequireManager,
    db: DbSession,
):
    """Bulk-move tables on the floor plan in one commit."""
    ensure_restaurant_access(current_user, restaurant_id)
    ids = [p.id for p in body.table_positions]
    tables = {
        t.id: t
        for t in db.query(DiningTable).filter(
            DiningTable.id.in_(ids), DiningTable.restaurant_id == restaurant_id
        )
    }
    missing = sorted(set(ids) - set(tables))
    if missing:
        raise NotFoundError("Table not found", code="TABLE_NOT_FOUND", details={"ids": missing})
    for position in body.table_positions:
        tables[position.id].location_x = position.location_x
        tables[position.id].location_y = position.location_y
    db.commit()
    return success_response(message="อัปเดตตำแหน่งโต๊ะสำเร็จ")
