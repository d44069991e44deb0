"""Dining table schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from siampos.models.table import TableStatus


class TableCreate(BaseModel):
    restaurant_id: str
    table_number: str = Field(..., min_length=1, max_length=20)
    capacity: int = Field(..., ge=1)
    location_x: Optional[float] = None
    location_y: Optional[float] = None
    status: TableStatus = TableStatus.AVAILABLE


class TableUpdate(BaseModel):
    table_number: Optional[str] = Field(default=None, min_length=1, max_length=20)
    capacity: Optional[int] = Field(default=None, ge=1)
    location_x: Optional[float] = None
    location_y: Optional[float] = None
    status: Optional[TableStatus] = None


class TableStatusUpdate(BaseModel):
    status: TableStatus


class TablePosition(BaseModel):
    id: str
    location_x: Optional[float] = None
    location_y: Optional[float] = None


class TablePositionsUpdate(BaseModel):
    table_positions: List[TablePosition]


class TableOut(BaseModel):
    id: str
    restaurant_id: str
    table_number: str
    capacity: int
    location_x: Optional[float] = None
    location_y: Optional[float] = None
    status: TableStatus
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TableSummary(BaseModel):
    id: str
    table_number: str
    capacity: int
    status: TableStatus

    model_config = {"from_attributes": True}


class TableStats(BaseModel):
    total: int
    available: int
    occupied: int
    reserved: int
    cleaning: int
    outOfService: int
