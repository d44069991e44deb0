"""Restaurant (tenant) routes."""

import logging
from typing import Literal

from fastapi import APIRouter, Request, status

from siampos.core.errors import ConflictError, NotFoundError
from siampos.core.rate_limit import AUTH_LIMIT, READ_LIMIT, WRITE_LIMIT, limiter
from siampos.core.rbac import CurrentUser, RequireOwnerOrAdmin, ensure_restaurant_access
from siampos.core.responses import success_response
from siampos.db.session import DbSession
from siampos.models.restaurant import Restaurant
from siampos.schemas.restaurant import (
    RestaurantCreate,
    RestaurantOut,
    RestaurantUpdate,
    TaxIdValidationRequest,
)
from siampos.services.restaurant_service import is_valid_thai_tax_id, restaurant_stats

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_restaurant(db, restaurant_id: str) -> Restaurant:
    restaurant = db.get(Restaurant, restaurant_id)
    if restaurant is None:
        raise NotFoundError("Restaurant not found", code="RESTAURANT_NOT_FOUND")
    return restaurant


def _ensure_tax_id_free(db, tax_id: str, exclude_id: str | None = None) -> None:
    query = db.query(Restaurant).filter(Restaurant.tax_id == tax_id)
    if exclude_id:
        query = query.filter(Restaurant.id != exclude_id)
    if query.first() is not None:
        raise ConflictError("Restaurant with this tax ID already exists", code="TAX_ID_EXISTS")


def _restaurant_out(restaurant: Restaurant) -> dict:
    return RestaurantOut.model_validate(restaurant).model_dump(mode="json")


@router.post("", status_code=status.HTTP_201_CREATED)
@limiter.limit(AUTH_LIMIT)
def create_restaurant(request: Request, body: RestaurantCreate, db: DbSession):
    """Initial setup: create a restaurant before its first user registers."""
    _ensure_tax_id_free(db, body.tax_id)
    restaurant = Restaurant(**body.model_dump())
    db.add(restaurant)
    db.commit()
    db.refresh(restaurant)
    logger.info(f"Created restaurant {restaurant.id} ({restaurant.name_en})")
    return success_response(_restaurant_out(restaurant), message="Restaurant created successfully")


@router.post("/validate-tax-id")
@limiter.limit(READ_LIMIT)
def validate_tax_id(request: Request, body: TaxIdValidationRequest, db: DbSession):
    tax_id = "".join(ch for ch in body.tax_id if ch.isdigit())
    if not is_valid_thai_tax_id(tax_id):
        result = {"valid": False, "message": "Invalid Thai tax ID"}
    elif db.query(Restaurant.id).filter(Restaurant.tax_id == tax_id).first() is not None:
        result = {"valid": False, "message": "Tax ID is already registered"}
    else:
        result = {"valid": True, "message": "Tax ID is valid"}
    return success_response(result)


@router.get("/{restaurant_id}")
@limiter.limit(READ_LIMIT)
def get_restaurant(request: Request, restaurant_id: str, current_user: CurrentUser, db: DbSession):
    ensure_restaurant_access(current_user, restaurant_id)
    return success_response(_restaurant_out(_get_restaurant(db, restaurant_id)))


@router.put("/{restaurant_id}")
@limiter.limit(WRITE_LIMIT)
def update_restaurant(
    request: Request,
    restaurant_id: str,
    body: RestaurantUpdate,
    current_user: RequireOwnerOrAdmin,
    db: DbSession,
):
    ensure_restaurant_access(current_user, restaurant_id)
    restaurant = _get_restaurant(db, restaurant_id)
    changes = body.model_dump(exclude_unset=True)
    if changes.get("tax_id"):
        _ensure_tax_id_free(db, changes["tax_id"], exclude_id=restaurant_id)
    for key, value in changes.items():
        setattr(restaurant, key, value)
    db.commit()
    db.refresh(restaurant)
    logger.info(f"Restaurant {restaurant_id} updated by {current_user.id}: {sorted(changes)}")
    return success_response(_restaurant_out(restaurant), message="Restaurant updated successfully")


@router.get("/{restaurant_id}/stats")
@limiter.limit(READ_LIMIT)
def get_restaurant_stats(
    request: Request,
    restaurant_id: str,
    current_user: CurrentUser,
    db: DbSession,
    period: Literal["today", "week", "month"] = "today",
):
    ensure_restaurant_access(current_user, restaurant_id)
    _get_restaurant(db, restaurant_id)
    return success_response(restaurant_stats(db, restaurant_id, period))
