"""Menu category routes."""

import logging
from typing import Optional

from fastapi import APIRouter, Request, status

from siampos.core.errors import NotFoundError, ValidationError
from siampos.core.rate_limit import READ_LIMIT, WRITE_LIMIT, limiter
from siampos.core.rbac import OptionalIdentity, RequireManager, ensure_restaurant_access
from siampos.core.responses import success_response
from siampos.db.session import DbSession
from siampos.models.menu import Menu, MenuCategory
from siampos.schemas.menu import CategoryCreate, CategoryOut, CategoryReorder, CategoryUpdate

logger = logging.getLogger(__name__)

router = APIRouter()


def _category_out(db, category: MenuCategory) -> dict:
    data = CategoryOut.model_validate(category).model_dump(mode="json")
    data["menu_count"] = db.query(Menu).filter(Menu.category_id == category.id).count()
    return data


def _get_category(db, category_id: str) -> MenuCategory:
    category = db.get(MenuCategory, category_id)
    if category is None:
        raise NotFoundError("Category not found", code="CATEGORY_NOT_FOUND")
    return category


@router.patch("/reorder")
@limiter.limit(WRITE_LIMIT)
def reorder_categories(request: Request, body: CategoryReorder, current_user: RequireManager, db: DbSession):
    ensure_restaurant_access(current_user, body.restaurant_id)
    ids = [entry.id for entry in body.category_orders]
    categories = {
        c.id: c
        for c in db.query(MenuCategory).filter(
            MenuCategory.id.in_(ids), MenuCategory.restaurant_id == body.restaurant_id
        )
    }
    missing = sorted(set(ids) - set(categories))
    if missing:
        raise NotFoundError("Category not found", code="CATEGORY_NOT_FOUND", details={"ids": missing})
    for entry in body.category_orders:
        categories[entry.id].sort_order = entry.sort_order
    db.commit()
    return success_response(message="อัปเดตลำดับหมวดหมู่สำเร็จ")


@router.get("/item/{category_id}")
@limiter.limit(READ_LIMIT)
def get_category(request: Request, category_id: str, identity: OptionalIdentity, db: DbSession):
    category = _get_category(db, category_id)
    if not category.is_active and identity.restaurant_id != category.restaurant_id:
        raise NotFoundError("Category not found", code="CATEGORY_NOT_FOUND")
    return success_response(_category_out(db, category))


@router.get("/{restaurant_id}")
@limiter.limit(READ_LIMIT)
def list_categories(
    request: Request,
    restaurant_id: str,
    identity: OptionalIdentity,
    db: DbSession,
    active: Optional[bool] = None,
):
    """Categories ordered by sort_order then Thai name.

    Anonymous callers and other restaurants' staff only see active categories.
    """
    query = db.query(MenuCategory).filter(MenuCategory.restaurant_id == restaurant_id)
    if identity.restaurant_id != restaurant_id:
        active = True
    if active is not None:
        query = query.filter(MenuCategory.is_active.is_(active))
    categories = query.order_by(MenuCategory.sort_order, MenuCategory.name_th).all()
    return success_response([_category_out(db, c) for c in categories])


@router.post("", status_code=status.HTTP_201_CREATED)
@limiter.limit(WRITE_LIMIT)
def create_category(request: Request, body: CategoryCreate, current_user: RequireManager, db: DbSession):
    ensure_restaurant_access(current_user, body.restaurant_id)
    category = MenuCategory(**body.model_dump())
    db.add(category)
    db.commit()
    db.refresh(category)
    return success_response(_category_out(db, category), message="เพิ่มหมวดหมู่สำเร็จ")


@router.put("/{category_id}")
@limiter.limit(WRITE_LIMIT)
def update_category(
    request: Request, category_id: str, body: CategoryUpdate, current_user: RequireManager, db: DbSession
):
    category = _get_category(db, category_id)
    ensure_restaurant_access(current_user, category.restaurant_id)
    for key, value in body.model_dump(exclude_unset=True).items():
        setattr(category, key, value)
    db.commit()
    db.refresh(category)
    return success_response(_category_out(db, category), message="อัปเดตหมวดหมู่สำเร็จ")


@router.delete("/{category_id}")
@limiter.limit(WRITE_LIMIT)
def delete_category(request: Request, category_id: str, current_user: RequireManager, db: DbSession):
    category = _get_category(db, category_id)
    ensure_restaurant_access(current_user, category.restaurant_id)
    if db.query(Menu.id).filter(Menu.category_id == category_id).first() is not None:
        raise ValidationError(
            "Cannot delete a category that still has menu items",
            code="CATEGORY_IN_USE",
        )
    db.delete(category)
    db.commit()
    logger.info(f"Category {category_id} deleted by {current_user.id}")
    return success_response(message="ลบหมวดหมู่สำเร็จ")
