"""Menu item routes.

Reading a menu is public so customers can browse it. Callers outside the
restaurant only see items that are currently available.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Request, status

from siampos.core.errors import ConflictError, NotFoundError
from siampos.core.rate_limit import READ_LIMIT, WRITE_LIMIT, limiter
from siampos.core.rbac import OptionalIdentity, RequireManager, ensure_restaurant_access
from siampos.core.responses import success_response
from siampos.db.session import DbSession
from siampos.models.menu import Menu, MenuCategory
from siampos.models.order import OrderItem
from siampos.schemas.menu import MenuCreate, MenuOut, MenuUpdate

logger = logging.getLogger(__name__)

router = APIRouter()


def _menu_out(menu: Menu) -> dict:
    return MenuOut.model_validate(menu).model_dump(mode="json")


def _get_menu(db, menu_id: str) -> Menu:
    menu = db.get(Menu, menu_id)
    if menu is None:
        raise NotFoundError("Menu item not found", code="MENU_NOT_FOUND")
    return menu


def _check_category(db, category_id: Optional[str], restaurant_id: str) -> None:
    if category_id is None:
        return
    category = db.get(MenuCategory, category_id)
    if category is None or category.restaurant_id != restaurant_id:
        raise NotFoundError("Category not found", code="CATEGORY_NOT_FOUND")


@router.get("/{restaurant_id}")
@limiter.limit(READ_LIMIT)
def list_menu(
    request: Request,
    restaurant_id: str,
    identity: OptionalIdentity,
    db: DbSession,
    category_id: Optional[str] = None,
):
    query = db.query(Menu).filter(Menu.restaurant_id == restaurant_id)
    if identity.restaurant_id != restaurant_id:
        query = query.filter(Menu.is_available.is_(True))
    if category_id:
        query = query.filter(Menu.category_id == category_id)
    items = query.order_by(Menu.name_th).all()
    return success_response([_menu_out(m) for m in items])


@router.post("", status_code=status.HTTP_201_CREATED)
@limiter.limit(WRITE_LIMIT)
def create_menu(request: Request, body: MenuCreate, current_user: RequireManager, db: DbSession):
    ensure_restaurant_access(current_user, body.restaurant_id)
    _check_category(db, body.category_id, body.restaurant_id)
    menu = Menu(**body.model_dump())
    db.add(menu)
    db.commit()
    db.refresh(menu)
    logger.info(f"Menu item {menu.id} created in restaurant {menu.restaurant_id}")
    return success_response(_menu_out(menu), message="Menu item created successfully")


@router.put("/{menu_id}")
@limiter.limit(WRITE_LIMIT)
def update_menu(request: Request, menu_id: str, body: MenuUpdate, current_user: RequireManager, db: DbSession):
    menu = _get_menu(db, menu_id)
    ensure_restaurant_access(current_user, menu.restaurant_id)
    changes = body.model_dump(exclude_unset=True)
    if "category_id" in changes:
        _check_category(db, changes["category_id"], menu.restaurant_id)
    for key, value in changes.items():
        setattr(menu, key, value)
    db.commit()
    db.refresh(menu)
    return success_response(_menu_out(menu), message="Menu item updated successfully")


@router.delete("/{menu_id}")
@limiter.limit(WRITE_LIMIT)
def delete_menu(request: Request, menu_id: str, current_user: RequireManager, db: DbSession):
    menu = _get_menu(db, menu_id)
    ensure_restaurant_access(current_user, menu.restaurant_id)
    if db.query(OrderItem.id).filter(OrderItem.menu_id == menu_id).first() is not None:
        raise ConflictError(
            "Menu item appears on orders; mark it unavailable instead",
            code="MENU_IN_USE",
        )
    db.delete(menu)
    db.commit()
    logger.info(f"Menu item {menu_id} deleted by {current_user.id}")
    return success_response(message="Menu item deleted successfully")
