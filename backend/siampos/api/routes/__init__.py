"""API routes."""

from fastapi import APIRouter

from siampos.api.routes import auth, categories, menu, orders, restaurants, tables

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(restaurants.router, prefix="/restaurant", tags=["restaurants"])
api_router.include_router(menu.router, prefix="/menu", tags=["menu"])
api_router.include_router(categories.router, prefix="/categories", tags=["categories"])
api_router.include_router(tables.router, prefix="/tables", tags=["tables"])
api_router.include_router(orders.router, prefix="/order", tags=["orders"])
