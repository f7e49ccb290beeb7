"""Роутеры REST API (/api/v1)."""

from fastapi import APIRouter

from .addresses import router as addresses_router
from .auth import router as auth_router
from .catalog import router as catalog_router
from .dashboard import router as dashboard_router
from .orders import router as orders_router

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(auth_router)
api_router.include_router(catalog_router)
api_router.include_router(addresses_router)
api_router.include_router(orders_router)
api_router.include_router(dashboard_router)

__all__ = ["api_router"]
