"""API router aggregation."""

from fastapi import APIRouter

from src.api.commissions import router as commissions_router
from src.api.health import router as health_router
from src.api.logs import router as logs_router
from src.api.owners import router as owners_router
from src.api.settings import router as settings_router

# Main API router (for /api/* endpoints)
api_router = APIRouter(prefix="/api")

api_router.include_router(health_router)
api_router.include_router(owners_router)
api_router.include_router(settings_router)
api_router.include_router(commissions_router)
api_router.include_router(logs_router)

__all__ = ["api_router"]
