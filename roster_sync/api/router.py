"""API router aggregation."""

from fastapi import APIRouter

from roster_sync.api.health import router as health_router
from roster_sync.api.notifications import router as notifications_router
from roster_sync.api.rosters import router as rosters_router

api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(rosters_router)
api_router.include_router(notifications_router)
