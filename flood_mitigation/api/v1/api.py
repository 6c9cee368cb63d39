"""
API v1 router configuration.
"""

from fastapi import APIRouter

from flood_mitigation.api.v1.endpoints import alerts, dashboard, notifications, simulation

api_router = APIRouter()

api_router.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])
api_router.include_router(simulation.router, prefix="/simulation", tags=["simulation"])
api_router.include_router(
    notifications.router, prefix="/notifications", tags=["notifications"]
)
api_router.include_router(alerts.router, prefix="/alerts", tags=["alerts"])
