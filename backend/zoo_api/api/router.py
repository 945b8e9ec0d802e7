"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from zoo_api.api.routes import reservations, attractions, rides, lookups

api_router = APIRouter(prefix="/api")
api_router.include_router(reservations.router)
api_router.include_router(attractions.router)
api_router.include_router(rides.router)
api_router.include_router(lookups.router)
