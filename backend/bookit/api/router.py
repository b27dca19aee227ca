"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from bookit.api.routes import experiences, bookings, promo

api_router = APIRouter(prefix="/api")
api_router.include_router(experiences.router)
api_router.include_router(bookings.router)
api_router.include_router(promo.router)
