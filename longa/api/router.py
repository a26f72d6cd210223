"""
API router - aggregates all route modules.
"""
from fastapi import APIRouter
from longa.api.bookings import router as bookings_router
from longa.api.admin_bookings import router as admin_bookings_router
from longa.api.payouts import router as payouts_router
from longa.api.catalog import router as catalog_router
from longa.api.notifications import router as notifications_router
from longa.api.providers import router as providers_router
from longa.api.support import router as support_router
from longa.api.analytics import router as analytics_router
from longa.api.health import router as health_router

api_router = APIRouter()
api_router.include_router(bookings_router)
api_router.include_router(admin_bookings_router)
api_router.include_router(payouts_router)
api_router.include_router(catalog_router)
api_router.include_router(notifications_router)
api_router.include_router(providers_router)
api_router.include_router(support_router)
api_router.include_router(analytics_router)
api_router.include_router(health_router)
