"""
API v1 router setup
Every dashboard route requires a JWT bearer token
"""
from fastapi import APIRouter

from booking_engine.api.v1.dashboard import bookings, business, schedule

api_v1_router = APIRouter()

# ============================================================================
# DASHBOARD ROUTES (JWT authentication required)
# ============================================================================
api_v1_router.include_router(
    schedule.router,
    prefix="/providers",
    tags=["Providers"]
)

api_v1_router.include_router(
    business.router,
    prefix="/businesses",
    tags=["Businesses"]
)

api_v1_router.include_router(
    bookings.router,
    prefix="/bookings",
    tags=["Bookings"]
)


# ============================================================================
# ROOT ENDPOINT - API Info
# ============================================================================
@api_v1_router.get("/", tags=["Info"])
async def api_info():
    return {
        "version": "1.0",
        "authentication": "JWT Bearer token required (sub = provider id)",
        "resources": ["/providers", "/businesses", "/bookings"],
    }
