from fastapi import APIRouter

from app.concierge.core.config import settings
from app.concierge.routers.admin_settings import router as admin_settings_router
from app.concierge.routers.api_keys import router as api_keys_router
from app.concierge.routers.auth import router as auth_router
from app.concierge.routers.client import router as client_router
from app.concierge.routers.emails import router as emails_router
from app.concierge.routers.health import router as health_router
from app.concierge.routers.locations import router as locations_router
from app.concierge.routers.metrics import router as metrics_router
from app.concierge.routers.public import router as public_router
from app.concierge.routers.shipments import router as shipments_router
from app.concierge.routers.users import router as users_router

api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(auth_router, prefix="/api/auth", tags=["auth"])
api_router.include_router(shipments_router, tags=["shipments"])
api_router.include_router(client_router, tags=["client"])
api_router.include_router(public_router, tags=["public"])
api_router.include_router(locations_router, tags=["locations"])
api_router.include_router(api_keys_router, tags=["api-keys"])
api_router.include_router(users_router, tags=["users"])
api_router.include_router(admin_settings_router, tags=["settings"])
api_router.include_router(emails_router, tags=["emails"])
if settings.METRICS_ENABLED:
    api_router.include_router(metrics_router, tags=["ops"])
