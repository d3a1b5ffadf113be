from fastapi import APIRouter

from .admin_notifications import admin_notifications_router
from .health import health_router
from .triggers import triggers_router

main_router = APIRouter()

main_router.include_router(health_router, prefix="/health", tags=["Health Checks"])
main_router.include_router(triggers_router, prefix="/triggers", tags=["Triggers"])
main_router.include_router(
    admin_notifications_router, prefix="/notifications", tags=["Notifications"]
)

__all__ = ["main_router"]
