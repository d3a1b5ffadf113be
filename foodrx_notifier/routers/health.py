from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.orm import Session

from foodrx_notifier.config.settings import settings
from foodrx_notifier.db.session import get_sync_session
from foodrx_notifier.db.store import CONNECTIVITY_ERRORS
from foodrx_notifier.utils.errors import StoreConnectivityError
from foodrx_notifier.utils.responses import ResponseBuilder

health_router = APIRouter()


@health_router.get("")
async def health_check(request: Request):
    """
    Basic liveness check

    Returns application status without touching the store
    """
    return ResponseBuilder.success(
        request=request,
        data={"status": "healthy", "service": settings.NAME, "version": settings.VERSION},
        message="Service is running",
    )


@health_router.get("/ready")
async def readiness_check(
    request: Request,
    db: Annotated[Session, Depends(get_sync_session)],
):
    """Verifies the store answers a trivial query"""
    try:
        db.execute(text("SELECT 1"))
    except CONNECTIVITY_ERRORS as e:
        raise StoreConnectivityError(f"Store is not reachable: {e}") from e

    return ResponseBuilder.success(
        request=request,
        data={"status": "ready", "database": "ok"},
        message="Service is ready",
    )
