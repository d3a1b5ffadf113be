from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from foodrx_notifier.db.session import get_sync_session
from foodrx_notifier.schemas.notification_schemas import AdminNotificationRequest
from foodrx_notifier.services.notifications.admin import AdminNotificationService
from foodrx_notifier.utils.responses import ResponseBuilder

admin_notifications_router = APIRouter()


@admin_notifications_router.post("/admin")
async def create_admin_notification(
    payload: AdminNotificationRequest,
    request: Request,
    db: Annotated[Session, Depends(get_sync_session)],
):
    """
    Queue a notification for one or more users.

    The records are picked up by the next delivery pass.
    """
    result = AdminNotificationService(db).create(payload)

    return ResponseBuilder.success(
        request=request,
        data=result.model_dump(by_alias=True),
        message=f"Queued {result.notifications_created} notifications",
        status_code=status.HTTP_201_CREATED,
    )
