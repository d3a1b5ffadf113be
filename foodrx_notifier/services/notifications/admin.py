from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from foodrx_notifier.db.store import StateStore
from foodrx_notifier.schemas.notification_schemas import (
    AdminNotificationRequest,
    AdminNotificationResult,
)
from foodrx_notifier.utils.datetime_utils import to_utc, utc_now
from foodrx_notifier.utils.errors import BusinessLogicError
from foodrx_notifier.utils.logging import get_logger

logger = get_logger()


class AdminNotificationService:
    """Queues ad hoc notifications for delivery by the next scheduled pass."""

    def __init__(self, db_session: Session, now: Optional[datetime] = None):
        self.store = StateStore(db_session)
        self.now = to_utc(now) if now else utc_now()

    def create(self, request: AdminNotificationRequest) -> AdminNotificationResult:
        recipients = request.recipients()
        if not recipients:
            raise BusinessLogicError(
                "No valid recipient user ids provided", error_code="NO_RECIPIENTS"
            )

        result = AdminNotificationResult()
        # Not a digest type: every call inserts, no same-day dedupe
        for user_id in recipients:
            notification_id = self.store.insert_notification(
                user_id=user_id,
                notification_type=request.type,
                title=request.title,
                message=request.message,
                created_at=self.now,
                priority=request.priority,
            )
            result.notification_ids.append(notification_id)
            result.notifications_created += 1

        logger.info(
            "Admin notifications queued",
            notification_type=request.type,
            recipients=len(recipients),
        )
        return result
