from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from foodrx_notifier.config.settings import settings
from foodrx_notifier.db.models import AnalyticsAction
from foodrx_notifier.db.store import PendingNotification, StateStore
from foodrx_notifier.schemas.notification_schemas import (
    DeliveryOutcome,
    DeliveryResult,
    DeliveryStatus,
)
from foodrx_notifier.services.notifications.presentation import presentation_for
from foodrx_notifier.services.push_gateway import PushGateway, PushMessage
from foodrx_notifier.utils.datetime_utils import to_utc, utc_now
from foodrx_notifier.utils.deadline import RunDeadline
from foodrx_notifier.utils.errors import PushDeliveryError
from foodrx_notifier.utils.logging import get_logger

logger = get_logger()


class NotificationDeliveryService:
    """
    Drains pending notifications (``sent_at`` unset) through a push gateway.

    A record only ever moves from pending to sent. Failed and skipped records
    stay pending and are picked up again by the next pass, which gives
    at-least-once delivery: if marking a record sent fails after the provider
    accepted it, the next pass pushes it again.
    """

    def __init__(
        self,
        db_session: Session,
        gateway: PushGateway,
        now: Optional[datetime] = None,
        batch_size: Optional[int] = None,
        deadline: Optional[RunDeadline] = None,
    ):
        self.db = db_session
        self.store = StateStore(db_session)
        self.gateway = gateway
        self._fixed_now = to_utc(now) if now else None
        self.batch_size = batch_size or settings.DELIVERY_BATCH_SIZE
        self.deadline = deadline or RunDeadline.from_settings()

    def _now(self) -> datetime:
        return self._fixed_now or utc_now()

    async def deliver_pending(self) -> DeliveryResult:
        result = DeliveryResult()

        # Count/fetch faults are fatal for the pass and propagate to the trigger
        result.total_pending = self.store.count_pending()
        if result.total_pending == 0:
            logger.info("No pending notifications to deliver")
            return result

        logger.info(
            "Starting notification delivery pass",
            total_pending=result.total_pending,
            batch_size=self.batch_size,
        )

        for batch in self.store.iter_pending_batches(self.batch_size):
            result.batches += 1
            for notification in batch:
                outcome = await self._deliver_one(notification)
                result.processed += 1
                result.record(outcome)

            logger.info(
                "Delivery batch processed",
                batch=result.batches,
                batch_len=len(batch),
                sent=result.sent,
                failed=result.failed,
                skipped_no_token=result.skipped_no_token,
            )

            if len(batch) == self.batch_size and self.deadline.expired():
                result.completed = False
                logger.warning(
                    "Delivery pass stopped at batch boundary: time budget exhausted",
                    processed=result.processed,
                    total_pending=result.total_pending,
                )
                break

        logger.info(
            "Notification delivery pass finished",
            processed=result.processed,
            sent=result.sent,
            failed=result.failed,
            skipped_no_token=result.skipped_no_token,
            completed=result.completed,
        )
        return result

    async def _deliver_one(self, notification: PendingNotification) -> DeliveryOutcome:
        try:
            user = self.store.get_user_contact(notification.user_id)
        except Exception as e:
            self.db.rollback()
            logger.error(
                "Failed to resolve push token",
                notification_id=notification.id,
                user_id=notification.user_id,
                error=str(e),
            )
            return self._failed(notification, str(e), "token_lookup_failed")

        if user is None or not user.fcm_token:
            logger.debug(
                "No push token for user, leaving notification pending",
                notification_id=notification.id,
                user_id=notification.user_id,
            )
            return DeliveryOutcome(
                notification_id=notification.id,
                user_id=notification.user_id,
                status=DeliveryStatus.SKIPPED_NO_TOKEN,
            )

        message = PushMessage(
            token=user.fcm_token,
            title=notification.title,
            body=notification.message,
            data={"notificationId": notification.id, "type": notification.type},
            hints=presentation_for(notification.type, notification.priority),
        )

        try:
            message_id = await self.gateway.send(message)
        except PushDeliveryError as e:
            logger.warning(
                "Push dispatch failed",
                notification_id=notification.id,
                user_id=notification.user_id,
                error_code=e.error_code,
                retryable=e.retryable,
                error=e.message,
            )
            return self._failed(
                notification, e.message, e.error_code, retryable=e.retryable
            )
        except Exception as e:
            logger.error(
                "Unexpected error dispatching push",
                notification_id=notification.id,
                user_id=notification.user_id,
                error=str(e),
            )
            return self._failed(notification, str(e), "delivery_failed")

        try:
            self.store.mark_notification_sent(notification.id, self._now())
        except Exception as e:
            # The push went out but the record stays pending; the next pass resends it
            logger.error(
                "Push sent but marking notification sent failed",
                notification_id=notification.id,
                message_id=message_id,
                error=str(e),
            )
            return self._failed(notification, str(e), "commit_failed", message_id)

        self.store.record_analytics_event(
            user_id=notification.user_id,
            notification_id=notification.id,
            action=AnalyticsAction.SENT,
            timestamp=self._now(),
            metadata={"messageId": message_id, "type": notification.type},
        )
        return DeliveryOutcome(
            notification_id=notification.id,
            user_id=notification.user_id,
            status=DeliveryStatus.SENT,
            message_id=message_id,
        )

    def _failed(
        self,
        notification: PendingNotification,
        error: str,
        error_code: str,
        message_id: Optional[str] = None,
        retryable: bool = True,
    ) -> DeliveryOutcome:
        metadata = {
            "error": error,
            "errorCode": error_code,
            "retryable": retryable,
            "type": notification.type,
        }
        if message_id:
            metadata["messageId"] = message_id
        self.store.record_analytics_event(
            user_id=notification.user_id,
            notification_id=notification.id,
            action=AnalyticsAction.FAILED,
            timestamp=self._now(),
            metadata=metadata,
        )
        return DeliveryOutcome(
            notification_id=notification.id,
            user_id=notification.user_id,
            status=DeliveryStatus.FAILED,
            message_id=message_id,
            error=error,
            error_code=error_code,
        )
