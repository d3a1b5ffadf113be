import enum
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Dict, Optional, Union
from zoneinfo import ZoneInfo

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from foodrx_notifier.config.settings import settings
from foodrx_notifier.db.store import StateStore, UserRecord
from foodrx_notifier.schemas.notification_schemas import (
    GenerationResult,
    GenerationTrigger,
)
from foodrx_notifier.services.notifications.digest import (
    DigestContent,
    compose_expiring_digest,
    compose_tracker_reminder,
)
from foodrx_notifier.services.notifications.presentation import NotificationKind
from foodrx_notifier.utils.datetime_utils import (
    local_date,
    notification_zone,
    start_of_local_day,
    start_of_next_local_day,
    to_utc,
    utc_now,
)
from foodrx_notifier.utils.deadline import RunDeadline
from foodrx_notifier.utils.errors import BusinessLogicError
from foodrx_notifier.utils.logging import get_logger

logger = get_logger()


class UserOutcome(enum.Enum):
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"


class NotificationGenerationService:
    """
    Scans the user population page by page and writes at most one
    notification per user, per type, per local calendar day.

    Re-running a pass on the same day is safe: an expiring-ingredient digest
    that already exists is rewritten in place, a tracker reminder that
    already exists is left alone.
    """

    def __init__(
        self,
        db_session: Session,
        now: Optional[datetime] = None,
        batch_size: Optional[int] = None,
        deadline: Optional[RunDeadline] = None,
        zone: Optional[ZoneInfo] = None,
    ):
        self.db = db_session
        self.store = StateStore(db_session)
        self.now = to_utc(now) if now else utc_now()
        self.batch_size = batch_size or settings.GENERATION_BATCH_SIZE
        self.deadline = deadline or RunDeadline.from_settings()
        self.zone = zone or notification_zone()

        self.start_of_today = start_of_local_day(self.now, self.zone)
        self.start_of_tomorrow = start_of_next_local_day(self.now, self.zone)

    async def generate(self, trigger: Union[str, GenerationTrigger]) -> GenerationResult:
        try:
            trigger = GenerationTrigger(trigger)
        except ValueError:
            raise BusinessLogicError(
                f"Unknown generation trigger: {trigger}", error_code="INVALID_TRIGGER"
            )

        handlers: Dict[
            GenerationTrigger, Callable[[UserRecord], Awaitable[UserOutcome]]
        ] = {
            GenerationTrigger.EXPIRING_INGREDIENTS: self._process_expiring_ingredients,
            GenerationTrigger.TRACKER_REMINDER: self._process_tracker_reminder,
        }
        handler = handlers[trigger]
        result = GenerationResult(trigger=trigger)

        logger.info(
            "Starting notification generation pass",
            trigger=trigger.value,
            batch_size=self.batch_size,
            start_of_today=self.start_of_today.isoformat(),
        )

        # Batch-fetch failures propagate: the whole pass is retried later
        for page in self.store.iter_user_pages(self.batch_size):
            for user in page:
                result.users_scanned += 1
                try:
                    outcome = await handler(user)
                except Exception as e:
                    self.db.rollback()
                    result.users_failed += 1
                    logger.error(
                        "Failed to evaluate user for notification",
                        trigger=trigger.value,
                        user_id=user.id,
                        error=str(e),
                    )
                    continue

                if outcome is UserOutcome.CREATED:
                    result.notifications_created += 1
                elif outcome is UserOutcome.UPDATED:
                    result.notifications_updated += 1

            if len(page) == self.batch_size and self.deadline.expired():
                result.completed = False
                logger.warning(
                    "Generation pass stopped at page boundary: time budget exhausted",
                    trigger=trigger.value,
                    users_scanned=result.users_scanned,
                )
                break

        logger.info(
            "Notification generation pass finished",
            trigger=trigger.value,
            users_scanned=result.users_scanned,
            notifications_created=result.notifications_created,
            notifications_updated=result.notifications_updated,
            users_failed=result.users_failed,
            completed=result.completed,
        )
        return result

    async def _process_expiring_ingredients(self, user: UserRecord) -> UserOutcome:
        window_end = self.now + timedelta(days=settings.EXPIRY_WINDOW_DAYS)
        items = self.store.find_expiring_items(user.id, self.now, window_end)
        if not items:
            return UserOutcome.SKIPPED

        digest = compose_expiring_digest(
            [item.name for item in items], max_names=settings.DIGEST_MAX_NAMES
        )
        return self._write_daily_digest(
            user.id, NotificationKind.EXPIRING_INGREDIENT.value, digest
        )

    async def _process_tracker_reminder(self, user: UserRecord) -> UserOutcome:
        kind = NotificationKind.TRACKER_REMINDER.value

        if self.store.has_progress_between(
            user.id, self.start_of_today, self.start_of_tomorrow
        ):
            logger.debug("User has logged today, skipping reminder", user_id=user.id)
            return UserOutcome.SKIPPED

        if self.store.find_notification_since(user.id, kind, self.start_of_today):
            logger.debug("Reminder already created today", user_id=user.id)
            return UserOutcome.SKIPPED

        content = compose_tracker_reminder(user.name)
        try:
            self.store.insert_notification(
                user_id=user.id,
                notification_type=kind,
                title=content.title,
                message=content.message,
                created_at=self.now,
                digest_key=self._daily_key(user.id, kind),
            )
        except IntegrityError:
            # Another pass wrote today's reminder between the lookup and the insert
            return UserOutcome.SKIPPED
        return UserOutcome.CREATED

    def _write_daily_digest(
        self, user_id: str, notification_type: str, digest: DigestContent
    ) -> UserOutcome:
        existing = self.store.find_notification_since(
            user_id, notification_type, self.start_of_today
        )
        if existing is not None:
            self.store.update_notification_content(
                existing.id, digest.title, digest.message, updated_at=self.now
            )
            return UserOutcome.UPDATED

        try:
            self.store.insert_notification(
                user_id=user_id,
                notification_type=notification_type,
                title=digest.title,
                message=digest.message,
                created_at=self.now,
                digest_key=self._daily_key(user_id, notification_type),
            )
        except IntegrityError:
            existing = self.store.find_notification_since(
                user_id, notification_type, self.start_of_today
            )
            if existing is None:
                raise
            self.store.update_notification_content(
                existing.id, digest.title, digest.message, updated_at=self.now
            )
            return UserOutcome.UPDATED
        return UserOutcome.CREATED

    def _daily_key(self, user_id: str, notification_type: str) -> str:
        return f"{user_id}:{notification_type}:{local_date(self.now, self.zone).isoformat()}"
