from datetime import datetime, timedelta
from typing import List, Optional, Union
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from foodrx_notifier.config.settings import settings
from foodrx_notifier.db.models import PeriodType, TrackerProgress
from foodrx_notifier.db.store import StateStore, TrackerRecord, UserRecord
from foodrx_notifier.schemas.tracker_schemas import ResetResult
from foodrx_notifier.utils.datetime_utils import (
    end_of_local_day,
    local_date,
    notification_zone,
    to_utc,
    utc_now,
)
from foodrx_notifier.utils.deadline import RunDeadline
from foodrx_notifier.utils.errors import BusinessLogicError
from foodrx_notifier.utils.logging import get_logger

logger = get_logger()


def compute_period_end(
    period_type: PeriodType,
    now: datetime,
    tz: ZoneInfo,
    week_end_weekday: int = 5,
) -> datetime:
    """
    Closing instant of the period a reset run snapshots, as aware UTC.

    Daily: 23:59:59.999 local on the previous calendar day.
    Weekly: 23:59:59.999 local on the most recent ``week_end_weekday``
    (Monday=0 ... Sunday=6) strictly before today, so a Sunday-morning run
    with the default Saturday week end closes the day before.
    """
    today = local_date(now, tz)
    if period_type == PeriodType.DAILY:
        return end_of_local_day(today - timedelta(days=1), tz)

    days_back = (today.weekday() - week_end_weekday - 1) % 7 + 1
    return end_of_local_day(today - timedelta(days=days_back), tz)


class TrackerPeriodResetService:
    """
    Closes a daily or weekly accumulation period for every user.

    For each user the non-zero counters are snapshotted into tracker_progress,
    then all matching counters are zeroed. The reset runs even when the
    snapshot insert fails: losing one period's history is preferred to a
    counter that never restarts.
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

    async def reset_period(self, period_type: Union[str, PeriodType]) -> ResetResult:
        try:
            period_type = PeriodType(period_type)
        except ValueError:
            raise BusinessLogicError(
                f"Unknown period type: {period_type}", error_code="INVALID_PERIOD"
            )

        progress_date = compute_period_end(
            period_type, self.now, self.zone, settings.WEEK_END_WEEKDAY
        )
        result = ResetResult(period_type=period_type, progress_date=progress_date)

        logger.info(
            "Starting tracker period reset",
            period_type=period_type.value,
            progress_date=progress_date.isoformat(),
        )

        for page in self.store.iter_user_pages(self.batch_size):
            for user in page:
                self._reset_user(user, period_type, progress_date, result)

            if len(page) == self.batch_size and self.deadline.expired():
                result.completed = False
                logger.warning(
                    "Period reset stopped at page boundary: time budget exhausted",
                    period_type=period_type.value,
                    users_processed=result.users_processed,
                )
                break

        logger.info(
            "Tracker period reset finished",
            period_type=period_type.value,
            users_processed=result.users_processed,
            users_failed=result.users_failed,
            progress_records_created=result.progress_records_created,
            trackers_reset=result.trackers_reset,
            snapshot_failures=result.snapshot_failures,
        )
        return result

    def _reset_user(
        self,
        user: UserRecord,
        period_type: PeriodType,
        progress_date: datetime,
        result: ResetResult,
    ) -> None:
        is_weekly = period_type == PeriodType.WEEKLY

        try:
            trackers = self.store.find_trackers(user.id, is_weekly)
        except Exception as e:
            self.db.rollback()
            result.users_failed += 1
            logger.error(
                "Failed to load trackers for reset",
                user_id=user.id,
                period_type=period_type.value,
                error=str(e),
            )
            return

        if not trackers:
            result.users_processed += 1
            return

        snapshots = self._build_snapshots(trackers, period_type, progress_date)
        try:
            result.progress_records_created += self.store.insert_progress_records(
                snapshots
            )
        except Exception as e:
            result.snapshot_failures += 1
            logger.error(
                "Failed to write progress snapshots, resetting counters anyway",
                user_id=user.id,
                period_type=period_type.value,
                snapshots=len(snapshots),
                error=str(e),
            )

        try:
            result.trackers_reset += self.store.reset_trackers(
                user.id, is_weekly, self.now
            )
        except Exception as e:
            result.users_failed += 1
            logger.error(
                "Failed to reset tracker counters",
                user_id=user.id,
                period_type=period_type.value,
                error=str(e),
            )
            return

        result.users_processed += 1

    @staticmethod
    def _build_snapshots(
        trackers: List[TrackerRecord],
        period_type: PeriodType,
        progress_date: datetime,
    ) -> List[TrackerProgress]:
        # Zero counters are not snapshotted
        return [
            TrackerProgress(
                user_id=tracker.user_id,
                tracker_id=tracker.id,
                tracker_name=tracker.name,
                tracker_category=tracker.category,
                target_value=tracker.goal_value,
                achieved_value=tracker.current_value,
                progress_date=progress_date,
                period_type=period_type,
                diet_type=tracker.diet_type,
                unit=tracker.unit,
            )
            for tracker in trackers
            if tracker.current_value > 0
        ]
