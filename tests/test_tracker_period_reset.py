import pytest
from datetime import datetime, timezone
from unittest.mock import Mock
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from foodrx_notifier.db.models import PeriodType, TrackerProgress, UserTracker
from foodrx_notifier.services.trackers.period_reset import (
    TrackerPeriodResetService,
    compute_period_end,
)
from foodrx_notifier.utils.deadline import RunDeadline
from foodrx_notifier.utils.errors import BusinessLogicError

NEW_YORK = ZoneInfo("America/New_York")


def _service(db_session, now, **kwargs):
    kwargs.setdefault("deadline", RunDeadline.unlimited())
    kwargs.setdefault("zone", NEW_YORK)
    return TrackerPeriodResetService(db_session, now=now, **kwargs)


def _progress_for(db_session, user_id):
    return db_session.scalars(
        select(TrackerProgress).where(TrackerProgress.user_id == user_id)
    ).all()


class TestPeriodEnd:
    """Closing timestamp of the period being snapshotted."""

    def test_daily_closes_previous_local_day(self):
        # Monday 2025-06-23 10:00 EDT
        now = datetime(2025, 6, 23, 14, 0, tzinfo=timezone.utc)

        end = compute_period_end(PeriodType.DAILY, now, NEW_YORK)

        assert end == datetime(2025, 6, 22, 23, 59, 59, 999000, tzinfo=NEW_YORK)
        assert end == datetime(2025, 6, 23, 3, 59, 59, 999000, tzinfo=timezone.utc)

    def test_daily_uses_local_calendar_not_utc(self):
        # 02:00 UTC on the 23rd is still the evening of the 22nd in New York
        now = datetime(2025, 6, 23, 2, 0, tzinfo=timezone.utc)

        end = compute_period_end(PeriodType.DAILY, now, NEW_YORK)

        assert end.astimezone(NEW_YORK).date().isoformat() == "2025-06-21"

    def test_weekly_run_on_sunday_closes_saturday(self):
        # Sunday 2025-06-22 00:00 EDT, the weekly beat slot
        now = datetime(2025, 6, 22, 4, 0, tzinfo=timezone.utc)

        end = compute_period_end(PeriodType.WEEKLY, now, NEW_YORK, week_end_weekday=5)

        assert end == datetime(2025, 6, 21, 23, 59, 59, 999000, tzinfo=NEW_YORK)

    def test_weekly_run_on_saturday_closes_previous_saturday(self):
        now = datetime(2025, 6, 21, 16, 0, tzinfo=timezone.utc)

        end = compute_period_end(PeriodType.WEEKLY, now, NEW_YORK, week_end_weekday=5)

        assert end.astimezone(NEW_YORK).date().isoformat() == "2025-06-14"

    def test_weekly_midweek_run(self):
        # Monday 2025-06-23
        now = datetime(2025, 6, 23, 14, 0, tzinfo=timezone.utc)

        end = compute_period_end(PeriodType.WEEKLY, now, NEW_YORK, week_end_weekday=6)

        assert end.astimezone(NEW_YORK).date().isoformat() == "2025-06-22"


class TestResetPeriod:
    """Snapshot non-zero counters, then zero every matching counter."""

    @pytest.mark.asyncio
    async def test_daily_reset_snapshots_then_zeroes(
        self, db_session, fixed_now, make_user, make_tracker
    ):
        user = make_user()
        tracker = make_tracker(user, current_value=5, goal_value=10)

        result = await _service(db_session, fixed_now).reset_period(PeriodType.DAILY)

        assert result.users_processed == 1
        assert result.progress_records_created == 1
        assert result.trackers_reset == 1

        [snapshot] = _progress_for(db_session, user.id)
        assert snapshot.achieved_value == 5
        assert snapshot.target_value == 10
        assert snapshot.period_type == PeriodType.DAILY
        assert snapshot.tracker_id == tracker.id
        assert snapshot.tracker_name == "Vegetables"
        assert snapshot.tracker_category == "food_group"
        assert snapshot.unit == "servings"
        assert snapshot.diet_type == "dash"
        assert snapshot.progress_date == datetime(
            2025, 6, 23, 3, 59, 59, 999000, tzinfo=timezone.utc
        )

        db_session.expire_all()
        reset = db_session.get(UserTracker, tracker.id)
        assert reset.current_value == 0
        assert reset.goal_value == 10
        assert reset.last_updated == fixed_now

    @pytest.mark.asyncio
    async def test_zero_counter_produces_no_snapshot(
        self, db_session, fixed_now, make_user, make_tracker
    ):
        user = make_user()
        make_tracker(user, current_value=0, goal_value=10)

        result = await _service(db_session, fixed_now).reset_period("daily")

        assert result.progress_records_created == 0
        assert _progress_for(db_session, user.id) == []

    @pytest.mark.asyncio
    async def test_weekly_reset_leaves_daily_trackers_alone(
        self, db_session, fixed_now, make_user, make_tracker
    ):
        user = make_user()
        daily = make_tracker(user, name="Water", current_value=3, is_weekly_goal=False)
        weekly = make_tracker(user, name="Fish", current_value=2, is_weekly_goal=True)

        result = await _service(db_session, fixed_now).reset_period(PeriodType.WEEKLY)

        assert result.trackers_reset == 1
        [snapshot] = _progress_for(db_session, user.id)
        assert snapshot.tracker_name == "Fish"
        assert snapshot.period_type == PeriodType.WEEKLY

        db_session.expire_all()
        assert db_session.get(UserTracker, daily.id).current_value == 3
        assert db_session.get(UserTracker, weekly.id).current_value == 0

    @pytest.mark.asyncio
    async def test_snapshot_failure_still_resets_counters(
        self, db_session, fixed_now, make_user, make_tracker
    ):
        user = make_user()
        tracker = make_tracker(user, current_value=4)

        service = _service(db_session, fixed_now)
        service.store.insert_progress_records = Mock(
            side_effect=IntegrityError("INSERT INTO tracker_progress", {}, Exception("dup"))
        )

        result = await service.reset_period("daily")

        assert result.snapshot_failures == 1
        assert result.users_processed == 1
        assert result.users_failed == 0
        db_session.expire_all()
        assert db_session.get(UserTracker, tracker.id).current_value == 0

    @pytest.mark.asyncio
    async def test_reset_failure_for_one_user_does_not_block_others(
        self, db_session, fixed_now, make_user, make_tracker
    ):
        broken = make_user(name="Broken")
        healthy = make_user(name="Healthy")
        make_tracker(broken, current_value=1)
        healthy_tracker = make_tracker(healthy, current_value=1)

        service = _service(db_session, fixed_now)
        real_reset = service.store.reset_trackers

        def fail_for_broken(user_id, is_weekly, now):
            if user_id == broken.id:
                raise RuntimeError("write conflict")
            return real_reset(user_id, is_weekly, now)

        service.store.reset_trackers = Mock(side_effect=fail_for_broken)

        result = await service.reset_period("daily")

        assert result.users_failed == 1
        assert result.users_processed == 1
        db_session.expire_all()
        assert db_session.get(UserTracker, healthy_tracker.id).current_value == 0

    @pytest.mark.asyncio
    async def test_users_without_trackers_are_counted(
        self, db_session, fixed_now, make_user
    ):
        make_user()
        make_user()

        result = await _service(db_session, fixed_now).reset_period("daily")

        assert result.users_processed == 2
        assert result.trackers_reset == 0

    @pytest.mark.asyncio
    async def test_unknown_period_is_rejected(self, db_session, fixed_now):
        with pytest.raises(BusinessLogicError):
            await _service(db_session, fixed_now).reset_period("monthly")
