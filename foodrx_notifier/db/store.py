"""
Query/insert/update access to the five collections the pipeline works on:
users, pantry_items, user_trackers / tracker_progress, notifications and
notification_analytics.

The store holds no business rules. It converts ORM rows into plain records at
the boundary, and converts faults at batch-fetch boundaries into
``StoreConnectivityError`` so the engines can tell a dead store apart from a
bad row.
"""

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy import Select, and_, func, select, update
from sqlalchemy.exc import (
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
    TimeoutError as PoolTimeoutError,
)
from sqlalchemy.orm import Session

from foodrx_notifier.db.models import (
    AnalyticsAction,
    Notification,
    NotificationAnalytics,
    PantryItem,
    TrackerProgress,
    User,
    UserTracker,
)
from foodrx_notifier.utils.errors import StoreConnectivityError
from foodrx_notifier.utils.logging import get_logger

logger = get_logger()

CONNECTIVITY_ERRORS = (OperationalError, InterfaceError, PoolTimeoutError)


@dataclass(frozen=True)
class UserRecord:
    id: str
    name: Optional[str]
    fcm_token: Optional[str]


@dataclass(frozen=True)
class PantryItemRecord:
    id: str
    user_id: str
    name: str
    expiry_date: datetime


@dataclass(frozen=True)
class TrackerRecord:
    id: str
    user_id: str
    name: str
    category: Optional[str]
    goal_value: float
    current_value: float
    is_weekly_goal: bool
    unit: Optional[str]
    diet_type: Optional[str]


@dataclass(frozen=True)
class PendingNotification:
    id: str
    user_id: str
    type: str
    title: str
    message: str
    priority: Optional[str]
    created_at: datetime


class StateStore:
    def __init__(self, db_session: Session):
        self.db = db_session

    # ------------------------------------------------------------------ #
    # users
    # ------------------------------------------------------------------ #

    def fetch_user_page(
        self, after_id: Optional[str], limit: int
    ) -> List[UserRecord]:
        stmt = select(User.id, User.name, User.fcm_token).order_by(User.id).limit(limit)
        if after_id is not None:
            stmt = stmt.where(User.id > after_id)

        rows = self._fetch_batch(stmt, "users")
        return [UserRecord(id=r.id, name=r.name, fcm_token=r.fcm_token) for r in rows]

    def iter_user_pages(self, batch_size: int) -> Iterator[List[UserRecord]]:
        """
        Lazily yield the user population in id order, one page at a time.

        Pages are keyed on the last id seen, so users inserted or deleted
        mid-scan never shift a page boundary. A page shorter than
        ``batch_size`` ends the stream without another round-trip.
        """
        last_id = None
        while True:
            page = self.fetch_user_page(last_id, batch_size)
            if not page:
                return
            yield page
            if len(page) < batch_size:
                return
            last_id = page[-1].id

    def get_user_contact(self, user_id: str) -> Optional[UserRecord]:
        """Point lookup projecting only what delivery needs."""
        row = self.db.execute(
            select(User.id, User.name, User.fcm_token).where(User.id == user_id)
        ).first()
        if row is None:
            return None
        return UserRecord(id=row.id, name=row.name, fcm_token=row.fcm_token)

    # ------------------------------------------------------------------ #
    # pantry_items / tracker_progress reads
    # ------------------------------------------------------------------ #

    def find_expiring_items(
        self, user_id: str, start: datetime, end: datetime
    ) -> List[PantryItemRecord]:
        """Items whose expiry falls in the inclusive window [start, end]."""
        items = self.db.scalars(
            select(PantryItem)
            .where(
                and_(
                    PantryItem.user_id == user_id,
                    PantryItem.expiry_date.isnot(None),
                    PantryItem.expiry_date >= start,
                    PantryItem.expiry_date <= end,
                )
            )
            .order_by(PantryItem.expiry_date, PantryItem.name)
        ).all()
        return [
            PantryItemRecord(
                id=item.id,
                user_id=item.user_id,
                name=item.name,
                expiry_date=item.expiry_date,
            )
            for item in items
        ]

    def has_progress_between(
        self, user_id: str, start: datetime, end: datetime
    ) -> bool:
        """True when any progress entry has start <= progress_date < end."""
        found = self.db.execute(
            select(TrackerProgress.id)
            .where(
                and_(
                    TrackerProgress.user_id == user_id,
                    TrackerProgress.progress_date >= start,
                    TrackerProgress.progress_date < end,
                )
            )
            .limit(1)
        ).first()
        return found is not None

    # ------------------------------------------------------------------ #
    # notifications
    # ------------------------------------------------------------------ #

    def find_notification_since(
        self, user_id: str, notification_type: str, since: datetime
    ) -> Optional[Notification]:
        return self.db.scalars(
            select(Notification)
            .where(
                and_(
                    Notification.user_id == user_id,
                    Notification.type == notification_type,
                    Notification.created_at >= since,
                )
            )
            .order_by(Notification.created_at)
            .limit(1)
        ).first()

    def insert_notification(
        self,
        user_id: str,
        notification_type: str,
        title: str,
        message: str,
        created_at: datetime,
        priority: Optional[str] = None,
        digest_key: Optional[str] = None,
    ) -> str:
        notification = Notification(
            user_id=user_id,
            type=notification_type,
            title=title,
            message=message,
            priority=priority,
            created_at=created_at,
            digest_key=digest_key,
        )
        self.db.add(notification)
        self._commit()
        return notification.id

    def update_notification_content(
        self, notification_id: str, title: str, message: str, updated_at: datetime
    ) -> int:
        result = self.db.execute(
            update(Notification)
            .where(Notification.id == notification_id)
            .values(title=title, message=message, updated_at=updated_at)
        )
        self._commit()
        return result.rowcount

    def count_pending(self) -> int:
        stmt = select(func.count(Notification.id)).where(Notification.sent_at.is_(None))
        try:
            return int(self.db.execute(stmt).scalar_one())
        except CONNECTIVITY_ERRORS as e:
            self.db.rollback()
            raise StoreConnectivityError(
                f"Failed to count pending notifications: {e}"
            ) from e

    def fetch_pending_batch(
        self, after_id: Optional[str], limit: int
    ) -> List[PendingNotification]:
        stmt = (
            select(Notification)
            .where(Notification.sent_at.is_(None))
            .order_by(Notification.id)
            .limit(limit)
        )
        if after_id is not None:
            stmt = stmt.where(Notification.id > after_id)

        try:
            rows = self.db.scalars(stmt).all()
        except CONNECTIVITY_ERRORS as e:
            self.db.rollback()
            raise StoreConnectivityError(
                f"Failed to fetch pending notifications batch: {e}"
            ) from e

        return [
            PendingNotification(
                id=n.id,
                user_id=n.user_id,
                type=n.type,
                title=n.title,
                message=n.message,
                priority=n.priority,
                created_at=n.created_at,
            )
            for n in rows
        ]

    def iter_pending_batches(
        self, batch_size: int
    ) -> Iterator[List[PendingNotification]]:
        """
        Lazily yield pending notifications in id order.

        Keyed on the last id seen rather than re-querying from the top, so
        records that stay pending (failed or skipped) are visited once per
        pass instead of being fetched again forever.
        """
        last_id = None
        while True:
            batch = self.fetch_pending_batch(last_id, batch_size)
            if not batch:
                return
            yield batch
            if len(batch) < batch_size:
                return
            last_id = batch[-1].id

    def mark_notification_sent(self, notification_id: str, sent_at: datetime) -> bool:
        """Single-row commit; only ever moves a record from pending to sent."""
        result = self.db.execute(
            update(Notification)
            .where(
                and_(
                    Notification.id == notification_id,
                    Notification.sent_at.is_(None),
                )
            )
            .values(sent_at=sent_at)
        )
        self._commit()
        return result.rowcount == 1

    # ------------------------------------------------------------------ #
    # notification_analytics (write-only)
    # ------------------------------------------------------------------ #

    def record_analytics_event(
        self,
        user_id: str,
        notification_id: str,
        action: AnalyticsAction,
        timestamp: datetime,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        try:
            self.db.add(
                NotificationAnalytics(
                    user_id=user_id,
                    notification_id=notification_id,
                    action=action,
                    timestamp=timestamp,
                    event_metadata=json.dumps(metadata) if metadata else None,
                )
            )
            self._commit()
        except SQLAlchemyError as e:
            # Audit trail only; a lost event must not change a delivery outcome
            logger.warning(
                "Failed to record notification analytics event",
                notification_id=notification_id,
                action=action.value,
                error=str(e),
            )

    # ------------------------------------------------------------------ #
    # user_trackers / tracker_progress writes
    # ------------------------------------------------------------------ #

    def find_trackers(self, user_id: str, is_weekly: bool) -> List[TrackerRecord]:
        trackers = self.db.scalars(
            select(UserTracker)
            .where(
                and_(
                    UserTracker.user_id == user_id,
                    UserTracker.is_weekly_goal == is_weekly,
                )
            )
            .order_by(UserTracker.id)
        ).all()
        return [
            TrackerRecord(
                id=str(t.id),
                user_id=t.user_id,
                name=t.name,
                category=t.category,
                goal_value=t.goal_value,
                current_value=t.current_value or 0.0,
                is_weekly_goal=t.is_weekly_goal,
                unit=t.unit,
                diet_type=t.diet_type,
            )
            for t in trackers
        ]

    def insert_progress_records(self, records: List[TrackerProgress]) -> int:
        """All-or-nothing insert of one user's snapshots."""
        if not records:
            return 0
        self.db.add_all(records)
        self._commit()
        return len(records)

    def reset_trackers(self, user_id: str, is_weekly: bool, now: datetime) -> int:
        result = self.db.execute(
            update(UserTracker)
            .where(
                and_(
                    UserTracker.user_id == user_id,
                    UserTracker.is_weekly_goal == is_weekly,
                )
            )
            .values(current_value=0.0, last_updated=now)
        )
        self._commit()
        return result.rowcount

    # ------------------------------------------------------------------ #
    # helpers
    # ------------------------------------------------------------------ #

    def _fetch_batch(self, stmt: Select, collection: str):
        try:
            return self.db.execute(stmt).all()
        except CONNECTIVITY_ERRORS as e:
            self.db.rollback()
            raise StoreConnectivityError(
                f"Failed to fetch {collection} batch: {e}"
            ) from e

    def _commit(self) -> None:
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
