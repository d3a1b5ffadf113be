from typing import Optional
from datetime import datetime
import enum
import uuid

from sqlalchemy import (
    String,
    Boolean,
    Float,
    Text,
    ForeignKey,
    Enum,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from foodrx_notifier.db.custom_types import FlexibleDateTime
from foodrx_notifier.utils.datetime_utils import utc_now


class Base(DeclarativeBase):
    pass


# Enums
class PeriodType(enum.Enum):
    DAILY = "daily"
    WEEKLY = "weekly"


class AnalyticsAction(enum.Enum):
    SENT = "sent"
    FAILED = "failed"


def new_id() -> str:
    return str(uuid.uuid4())


class CreatedAtMixin:
    """Mixin for the insertion timestamp"""

    created_at: Mapped[datetime] = mapped_column(
        FlexibleDateTime, default=utc_now, nullable=False
    )


# Models
class User(Base, CreatedAtMixin):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[Optional[str]] = mapped_column(String(200))
    # Refreshed by the mobile client; absence means the user is undeliverable
    fcm_token: Mapped[Optional[str]] = mapped_column(String(512))


class PantryItem(Base, CreatedAtMixin):
    __tablename__ = "pantry_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    expiry_date: Mapped[Optional[datetime]] = mapped_column(FlexibleDateTime)

    __table_args__ = (
        Index("idx_pantry_items_user_expiry", "user_id", "expiry_date"),
    )


class UserTracker(Base, CreatedAtMixin):
    __tablename__ = "user_trackers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(100))
    goal_value: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    current_value: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    is_weekly_goal: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    unit: Mapped[Optional[str]] = mapped_column(String(50))
    diet_type: Mapped[Optional[str]] = mapped_column(String(100))
    last_updated: Mapped[Optional[datetime]] = mapped_column(FlexibleDateTime)

    __table_args__ = (
        Index("idx_user_trackers_user_weekly", "user_id", "is_weekly_goal"),
    )


class TrackerProgress(Base, CreatedAtMixin):
    """Append-only snapshot of one tracker for one closed period."""

    __tablename__ = "tracker_progress"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    tracker_id: Mapped[str] = mapped_column(String(36), nullable=False)
    tracker_name: Mapped[str] = mapped_column(String(200), nullable=False)
    tracker_category: Mapped[Optional[str]] = mapped_column(String(100))
    target_value: Mapped[float] = mapped_column(Float, nullable=False)
    achieved_value: Mapped[float] = mapped_column(Float, nullable=False)
    # End of the period being closed, not the time the snapshot was taken
    progress_date: Mapped[datetime] = mapped_column(FlexibleDateTime, nullable=False)
    period_type: Mapped[PeriodType] = mapped_column(Enum(PeriodType), nullable=False)
    diet_type: Mapped[Optional[str]] = mapped_column(String(100))
    unit: Mapped[Optional[str]] = mapped_column(String(50))

    __table_args__ = (
        CheckConstraint("achieved_value > 0", name="ck_tracker_progress_achieved"),
        Index("idx_tracker_progress_user_date", "user_id", "progress_date"),
    )


class Notification(Base, CreatedAtMixin):
    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    # No foreign key: admin calls may target users that do not exist (yet)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[Optional[str]] = mapped_column(String(20))
    updated_at: Mapped[Optional[datetime]] = mapped_column(FlexibleDateTime)
    # NULL while pending; set exactly once on successful delivery
    sent_at: Mapped[Optional[datetime]] = mapped_column(FlexibleDateTime)
    # "<user>:<type>:<local date>" for once-a-day types, NULL otherwise
    digest_key: Mapped[Optional[str]] = mapped_column(String(120), unique=True)

    __table_args__ = (
        Index("idx_notifications_pending", "sent_at", "id"),
        Index("idx_notifications_user_type_created", "user_id", "type", "created_at"),
    )


class NotificationAnalytics(Base):
    __tablename__ = "notification_analytics"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    notification_id: Mapped[str] = mapped_column(String(36), nullable=False)
    action: Mapped[AnalyticsAction] = mapped_column(
        Enum(AnalyticsAction), nullable=False
    )
    timestamp: Mapped[datetime] = mapped_column(
        FlexibleDateTime, default=utc_now, nullable=False
    )
    # JSON stored as Text
    event_metadata: Mapped[Optional[str]] = mapped_column(Text)

    __table_args__ = (
        Index("idx_notification_analytics_notification", "notification_id"),
    )
