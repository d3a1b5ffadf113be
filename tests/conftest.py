import uuid
from datetime import datetime, timezone
from typing import Dict, Generator, List, Optional
from unittest.mock import Mock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from foodrx_notifier.db.models import (
    Base,
    Notification,
    PantryItem,
    TrackerProgress,
    PeriodType,
    User,
    UserTracker,
)
from foodrx_notifier.services.push_gateway import PushMessage
from foodrx_notifier.utils.errors import PushDeliveryError


# Test database setup
TEST_DATABASE_URL = "sqlite:///:memory:"

# Monday 2025-06-23, 10:00 in America/New_York (EDT, UTC-4)
FIXED_NOW = datetime(2025, 6, 23, 14, 0, tzinfo=timezone.utc)


@pytest.fixture
def test_engine():
    """Create a fresh in-memory database for each test."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(test_engine) -> Generator[Session, None, None]:
    """Create a database session for each test."""
    session_maker = sessionmaker(
        bind=test_engine, class_=Session, expire_on_commit=False
    )
    with session_maker() as session:
        yield session
        session.rollback()


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def mock_celery_task():
    """Mock Celery task for testing retry behavior."""
    mock_task = Mock()
    mock_task.request.retries = 0
    mock_task.max_retries = 3
    mock_task.retry = Mock(side_effect=Exception("Retry called"))
    return mock_task


class FakePushGateway:
    """Records every message; raises the configured error for listed tokens."""

    def __init__(self, failures: Optional[Dict[str, PushDeliveryError]] = None):
        self.failures = failures or {}
        self.sent: List[PushMessage] = []

    async def send(self, message: PushMessage) -> str:
        if message.token in self.failures:
            raise self.failures[message.token]
        self.sent.append(message)
        return f"projects/foodrx-test/messages/{len(self.sent)}"


@pytest.fixture
def push_gateway() -> FakePushGateway:
    return FakePushGateway()


# Test data factories
@pytest.fixture
def make_user(db_session: Session):
    def _make_user(
        name: Optional[str] = "Alex", fcm_token: Optional[str] = None
    ) -> User:
        user = User(id=str(uuid.uuid4()), name=name, fcm_token=fcm_token)
        db_session.add(user)
        db_session.commit()
        return user

    return _make_user


@pytest.fixture
def make_pantry_item(db_session: Session):
    def _make_pantry_item(user: User, name: str, expiry_date) -> PantryItem:
        item = PantryItem(user_id=user.id, name=name, expiry_date=expiry_date)
        db_session.add(item)
        db_session.commit()
        return item

    return _make_pantry_item


@pytest.fixture
def make_tracker(db_session: Session):
    def _make_tracker(
        user: User,
        name: str = "Vegetables",
        current_value: float = 0.0,
        goal_value: float = 10.0,
        is_weekly_goal: bool = False,
        category: Optional[str] = "food_group",
        unit: Optional[str] = "servings",
        diet_type: Optional[str] = "dash",
    ) -> UserTracker:
        tracker = UserTracker(
            user_id=user.id,
            name=name,
            category=category,
            goal_value=goal_value,
            current_value=current_value,
            is_weekly_goal=is_weekly_goal,
            unit=unit,
            diet_type=diet_type,
        )
        db_session.add(tracker)
        db_session.commit()
        return tracker

    return _make_tracker


@pytest.fixture
def make_progress(db_session: Session):
    def _make_progress(user: User, progress_date: datetime) -> TrackerProgress:
        progress = TrackerProgress(
            user_id=user.id,
            tracker_id=str(uuid.uuid4()),
            tracker_name="Vegetables",
            target_value=5.0,
            achieved_value=2.0,
            progress_date=progress_date,
            period_type=PeriodType.DAILY,
        )
        db_session.add(progress)
        db_session.commit()
        return progress

    return _make_progress


@pytest.fixture
def make_notification(db_session: Session):
    def _make_notification(
        user_id: str,
        notification_type: str = "admin",
        title: str = "Hello",
        message: str = "World",
        created_at: datetime = FIXED_NOW,
        sent_at: Optional[datetime] = None,
        priority: Optional[str] = None,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            type=notification_type,
            title=title,
            message=message,
            created_at=created_at,
            sent_at=sent_at,
            priority=priority,
        )
        db_session.add(notification)
        db_session.commit()
        return notification

    return _make_notification
