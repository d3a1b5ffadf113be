import pytest
from pydantic import ValidationError
from sqlalchemy import select

from foodrx_notifier.db.models import Notification
from foodrx_notifier.schemas.notification_schemas import AdminNotificationRequest
from foodrx_notifier.services.notifications.admin import AdminNotificationService


class TestAdminNotificationRequest:
    """Request validation for ad hoc notifications."""

    def test_accepts_camel_case_payload(self):
        request = AdminNotificationRequest.model_validate(
            {"userIds": ["u1", "u2", "u1", " "], "title": " Hi ", "message": "Body"}
        )

        assert request.recipients() == ["u1", "u2"]
        assert request.title == "Hi"
        assert request.type == "admin"

    def test_single_user_id(self):
        request = AdminNotificationRequest(user_id="u1", title="Hi", message="Body")

        assert request.recipients() == ["u1"]

    def test_recipient_is_required(self):
        with pytest.raises(ValidationError):
            AdminNotificationRequest(title="Hi", message="Body")

    @pytest.mark.parametrize("field", ["title", "message"])
    def test_blank_content_is_rejected(self, field):
        payload = {"user_id": "u1", "title": "Hi", "message": "Body", field: "  "}

        with pytest.raises(ValidationError):
            AdminNotificationRequest(**payload)

    def test_unknown_priority_is_rejected(self):
        with pytest.raises(ValidationError):
            AdminNotificationRequest(
                user_id="u1", title="Hi", message="Body", priority="urgent"
            )


class TestAdminNotificationService:
    def test_creates_one_pending_record_per_recipient(self, db_session, fixed_now):
        request = AdminNotificationRequest(
            user_ids=["u1", "u2", "u2"],
            title="Maintenance",
            message="The app is down tonight",
            type="education",
            priority="High",
        )

        result = AdminNotificationService(db_session, now=fixed_now).create(request)

        assert result.notifications_created == 2
        rows = db_session.scalars(select(Notification)).all()
        assert {row.user_id for row in rows} == {"u1", "u2"}
        assert all(row.sent_at is None for row in rows)
        assert all(row.priority == "high" for row in rows)
        assert all(row.type == "education" for row in rows)
        assert sorted(result.notification_ids) == sorted(row.id for row in rows)

    def test_repeat_calls_are_not_deduplicated(self, db_session, fixed_now):
        request = AdminNotificationRequest(user_id="u1", title="Hi", message="Body")
        service = AdminNotificationService(db_session, now=fixed_now)

        service.create(request)
        service.create(request)

        assert len(db_session.scalars(select(Notification)).all()) == 2
