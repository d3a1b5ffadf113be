import pytest
from datetime import timedelta
from unittest.mock import Mock

from foodrx_notifier.services.trigger_dispatcher import TriggerKind, run_trigger
from foodrx_notifier.utils.errors import BusinessLogicError


class TestRunTrigger:
    """Discriminator routing and the shared result envelope."""

    @pytest.mark.asyncio
    async def test_test_trigger_does_not_touch_store_or_gateway(self):
        db_session = Mock()
        gateway_factory = Mock()

        result = await run_trigger("test", db_session, gateway_factory=gateway_factory)

        assert result.status == "success"
        assert result.trigger == TriggerKind.TEST
        assert db_session.method_calls == []
        gateway_factory.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_kind_is_rejected(self):
        with pytest.raises(BusinessLogicError) as exc_info:
            await run_trigger("monthly-reset", Mock())

        assert exc_info.value.error_code == "INVALID_TRIGGER"

    @pytest.mark.asyncio
    async def test_generation_trigger_reports_counts(
        self, db_session, fixed_now, make_user, make_pantry_item
    ):
        user = make_user()
        make_pantry_item(user, "Milk", fixed_now + timedelta(days=1))

        result = await run_trigger(
            TriggerKind.EXPIRING_INGREDIENTS, db_session, now=fixed_now
        )

        assert result.message == "Created 1 notifications"
        assert result.data["notificationsCreated"] == 1
        assert result.data["trigger"] == "expiring_ingredients"

    @pytest.mark.asyncio
    async def test_delivery_trigger_builds_gateway_lazily(
        self, db_session, fixed_now, push_gateway, make_user, make_notification
    ):
        user = make_user(fcm_token="token-1")
        make_notification(user.id)
        gateway_factory = Mock(return_value=push_gateway)

        result = await run_trigger(
            "scheduled-delivery", db_session, gateway_factory=gateway_factory, now=fixed_now
        )

        gateway_factory.assert_called_once_with()
        assert result.data["sent"] == 1
        assert result.data["skippedNoToken"] == 0
        assert "results" not in result.data

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "kind, period", [("daily-reset", "daily"), ("weekly-reset", "weekly")]
    )
    async def test_reset_triggers_pick_period(
        self, kind, period, db_session, fixed_now, make_user
    ):
        make_user()

        result = await run_trigger(kind, db_session, now=fixed_now)

        assert result.data["periodType"] == period
        assert result.data["usersProcessed"] == 1
