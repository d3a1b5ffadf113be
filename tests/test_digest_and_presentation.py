import pytest

from foodrx_notifier.services.notifications.digest import (
    compose_expiring_digest,
    compose_tracker_reminder,
)
from foodrx_notifier.services.notifications.presentation import (
    DEFAULT_HINTS,
    NotificationKind,
    presentation_for,
)


class TestExpiringDigest:
    """Digest wording for one, a few and many expiring items."""

    def test_single_item(self):
        digest = compose_expiring_digest(["Milk"])

        assert digest.title == "Milk expires soon"
        assert digest.message == "Your Milk expires soon. Consider using it in a recipe today!"
        assert digest.item_count == 1

    def test_exactly_max_names_lists_everything(self):
        digest = compose_expiring_digest(["Milk", "Eggs", "Bread"])

        assert digest.title == "3 items expiring soon"
        assert digest.message == "Expiring soon: Milk, Eggs, Bread"

    def test_overflow_is_summarized(self):
        digest = compose_expiring_digest(["A", "B", "C", "D", "E"])

        assert digest.message == "Expiring soon: A, B, C and 2 more"
        assert digest.item_count == 5

    def test_custom_max_names(self):
        digest = compose_expiring_digest(["A", "B", "C"], max_names=1)

        assert digest.message == "Expiring soon: A and 2 more"

    def test_empty_list_is_rejected(self):
        with pytest.raises(ValueError):
            compose_expiring_digest([])


class TestTrackerReminder:
    def test_named_user_gets_greeting(self):
        reminder = compose_tracker_reminder("Sam")

        assert reminder.title == "Time to log your meals!"
        assert reminder.message.startswith("Hi Sam! You haven't logged anything")

    @pytest.mark.parametrize("name", [None, "", "   "])
    def test_anonymous_user_gets_plain_message(self, name):
        reminder = compose_tracker_reminder(name)

        assert reminder.message == (
            "You haven't logged anything in your tracker today. "
            "Don't forget to track your meals!"
        )


class TestPresentationTable:
    """Closed kind enumeration with a total mapping and a default."""

    @pytest.mark.parametrize("kind", list(NotificationKind))
    def test_every_kind_has_hints(self, kind):
        hints = presentation_for(kind.value)

        assert hints.color.startswith("#")
        assert hints.priority in ("low", "normal", "high")

    def test_known_colors(self):
        assert presentation_for("expiring_ingredient").color == "#FF9800"
        assert presentation_for("tracker_reminder").color == "#4CAF50"
        assert presentation_for("education").color == "#2196F3"
        assert presentation_for("education").priority == "normal"

    @pytest.mark.parametrize("tag", ["promo", "", None])
    def test_unknown_tags_fall_back_to_default(self, tag):
        assert presentation_for(tag) == DEFAULT_HINTS

    def test_record_priority_overrides_table(self):
        hints = presentation_for("expiring_ingredient", priority="LOW")

        assert hints.priority == "low"
        assert hints.color == "#FF9800"

    def test_invalid_record_priority_is_ignored(self):
        assert presentation_for("tracker_reminder", priority="urgent").priority == "high"
