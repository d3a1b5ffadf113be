import enum
from dataclasses import dataclass
from typing import Dict, Optional


class NotificationKind(str, enum.Enum):
    EXPIRING_INGREDIENT = "expiring_ingredient"
    TRACKER_REMINDER = "tracker_reminder"
    ADMIN = "admin"
    EDUCATION = "education"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["NotificationKind"]:
        """Member for a stored type tag, or None for free-form admin tags."""
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass(frozen=True)
class PlatformHints:
    """Presentation-only fields attached to a push; never drive delivery logic."""

    color: str
    priority: str = "high"
    icon: str = "ic_notification"
    badge: int = 1
    sound: str = "default"


DEFAULT_HINTS = PlatformHints(color="#9E9E9E")

_HINTS_BY_KIND: Dict[NotificationKind, PlatformHints] = {
    NotificationKind.EXPIRING_INGREDIENT: PlatformHints(color="#FF9800"),  # Orange
    NotificationKind.TRACKER_REMINDER: PlatformHints(color="#4CAF50"),  # Green
    NotificationKind.ADMIN: PlatformHints(color="#9E9E9E"),  # Grey
    NotificationKind.EDUCATION: PlatformHints(color="#2196F3", priority="normal"),  # Blue
}

# Accepted values of Notification.priority; anything else is ignored
PRIORITY_TIERS = ("low", "normal", "high")


def presentation_for(
    notification_type: Optional[str], priority: Optional[str] = None
) -> PlatformHints:
    """
    Platform hints for a notification type tag.

    Known kinds map through a table that covers every NotificationKind member;
    unknown tags get DEFAULT_HINTS. A valid explicit ``priority`` on the record
    overrides the table's tier.
    """
    kind = NotificationKind.parse(notification_type)
    hints = _HINTS_BY_KIND[kind] if kind is not None else DEFAULT_HINTS

    if priority is not None and priority.lower() in PRIORITY_TIERS:
        return PlatformHints(
            color=hints.color,
            priority=priority.lower(),
            icon=hints.icon,
            badge=hints.badge,
            sound=hints.sound,
        )
    return hints
