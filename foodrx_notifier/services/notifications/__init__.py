from .digest import DigestContent, compose_expiring_digest, compose_tracker_reminder
from .presentation import NotificationKind, PlatformHints, presentation_for

__all__ = [
    "DigestContent",
    "compose_expiring_digest",
    "compose_tracker_reminder",
    "NotificationKind",
    "PlatformHints",
    "presentation_for",
]
