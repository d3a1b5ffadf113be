from dataclasses import dataclass
from typing import Optional, Sequence

TRACKER_REMINDER_TITLE = "Time to log your meals!"
TRACKER_REMINDER_MESSAGE = (
    "You haven't logged anything in your tracker today. "
    "Don't forget to track your meals!"
)


@dataclass(frozen=True)
class DigestContent:
    title: str
    message: str
    item_count: int


def compose_expiring_digest(
    item_names: Sequence[str], max_names: int = 3
) -> DigestContent:
    """
    Build one notification summarizing every expiring item of a user.

    Examples:
    - ["Milk"] -> "Milk expires soon" / "Your Milk expires soon. Consider using it in a recipe today!"
    - ["Milk", "Eggs"] -> "2 items expiring soon" / "Expiring soon: Milk, Eggs"
    - five names, max_names=3 -> "5 items expiring soon" / "Expiring soon: A, B, C and 2 more"
    """
    if not item_names:
        raise ValueError("A digest needs at least one item")
    if max_names < 1:
        raise ValueError("max_names must be at least 1")

    count = len(item_names)
    if count == 1:
        name = item_names[0]
        return DigestContent(
            title=f"{name} expires soon",
            message=f"Your {name} expires soon. Consider using it in a recipe today!",
            item_count=1,
        )

    listed = ", ".join(item_names[:max_names])
    message = f"Expiring soon: {listed}"
    if count > max_names:
        message += f" and {count - max_names} more"

    return DigestContent(
        title=f"{count} items expiring soon", message=message, item_count=count
    )


def compose_tracker_reminder(name: Optional[str] = None) -> DigestContent:
    message = TRACKER_REMINDER_MESSAGE
    if name and name.strip():
        message = f"Hi {name.strip()}! {message}"
    return DigestContent(
        title=TRACKER_REMINDER_TITLE, message=message, item_count=0
    )
