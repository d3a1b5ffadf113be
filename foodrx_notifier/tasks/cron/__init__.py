from .expiring_ingredients_notifier import expiring_ingredients_notifier_task
from .scheduled_notification_delivery import scheduled_notification_delivery_task
from .tracker_period_reset import daily_tracker_reset_task, weekly_tracker_reset_task
from .tracker_reminder_notifier import tracker_reminder_notifier_task

__all__ = [
    "expiring_ingredients_notifier_task",
    "tracker_reminder_notifier_task",
    "scheduled_notification_delivery_task",
    "daily_tracker_reset_task",
    "weekly_tracker_reset_task",
]
