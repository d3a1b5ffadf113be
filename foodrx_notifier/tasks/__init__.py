from .cron import *

__all__ = [
    # Scheduled/Cron Tasks
    "expiring_ingredients_notifier_task",
    "tracker_reminder_notifier_task",
    "scheduled_notification_delivery_task",
    "daily_tracker_reset_task",
    "weekly_tracker_reset_task",
]
