from celery.schedules import crontab
from .settings import settings

# Basic Celery Configuration
broker_url = f"redis://:{settings.REDIS_PASSWORD}@{settings.REDIS_HOST}:{settings.REDIS_PORT}/{settings.REDIS_DB}"
result_backend = f"redis://:{settings.REDIS_PASSWORD}@{settings.REDIS_HOST}:{settings.REDIS_PORT}/{settings.REDIS_DB}"

# Task Discovery
include = ["foodrx_notifier.tasks"]

# Timezone Configuration
timezone = settings.NOTIFICATION_TIMEZONE
enable_utc = True

# Task Result Configuration
result_expires = 3600

# Task Serialization
task_serializer = "json"
accept_content = ["json"]
result_serializer = "json"

# Task Execution Configuration
task_track_started = True
task_time_limit = 30 * 60  # 30 minutes
task_soft_time_limit = 25 * 60  # 25 minutes

# Worker Configuration
worker_prefetch_multiplier = 1
worker_max_tasks_per_child = 1000

# Task Retry Configuration
task_acks_late = True
task_reject_on_worker_lost = True
task_default_retry_delay = 60  # 60 seconds
task_max_retries = 3

# Exponential Backoff Settings
task_retry_backoff = True
task_retry_backoff_max = 700  # Max 700 seconds
task_retry_jitter = False

# All scheduled tasks use the NOTIFICATION_TIMEZONE
beat_schedule = {
    # Morning digest of pantry items expiring within the window
    "expiring-ingredients-notifier": {
        "task": "foodrx_notifier.tasks.cron.expiring_ingredients_notifier.expiring_ingredients_notifier_task",
        "schedule": crontab(hour=9, minute=0),
        "args": ("expiring_ingredients_cron",),
    },
    # Evening nudge for users who have not logged anything today
    "tracker-reminder-notifier": {
        "task": "foodrx_notifier.tasks.cron.tracker_reminder_notifier.tracker_reminder_notifier_task",
        "schedule": crontab(hour=20, minute=0),
        "args": ("tracker_reminder_cron",),
    },
    # Drain the pending notification queue
    "scheduled-notification-delivery": {
        "task": "foodrx_notifier.tasks.cron.scheduled_notification_delivery.scheduled_notification_delivery_task",
        "schedule": crontab(minute="*/15"),
        "args": ("scheduled_delivery_cron",),
    },
    # Tracker snapshots and counter resets - midnight local time
    "daily-tracker-reset": {
        "task": "foodrx_notifier.tasks.cron.tracker_period_reset.daily_tracker_reset_task",
        "schedule": crontab(hour=0, minute=0),
        "args": ("daily_tracker_reset_cron",),
    },
    "weekly-tracker-reset": {
        "task": "foodrx_notifier.tasks.cron.tracker_period_reset.weekly_tracker_reset_task",
        "schedule": crontab(hour=0, minute=0, day_of_week=0),
        "args": ("weekly_tracker_reset_cron",),
    },
}

# Default Queue
task_default_queue = "foodrx"

# Beat Scheduler Configuration
beat_schedule_filename = "tmp/celerybeat-schedule"
