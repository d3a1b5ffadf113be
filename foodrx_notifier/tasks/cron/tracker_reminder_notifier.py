from foodrx_notifier.celery import celery
from foodrx_notifier.services.trigger_dispatcher import TriggerKind
from foodrx_notifier.tasks.trigger_job import execute_trigger_task


@celery.task(bind=True, max_retries=3, default_retry_delay=60)
def tracker_reminder_notifier_task(self, request_id: str):
    """
    Evening pass reminding users who have logged no tracker progress today.

    Args:
        request_id: The request ID for tracking purposes (provided by Celery Beat configuration)
    """
    return execute_trigger_task(self, TriggerKind.TRACKER_REMINDER, request_id)
