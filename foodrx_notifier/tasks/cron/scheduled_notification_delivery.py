from foodrx_notifier.celery import celery
from foodrx_notifier.services.trigger_dispatcher import TriggerKind
from foodrx_notifier.tasks.trigger_job import execute_trigger_task


@celery.task(bind=True, max_retries=3, default_retry_delay=60)
def scheduled_notification_delivery_task(self, request_id: str):
    """
    Drains every pending notification through the push gateway. Failed and
    token-less notifications stay pending for the next run.

    Args:
        request_id: The request ID for tracking purposes (provided by Celery Beat configuration)
    """
    return execute_trigger_task(self, TriggerKind.SCHEDULED_DELIVERY, request_id)
