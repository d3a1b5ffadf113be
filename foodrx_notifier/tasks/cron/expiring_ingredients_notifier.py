from foodrx_notifier.celery import celery
from foodrx_notifier.services.trigger_dispatcher import TriggerKind
from foodrx_notifier.tasks.trigger_job import execute_trigger_task


@celery.task(bind=True, max_retries=3, default_retry_delay=60)
def expiring_ingredients_notifier_task(self, request_id: str):
    """
    Morning pass that writes one digest per user listing pantry items
    expiring within the configured window. Re-running it the same day
    refreshes the existing digest instead of adding another.

    Args:
        request_id: The request ID for tracking purposes (provided by Celery Beat configuration)
    """
    return execute_trigger_task(self, TriggerKind.EXPIRING_INGREDIENTS, request_id)
