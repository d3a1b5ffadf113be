from foodrx_notifier.celery import celery
from foodrx_notifier.services.trigger_dispatcher import TriggerKind
from foodrx_notifier.tasks.trigger_job import execute_trigger_task


@celery.task(bind=True, max_retries=3, default_retry_delay=60)
def daily_tracker_reset_task(self, request_id: str):
    """
    Snapshots yesterday's daily tracker counters and zeroes them.
    Runs at local midnight.
    """
    return execute_trigger_task(self, TriggerKind.DAILY_RESET, request_id)


@celery.task(bind=True, max_retries=3, default_retry_delay=60)
def weekly_tracker_reset_task(self, request_id: str):
    """
    Snapshots last week's weekly tracker counters and zeroes them.
    Runs at local midnight at the start of each week.
    """
    return execute_trigger_task(self, TriggerKind.WEEKLY_RESET, request_id)
