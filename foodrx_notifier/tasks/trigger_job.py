import asyncio
from typing import Any, Dict

from celery import Task

from foodrx_notifier.db.session import get_sync_session
from foodrx_notifier.services.trigger_dispatcher import TriggerKind, run_trigger
from foodrx_notifier.utils.context import set_request_id
from foodrx_notifier.utils.errors import StoreConnectivityError
from foodrx_notifier.utils.logging import get_logger


def execute_trigger_task(task: Task, kind: TriggerKind, request_id: str) -> Dict[str, Any]:
    """
    Run one trigger pass from inside a bound Celery task.

    An unreachable store is the only fault worth retrying the whole pass for;
    the task is re-queued with capped exponential backoff until its retries
    run out. Anything else is reported in the returned payload.
    """
    try:
        return asyncio.run(_async_trigger_job(kind, request_id))
    except StoreConnectivityError as e:
        logger = get_logger().bind(request_id=request_id)
        logger.error(
            "Store unreachable during trigger run",
            trigger=kind.value,
            retries=task.request.retries,
            error=e.message,
        )

        if task.request.retries < task.max_retries:
            # Cap retry delay at 5 minutes
            retry_delay = min(2**task.request.retries * 60, 300)
            raise task.retry(exc=e, countdown=retry_delay)

        return {
            "success": False,
            "trigger": kind.value,
            "error": e.message,
            "error_code": e.error_code,
            "request_id": request_id,
        }


async def _async_trigger_job(kind: TriggerKind, request_id: str) -> Dict[str, Any]:
    set_request_id(request_id)
    logger = get_logger().bind(request_id=request_id)

    for db_session in get_sync_session():
        try:
            logger.info("Starting scheduled trigger", trigger=kind.value)
            result = await run_trigger(kind, db_session)

            logger.info(
                "Scheduled trigger completed",
                trigger=kind.value,
                message=result.message,
            )
            return {
                "success": True,
                "trigger": kind.value,
                "message": result.message,
                "data": result.data,
                "request_id": request_id,
            }

        except StoreConnectivityError:
            db_session.rollback()
            raise

        except Exception as e:
            db_session.rollback()
            logger.error(
                "Scheduled trigger exception",
                trigger=kind.value,
                error=str(e),
                exc_info=True,
            )
            return {
                "success": False,
                "trigger": kind.value,
                "error": str(e),
                "request_id": request_id,
            }
