from typing import Annotated, Callable

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from foodrx_notifier.db.session import get_sync_session
from foodrx_notifier.services.push_gateway import PushGateway, get_push_gateway
from foodrx_notifier.services.trigger_dispatcher import run_trigger
from foodrx_notifier.utils.responses import ResponseBuilder

triggers_router = APIRouter()


def get_gateway_factory() -> Callable[[], PushGateway]:
    return get_push_gateway


@triggers_router.post("/{kind}")
async def fire_trigger(
    kind: str,
    request: Request,
    db: Annotated[Session, Depends(get_sync_session)],
    gateway_factory: Annotated[
        Callable[[], PushGateway], Depends(get_gateway_factory)
    ],
):
    """
    Run one pipeline pass on demand.

    ``kind`` is one of expiring_ingredients, tracker_reminder,
    scheduled-delivery, daily-reset, weekly-reset or test. Unknown kinds are
    rejected with 400; an unreachable store surfaces as 503.
    """
    result = await run_trigger(kind, db, gateway_factory=gateway_factory)

    return ResponseBuilder.success(
        request=request,
        data=result.model_dump(by_alias=True, exclude_none=True),
        message=result.message,
    )
