"""
Single entry point shared by the Celery beat tasks and the HTTP trigger
route: a discriminator string selects one engine pass, and every pass comes
back as the same ``TriggerResult`` envelope.
"""

import enum
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Union

from sqlalchemy.orm import Session

from foodrx_notifier.db.models import PeriodType
from foodrx_notifier.schemas.camel_base_model import CamelCaseBaseModel
from foodrx_notifier.schemas.notification_schemas import GenerationTrigger
from foodrx_notifier.services.notifications.delivery import (
    NotificationDeliveryService,
)
from foodrx_notifier.services.notifications.generation import (
    NotificationGenerationService,
)
from foodrx_notifier.services.push_gateway import PushGateway, get_push_gateway
from foodrx_notifier.services.trackers.period_reset import (
    TrackerPeriodResetService,
)
from foodrx_notifier.utils.errors import BusinessLogicError
from foodrx_notifier.utils.logging import get_logger

logger = get_logger()


class TriggerKind(str, enum.Enum):
    EXPIRING_INGREDIENTS = "expiring_ingredients"
    TRACKER_REMINDER = "tracker_reminder"
    SCHEDULED_DELIVERY = "scheduled-delivery"
    DAILY_RESET = "daily-reset"
    WEEKLY_RESET = "weekly-reset"
    TEST = "test"


class TriggerResult(CamelCaseBaseModel):
    status: str = "success"
    trigger: TriggerKind
    message: str
    data: Optional[Dict[str, Any]] = None


async def run_trigger(
    kind: Union[str, TriggerKind],
    db_session: Session,
    gateway_factory: Callable[[], PushGateway] = get_push_gateway,
    now: Optional[datetime] = None,
) -> TriggerResult:
    """
    Run one engine pass selected by ``kind``.

    Run-level faults (store unreachable, provider not configured) propagate
    so the caller reports an error instead of a partial success. Per-item
    failures are folded into the counts in ``data``.
    """
    try:
        kind = TriggerKind(kind)
    except ValueError:
        valid = ", ".join(k.value for k in TriggerKind)
        raise BusinessLogicError(
            f"Unknown trigger type: {kind}. Expected one of: {valid}",
            error_code="INVALID_TRIGGER",
        )

    logger.info("Running trigger", trigger=kind.value)

    if kind == TriggerKind.TEST:
        return TriggerResult(trigger=kind, message="Notifier is alive")

    if kind in (TriggerKind.EXPIRING_INGREDIENTS, TriggerKind.TRACKER_REMINDER):
        generation = await NotificationGenerationService(db_session, now=now).generate(
            GenerationTrigger(kind.value)
        )
        return TriggerResult(
            trigger=kind,
            message=f"Created {generation.notifications_created} notifications",
            data=generation.model_dump(by_alias=True),
        )

    if kind == TriggerKind.SCHEDULED_DELIVERY:
        # Gateway is only built when a delivery pass actually needs it
        delivery = await NotificationDeliveryService(
            db_session, gateway_factory(), now=now
        ).deliver_pending()
        return TriggerResult(
            trigger=kind,
            message=(
                f"Processed {delivery.processed} notifications: "
                f"{delivery.sent} sent, {delivery.failed} failed, "
                f"{delivery.skipped_no_token} skipped without token"
            ),
            data=delivery.model_dump(by_alias=True),
        )

    period_type = (
        PeriodType.DAILY if kind == TriggerKind.DAILY_RESET else PeriodType.WEEKLY
    )
    reset = await TrackerPeriodResetService(db_session, now=now).reset_period(
        period_type
    )
    return TriggerResult(
        trigger=kind,
        message=f"Reset {period_type.value} trackers for {reset.users_processed} users",
        data=reset.model_dump(by_alias=True),
    )
