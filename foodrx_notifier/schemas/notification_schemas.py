from enum import Enum
from typing import List, Optional

from pydantic import Field, field_validator, model_validator

from foodrx_notifier.schemas.camel_base_model import CamelCaseBaseModel


class GenerationTrigger(str, Enum):
    EXPIRING_INGREDIENTS = "expiring_ingredients"
    TRACKER_REMINDER = "tracker_reminder"


class GenerationResult(CamelCaseBaseModel):
    trigger: GenerationTrigger
    # Only insertions count here; same-day digest refreshes are reported separately
    notifications_created: int = 0
    notifications_updated: int = 0
    users_scanned: int = 0
    users_failed: int = 0
    completed: bool = True


class DeliveryStatus(str, Enum):
    SENT = "sent"
    FAILED = "failed"
    SKIPPED_NO_TOKEN = "skipped_no_token"


class DeliveryOutcome(CamelCaseBaseModel):
    notification_id: str
    user_id: str
    status: DeliveryStatus
    message_id: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None


class DeliveryResult(CamelCaseBaseModel):
    total_pending: int = 0
    processed: int = 0
    sent: int = 0
    failed: int = 0
    skipped_no_token: int = 0
    batches: int = 0
    completed: bool = True

    def record(self, outcome: DeliveryOutcome) -> None:
        # Counters only; each outcome is already logged and written to analytics
        if outcome.status == DeliveryStatus.SENT:
            self.sent += 1
        elif outcome.status == DeliveryStatus.FAILED:
            self.failed += 1
        else:
            self.skipped_no_token += 1


class AdminNotificationRequest(CamelCaseBaseModel):
    user_id: Optional[str] = None
    user_ids: Optional[List[str]] = None
    title: str
    message: str
    type: str = "admin"
    priority: Optional[str] = None

    @field_validator("title", "message", "type")
    def must_not_be_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must not be blank")
        return v.strip()

    @field_validator("priority")
    def must_be_known_priority(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        if v.lower() not in ("low", "normal", "high"):
            raise ValueError("priority must be one of: low, normal, high")
        return v.lower()

    @model_validator(mode="after")
    def requires_recipient(self) -> "AdminNotificationRequest":
        if not self.user_id and not self.user_ids:
            raise ValueError("Either userId or userIds is required")
        return self

    def recipients(self) -> List[str]:
        """Target ids in request order, blanks and duplicates dropped."""
        candidates = list(self.user_ids or []) or [self.user_id]
        seen = []
        for uid in candidates:
            if uid and uid.strip() and uid.strip() not in seen:
                seen.append(uid.strip())
        return seen


class AdminNotificationResult(CamelCaseBaseModel):
    notifications_created: int = 0
    notification_ids: List[str] = Field(default_factory=list)
