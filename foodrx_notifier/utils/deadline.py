import time
from typing import Optional

from foodrx_notifier.config.settings import settings


class RunDeadline:
    """Wall-clock budget for one pass, checked by the engines between pages."""

    def __init__(self, seconds: Optional[float] = None):
        self.seconds = seconds
        self._expires_at = time.monotonic() + seconds if seconds is not None else None

    @classmethod
    def from_settings(cls) -> "RunDeadline":
        return cls(settings.RUN_TIME_BUDGET_SECONDS)

    @classmethod
    def unlimited(cls) -> "RunDeadline":
        return cls(None)

    def expired(self) -> bool:
        return self._expires_at is not None and time.monotonic() >= self._expires_at
