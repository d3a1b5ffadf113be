from datetime import datetime

from foodrx_notifier.db.models import PeriodType
from foodrx_notifier.schemas.camel_base_model import CamelCaseBaseModel


class ResetResult(CamelCaseBaseModel):
    period_type: PeriodType
    progress_date: datetime
    users_processed: int = 0
    users_failed: int = 0
    progress_records_created: int = 0
    trackers_reset: int = 0
    # Users whose snapshot insert failed but whose counters were still zeroed
    snapshot_failures: int = 0
    completed: bool = True
