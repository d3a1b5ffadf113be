from .period_reset import TrackerPeriodResetService, compute_period_end

__all__ = ["TrackerPeriodResetService", "compute_period_end"]
