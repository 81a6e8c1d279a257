"""Renewal scheduling: when to refresh, and who runs the refresh."""

from vault_lifecycle.scheduling.renewal import SingleFlightRenewal
from vault_lifecycle.scheduling.scheduler import (
    RenewalScheduler,
    ScheduledTask,
    TaskState,
    ThreadPoolRenewalScheduler,
)
from vault_lifecycle.scheduling.trigger import (
    DEFAULT_LEAD_TIME,
    DEFAULT_MIN_DELAY,
    FixedTimeoutRefreshTrigger,
    JitteredRefreshTrigger,
    OneShotTrigger,
    RefreshTrigger,
    RemainingLifetime,
)

__all__ = [
    "RenewalScheduler",
    "ScheduledTask",
    "TaskState",
    "ThreadPoolRenewalScheduler",
    "SingleFlightRenewal",
    "RefreshTrigger",
    "FixedTimeoutRefreshTrigger",
    "OneShotTrigger",
    "JitteredRefreshTrigger",
    "RemainingLifetime",
    "DEFAULT_LEAD_TIME",
    "DEFAULT_MIN_DELAY",
]
