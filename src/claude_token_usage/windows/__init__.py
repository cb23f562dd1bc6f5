"""Plan quota windows: lazy resets, learned limits and burn-rate projection."""

from .repository import PlanRepository
from .schemas import PlanConfig, PlanType, UsageWindow, WindowKind, WindowStatus
from .tracker import WindowTracker, window_expired

__all__ = [
    "PlanConfig",
    "PlanRepository",
    "PlanType",
    "UsageWindow",
    "WindowKind",
    "WindowStatus",
    "WindowTracker",
    "window_expired",
]
