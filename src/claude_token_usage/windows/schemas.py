"""Typed schemas for plan configuration and usage windows."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import StrEnum

WEEKLY_WINDOW_HOURS = 168
DEFAULT_WINDOW_HOURS = 5


class WindowKind(StrEnum):
    """The two quota windows attached to a plan."""

    SHORT = "short"
    WEEKLY = "weekly"


class WindowState(StrEnum):
    """Lifecycle state of a usage window."""

    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"


class StatusLevel(StrEnum):
    """Coarse usage level for display."""

    OK = "ok"
    WARNING = "warning"
    CRITICAL = "critical"


class PlanType(StrEnum):
    """Subscription plan identifiers."""

    PRO = "pro"
    MAX_5X = "max_5x"
    MAX_20X = "max_20x"
    CUSTOM = "custom"


@dataclass(frozen=True)
class PlanPreset:
    """Static token estimates for one plan.

    Short-window figures assume roughly 3K tokens per message; weekly figures
    convert documented active hours into tokens. Learned limits replace both.
    """

    name: str
    short_window_tokens: float
    weekly_window_tokens: float


PLAN_PRESETS: dict[PlanType, PlanPreset] = {
    PlanType.PRO: PlanPreset(name="Pro", short_window_tokens=135_000, weekly_window_tokens=4_000_000),
    PlanType.MAX_5X: PlanPreset(name="Max 5x", short_window_tokens=675_000, weekly_window_tokens=14_000_000),
    PlanType.MAX_20X: PlanPreset(name="Max 20x", short_window_tokens=2_700_000, weekly_window_tokens=24_000_000),
}


@dataclass(frozen=True)
class UsageWindow:
    """Persisted state of one usage window."""

    kind: WindowKind
    length: timedelta
    start_time: datetime | None = None
    learned_token_limit: float | None = None
    learned_at: datetime | None = None

    @property
    def state(self) -> WindowState:
        """Return UNINITIALIZED until the first session start is observed."""
        if self.start_time is None:
            return WindowState.UNINITIALIZED
        return WindowState.ACTIVE

    @property
    def end_time(self) -> datetime | None:
        """Return when the window expires, if it has started."""
        if self.start_time is None:
            return None
        return self.start_time + self.length


@dataclass(frozen=True)
class PlanConfig:
    """Plan configuration with its short and weekly windows."""

    plan_type: PlanType
    window_hours: int
    short_window: UsageWindow
    weekly_window: UsageWindow

    def window(self, kind: WindowKind) -> UsageWindow:
        """Return the window of the given kind."""
        if kind is WindowKind.SHORT:
            return self.short_window
        return self.weekly_window

    def estimated_token_limit(self, kind: WindowKind) -> float | None:
        """Return the preset token estimate for a window, if the plan has one."""
        preset = PLAN_PRESETS.get(self.plan_type)
        if preset is None:
            return None
        if kind is WindowKind.SHORT:
            return preset.short_window_tokens
        return preset.weekly_window_tokens


@dataclass(frozen=True)
class WindowUsage:
    """Aggregate usage of persisted sessions inside a window."""

    sessions_count: int = 0
    total_tokens: int = 0
    total_cost_usd: float = 0.0


@dataclass(frozen=True)
class BurnRate:
    """Consumption rate over the elapsed part of a window."""

    tokens_per_minute: float
    cost_per_hour: float


@dataclass(frozen=True)
class UsageProjection:
    """Projected time to exhaust a window's token limit at the current burn rate.

    Attributes:
        remaining_tokens: Tokens left before the limit (never negative).
        minutes_to_exhaustion: `0.0` when already exhausted, `None` when the
            burn rate is zero.
        exhausts_before_reset: True when exhaustion is projected before the
            window end.
    """

    remaining_tokens: float
    minutes_to_exhaustion: float | None
    exhausts_before_reset: bool


@dataclass(frozen=True)
class WindowStatus:
    """Current standing of one window against its token limit."""

    window: UsageWindow
    usage: WindowUsage
    token_limit: float | None
    limit_is_learned: bool
    usage_percent: float | None
    level: StatusLevel
    burn_rate: BurnRate
    projection: UsageProjection | None
