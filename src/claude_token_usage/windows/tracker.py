"""Usage window reset decisions, burn rate, and exhaustion projection."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

from .repository import PlanRepository
from .schemas import (
    BurnRate,
    PlanConfig,
    StatusLevel,
    UsageProjection,
    UsageWindow,
    WindowKind,
    WindowStatus,
    WindowUsage,
)

LOGGER = logging.getLogger(__name__)
WARNING_PERCENT = 75.0
CRITICAL_PERCENT = 90.0


def window_expired(window_start: datetime | None, session_start: datetime, window_length: timedelta) -> bool:
    """Return True when a session starting at `session_start` must restart the window.

    An unset window always starts; otherwise the reset happens only strictly
    after `window_start + window_length`.
    """
    if window_start is None:
        return True
    return session_start > window_start + window_length


def calculate_burn_rate(window: UsageWindow, usage: WindowUsage, now: datetime) -> BurnRate:
    """Return token and cost rates over the elapsed part of the window."""
    if window.start_time is None or window.end_time is None:
        return BurnRate(tokens_per_minute=0.0, cost_per_hour=0.0)

    elapsed = min(now, window.end_time) - window.start_time
    elapsed_minutes = elapsed.total_seconds() / 60
    if elapsed_minutes <= 0:
        return BurnRate(tokens_per_minute=0.0, cost_per_hour=0.0)

    return BurnRate(
        tokens_per_minute=usage.total_tokens / elapsed_minutes,
        cost_per_hour=usage.total_cost_usd / (elapsed_minutes / 60),
    )


def project_exhaustion(
    window: UsageWindow,
    usage: WindowUsage,
    token_limit: float,
    burn_rate: BurnRate,
    now: datetime,
) -> UsageProjection:
    """Project when the token limit is reached at the current burn rate."""
    remaining = token_limit - usage.total_tokens
    if remaining <= 0:
        return UsageProjection(remaining_tokens=0.0, minutes_to_exhaustion=0.0, exhausts_before_reset=True)
    if burn_rate.tokens_per_minute <= 0:
        return UsageProjection(remaining_tokens=remaining, minutes_to_exhaustion=None, exhausts_before_reset=False)

    minutes_to_exhaustion = remaining / burn_rate.tokens_per_minute
    exhausts_before_reset = False
    if window.end_time is not None:
        exhausts_before_reset = now + timedelta(minutes=minutes_to_exhaustion) < window.end_time
    return UsageProjection(
        remaining_tokens=remaining,
        minutes_to_exhaustion=minutes_to_exhaustion,
        exhausts_before_reset=exhausts_before_reset,
    )


def status_level_from_percent(usage_percent: float | None) -> StatusLevel:
    """Map a usage percentage to a display level."""
    if usage_percent is None or usage_percent < WARNING_PERCENT:
        return StatusLevel.OK
    if usage_percent < CRITICAL_PERCENT:
        return StatusLevel.WARNING
    return StatusLevel.CRITICAL


class WindowTracker:
    """Lazily resets usage windows from session start times and reports their standing."""

    def __init__(self, repository: PlanRepository) -> None:
        self._repository = repository

    def observe_session_start(self, session_start: datetime) -> dict[WindowKind, bool]:
        """Evaluate both windows against a new session start.

        Returns which windows were reset; empty when no plan is configured.
        """
        plan_config = self._repository.get_plan_config()
        if plan_config is None:
            LOGGER.debug("No plan configured; skipping window evaluation for %s.", session_start)
            return {}

        resets: dict[WindowKind, bool] = {}
        for kind in WindowKind:
            window = plan_config.window(kind)
            if not window_expired(window.start_time, session_start, window.length):
                resets[kind] = False
                continue
            reset = self._repository.reset_window_if_expired(kind, session_start)
            if reset:
                LOGGER.info("Started %s window at %s (previous start %s).", kind, session_start, window.start_time)
            resets[kind] = reset
        return resets

    def get_window_status(self, kind: WindowKind, now: datetime | None = None) -> WindowStatus | None:
        """Return usage, limit, burn rate and projection of a window; None without a plan."""
        plan_config = self._repository.get_plan_config()
        if plan_config is None:
            return None
        return self._build_status(plan_config, kind, now or datetime.now(UTC))

    def get_window_statuses(self, now: datetime | None = None) -> list[WindowStatus]:
        """Return the status of every window; empty without a plan."""
        plan_config = self._repository.get_plan_config()
        if plan_config is None:
            return []
        resolved_now = now or datetime.now(UTC)
        return [self._build_status(plan_config, kind, resolved_now) for kind in WindowKind]

    def _build_status(self, plan_config: PlanConfig, kind: WindowKind, now: datetime) -> WindowStatus:
        window = plan_config.window(kind)
        if window.start_time is None:
            usage = WindowUsage()
        else:
            usage = self._repository.get_usage_since(window.start_time)

        limit_is_learned = window.learned_token_limit is not None
        token_limit = window.learned_token_limit if limit_is_learned else plan_config.estimated_token_limit(kind)

        usage_percent: float | None = None
        if token_limit:
            usage_percent = usage.total_tokens / token_limit * 100

        burn_rate = calculate_burn_rate(window, usage, now)
        projection = None
        if token_limit:
            projection = project_exhaustion(window, usage, token_limit, burn_rate, now)

        return WindowStatus(
            window=window,
            usage=usage,
            token_limit=token_limit,
            limit_is_learned=limit_is_learned,
            usage_percent=usage_percent,
            level=status_level_from_percent(usage_percent),
            burn_rate=burn_rate,
            projection=projection,
        )
