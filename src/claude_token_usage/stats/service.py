"""Aggregation service for Claude token usage statistics."""

from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime
from zoneinfo import ZoneInfo

from model_pricing import PricingTable, calculate_cost, get_pricing_table

from .repository import StatsRepository
from .schemas import DailyUsageStatistics, SessionUsageRow, UsageStats


class StatsService:
    """Collect daily usage and cost statistics from persisted sessions.

    Costs are recomputed from token counters with the active pricing table,
    so rate overrides apply to sessions ingested earlier.
    """

    def __init__(
        self,
        repository: StatsRepository,
        timezone: ZoneInfo | None = None,
        since: date | None = None,
        pricing_table: PricingTable | None = None,
    ) -> None:
        self._repository = repository
        self._timezone = timezone
        self._since = since
        self._pricing_table = pricing_table if pricing_table is not None else get_pricing_table()

    def collect_daily_statistics(self) -> DailyUsageStatistics:
        """Aggregate token usage and costs by day and model."""
        sessions = self._repository.fetch_session_usage()
        usage_by_model_day: dict[tuple[str, date], UsageStats] = defaultdict(UsageStats)
        daily_costs: dict[date, float] = defaultdict(float)
        overall_usage: dict[str, UsageStats] = defaultdict(UsageStats)
        total_sessions = 0

        for session in sessions:
            session_date = _resolve_session_date(session.start_time, self._timezone)
            if self._since is not None and session_date < self._since:
                continue

            session_stats = _session_usage_stats(session, self._pricing_table)
            usage_by_model_day[(session.model_code, session_date)] += session_stats
            overall_usage[session.model_code] += session_stats
            daily_costs[session_date] += session_stats.cost
            total_sessions += 1

        return DailyUsageStatistics(
            usage_by_model_day=dict(usage_by_model_day),
            daily_costs=dict(daily_costs),
            overall_usage=dict(overall_usage),
            total_sessions=total_sessions,
        )


def _session_usage_stats(session: SessionUsageRow, pricing_table: PricingTable) -> UsageStats:
    return UsageStats(
        input_tokens=session.input_tokens,
        output_tokens=session.output_tokens,
        thinking_tokens=session.thinking_tokens,
        cache_read_tokens=session.cache_read_tokens,
        cache_write_tokens=session.cache_write_tokens,
        sessions=1,
        cost=calculate_cost(
            session.model_code,
            input_tokens=session.input_tokens,
            output_tokens=session.output_tokens,
            cache_read_tokens=session.cache_read_tokens,
            cache_write_tokens=session.cache_write_tokens,
            pricing_table=pricing_table,
        ),
    )


def _resolve_session_date(start_time: datetime, timezone: ZoneInfo | None) -> date:
    """Resolve session date in the selected timezone (or local system timezone)."""
    return start_time.astimezone(timezone).date()
