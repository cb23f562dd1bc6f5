"""Typed schemas used by the Claude stats pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime


@dataclass(frozen=True)
class SessionUsageRow:
    """One session's token counters loaded from DuckDB."""

    session_id: str
    model_code: str
    start_time: datetime
    input_tokens: int
    output_tokens: int
    thinking_tokens: int
    cache_read_tokens: int
    cache_write_tokens: int


@dataclass
class UsageStats:
    """Accumulates token usage and cost statistics."""

    input_tokens: int = 0
    output_tokens: int = 0
    thinking_tokens: int = 0
    cache_read_tokens: int = 0
    cache_write_tokens: int = 0
    sessions: int = 0
    cost: float = 0.0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens + self.thinking_tokens

    def __add__(self, other: "UsageStats") -> "UsageStats":
        """Return a new object with summed stats."""
        return UsageStats(
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
            thinking_tokens=self.thinking_tokens + other.thinking_tokens,
            cache_read_tokens=self.cache_read_tokens + other.cache_read_tokens,
            cache_write_tokens=self.cache_write_tokens + other.cache_write_tokens,
            sessions=self.sessions + other.sessions,
            cost=self.cost + other.cost,
        )

    def __iadd__(self, other: "UsageStats") -> "UsageStats":
        """Mutate this object by adding stats in-place."""
        self.input_tokens += other.input_tokens
        self.output_tokens += other.output_tokens
        self.thinking_tokens += other.thinking_tokens
        self.cache_read_tokens += other.cache_read_tokens
        self.cache_write_tokens += other.cache_write_tokens
        self.sessions += other.sessions
        self.cost += other.cost
        return self


@dataclass(frozen=True)
class DailyUsageStatistics:
    """Aggregated daily usage statistics and costs."""

    usage_by_model_day: dict[tuple[str, date], UsageStats]
    daily_costs: dict[date, float]
    overall_usage: dict[str, UsageStats]
    total_sessions: int
