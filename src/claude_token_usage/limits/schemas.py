"""Typed schemas for persisted limit events and usage snapshots."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..transcript.schemas import LimitEventType, LimitType


@dataclass(frozen=True)
class UsageSummary:
    """Aggregate session usage over a time span."""

    sessions_count: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    thinking_tokens: int = 0
    total_cost_usd: float = 0.0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens + self.thinking_tokens


@dataclass(frozen=True)
class LimitEventRecord:
    """One row persisted in limit_events."""

    id: int
    event_type: LimitEventType
    limit_type: LimitType
    timestamp: datetime
    message: str
    tokens_used: int
    sessions_count: int
    input_tokens: int
    output_tokens: int
    thinking_tokens: int
    total_cost_usd: float
    session_id: str | None = None

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens + self.thinking_tokens
