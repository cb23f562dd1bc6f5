"""Typed schemas for decoded transcript entries and parse results."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from types import MappingProxyType
from typing import Any

from model_pricing import DEFAULT_PRICING_TABLE, PricingTable, calculate_cost


@dataclass(frozen=True)
class ContentItem:
    """One typed item of a list-shaped message content."""

    type: str
    text: str = ""
    name: str = ""
    input: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TextContent:
    """Content carried as a plain string."""

    text: str


@dataclass(frozen=True)
class ItemsContent:
    """Content carried as an ordered list of typed items."""

    items: tuple[ContentItem, ...]


@dataclass(frozen=True)
class EmptyContent:
    """Absent or unrecognized content."""


Content = TextContent | ItemsContent | EmptyContent
EMPTY_CONTENT = EmptyContent()


@dataclass(frozen=True)
class TokenUsage:
    """Token counters reported on one assistant message."""

    input_tokens: int = 0
    output_tokens: int = 0
    cache_read_input_tokens: int = 0
    cache_creation_input_tokens: int = 0
    thinking_tokens: int = 0


@dataclass(frozen=True)
class EntryMessage:
    """The nested `message` object of a transcript entry."""

    role: str = ""
    model: str = ""
    usage: TokenUsage = field(default_factory=TokenUsage)
    content: Content = EMPTY_CONTENT


@dataclass(frozen=True)
class TranscriptEntry:
    """One decoded transcript line.

    Every field is optional on the wire; absent or mistyped values decode to
    empty defaults so that dispatch never fails on a partial entry.
    """

    type: str
    timestamp: datetime | None = None
    git_branch: str = ""
    version: str = ""
    model: str = ""
    name: str = ""
    is_error: bool = False
    message: EntryMessage | None = None
    content: Content = EMPTY_CONTENT


class LimitEventType(StrEnum):
    """Whether a quota notice reports a limit being hit or reset."""

    HIT = "hit"
    RESET = "reset"


class LimitType(StrEnum):
    """Period of a usage limit."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


@dataclass(frozen=True)
class LimitEvent:
    """A quota hit/reset notice extracted from a system entry.

    `timestamp_inferred` is set when the entry had no timestamp and the event
    was stamped with a fallback time instead.
    """

    event_type: LimitEventType
    limit_type: LimitType
    timestamp: datetime
    message: str
    tokens_used: int = 0
    timestamp_inferred: bool = False


@dataclass(frozen=True)
class SessionStatistics:
    """Usage metrics folded from one transcript."""

    user_prompts: int = 0
    assistant_responses: int = 0
    tool_calls: int = 0
    errors_count: int = 0
    tools_breakdown: Mapping[str, int] = field(default_factory=dict)
    files_accessed: frozenset[str] = frozenset()
    files_modified: frozenset[str] = frozenset()
    input_tokens: int = 0
    output_tokens: int = 0
    thinking_tokens: int = 0
    cache_read_tokens: int = 0
    cache_write_tokens: int = 0
    model: str = ""
    git_branch: str = ""
    tool_version: str = ""
    summary: str = ""
    start_time: datetime | None = None
    end_time: datetime | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "tools_breakdown", MappingProxyType(dict(self.tools_breakdown)))

    @property
    def duration_seconds(self) -> int:
        """Return whole seconds between first and last timestamp, or 0."""
        if self.start_time is None or self.end_time is None:
            return 0
        return int((self.end_time - self.start_time).total_seconds())

    @property
    def total_tokens(self) -> int:
        """Return input + output + thinking tokens; cache tokens are priced separately."""
        return self.input_tokens + self.output_tokens + self.thinking_tokens

    def estimate_cost(self, pricing_table: PricingTable = DEFAULT_PRICING_TABLE) -> float:
        """Estimate USD cost of the session from its token counters."""
        return calculate_cost(
            self.model,
            input_tokens=self.input_tokens,
            output_tokens=self.output_tokens,
            cache_read_tokens=self.cache_read_tokens,
            cache_write_tokens=self.cache_write_tokens,
            pricing_table=pricing_table,
        )


@dataclass(frozen=True)
class ParsedTranscript:
    """Parser output for one transcript."""

    statistics: SessionStatistics = field(default_factory=SessionStatistics)
    limit_events: tuple[LimitEvent, ...] = ()
