"""Heuristic classification of quota notices in system messages.

Classification is plain keyword matching on lower-cased text:

1. Relevance: the text must mention one of `LIMIT_KEYWORDS`.
2. Event type: `reset` only when a reset phrase is present and no hit phrase
   is; "It resets in 6 hours" is a hit notice, not a reset confirmation.
3. Period: daily phrases win over weekly phrases; default is daily.
4. Token count: first number followed by "token(s)" or a bare "k".
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import UTC, datetime

from .schemas import LimitEvent, LimitEventType, LimitType

LIMIT_KEYWORDS: tuple[str, ...] = ("limit", "quota", "rate", "exceeded", "throttle", "resets")
RESET_PHRASES: tuple[str, ...] = ("has been reset", "limit reset", "restored", "renewed")
HIT_PHRASES: tuple[str, ...] = ("hit", "reached", "exceeded")
DAILY_PHRASES: tuple[str, ...] = ("daily", "24 hour", "today")
WEEKLY_PHRASES: tuple[str, ...] = ("weekly", "7 day", "week")

TOKEN_COUNT_PATTERN = re.compile(r"(\d{1,3}(?:,\d{3})*|\d+)\s*(?:tokens?|k)")


@dataclass(frozen=True)
class LimitClassification:
    """Result of classifying one quota notice."""

    event_type: LimitEventType
    limit_type: LimitType
    tokens_used: int


def classify_limit_text(text: str) -> LimitClassification | None:
    """Classify a system message; return None when it is not about quotas."""
    lowered = text.lower()
    if not _contains_any(lowered, LIMIT_KEYWORDS):
        return None
    return LimitClassification(
        event_type=_classify_event_type(lowered),
        limit_type=_classify_limit_type(lowered),
        tokens_used=extract_token_count(text),
    )


def build_limit_event(text: str, timestamp: datetime | None, now: datetime | None = None) -> LimitEvent | None:
    """Build a LimitEvent from system message text, stamped with `timestamp` or the current time."""
    classification = classify_limit_text(text)
    if classification is None:
        return None
    return LimitEvent(
        event_type=classification.event_type,
        limit_type=classification.limit_type,
        timestamp=timestamp or now or datetime.now(UTC),
        message=text,
        tokens_used=classification.tokens_used,
        timestamp_inferred=timestamp is None,
    )


def extract_token_count(text: str) -> int:
    """Extract the first token count mentioned in text; 0 when none is found."""
    match = TOKEN_COUNT_PATTERN.search(text.lower())
    if match is None:
        return 0

    count = int(match.group(1).replace(",", ""))
    matched = match.group(0)
    if "k" in matched and "token" not in matched:
        count *= 1000
    return count


def _classify_event_type(lowered: str) -> LimitEventType:
    if _contains_any(lowered, RESET_PHRASES) and not _contains_any(lowered, HIT_PHRASES):
        return LimitEventType.RESET
    return LimitEventType.HIT


def _classify_limit_type(lowered: str) -> LimitType:
    if _contains_any(lowered, DAILY_PHRASES):
        return LimitType.DAILY
    if _contains_any(lowered, WEEKLY_PHRASES):
        return LimitType.WEEKLY
    return LimitType.DAILY


def _contains_any(text: str, phrases: tuple[str, ...]) -> bool:
    return any(phrase in text for phrase in phrases)
