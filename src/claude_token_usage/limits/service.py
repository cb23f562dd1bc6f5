"""Service recording quota events and learning window limits from hits."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from ..transcript.schemas import LimitEvent, LimitEventType, LimitType
from ..windows.repository import PlanRepository
from ..windows.schemas import WindowKind
from .repository import LimitsRepository
from .schemas import LimitEventRecord, UsageSummary

LOGGER = logging.getLogger(__name__)

LEARNED_WINDOW_BY_LIMIT_TYPE: dict[LimitType, WindowKind] = {
    LimitType.DAILY: WindowKind.SHORT,
    LimitType.WEEKLY: WindowKind.WEEKLY,
}


class LimitsService:
    """Persists limit events with usage snapshots and calibrates learned limits.

    Callers own the transaction; a batch of events from one transcript is
    expected to be recorded atomically together with its session row.
    """

    def __init__(self, repository: LimitsRepository, plan_repository: PlanRepository | None = None) -> None:
        self._repository = repository
        self._plan_repository = plan_repository

    def record_events(self, events: Iterable[LimitEvent], session_id: str | None = None) -> list[LimitEventRecord]:
        """Record events in timestamp order; already-recorded events are skipped."""
        recorded: list[LimitEventRecord] = []
        for event in sorted(events, key=lambda item: item.timestamp):
            if self._repository.event_exists(event, session_id=session_id):
                LOGGER.debug(
                    "Skipping already recorded %s %s event at %s.", event.limit_type, event.event_type, event.timestamp
                )
                continue
            record = self.record_event(event, session_id=session_id)
            recorded.append(record)
        return recorded

    def record_event(self, event: LimitEvent, session_id: str | None = None) -> LimitEventRecord:
        """Snapshot usage since the previous event, persist, and learn from hits."""
        previous_timestamp = self._repository.get_last_event_timestamp(before=event.timestamp)
        usage = self._repository.get_usage_between(previous_timestamp, event.timestamp)
        record = self._repository.insert_event(event, usage, session_id=session_id)
        LOGGER.debug(
            "Recorded %s %s limit at %s: %d sessions, $%.2f cost.",
            event.limit_type,
            event.event_type,
            event.timestamp,
            usage.sessions_count,
            usage.total_cost_usd,
        )
        if event.event_type is LimitEventType.HIT:
            self._learn_limit(record)
        return record

    def get_current_usage(self) -> UsageSummary:
        """Return usage accumulated since the most recent limit event."""
        return self._repository.get_usage_since_last_event()

    def _learn_limit(self, record: LimitEventRecord) -> None:
        if self._plan_repository is None:
            return
        window_kind = LEARNED_WINDOW_BY_LIMIT_TYPE.get(record.limit_type)
        if window_kind is None:
            return
        if self._plan_repository.get_plan_config() is None:
            LOGGER.debug("No plan configured; not learning a %s limit.", window_kind)
            return

        token_limit = record.tokens_used if record.tokens_used > 0 else record.total_tokens
        if token_limit <= 0:
            LOGGER.debug("Limit hit at %s carried no usage; %s limit unchanged.", record.timestamp, window_kind)
            return
        if not self._plan_repository.update_learned_limit(window_kind, float(token_limit), record.timestamp):
            LOGGER.debug("Hit at %s predates the stored %s limit; not overwriting it.", record.timestamp, window_kind)
            return
        LOGGER.info("Learned %s window limit of %d tokens from hit at %s.", window_kind, token_limit, record.timestamp)
