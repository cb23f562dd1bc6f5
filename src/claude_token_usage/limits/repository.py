"""DuckDB repository for append-only limit events."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

import duckdb

from token_monitor_internal.database import parse_db_timestamp, require_db_timestamp

from ..database import ensure_schema
from ..transcript.schemas import LimitEvent, LimitEventType, LimitType
from .errors import LimitEventError
from .schemas import LimitEventRecord, UsageSummary

_RECORD_COLUMNS = """
    id,
    event_type,
    limit_type,
    CAST(event_timestamp AS VARCHAR),
    message,
    tokens_used,
    sessions_count,
    input_tokens,
    output_tokens,
    thinking_tokens,
    total_cost_usd,
    session_id
"""


class LimitsRepository:
    """DuckDB-backed repository for limit events and the usage they snapshot."""

    def __init__(self, connection: duckdb.DuckDBPyConnection) -> None:
        self._connection = connection

    def ensure_schema(self) -> None:
        """Create tables when missing."""
        ensure_schema(self._connection)

    def insert_event(self, event: LimitEvent, usage: UsageSummary, session_id: str | None = None) -> LimitEventRecord:
        """Append one limit event with its usage snapshot."""
        row = self._connection.execute(
            """
INSERT INTO limit_events (
    event_type,
    limit_type,
    event_timestamp,
    message,
    tokens_used,
    sessions_count,
    input_tokens,
    output_tokens,
    thinking_tokens,
    total_cost_usd,
    session_id
)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
RETURNING id
            """,
            [
                event.event_type.value,
                event.limit_type.value,
                event.timestamp,
                event.message,
                event.tokens_used,
                usage.sessions_count,
                usage.input_tokens,
                usage.output_tokens,
                usage.thinking_tokens,
                usage.total_cost_usd,
                session_id,
            ],
        ).fetchone()
        if row is None:
            raise LimitEventError(f"Insert of limit event at {event.timestamp} returned no id.")
        return LimitEventRecord(
            id=int(row[0]),
            event_type=event.event_type,
            limit_type=event.limit_type,
            timestamp=event.timestamp,
            message=event.message,
            tokens_used=event.tokens_used,
            sessions_count=usage.sessions_count,
            input_tokens=usage.input_tokens,
            output_tokens=usage.output_tokens,
            thinking_tokens=usage.thinking_tokens,
            total_cost_usd=usage.total_cost_usd,
            session_id=session_id,
        )

    def event_exists(self, event: LimitEvent, session_id: str | None = None) -> bool:
        """Return True when an identical event was already recorded.

        Events stamped with a fallback time match on session and message alone,
        since their timestamp differs on every parse.
        """
        if event.timestamp_inferred and session_id is not None:
            row = self._connection.execute(
                """
SELECT 1
FROM limit_events
WHERE session_id = ?
  AND event_type = ?
  AND limit_type = ?
  AND message = ?
LIMIT 1
                """,
                [session_id, event.event_type.value, event.limit_type.value, event.message],
            ).fetchone()
            return row is not None

        row = self._connection.execute(
            """
SELECT 1
FROM limit_events
WHERE event_timestamp = ?
  AND event_type = ?
  AND limit_type = ?
  AND message = ?
LIMIT 1
            """,
            [event.timestamp, event.event_type.value, event.limit_type.value, event.message],
        ).fetchone()
        return row is not None

    def get_last_event_timestamp(self, before: datetime | None = None) -> datetime | None:
        """Return the latest event timestamp, optionally only those strictly before `before`."""
        if before is None:
            row = self._connection.execute(
                "SELECT CAST(MAX(event_timestamp) AS VARCHAR) FROM limit_events"
            ).fetchone()
        else:
            row = self._connection.execute(
                "SELECT CAST(MAX(event_timestamp) AS VARCHAR) FROM limit_events WHERE event_timestamp < ?",
                [before],
            ).fetchone()
        if row is None:
            return None
        return parse_db_timestamp(row[0])

    def get_usage_between(self, after: datetime | None, until: datetime | None) -> UsageSummary:
        """Sum session usage for sessions starting after `after` and at or before `until`.

        A `None` bound is open.
        """
        conditions = ["start_time IS NOT NULL"]
        params: list[Any] = []
        if after is not None:
            conditions.append("start_time > ?")
            params.append(after)
        if until is not None:
            conditions.append("start_time <= ?")
            params.append(until)

        row = self._connection.execute(
            f"""
SELECT
    COUNT(*),
    COALESCE(SUM(input_tokens), 0),
    COALESCE(SUM(output_tokens), 0),
    COALESCE(SUM(thinking_tokens), 0),
    COALESCE(SUM(estimated_cost_usd), 0.0)
FROM claude_sessions
WHERE {" AND ".join(conditions)}
            """,
            params,
        ).fetchone()
        assert row is not None
        return UsageSummary(
            sessions_count=int(row[0]),
            input_tokens=int(row[1]),
            output_tokens=int(row[2]),
            thinking_tokens=int(row[3]),
            total_cost_usd=float(row[4]),
        )

    def get_usage_since_last_event(self) -> UsageSummary:
        """Sum session usage since the most recent event; all sessions when none exists."""
        return self.get_usage_between(self.get_last_event_timestamp(), None)

    def list_recent(self, days: int, now: datetime) -> list[LimitEventRecord]:
        """Return events from the last `days` days, newest first."""
        rows = self._connection.execute(
            f"""
SELECT {_RECORD_COLUMNS}
FROM limit_events
WHERE event_timestamp >= ?
ORDER BY event_timestamp DESC, id DESC
            """,
            [now - timedelta(days=days)],
        ).fetchall()
        return [_row_to_record(row) for row in rows]

    def list_by_type(self, limit_type: LimitType, limit: int) -> list[LimitEventRecord]:
        """Return the newest events of one limit type."""
        rows = self._connection.execute(
            f"""
SELECT {_RECORD_COLUMNS}
FROM limit_events
WHERE limit_type = ?
ORDER BY event_timestamp DESC, id DESC
LIMIT ?
            """,
            [limit_type.value, limit],
        ).fetchall()
        return [_row_to_record(row) for row in rows]


def _row_to_record(row: tuple[Any, ...]) -> LimitEventRecord:
    return LimitEventRecord(
        id=int(row[0]),
        event_type=LimitEventType(row[1]),
        limit_type=LimitType(row[2]),
        timestamp=require_db_timestamp(row[3]),
        message=str(row[4]),
        tokens_used=int(row[5]),
        sessions_count=int(row[6]),
        input_tokens=int(row[7]),
        output_tokens=int(row[8]),
        thinking_tokens=int(row[9]),
        total_cost_usd=float(row[10]),
        session_id=row[11],
    )
