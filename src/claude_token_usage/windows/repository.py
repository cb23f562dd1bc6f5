"""DuckDB repository for plan configuration and window state."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

import duckdb

from token_monitor_internal.database import parse_db_timestamp

from ..database import ensure_schema
from .errors import PlanConfigError
from .schemas import WEEKLY_WINDOW_HOURS, PlanConfig, PlanType, UsageWindow, WindowKind, WindowUsage

LOGGER = logging.getLogger(__name__)
PLAN_CONFIG_ID = 1


@dataclass(frozen=True)
class _WindowColumns:
    start_time: str
    learned_token_limit: str
    learned_at: str
    length_sql: str


_WINDOW_COLUMNS: dict[WindowKind, _WindowColumns] = {
    WindowKind.SHORT: _WindowColumns(
        start_time="window_start_time",
        learned_token_limit="learned_token_limit",
        learned_at="learned_at",
        length_sql="to_hours(CAST(window_hours AS BIGINT))",
    ),
    WindowKind.WEEKLY: _WindowColumns(
        start_time="weekly_window_start_time",
        learned_token_limit="weekly_learned_token_limit",
        learned_at="weekly_learned_at",
        length_sql=f"to_hours({WEEKLY_WINDOW_HOURS})",
    ),
}


class PlanRepository:
    """DuckDB-backed repository for the singleton plan configuration row."""

    def __init__(self, connection: duckdb.DuckDBPyConnection) -> None:
        self._connection = connection

    def ensure_schema(self) -> None:
        """Create tables when missing."""
        ensure_schema(self._connection)

    def get_plan_config(self) -> PlanConfig | None:
        """Load the plan configuration, or None when no plan is configured."""
        row = self._connection.execute(
            """
SELECT
    plan_type,
    window_hours,
    CAST(window_start_time AS VARCHAR),
    learned_token_limit,
    CAST(learned_at AS VARCHAR),
    CAST(weekly_window_start_time AS VARCHAR),
    weekly_learned_token_limit,
    CAST(weekly_learned_at AS VARCHAR)
FROM plan_config
WHERE config_id = ?
            """,
            [PLAN_CONFIG_ID],
        ).fetchone()
        if row is None:
            return None

        window_hours = int(row[1])
        return PlanConfig(
            plan_type=_parse_plan_type(row[0]),
            window_hours=window_hours,
            short_window=UsageWindow(
                kind=WindowKind.SHORT,
                length=timedelta(hours=window_hours),
                start_time=parse_db_timestamp(row[2]),
                learned_token_limit=_optional_float(row[3]),
                learned_at=parse_db_timestamp(row[4]),
            ),
            weekly_window=UsageWindow(
                kind=WindowKind.WEEKLY,
                length=timedelta(hours=WEEKLY_WINDOW_HOURS),
                start_time=parse_db_timestamp(row[5]),
                learned_token_limit=_optional_float(row[6]),
                learned_at=parse_db_timestamp(row[7]),
            ),
        )

    def upsert_plan_config(self, plan_type: PlanType, window_hours: int) -> None:
        """Insert or update plan type and short window length; window state is preserved."""
        if window_hours <= 0:
            raise PlanConfigError(f"Window hours must be positive, got {window_hours}.")
        _ = self._connection.execute(
            """
INSERT INTO plan_config (config_id, plan_type, window_hours)
VALUES (?, ?, ?)
ON CONFLICT (config_id)
DO UPDATE SET
    plan_type = EXCLUDED.plan_type,
    window_hours = EXCLUDED.window_hours,
    updated_at = NOW()
            """,
            [PLAN_CONFIG_ID, plan_type.value, window_hours],
        )

    def reset_window_if_expired(self, kind: WindowKind, session_start: datetime) -> bool:
        """Move the window start to `session_start` when the window is unset or expired.

        The check and the write are one conditional UPDATE, so concurrent
        callers observing the same expired window reset it at most once.
        Returns True when the window was reset.
        """
        columns = _WINDOW_COLUMNS[kind]
        rows = self._connection.execute(
            f"""
UPDATE plan_config
SET {columns.start_time} = ?, updated_at = NOW()
WHERE config_id = ?
  AND ({columns.start_time} IS NULL OR {columns.start_time} + {columns.length_sql} < ?)
RETURNING config_id
            """,
            [session_start, PLAN_CONFIG_ID, session_start],
        ).fetchall()
        return len(rows) > 0

    def update_learned_limit(self, kind: WindowKind, token_limit: float, learned_at: datetime) -> bool:
        """Store a learned token ceiling for a window unless a newer one is already stored.

        Returns:
            True when the limit was written.
        """
        columns = _WINDOW_COLUMNS[kind]
        rows = self._connection.execute(
            f"""
UPDATE plan_config
SET {columns.learned_token_limit} = ?, {columns.learned_at} = ?, updated_at = NOW()
WHERE config_id = ?
  AND ({columns.learned_at} IS NULL OR {columns.learned_at} <= ?)
RETURNING config_id
            """,
            [token_limit, learned_at, PLAN_CONFIG_ID, learned_at],
        ).fetchall()
        return len(rows) > 0

    def get_usage_since(self, start_time: datetime) -> WindowUsage:
        """Sum persisted session usage for sessions starting at or after `start_time`."""
        row = self._connection.execute(
            """
SELECT
    COUNT(*),
    COALESCE(SUM(total_tokens), 0),
    COALESCE(SUM(estimated_cost_usd), 0.0)
FROM claude_sessions
WHERE start_time >= ?
            """,
            [start_time],
        ).fetchone()
        assert row is not None
        return WindowUsage(
            sessions_count=int(row[0]),
            total_tokens=int(row[1]),
            total_cost_usd=float(row[2]),
        )


def _parse_plan_type(value: str) -> PlanType:
    try:
        return PlanType(value)
    except ValueError as exc:
        raise PlanConfigError(f"Unknown plan type in plan_config: {value!r}.") from exc


def _optional_float(value: float | None) -> float | None:
    if value is None:
        return None
    return float(value)
