"""DuckDB repository for Claude session statistics queries."""

from __future__ import annotations

import duckdb

from token_monitor_internal.database import require_db_timestamp

from .schemas import SessionUsageRow


class StatsRepositoryError(RuntimeError):
    """Raised when stats queries cannot be executed."""


class StatsRepository:
    """Read-only repository for persisted Claude session usage."""

    def __init__(self, connection: duckdb.DuckDBPyConnection) -> None:
        self._connection = connection

    def fetch_session_usage(self) -> list[SessionUsageRow]:
        """Load token counters of sessions that have a start time."""
        try:
            rows = self._connection.execute(
                """
SELECT
    session_id,
    COALESCE(model_code, 'unknown') AS model_code,
    CAST(start_time AS VARCHAR) AS start_time,
    input_tokens,
    output_tokens,
    thinking_tokens,
    cache_read_tokens,
    cache_write_tokens
FROM claude_sessions
WHERE start_time IS NOT NULL
ORDER BY start_time, session_id
                """
            ).fetchall()
        except duckdb.Error as exc:
            raise StatsRepositoryError(
                "Failed to query claude_sessions. Run `claude-token-usage ingest` first."
            ) from exc

        return [
            SessionUsageRow(
                session_id=str(row[0]),
                model_code=str(row[1]),
                start_time=require_db_timestamp(row[2]),
                input_tokens=int(row[3]),
                output_tokens=int(row[4]),
                thinking_tokens=int(row[5]),
                cache_read_tokens=int(row[6]),
                cache_write_tokens=int(row[7]),
            )
            for row in rows
        ]
