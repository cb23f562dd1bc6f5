"""Service orchestration for Claude transcript ingestion."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

import duckdb

from model_pricing import DEFAULT_PRICING_TABLE, PricingTable

from ..limits.service import LimitsService
from ..transcript import ParsedTranscript, TranscriptReadError, parse_transcript
from ..windows.tracker import WindowTracker
from .errors import ProjectsRootError
from .repository import IngestionRepository
from .schemas import IngestionCounters, IngestionFileState, SessionRow

LOGGER = logging.getLogger(__name__)
TRANSCRIPT_GLOB = "*.jsonl"


class IngestionService:
    """Coordinates transcript discovery, parsing, and DuckDB upserts.

    The repositories behind `limits_service` and `window_tracker` must share
    the ingestion repository's connection so that each transcript is
    persisted in a single transaction.
    """

    def __init__(
        self,
        repository: IngestionRepository,
        limits_service: LimitsService,
        window_tracker: WindowTracker,
        pricing_table: PricingTable = DEFAULT_PRICING_TABLE,
    ) -> None:
        self._repository = repository
        self._limits_service = limits_service
        self._window_tracker = window_tracker
        self._pricing_table = pricing_table

    def ingest(self, projects_root: Path) -> IngestionCounters:
        """Ingest every transcript under `projects_root`."""
        if not projects_root.is_dir():
            raise ProjectsRootError(f"Transcript directory not found: {projects_root}")
        return self.ingest_files(discover_transcript_files(projects_root))

    def ingest_files(self, transcript_paths: Iterable[Path]) -> IngestionCounters:
        """Ingest the given transcripts, skipping files unchanged since their last ingestion."""
        self._repository.ensure_schema()
        counters = IngestionCounters()
        for transcript_path in transcript_paths:
            counters.files_scanned += 1
            self._ingest_file(transcript_path, counters)

        LOGGER.info(
            "Ingestion finished: %d scanned, %d ingested, %d unchanged, %d failed.",
            counters.files_scanned,
            counters.files_ingested,
            counters.files_skipped_unchanged,
            len(counters.failed_files),
        )
        return counters

    def _ingest_file(self, transcript_path: Path, counters: IngestionCounters) -> None:
        try:
            file_state = _build_file_state(transcript_path)
        except OSError as exc:
            counters.read_errors += 1
            counters.failed_files.append(str(transcript_path))
            LOGGER.error("Failed to stat transcript %s: %s", transcript_path, exc)
            return

        if self._repository.get_file_state(file_state.transcript_path) == file_state:
            counters.files_skipped_unchanged += 1
            LOGGER.debug("Skipping unchanged transcript %s", transcript_path)
            return

        try:
            parsed = parse_transcript(transcript_path)
        except TranscriptReadError as exc:
            counters.read_errors += 1
            counters.failed_files.append(str(transcript_path))
            LOGGER.error("%s", exc)
            return

        try:
            with self._repository.transaction():
                self._persist(transcript_path, parsed, file_state, counters)
        except duckdb.Error as exc:
            counters.failed_files.append(str(transcript_path))
            LOGGER.error("Failed to persist transcript %s: %s", transcript_path, exc)
            return
        counters.files_ingested += 1

    def _persist(
        self,
        transcript_path: Path,
        parsed: ParsedTranscript,
        file_state: IngestionFileState,
        counters: IngestionCounters,
    ) -> None:
        if _is_empty(parsed):
            counters.files_empty += 1
            self._repository.upsert_file_state(file_state)
            return

        session_row = _build_session_row(transcript_path, parsed, self._pricing_table)
        statistics = parsed.statistics
        self._repository.upsert_session(session_row)
        self._repository.replace_session_tools(session_row.session_id, statistics.tools_breakdown)
        self._repository.replace_session_files(
            session_row.session_id,
            statistics.files_accessed,
            statistics.files_modified,
        )
        counters.sessions_ingested += 1

        recorded = self._limits_service.record_events(parsed.limit_events, session_id=session_row.session_id)
        counters.limit_events_recorded += len(recorded)

        if statistics.start_time is not None:
            resets = self._window_tracker.observe_session_start(statistics.start_time)
            counters.windows_reset += sum(1 for reset in resets.values() if reset)

        self._repository.upsert_file_state(file_state)


def discover_transcript_files(projects_root: Path) -> list[Path]:
    """Return transcript JSONL files below `projects_root`, sorted by path."""
    return sorted(path for path in projects_root.rglob(TRANSCRIPT_GLOB) if path.is_file())


def _build_file_state(transcript_path: Path) -> IngestionFileState:
    stat_result = transcript_path.stat()
    return IngestionFileState(
        transcript_path=str(transcript_path.resolve()),
        file_size_bytes=stat_result.st_size,
        file_mtime=datetime.fromtimestamp(stat_result.st_mtime, tz=UTC),
    )


def _is_empty(parsed: ParsedTranscript) -> bool:
    statistics = parsed.statistics
    return (
        statistics.start_time is None
        and statistics.user_prompts == 0
        and statistics.assistant_responses == 0
        and not parsed.limit_events
    )


def _build_session_row(transcript_path: Path, parsed: ParsedTranscript, pricing_table: PricingTable) -> SessionRow:
    statistics = parsed.statistics
    return SessionRow(
        session_id=transcript_path.stem,
        transcript_path=str(transcript_path.resolve()),
        start_time=statistics.start_time,
        end_time=statistics.end_time,
        duration_seconds=statistics.duration_seconds,
        model_code=statistics.model or None,
        git_branch=statistics.git_branch or None,
        tool_version=statistics.tool_version or None,
        summary=statistics.summary or None,
        user_prompts=statistics.user_prompts,
        assistant_responses=statistics.assistant_responses,
        tool_calls=statistics.tool_calls,
        errors_count=statistics.errors_count,
        input_tokens=statistics.input_tokens,
        output_tokens=statistics.output_tokens,
        thinking_tokens=statistics.thinking_tokens,
        cache_read_tokens=statistics.cache_read_tokens,
        cache_write_tokens=statistics.cache_write_tokens,
        total_tokens=statistics.total_tokens,
        estimated_cost_usd=statistics.estimate_cost(pricing_table),
    )
