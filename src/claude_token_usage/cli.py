"""CLI entrypoints for Claude token usage tooling."""

from __future__ import annotations

import logging
from datetime import UTC, date, datetime, timedelta
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import duckdb
import typer
from rich.console import Console

from model_pricing import PricingConfigError, PricingTable, get_pricing_table
from token_monitor_internal.paths import get_default_database_path, get_default_projects_root

from .database import connect_database, ensure_schema
from .ingestion.errors import IngestionError
from .ingestion.repository import IngestionRepository
from .ingestion.schemas import IngestionCounters
from .ingestion.service import IngestionService
from .limits.repository import LimitsRepository
from .limits.service import LimitsService
from .stats.render import render_daily_usage_statistics, render_limit_events, render_window_statuses
from .stats.repository import StatsRepository, StatsRepositoryError
from .stats.schemas import DailyUsageStatistics
from .stats.service import StatsService
from .transcript.schemas import LimitType
from .windows.errors import PlanConfigError
from .windows.repository import PlanRepository
from .windows.schemas import DEFAULT_WINDOW_HOURS, PlanType
from .windows.tracker import WindowTracker

LOGGER = logging.getLogger(__name__)

TYPER_APP = typer.Typer(help="Claude token usage tooling.")
PLAN_APP = typer.Typer(help="Subscription plan configuration.")
TYPER_APP.add_typer(PLAN_APP, name="plan")

DATABASE_PATH_OPTION = typer.Option(
    None,
    "--database-path",
    "-d",
    help="DuckDB file path. Defaults to $XDG_DATA_HOME/claude-token-usage-monitor/token_usage.duckdb.",
)
PROJECTS_ROOT_OPTION = typer.Option(
    None,
    "--projects-root",
    "-p",
    help="Directory containing transcript JSONL files. Defaults to $CLAUDE_CONFIG_DIR/projects or ~/.claude/projects.",
)
PRICING_PATH_OPTION = typer.Option(
    None,
    "--pricing-path",
    help="JSON file with per-model rate overrides. Defaults to $TOKEN_PRICING_PATH when set.",
)
VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Enable info-level logging.")


@TYPER_APP.callback()
def main() -> None:
    """Root CLI callback."""


@TYPER_APP.command("ingest")
def ingest_command(
    projects_root: Path | None = PROJECTS_ROOT_OPTION,
    database_path: Path | None = DATABASE_PATH_OPTION,
    pricing_path: Path | None = PRICING_PATH_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Ingest Claude transcripts into DuckDB."""
    _configure_logging(verbose)
    resolved_database_path = database_path or get_default_database_path()
    pricing_table = _load_pricing_table(pricing_path)

    counters = _run_ingestion(
        projects_root=projects_root or get_default_projects_root(),
        database_path=resolved_database_path,
        pricing_table=pricing_table,
    )
    _emit_ingest_summary(counters)
    _emit_last_7_days_stats(database_path=resolved_database_path, pricing_table=pricing_table, console=Console())
    if counters.failed_files:
        raise typer.Exit(code=1)


@TYPER_APP.command("stats")
def stats_command(
    database_path: Path | None = DATABASE_PATH_OPTION,
    timezone: str | None = typer.Option(
        None,
        "--timezone",
        "-tz",
        help="Timezone to use for daily stats (e.g., 'UTC', 'America/New_York'). Defaults to local system time.",
    ),
    since: str | None = typer.Option(
        None,
        "--since",
        help="Include only usage on/after this date (YYYY-MM-DD).",
    ),
    ingest: bool = typer.Option(False, "--ingest", help="Ingest transcripts before computing statistics."),
    projects_root: Path | None = PROJECTS_ROOT_OPTION,
    pricing_path: Path | None = PRICING_PATH_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Aggregate and print daily token usage and costs from DuckDB."""
    _configure_logging(verbose)
    resolved_database_path = database_path or get_default_database_path()
    resolved_timezone = _parse_timezone(timezone)
    since_date = _parse_since_date(since)
    pricing_table = _load_pricing_table(pricing_path)

    if ingest:
        counters = _run_ingestion(
            projects_root=projects_root or get_default_projects_root(),
            database_path=resolved_database_path,
            pricing_table=pricing_table,
        )
        _emit_ingest_summary(counters)
        typer.echo("")
    elif not resolved_database_path.exists():
        raise typer.BadParameter(f"Database file not found: {resolved_database_path}")

    report = _collect_stats_report(
        database_path=resolved_database_path,
        timezone=resolved_timezone,
        since=since_date,
        pricing_table=pricing_table,
    )
    render_daily_usage_statistics(report, Console())


@TYPER_APP.command("limits")
def limits_command(
    database_path: Path | None = DATABASE_PATH_OPTION,
    days: int = typer.Option(7, "--days", min=1, help="Show limit events from the last N days."),
    limit_type: LimitType | None = typer.Option(
        None,
        "--type",
        help="Show only the newest events of this limit type instead of the last N days.",
    ),
    count: int = typer.Option(20, "--count", min=1, help="Maximum events shown with --type."),
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Show recorded quota hit/reset events and usage since the last one."""
    _configure_logging(verbose)
    connection = _open_existing_database(database_path)
    try:
        repository = LimitsRepository(connection)
        if limit_type is None:
            records = repository.list_recent(days=days, now=datetime.now(UTC))
        else:
            records = repository.list_by_type(limit_type, count)
        current_usage = LimitsService(repository).get_current_usage()
    except duckdb.Error as exc:
        raise typer.BadParameter(f"Failed to query limit events: {exc}") from exc
    finally:
        connection.close()

    console = Console()
    render_limit_events(records, console)
    typer.echo("\nUsage since last limit event:")
    typer.echo(f"sessions={current_usage.sessions_count}")
    typer.echo(f"total_tokens={current_usage.total_tokens}")
    typer.echo(f"total_cost_usd={current_usage.total_cost_usd:.6f}")


@TYPER_APP.command("windows")
def windows_command(
    database_path: Path | None = DATABASE_PATH_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Show usage of the short and weekly plan windows."""
    _configure_logging(verbose)
    connection = _open_existing_database(database_path)
    try:
        statuses = WindowTracker(PlanRepository(connection)).get_window_statuses(now=datetime.now(UTC))
    except (duckdb.Error, PlanConfigError) as exc:
        raise typer.BadParameter(f"Failed to read plan windows: {exc}") from exc
    finally:
        connection.close()

    render_window_statuses(statuses, Console())


@PLAN_APP.command("set")
def plan_set_command(
    plan_type: PlanType = typer.Argument(..., help="Subscription plan."),
    window_hours: int = typer.Option(
        DEFAULT_WINDOW_HOURS,
        "--window-hours",
        min=1,
        help="Length of the short usage window in hours.",
    ),
    database_path: Path | None = DATABASE_PATH_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Create or update the plan configuration."""
    _configure_logging(verbose)
    resolved_database_path = database_path or get_default_database_path()
    resolved_database_path.parent.mkdir(parents=True, exist_ok=True)

    connection = connect_database(resolved_database_path)
    try:
        ensure_schema(connection)
        PlanRepository(connection).upsert_plan_config(plan_type, window_hours)
    except PlanConfigError as exc:
        raise typer.BadParameter(str(exc)) from exc
    finally:
        connection.close()

    typer.echo(f"plan_type={plan_type.value}")
    typer.echo(f"window_hours={window_hours}")


@PLAN_APP.command("show")
def plan_show_command(
    database_path: Path | None = DATABASE_PATH_OPTION,
) -> None:
    """Print the stored plan configuration."""
    connection = _open_existing_database(database_path)
    try:
        plan_config = PlanRepository(connection).get_plan_config()
    except (duckdb.Error, PlanConfigError) as exc:
        raise typer.BadParameter(f"Failed to read plan configuration: {exc}") from exc
    finally:
        connection.close()

    if plan_config is None:
        typer.echo("No plan configured.")
        raise typer.Exit(code=1)

    typer.echo(f"plan_type={plan_config.plan_type.value}")
    typer.echo(f"window_hours={plan_config.window_hours}")
    for window in (plan_config.short_window, plan_config.weekly_window):
        start = window.start_time.isoformat() if window.start_time else "-"
        learned = f"{window.learned_token_limit:.0f}" if window.learned_token_limit is not None else "-"
        typer.echo(f"{window.kind}_window_start={start}")
        typer.echo(f"{window.kind}_learned_token_limit={learned}")


def _configure_logging(verbose: bool) -> None:
    level = logging.INFO if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="[%(asctime)s][%(levelname)s][%(name)s] %(message)s",
    )


def _run_ingestion(projects_root: Path, database_path: Path, pricing_table: PricingTable) -> IngestionCounters:
    """Ingest every transcript under `projects_root` with one shared connection."""
    database_path.parent.mkdir(parents=True, exist_ok=True)
    connection = connect_database(database_path)
    try:
        plan_repository = PlanRepository(connection)
        service = IngestionService(
            repository=IngestionRepository(connection),
            limits_service=LimitsService(LimitsRepository(connection), plan_repository),
            window_tracker=WindowTracker(plan_repository),
            pricing_table=pricing_table,
        )
        return service.ingest(projects_root)
    except IngestionError as exc:
        raise typer.BadParameter(str(exc)) from exc
    finally:
        connection.close()


def _open_existing_database(database_path: Path | None) -> duckdb.DuckDBPyConnection:
    resolved_database_path = database_path or get_default_database_path()
    if not resolved_database_path.exists():
        raise typer.BadParameter(f"Database file not found: {resolved_database_path}")
    return connect_database(resolved_database_path, read_only=True)


def _load_pricing_table(pricing_path: Path | None) -> PricingTable:
    try:
        if pricing_path is None:
            return get_pricing_table()
        return get_pricing_table(pricing_path)
    except PricingConfigError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _emit_ingest_summary(counters: IngestionCounters) -> None:
    typer.echo("\nSummary:")
    typer.echo(f"files_scanned={counters.files_scanned}")
    typer.echo(f"files_ingested={counters.files_ingested}")
    typer.echo(f"files_skipped_unchanged={counters.files_skipped_unchanged}")
    typer.echo(f"files_empty={counters.files_empty}")
    typer.echo(f"sessions_ingested={counters.sessions_ingested}")
    typer.echo(f"limit_events_recorded={counters.limit_events_recorded}")
    typer.echo(f"windows_reset={counters.windows_reset}")
    typer.echo(f"read_errors={counters.read_errors}")
    typer.echo(f"failed_files={len(counters.failed_files)}")
    for failed_file in counters.failed_files:
        typer.echo(f"failed_file={failed_file}")


def _emit_last_7_days_stats(database_path: Path, pricing_table: PricingTable, console: Console) -> None:
    """Render usage statistics from ingested sessions over the last seven days."""
    today = datetime.now().date()
    since_date = today - timedelta(days=6)
    report = _collect_stats_report(
        database_path=database_path,
        timezone=None,
        since=since_date,
        pricing_table=pricing_table,
    )
    typer.echo("\nStatistics (last 7 days):")
    render_daily_usage_statistics(report=report, console=console)


def _collect_stats_report(
    database_path: Path,
    timezone: ZoneInfo | None,
    since: date | None,
    pricing_table: PricingTable,
) -> DailyUsageStatistics:
    """Collect daily stats report from persisted sessions with optional date filtering."""
    connection = connect_database(database_path, read_only=True)
    try:
        service = StatsService(
            repository=StatsRepository(connection),
            timezone=timezone,
            since=since,
            pricing_table=pricing_table,
        )
        return service.collect_daily_statistics()
    except StatsRepositoryError as exc:
        raise typer.BadParameter(str(exc)) from exc
    finally:
        connection.close()


def _parse_timezone(timezone: str | None) -> ZoneInfo | None:
    """Parse timezone option into a ZoneInfo instance."""
    if timezone is None:
        return None
    try:
        return ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise typer.BadParameter(f"Invalid timezone: {timezone}.") from exc


def _parse_since_date(since: str | None) -> date | None:
    """Parse `--since` value into a date."""
    if since is None:
        return None
    try:
        return date.fromisoformat(since)
    except ValueError as exc:
        raise typer.BadParameter(f"Invalid --since value: {since}. Expected YYYY-MM-DD.") from exc


def module_cli_entry_point() -> None:
    TYPER_APP()
