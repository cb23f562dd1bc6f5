"""Rich rendering helpers for Claude token usage statistics."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from rich.console import Console
from rich.table import Table

from ..limits.schemas import LimitEventRecord
from ..windows.schemas import StatusLevel, WindowStatus
from .schemas import DailyUsageStatistics, UsageStats

TABLE_ROW_STYLES = ["white", "yellow"]
STATUS_LEVEL_STYLES = {
    StatusLevel.OK: "green",
    StatusLevel.WARNING: "yellow",
    StatusLevel.CRITICAL: "bold red",
}


def render_daily_usage_statistics(report: DailyUsageStatistics, console: Console) -> None:
    """Render daily and overall statistics tables."""
    if report.total_sessions == 0:
        console.print("No sessions found in the database.")
        return

    sorted_keys = sorted(report.usage_by_model_day.keys(), key=lambda item: (item[1], item[0]))
    daily_data = [
        ((day.isoformat(), model), report.usage_by_model_day[(model, day)]) for model, day in sorted_keys
    ]
    _print_usage_table("Daily Token Usage", daily_data, console, show_date=True)
    console.print("\n")

    cost_table = Table(title="Daily Aggregated Costs", show_footer=True, title_justify="left")
    cost_table.add_column("Date", justify="left")
    cost_table.add_column("Cost ($)", justify="right", footer_style="bold")

    total_daily_cost = 0.0
    for index, day in enumerate(sorted(report.daily_costs)):
        day_cost = report.daily_costs[day]
        total_daily_cost += day_cost
        style = TABLE_ROW_STYLES[index % len(TABLE_ROW_STYLES)]
        cost_table.add_row(day.isoformat(), f"{day_cost:,.6f}", style=style)

    cost_table.columns[1].footer = f"{total_daily_cost:,.6f}"
    console.print(cost_table)
    console.print("\n")

    overall_data = [((model,), stats) for model, stats in sorted(report.overall_usage.items())]
    _print_usage_table("Overall Token Usage by Model", overall_data, console, show_date=False)


def render_window_statuses(statuses: Sequence[WindowStatus], console: Console) -> None:
    """Render one row per usage window with limit, burn rate and projection."""
    if not statuses:
        console.print("No plan configured. Run `claude-token-usage plan set` first.")
        return

    table = Table(title="Usage Windows", title_justify="left")
    table.add_column("Window", justify="left")
    table.add_column("Started", justify="left")
    table.add_column("Resets", justify="left")
    table.add_column("Sessions", justify="right")
    table.add_column("Tokens", justify="right")
    table.add_column("Limit", justify="right")
    table.add_column("Used (%)", justify="right")
    table.add_column("Tokens/min", justify="right")
    table.add_column("Cost/h ($)", justify="right")
    table.add_column("Exhausted in", justify="right")

    for status in statuses:
        window = status.window
        limit_label = "-"
        if status.token_limit is not None:
            limit_label = f"{status.token_limit:,.0f}"
            if status.limit_is_learned:
                limit_label = f"{limit_label} (learned)"

        table.add_row(
            str(window.kind),
            window.start_time.isoformat(timespec="minutes") if window.start_time else "-",
            window.end_time.isoformat(timespec="minutes") if window.end_time else "-",
            str(status.usage.sessions_count),
            f"{status.usage.total_tokens:,}",
            limit_label,
            f"{status.usage_percent:.1f}" if status.usage_percent is not None else "-",
            f"{status.burn_rate.tokens_per_minute:,.1f}",
            f"{status.burn_rate.cost_per_hour:,.4f}",
            _format_exhaustion(status),
            style=STATUS_LEVEL_STYLES[status.level],
        )

    console.print(table)


def render_limit_events(records: Sequence[LimitEventRecord], console: Console) -> None:
    """Render recorded limit events with their usage snapshots."""
    if not records:
        console.print("No limit events recorded.")
        return

    table = Table(title="Limit Events", title_justify="left")
    table.add_column("Timestamp", justify="left")
    table.add_column("Event", justify="left")
    table.add_column("Limit", justify="left")
    table.add_column("Sessions", justify="right")
    table.add_column("Tokens", justify="right")
    table.add_column("Cost ($)", justify="right")
    table.add_column("Message", justify="left", overflow="fold")

    for index, record in enumerate(records):
        style = TABLE_ROW_STYLES[index % len(TABLE_ROW_STYLES)]
        table.add_row(
            record.timestamp.isoformat(timespec="seconds"),
            str(record.event_type),
            str(record.limit_type),
            str(record.sessions_count),
            f"{record.total_tokens:,}",
            f"{record.total_cost_usd:,.6f}",
            record.message,
            style=style,
        )

    console.print(table)


def _format_exhaustion(status: WindowStatus) -> str:
    projection = status.projection
    if projection is None or projection.minutes_to_exhaustion is None:
        return "-"
    if projection.minutes_to_exhaustion == 0:
        return "exhausted"
    hours, minutes = divmod(int(projection.minutes_to_exhaustion), 60)
    label = f"{hours}h{minutes:02d}m"
    if not projection.exhausts_before_reset:
        label = f"{label} (after reset)"
    return label


def _print_usage_table(
    title: str,
    data: list[tuple[Any, UsageStats]],
    console: Console,
    show_date: bool = False,
) -> None:
    """Render one usage table with totals."""
    table = Table(
        title=title,
        show_footer=True,
        footer_style="bold",
        title_justify="left",
    )

    if show_date:
        table.add_column("Date", justify="left")
    table.add_column("Model", footer="Grand Total", justify="left")
    table.add_column("Sessions", footer_style="bold", justify="right")
    table.add_column("Input Tokens", footer_style="bold", justify="right")
    table.add_column("Output Tokens", footer_style="bold", justify="right")
    table.add_column("Thinking Tokens", footer_style="bold", justify="right")
    table.add_column("Cache Read Tokens", footer_style="bold", justify="right")
    table.add_column("Cache Write Tokens", footer_style="bold", justify="right")
    table.add_column("Cost ($)", footer_style="bold", justify="right")
    table.add_column("Total Tokens", footer_style="bold", justify="right")

    total_stats = UsageStats()
    last_date: str | None = None
    style_index = 0

    for key, stats in data:
        total_stats += stats

        row_args: list[str] = []
        row_style: str | None = None

        if show_date:
            date_str, model_name = key
            if last_date is not None and date_str != last_date:
                style_index = (style_index + 1) % len(TABLE_ROW_STYLES)
            last_date = date_str
            row_style = TABLE_ROW_STYLES[style_index]
            row_args.extend([date_str, model_name])
        else:
            (model_name,) = key
            row_args.append(model_name)

        row_args.extend(
            [
                str(stats.sessions),
                f"{stats.input_tokens:,}",
                f"{stats.output_tokens:,}",
                f"{stats.thinking_tokens:,}",
                f"{stats.cache_read_tokens:,}",
                f"{stats.cache_write_tokens:,}",
                f"{stats.cost:,.6f}",
                f"{stats.total_tokens:,}",
            ]
        )
        table.add_row(*row_args, style=row_style)

    col_offset = 1 if show_date else 0
    table.columns[1 + col_offset].footer = str(total_stats.sessions)
    table.columns[2 + col_offset].footer = f"{total_stats.input_tokens:,}"
    table.columns[3 + col_offset].footer = f"{total_stats.output_tokens:,}"
    table.columns[4 + col_offset].footer = f"{total_stats.thinking_tokens:,}"
    table.columns[5 + col_offset].footer = f"{total_stats.cache_read_tokens:,}"
    table.columns[6 + col_offset].footer = f"{total_stats.cache_write_tokens:,}"
    table.columns[7 + col_offset].footer = f"{total_stats.cost:,.6f}"
    table.columns[8 + col_offset].footer = f"{total_stats.total_tokens:,}"

    console.print(table)
