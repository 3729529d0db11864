"""habitron stats / streak / heatmap — read-only views."""

from __future__ import annotations

from datetime import date

import click
from rich.table import Table

from .common import console, open_app

# One glyph per heatmap level (0 = nothing logged)
_LEVEL_GLYPHS = ("·", "░", "▒", "▓", "█")


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Print the raw payload as JSON.")
@click.pass_context
def stats(ctx: click.Context, as_json: bool) -> None:
    """Summary across all habits plus one row per habit."""
    with open_app(ctx) as app:
        summary = app.analytics_summary()
        cards = app.dashboard_metrics()

    if as_json:
        console.print_json(data={"summary": summary.to_dict(), "habits": [c.to_dict() for c in cards]})
        return

    console.print(
        f"Longest streak: [bold]{summary.longest_streak}[/bold] days   "
        f"Habits: [bold]{summary.total_habits}[/bold]   "
        f"Completion: [bold]{summary.completion_rate}%[/bold]   "
        f"Active days: [bold]{summary.active_days}[/bold]"
    )
    if not cards:
        console.print("No habit data yet.")
        return

    table = Table()
    table.add_column("Habit")
    table.add_column("Streak", justify="right")
    table.add_column("Best", justify="right")
    table.add_column("Week avg", justify="right")
    table.add_column("Month", justify="right")
    table.add_column("Trend")
    for card in cards:
        table.add_row(
            card.display_name,
            str(card.current_streak),
            str(card.longest_streak),
            f"{card.weekly_average:.1f}",
            str(card.monthly_total),
            card.trend.value,
        )
    console.print(table)


@click.command()
@click.argument("habit")
@click.pass_context
def streak(ctx: click.Context, habit: str) -> None:
    """Current and longest streak for HABIT."""
    with open_app(ctx) as app:
        current = app.current_streak(habit)
        longest = app.longest_streak(habit)
    console.print(f"{habit}: current streak {current} days, longest {longest} days")


def _parse_month(value: str | None) -> tuple[int, int] | None:
    if value is None:
        return None
    try:
        year, month = (int(part) for part in value.split("-", 1))
    except ValueError as e:
        raise click.BadParameter("expected YYYY-MM", param_hint="--month") from e
    return year, month


@click.command()
@click.argument("habit")
@click.option("--days", default=27, show_default=True, type=click.IntRange(min=0), help="Days back from today.")
@click.option("--month", default=None, metavar="YYYY-MM", help="Show one calendar month instead.")
@click.pass_context
def heatmap(ctx: click.Context, habit: str, days: int, month: str | None) -> None:
    """Print HABIT's activity as a week-by-week heatmap."""
    target = _parse_month(month)
    with open_app(ctx) as app:
        try:
            points = app.monthly_heatmap(habit, *target) if target else app.heatmap(habit, days)
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="--month") from e

    if not points:
        return
    # Rows are weekdays, columns are weeks
    rows: list[list[str]] = [[] for _ in range(7)]
    first = points[0].date
    for weekday in range(first.weekday()):
        rows[weekday].append(" ")
    for point in points:
        rows[point.date.weekday()].append(_LEVEL_GLYPHS[point.level])

    console.print(f"[bold]{habit}[/bold] {points[0].date.isoformat()} .. {points[-1].date.isoformat()}")
    for index, row in enumerate(rows):
        label = date(2024, 1, 1 + index).strftime("%a")  # 2024-01-01 was a Monday
        console.print(f"{label} {' '.join(row)}")
    total = sum(p.count for p in points)
    console.print(f"total {total}, logged {sum(1 for p in points if p.count > 0)} of {len(points)} days")
