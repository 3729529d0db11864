"""Calendar rollups, dense chart series and heatmaps.

Series builders always return one point per calendar day in their window,
with ``0`` for days that have no stored record, so chart axes stay regular.
Averages on the other hand are SQL ``AVG`` over existing rows: a day with no
entry is not a zero in the denominator.

Every function that depends on "now" accepts ``today`` so results are
reproducible.
"""

from __future__ import annotations

import calendar
import math
from collections.abc import Iterable
from datetime import date, timedelta

from habitron.analytics.models import DataPoint, HabitSeries, HeatmapPoint, Trend
from habitron.core.config_schema import Weekday
from habitron.store.metric_store import MetricStore

_ONE_DAY = timedelta(days=1)


# ---------------------------------------------------------------------------
# Calendar windows
# ---------------------------------------------------------------------------


def week_bounds(day: date, week_start: Weekday | str = Weekday.SUNDAY) -> tuple[date, date]:
    """First and last day of the week containing *day*."""
    offset = (day.weekday() - Weekday(week_start).number) % 7
    start = day - timedelta(days=offset)
    return start, start + timedelta(days=6)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last day of a calendar month.

    Raises:
        ValueError: for an invalid year/month.
    """
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid year/month: {year}/{month}")
    first = date(year, month, 1)
    return first, first.replace(day=calendar.monthrange(year, month)[1])


def months_before(day: date, months: int) -> date:
    """*day* shifted back by whole months, clamped to the target month's length."""
    index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(index, 12)
    month += 1
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))


def _days(start: date, end: date) -> Iterable[date]:
    day = start
    while day <= end:
        yield day
        day += _ONE_DAY


def dense_series(values: dict[date, int], start: date, end: date) -> list[DataPoint]:
    return [DataPoint(date=day, value=values.get(day, 0)) for day in _days(start, end)]


# ---------------------------------------------------------------------------
# Per-habit rollups
# ---------------------------------------------------------------------------


def weekly_average(
    store: MetricStore,
    habit: str,
    *,
    week_start: Weekday | str = Weekday.SUNDAY,
    today: date | None = None,
) -> float:
    """Mean value over this week's stored rows; 0.0 when there are none."""
    start, end = week_bounds(today or date.today(), week_start)
    avg = store.average_between(habit, start, end)
    return float(avg) if avg is not None else 0.0


def monthly_total(store: MetricStore, habit: str, *, today: date | None = None) -> int:
    today = today or date.today()
    start, end = month_bounds(today.year, today.month)
    return store.sum_between(habit, start, end)


def habit_trend(
    store: MetricStore,
    habit: str,
    *,
    week_start: Weekday | str = Weekday.SUNDAY,
    today: date | None = None,
) -> Trend:
    """Compare this week's total with last week's."""
    start, end = week_bounds(today or date.today(), week_start)
    this_week = store.sum_between(habit, start, end)
    last_week = store.sum_between(habit, start - timedelta(days=7), start - _ONE_DAY)
    if this_week > last_week:
        return Trend.UP
    if this_week < last_week:
        return Trend.DOWN
    return Trend.STABLE


def trend_series(store: MetricStore, habit: str, days: int = 30, *, today: date | None = None) -> list[DataPoint]:
    """``days + 1`` daily points ending today (inclusive)."""
    if days < 0:
        raise ValueError("days must be non-negative")
    end = today or date.today()
    start = end - timedelta(days=days)
    return dense_series(store.values_between(habit, start, end), start, end)


def intensity_level(value: int, max_value: int) -> int:
    """Bucket *value* into 0 (none) or 1-4 relative to the series maximum."""
    if value <= 0 or max_value <= 0:
        return 0
    return min(4, max(1, math.ceil(4 * value / max_value)))


def to_heatmap(points: list[DataPoint]) -> list[HeatmapPoint]:
    max_value = max((p.value for p in points), default=0)
    return [HeatmapPoint(date=p.date, count=p.value, level=intensity_level(p.value, max_value)) for p in points]


def heatmap(store: MetricStore, habit: str, days: int = 365, *, today: date | None = None) -> list[HeatmapPoint]:
    return to_heatmap(trend_series(store, habit, days, today=today))


def monthly_heatmap(store: MetricStore, habit: str, year: int, month: int) -> list[HeatmapPoint]:
    """One point per day of the given month."""
    start, end = month_bounds(year, month)
    return to_heatmap(dense_series(store.values_between(habit, start, end), start, end))


def all_habit_trends(store: MetricStore, days: int = 30, *, today: date | None = None) -> dict[str, list[DataPoint]]:
    return {habit: trend_series(store, habit, days, today=today) for habit in store.all_habits()}


# ---------------------------------------------------------------------------
# Cross-habit activity
# ---------------------------------------------------------------------------


def activity_between(store: MetricStore, start: date, end: date) -> list[HabitSeries]:
    """Dense series over ``[start, end]`` for every habit in the store."""
    if end < start:
        raise ValueError("end must not be before start")
    values = store.metrics_between(start, end)
    series = []
    for habit in store.all_habits():
        per_day = {day: v for (name, day), v in values.items() if name == habit}
        series.append(HabitSeries(habit_name=habit, data=dense_series(per_day, start, end)))
    return series


def recent_activity(store: MetricStore, *, today: date | None = None) -> list[HabitSeries]:
    """Every habit over the last month, today inclusive."""
    today = today or date.today()
    return activity_between(store, months_before(today, 1), today)


def month_range_activity(store: MetricStore, year: int, month: int) -> list[HabitSeries]:
    """A month's activity padded with a week on either side for calendar views."""
    first, last = month_bounds(year, month)
    return activity_between(store, first - timedelta(days=7), last + timedelta(days=7))


def completion_rate(store: MetricStore) -> int:
    """Percentage of (day, habit) slots in the stored date range that were completed.

    The range spans the earliest to the latest stored date, inclusive.
    Clamped to 100; 0 when there is nothing to measure.
    """
    bounds = store.date_bounds()
    if bounds is None:
        return 0
    days_logged = (bounds[1] - bounds[0]).days + 1
    habits = store.count_habits()
    if days_logged <= 0 or habits <= 0:
        return 0
    return min(100, int(100 * store.count_successes() / (days_logged * habits)))


def active_days(store: MetricStore) -> int:
    return store.count_active_days()


def total_habits(store: MetricStore) -> int:
    """Habits completed at least once."""
    return store.count_habits(completed_only=True)


def weekly_activity(
    store: MetricStore,
    tracked: Iterable[str],
    *,
    week_start: Weekday | str = Weekday.SUNDAY,
    today: date | None = None,
) -> list[DataPoint]:
    """Number of tracked habits completed on each day of the current week."""
    start, end = week_bounds(today or date.today(), week_start)
    return dense_series(store.completed_per_day(start, end, tracked), start, end)
