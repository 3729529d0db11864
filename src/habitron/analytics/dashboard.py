"""Dashboard and settings-screen aggregates built from the rollups."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, timedelta

from habitron.analytics import rollups, streaks
from habitron.analytics.models import AnalyticsSummary, DashboardMetrics, TrackedMetric
from habitron.core.config_schema import Weekday
from habitron.store.metric_store import MetricStore

ACTIVE_WINDOW = timedelta(days=7)


def habit_metrics(
    store: MetricStore,
    habit: str,
    *,
    week_start: Weekday | str = Weekday.SUNDAY,
    today: date | None = None,
) -> DashboardMetrics:
    today = today or date.today()
    return DashboardMetrics(
        name=habit,
        current_streak=streaks.current_streak(store, habit, today=today),
        longest_streak=streaks.longest_streak(store, habit),
        weekly_average=rollups.weekly_average(store, habit, week_start=week_start, today=today),
        monthly_total=rollups.monthly_total(store, habit, today=today),
        last_updated=store.last_updated(habit),
        trend=rollups.habit_trend(store, habit, week_start=week_start, today=today),
    )


def dashboard_metrics(
    store: MetricStore,
    *,
    week_start: Weekday | str = Weekday.SUNDAY,
    today: date | None = None,
) -> list[DashboardMetrics]:
    """One summary card per habit with stored data. Empty list for a new store."""
    return [habit_metrics(store, habit, week_start=week_start, today=today) for habit in store.all_habits()]


def analytics_summary(store: MetricStore) -> AnalyticsSummary:
    return AnalyticsSummary(
        longest_streak=streaks.overall_longest_streak(store),
        total_habits=rollups.total_habits(store),
        completion_rate=rollups.completion_rate(store),
        active_days=rollups.active_days(store),
    )


def tracked_metric_overview(
    store: MetricStore,
    tracked: Iterable[str],
    *,
    now: datetime | None = None,
) -> list[TrackedMetric]:
    """Tracked habits with their entry counts, most recently updated first.

    Tracked names that have no stored rows yet are listed last with zero
    entries.
    """
    now = now or datetime.now()
    tracked = set(tracked)
    overview: list[TrackedMetric] = []
    for name, last_updated, entries in store.metric_overview():
        if name not in tracked:
            continue
        active = last_updated is not None and now - last_updated <= ACTIVE_WINDOW
        overview.append(TrackedMetric(name=name, entries=entries, last_updated=last_updated, active=active))
        tracked.discard(name)
    overview.extend(TrackedMetric(name=name) for name in sorted(tracked))
    return overview
