"""Read-side aggregations over the metric store."""

from .dashboard import analytics_summary, dashboard_metrics, tracked_metric_overview
from .models import AnalyticsSummary, DashboardMetrics, DataPoint, HabitSeries, HeatmapPoint, TrackedMetric, Trend
from .rollups import (
    active_days,
    activity_between,
    all_habit_trends,
    completion_rate,
    heatmap,
    month_range_activity,
    monthly_heatmap,
    monthly_total,
    recent_activity,
    total_habits,
    trend_series,
    week_bounds,
    weekly_activity,
    weekly_average,
)
from .streaks import compute_longest_streak, current_streak, longest_streak, overall_longest_streak

__all__ = [
    "AnalyticsSummary",
    "DashboardMetrics",
    "DataPoint",
    "HabitSeries",
    "HeatmapPoint",
    "TrackedMetric",
    "Trend",
    "active_days",
    "activity_between",
    "all_habit_trends",
    "analytics_summary",
    "completion_rate",
    "compute_longest_streak",
    "current_streak",
    "dashboard_metrics",
    "heatmap",
    "longest_streak",
    "month_range_activity",
    "monthly_heatmap",
    "monthly_total",
    "overall_longest_streak",
    "recent_activity",
    "total_habits",
    "tracked_metric_overview",
    "trend_series",
    "week_bounds",
    "weekly_activity",
    "weekly_average",
]
