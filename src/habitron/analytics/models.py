"""Result types returned by the query layer.

``to_dict()`` produces the camelCase payloads the UI consumes; dates are
rendered as ``YYYY-MM-DD`` strings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import StrEnum
from typing import Any


class Trend(StrEnum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


def _stamp(value: datetime | None) -> str | None:
    return value.strftime("%Y-%m-%d %H:%M:%S") if value else None


@dataclass
class DataPoint:
    """One day of a dense series. Days without a record have ``value == 0``."""

    date: date
    value: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date.isoformat(), "value": self.value}


@dataclass
class HeatmapPoint:
    date: date
    count: int = 0
    level: int = 0  # 0 for no activity, else 1-4

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date.isoformat(), "count": self.count, "level": self.level}


@dataclass
class HabitSeries:
    """A habit's dense daily series over some window."""

    habit_name: str
    data: list[DataPoint] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"habitName": self.habit_name, "data": [p.to_dict() for p in self.data]}


@dataclass
class DashboardMetrics:
    """Per-habit summary card."""

    name: str
    current_streak: int = 0
    longest_streak: int = 0
    weekly_average: float = 0.0
    monthly_total: int = 0
    last_updated: datetime | None = None
    trend: Trend = Trend.STABLE

    @property
    def display_name(self) -> str:
        return self.name.replace("_", " ").strip().capitalize()

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "displayName": self.display_name,
            "currentStreak": self.current_streak,
            "longestStreak": self.longest_streak,
            "weeklyAverage": round(self.weekly_average, 2),
            "monthlyTotal": self.monthly_total,
            "lastUpdated": _stamp(self.last_updated),
            "trend": self.trend.value,
        }


@dataclass
class AnalyticsSummary:
    longest_streak: int = 0
    total_habits: int = 0
    completion_rate: int = 0
    active_days: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "longestStreak": self.longest_streak,
            "totalHabits": self.total_habits,
            "completionRate": self.completion_rate,
            "activeDays": self.active_days,
        }


@dataclass
class TrackedMetric:
    """A tracked habit as listed on the settings screen."""

    name: str
    entries: int = 0
    last_updated: datetime | None = None
    active: bool = False  # Written to within the last 7 days

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "active": self.active,
            "lastUpdated": _stamp(self.last_updated),
            "entries": self.entries,
        }
