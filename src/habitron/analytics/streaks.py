"""Streak calculations.

A day counts toward a streak when the habit has a stored value greater
than zero on that day. The current streak only counts completed days, so
it is measured backwards from yesterday.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, timedelta

from habitron.store.metric_store import MetricStore

_ONE_DAY = timedelta(days=1)


def compute_longest_streak(dates: Iterable[date]) -> int:
    """Length of the longest run of consecutive calendar days in *dates*.

    Duplicates and ordering of the input do not matter.
    """
    ordered = sorted(set(dates))
    if not ordered:
        return 0
    longest = current = 1
    for prev, cur in zip(ordered, ordered[1:]):
        if cur - prev == _ONE_DAY:
            current += 1
            longest = max(longest, current)
        else:
            current = 1
    return longest


def current_streak(store: MetricStore, habit: str, *, today: date | None = None) -> int:
    """Consecutive qualifying days ending yesterday. Today never counts."""
    logged = set(store.qualifying_dates(habit))
    day = (today or date.today()) - _ONE_DAY
    streak = 0
    while day in logged:
        streak += 1
        day -= _ONE_DAY
    return streak


def longest_streak(store: MetricStore, habit: str) -> int:
    return compute_longest_streak(store.qualifying_dates(habit))


def overall_longest_streak(store: MetricStore) -> int:
    """Longest run of days on which at least one habit was completed."""
    return compute_longest_streak(store.qualifying_dates())
