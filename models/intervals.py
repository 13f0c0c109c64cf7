"""Supported chart time windows and their size in minutes."""

from __future__ import annotations

from enum import Enum
from typing import Optional, Union

ONE_HOUR_IN_MINUTES = 60
ONE_DAY_IN_MINUTES = 24 * 60
SEVEN_DAYS_IN_MINUTES = 7 * 24 * 60
THIRTY_DAYS_IN_MINUTES = 30 * 24 * 60
THREE_MONTHS_IN_MINUTES = 3 * 30 * 24 * 60
ONE_YEAR_IN_MINUTES = 365 * 24 * 60


class IntervalWindow(str, Enum):
    """Time windows offered by the chart dropdown, shortest first."""

    last_hour = "last-hour"
    last_day = "last-day"
    last_week = "last-week"
    last_month = "last-month"
    last_three_months = "last-three-months"
    last_year = "last-year"

    @property
    def minutes(self) -> int:
        return _MINUTES_BY_WINDOW[self]


_MINUTES_BY_WINDOW = {
    IntervalWindow.last_hour: ONE_HOUR_IN_MINUTES,
    IntervalWindow.last_day: ONE_DAY_IN_MINUTES,
    IntervalWindow.last_week: SEVEN_DAYS_IN_MINUTES,
    IntervalWindow.last_month: THIRTY_DAYS_IN_MINUTES,
    IntervalWindow.last_three_months: THREE_MONTHS_IN_MINUTES,
    IntervalWindow.last_year: ONE_YEAR_IN_MINUTES,
}

_WINDOW_BY_MINUTES = {minutes: window for window, minutes in _MINUTES_BY_WINDOW.items()}

DEFAULT_WINDOW = IntervalWindow.last_hour


def minutes_of(name: Union[IntervalWindow, str, None]) -> Optional[int]:
    """Return the window size for ``name``, or ``None`` when it is not a known window."""
    if name is None:
        return None
    try:
        window = IntervalWindow(name)
    except ValueError:
        return None
    return _MINUTES_BY_WINDOW[window]


def name_of(minutes: int) -> Optional[IntervalWindow]:
    return _WINDOW_BY_MINUTES.get(minutes)


def resolve_minutes(name: Union[IntervalWindow, str, None]) -> int:
    """Window size for ``name``, falling back to the default window."""
    minutes = minutes_of(name)
    if minutes is None:
        return DEFAULT_WINDOW.minutes
    return minutes
