"""Period functions for top-up: map a sort value onto a calendar period key."""

from __future__ import annotations

import enum
from collections.abc import Callable, Hashable
from datetime import datetime, timezone
from typing import Any

PeriodOf = Callable[[Any], Hashable]


def _as_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(str(value))
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def by_day(value: Any) -> Hashable:
    dt = _as_datetime(value)
    return (dt.year, dt.month, dt.day)


def by_week(value: Any) -> Hashable:
    year, week, _ = _as_datetime(value).isocalendar()
    return (year, week)


def by_month(value: Any) -> Hashable:
    dt = _as_datetime(value)
    return (dt.year, dt.month)


def by_year(value: Any) -> Hashable:
    return _as_datetime(value).year


class Period(enum.Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"

    def __call__(self, value: Any) -> Hashable:
        return _PERIOD_FUNCS[self](value)


_PERIOD_FUNCS: dict[Period, PeriodOf] = {
    Period.DAY: by_day,
    Period.WEEK: by_week,
    Period.MONTH: by_month,
    Period.YEAR: by_year,
}
