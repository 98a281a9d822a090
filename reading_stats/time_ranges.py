# reading_stats/time_ranges.py
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Optional, Union

import config
from models import GoalRange

DateLike = Union[dt.date, dt.datetime]


@dataclass(frozen=True)
class TimeRanges:
    """Midnight-normalized starts of the current week and year."""
    week_start: dt.date
    year_start: dt.date


def as_day(value: DateLike) -> dt.date:
    """Normalize a datetime (or date) to its calendar day."""
    if isinstance(value, dt.datetime):
        return value.date()
    return value


def _now(now: Optional[DateLike]) -> dt.date:
    return as_day(now if now is not None else dt.datetime.now())


def week_start(now: Optional[DateLike] = None, first_weekday: int = config.FIRST_WEEKDAY) -> dt.date:
    """
    Start of the calendar week containing `now`.
    `first_weekday` follows the calendar module (MONDAY=0 .. SUNDAY=6).
    """
    today = _now(now)
    offset = (today.weekday() - first_weekday) % 7
    return today - dt.timedelta(days=offset)


def year_start(now: Optional[DateLike] = None) -> dt.date:
    return _now(now).replace(month=1, day=1)


def resolve_ranges(now: Optional[DateLike] = None, first_weekday: int = config.FIRST_WEEKDAY) -> TimeRanges:
    today = _now(now)
    return TimeRanges(
        week_start=week_start(today, first_weekday),
        year_start=year_start(today),
    )


def range_start(
    range_: Union[GoalRange, str],
    now: Optional[DateLike] = None,
    first_weekday: int = config.FIRST_WEEKDAY,
) -> dt.date:
    """Window start for a goal range tag ('week' or 'year')."""
    range_ = GoalRange(range_)
    if range_ is GoalRange.WEEK:
        return week_start(now, first_weekday)
    return year_start(now)
