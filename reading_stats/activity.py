"""
Reading activity aggregation.

Reduces a user's sessions to totals over a window:
- pages/minutes are plain sums (two sessions on one day both count in full)
- active days are distinct calendar days with pages > 0 or minutes > 0
"""

from __future__ import annotations

import datetime as dt
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Set, Tuple

from reading_stats.time_ranges import DateLike, as_day
from snapshot import SessionRecord


@dataclass(frozen=True)
class ActivityTotals:
    pages_total: int = 0
    minutes_total: int = 0
    active_day_count: int = 0


def sessions_in_window(
    sessions: Iterable[SessionRecord],
    owner_id: int,
    since: Optional[DateLike] = None,
) -> Iterator[SessionRecord]:
    """Sessions owned by `owner_id` dated on/after `since` (no lower bound when None)."""
    start = as_day(since) if since is not None else None
    for s in sessions:
        if s.owner_id != owner_id:
            continue
        if start is not None and as_day(s.date) < start:
            continue
        yield s


def active_days(
    sessions: Iterable[SessionRecord],
    owner_id: int,
    since: Optional[DateLike] = None,
) -> Set[dt.date]:
    return {
        as_day(s.date)
        for s in sessions_in_window(sessions, owner_id, since)
        if s.pages > 0 or s.minutes > 0
    }


def aggregate(
    sessions: Iterable[SessionRecord],
    owner_id: int,
    window_start: DateLike,
) -> ActivityTotals:
    pages = minutes = 0
    days: Set[dt.date] = set()
    for s in sessions_in_window(sessions, owner_id, window_start):
        pages += s.pages
        minutes += s.minutes
        if s.pages > 0 or s.minutes > 0:
            days.add(as_day(s.date))
    return ActivityTotals(pages_total=pages, minutes_total=minutes, active_day_count=len(days))


def daily_totals(
    sessions: Iterable[SessionRecord],
    owner_id: int,
    since: Optional[DateLike] = None,
) -> List[Tuple[dt.date, int, int]]:
    """
    Per-day (date, pages, minutes) rows, oldest first. Days without sessions
    are omitted; used for the stats chart.
    """
    by_day: Dict[dt.date, List[int]] = defaultdict(lambda: [0, 0])
    for s in sessions_in_window(sessions, owner_id, since):
        row = by_day[as_day(s.date)]
        row[0] += s.pages
        row[1] += s.minutes
    return [(day, p, m) for day, (p, m) in sorted(by_day.items())]


# ---------------------------------------------------------------------------
# Weekly mini calendar
# ---------------------------------------------------------------------------

def week_days(start: DateLike) -> List[dt.date]:
    first = as_day(start)
    return [first + dt.timedelta(days=i) for i in range(7)]


def logged_days(sessions: Iterable[SessionRecord], owner_id: int, start: DateLike) -> Dict[dt.date, bool]:
    """{day: has activity} for the 7 days of the week beginning at `start`."""
    days = week_days(start)
    active = active_days(sessions, owner_id, since=days[0])
    return {d: d in active for d in days}
