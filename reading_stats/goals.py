"""
Goal selection and progress.

A missing goal and a zero-page goal both mean "no goal"; that state is
carried explicitly (`has_goal=False`, `fraction=None`) so it never reads as
0% of a real goal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Union

import config
from models import GoalRange
from reading_stats.activity import ActivityTotals, aggregate
from reading_stats.time_ranges import DateLike, range_start
from snapshot import GoalRecord, LibrarySnapshot

logger = logging.getLogger(__name__)

NO_GOAL_TEXT = "No goal set yet"


@dataclass(frozen=True)
class GoalProgress:
    pages_read: int
    target_pages: int = 0
    fraction: Optional[float] = None

    @property
    def has_goal(self) -> bool:
        return self.fraction is not None

    @property
    def display_fraction(self) -> float:
        """0.0 for "no goal", otherwise the clamped fraction (for a progress ring)."""
        return self.fraction if self.fraction is not None else 0.0

    @property
    def subtitle(self) -> str:
        if not self.has_goal:
            return NO_GOAL_TEXT
        return f"{self.pages_read} of {self.target_pages} pages"


def goal_progress(goal: Optional[GoalRecord], pages_read: int) -> GoalProgress:
    pages_read = max(int(pages_read), 0)
    if goal is None or goal.target_pages <= 0:
        return GoalProgress(pages_read=pages_read)
    fraction = min(pages_read / goal.target_pages, 1.0)
    return GoalProgress(pages_read=pages_read, target_pages=goal.target_pages, fraction=fraction)


def select_goal(
    goals: Iterable[GoalRecord],
    owner_id: int,
    range_: Union[GoalRange, str],
) -> Optional[GoalRecord]:
    """
    The owner's goal for a range. Duplicates should never exist (the store
    upserts); if a snapshot has them anyway, the latest start_date wins, then
    the highest id.
    """
    range_ = GoalRange(range_)
    matches = [g for g in goals if g.owner_id == owner_id and g.range is range_]
    if not matches:
        return None
    if len(matches) > 1:
        logger.warning(
            "Owner %s has %d '%s' goals; using the most recent one",
            owner_id, len(matches), range_.value,
        )
    return max(matches, key=lambda g: (g.start_date, g.id))


@dataclass(frozen=True)
class RangeSummary:
    range: GoalRange
    totals: ActivityTotals
    goal: Optional[GoalRecord]
    progress: GoalProgress

    @property
    def goal_pages(self) -> int:
        return self.goal.target_pages if self.goal else 0


def range_summary(
    snapshot: LibrarySnapshot,
    range_: Union[GoalRange, str],
    now: Optional[DateLike] = None,
    first_weekday: int = config.FIRST_WEEKDAY,
) -> RangeSummary:
    """Totals + goal progress for the owner's current week or year."""
    range_ = GoalRange(range_)
    start = range_start(range_, now, first_weekday)
    totals = aggregate(snapshot.sessions, snapshot.owner_id, start)
    goal = select_goal(snapshot.goals, snapshot.owner_id, range_)
    return RangeSummary(
        range=range_,
        totals=totals,
        goal=goal,
        progress=goal_progress(goal, totals.pages_total),
    )
