# reading_stats/streaks.py
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

import pandas as pd

import config
from reading_stats.activity import active_days
from reading_stats.time_ranges import DateLike, week_start
from snapshot import SessionRecord

ROWS = 7    # days of the week
COLS = 26   # weeks, oldest in column 0


@dataclass(frozen=True)
class StreakCell:
    row: int
    col: int
    day: dt.date
    filled: bool


@dataclass(frozen=True)
class StreakGrid:
    """
    ROWS x COLS calendar ending at the current week.
    `cells` is row-major: cells[row * cols + col].
    """
    start: dt.date
    cells: Tuple[StreakCell, ...]
    rows: int = ROWS
    cols: int = COLS

    def cell(self, row: int, col: int) -> StreakCell:
        if not (0 <= row < self.rows and 0 <= col < self.cols):
            raise IndexError(f"cell ({row}, {col}) outside {self.rows}x{self.cols} grid")
        return self.cells[row * self.cols + col]

    @property
    def end_date(self) -> dt.date:
        return self.start + dt.timedelta(weeks=self.cols - 1, days=self.rows - 1)

    @property
    def filled_count(self) -> int:
        return sum(1 for c in self.cells if c.filled)

    def month_labels(self) -> Dict[int, str]:
        """
        {col: 'Jan'} for each column whose week starts a new month
        (plus column 0), for axis labels.
        """
        labels: Dict[int, str] = {}
        prev_month = None
        for col in range(self.cols):
            first_day = self.cell(0, col).day
            if first_day.month != prev_month:
                labels[col] = first_day.strftime("%b")
                prev_month = first_day.month
        return labels

    def to_frame(self) -> pd.DataFrame:
        """Long-form frame (row, col, day, filled) for plotting."""
        return pd.DataFrame(
            [(c.row, c.col, c.day, c.filled) for c in self.cells],
            columns=["row", "col", "day", "filled"],
        )


def grid_start(now: Optional[DateLike] = None, first_weekday: int = config.FIRST_WEEKDAY) -> dt.date:
    """Start of the week COLS-1 weeks before the current one."""
    return week_start(now, first_weekday) - dt.timedelta(weeks=COLS - 1)


def cell_date(start: dt.date, row: int, col: int) -> dt.date:
    return start + dt.timedelta(weeks=col, days=row)


def build_streak_grid(
    sessions: Iterable[SessionRecord],
    owner_id: int,
    now: Optional[DateLike] = None,
    first_weekday: int = config.FIRST_WEEKDAY,
) -> StreakGrid:
    """
    Project the owner's active days (over all history, not just this week)
    onto the grid.
    """
    start = grid_start(now, first_weekday)
    days = active_days(sessions, owner_id)

    cells = []
    seen = set()
    for row in range(ROWS):
        for col in range(COLS):
            day = cell_date(start, row, col)
            if day in seen:
                raise ValueError(f"streak grid has duplicate date {day.isoformat()}")
            seen.add(day)
            cells.append(StreakCell(row=row, col=col, day=day, filled=day in days))

    return StreakGrid(start=start, cells=tuple(cells))
