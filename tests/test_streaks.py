# tests/test_streaks.py
import calendar
import datetime as dt

import pytest

from reading_stats.streaks import COLS, ROWS, build_streak_grid, cell_date, grid_start


def test_grid_has_182_unique_cells(now):
    grid = build_streak_grid([], owner_id=1, now=now, first_weekday=calendar.SUNDAY)
    days = [c.day for c in grid.cells]
    assert len(grid.cells) == ROWS * COLS == 182
    assert len(set(days)) == 182


def test_grid_spans_26_consecutive_weeks_ending_this_week(now):
    grid = build_streak_grid([], owner_id=1, now=now, first_weekday=calendar.SUNDAY)
    assert grid.start == dt.date(2026, 4, 19)
    assert grid.end_date == dt.date(2026, 10, 17)
    days = sorted(c.day for c in grid.cells)
    assert days == [grid.start + dt.timedelta(days=i) for i in range(182)]
    # the current week is the last column
    assert grid.cell(0, COLS - 1).day == dt.date(2026, 10, 11)


def test_cell_date_layout(now):
    start = grid_start(now, calendar.MONDAY)
    assert start.weekday() == calendar.MONDAY
    grid = build_streak_grid([], owner_id=1, now=now, first_weekday=calendar.MONDAY)
    for row, col in [(0, 0), (6, 0), (3, 12), (6, 25)]:
        assert grid.cell(row, col).day == cell_date(start, row, col) == start + dt.timedelta(weeks=col, days=row)


def test_cells_filled_from_active_days(now, make_session_record):
    sessions = [
        make_session_record(date=dt.date(2026, 10, 13), pages=12),          # this week, Tuesday
        make_session_record(date=dt.date(2026, 10, 13), minutes=5),         # same day again
        make_session_record(date=dt.date(2026, 4, 19), minutes=30),         # first cell
        make_session_record(date=dt.date(2026, 4, 18), pages=40),           # before the grid
        make_session_record(date=dt.date(2026, 9, 1), pages=0, minutes=0),  # empty log
        make_session_record(owner_id=2, date=dt.date(2026, 9, 2), pages=9),
    ]
    grid = build_streak_grid(sessions, owner_id=1, now=now, first_weekday=calendar.SUNDAY)
    assert grid.cell(2, COLS - 1).filled        # Sunday + 2 = Tuesday Oct 13
    assert grid.cell(0, 0).filled
    assert grid.filled_count == 2


def test_cell_out_of_range(now):
    grid = build_streak_grid([], owner_id=1, now=now)
    with pytest.raises(IndexError):
        grid.cell(7, 0)
    with pytest.raises(IndexError):
        grid.cell(0, 26)


def test_month_labels_start_each_month(now):
    grid = build_streak_grid([], owner_id=1, now=now, first_weekday=calendar.SUNDAY)
    labels = grid.month_labels()
    assert labels[0] == "Apr"
    assert list(labels.values()) == ["Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct"]


def test_to_frame(now, make_session_record):
    sessions = [make_session_record(date=dt.date(2026, 10, 13), pages=1)]
    df = build_streak_grid(sessions, owner_id=1, now=now, first_weekday=calendar.SUNDAY).to_frame()
    assert list(df.columns) == ["row", "col", "day", "filled"]
    assert len(df) == 182
    assert int(df["filled"].sum()) == 1
