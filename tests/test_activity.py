# tests/test_activity.py
import datetime as dt
import random

from reading_stats.activity import (
    ActivityTotals,
    active_days,
    aggregate,
    daily_totals,
    logged_days,
    week_days,
)

WEEK_START = dt.date(2026, 10, 11)


def test_empty_input_is_all_zero():
    assert aggregate([], owner_id=1, window_start=WEEK_START) == ActivityTotals(0, 0, 0)


def test_sums_same_day_sessions_in_full(make_session_record):
    day = dt.date(2026, 10, 13)
    sessions = [
        make_session_record(date=day, pages=10, minutes=15),
        make_session_record(date=day, pages=20, minutes=25),
    ]
    totals = aggregate(sessions, 1, WEEK_START)
    assert totals.pages_total == 30
    assert totals.minutes_total == 40
    assert totals.active_day_count == 1


def test_filters_by_owner_and_window(make_session_record):
    sessions = [
        make_session_record(owner_id=1, date=WEEK_START, pages=5),                          # boundary counts
        make_session_record(owner_id=1, date=WEEK_START - dt.timedelta(days=1), pages=50),  # last week
        make_session_record(owner_id=2, date=WEEK_START, pages=500),                         # someone else
    ]
    totals = aggregate(sessions, 1, WEEK_START)
    assert totals == ActivityTotals(pages_total=5, minutes_total=0, active_day_count=1)


def test_zero_sessions_are_not_active_days(make_session_record):
    sessions = [
        make_session_record(date=dt.date(2026, 10, 12), pages=0, minutes=0),
        make_session_record(date=dt.date(2026, 10, 13), pages=0, minutes=20),
    ]
    totals = aggregate(sessions, 1, WEEK_START)
    assert totals.active_day_count == 1
    assert totals.minutes_total == 20


def test_totals_invariant_under_reordering(make_session_record):
    rng = random.Random(7)
    sessions = [
        make_session_record(
            owner_id=rng.choice([1, 2]),
            date=WEEK_START + dt.timedelta(days=rng.randint(-10, 6)),
            pages=rng.randint(0, 40),
            minutes=rng.randint(0, 60),
        )
        for _ in range(60)
    ]
    expected = aggregate(sessions, 1, WEEK_START)
    for _ in range(5):
        shuffled = list(sessions)
        rng.shuffle(shuffled)
        assert aggregate(shuffled, 1, WEEK_START) == expected

    mine = [s for s in sessions if s.owner_id == 1 and s.date >= WEEK_START]
    assert expected.pages_total == sum(s.pages for s in mine)
    assert expected.minutes_total == sum(s.minutes for s in mine)
    assert expected.active_day_count <= len({s.date for s in mine})


def test_splitting_a_day_keeps_active_day_count(make_session_record):
    day = dt.date(2026, 10, 14)
    whole = [make_session_record(date=day, pages=30, minutes=30)]
    split = [make_session_record(date=day, pages=10, minutes=10) for _ in range(3)]
    assert aggregate(whole, 1, WEEK_START).active_day_count == aggregate(split, 1, WEEK_START).active_day_count == 1
    assert aggregate(whole, 1, WEEK_START).pages_total == aggregate(split, 1, WEEK_START).pages_total


def test_datetimes_are_normalized_to_days(make_session_record):
    sessions = [
        make_session_record(date=dt.datetime(2026, 10, 12, 8, 0), pages=1),
        make_session_record(date=dt.datetime(2026, 10, 12, 22, 0), pages=1),
    ]
    assert active_days(sessions, 1) == {dt.date(2026, 10, 12)}
    assert aggregate(sessions, 1, dt.datetime(2026, 10, 12, 12, 0)).pages_total == 2


def test_active_days_unbounded_window(make_session_record):
    sessions = [
        make_session_record(date=dt.date(2025, 1, 1), pages=1),
        make_session_record(date=dt.date(2026, 10, 1), minutes=1),
    ]
    assert active_days(sessions, 1) == {dt.date(2025, 1, 1), dt.date(2026, 10, 1)}
    assert active_days(sessions, 1, since=dt.date(2026, 1, 1)) == {dt.date(2026, 10, 1)}


def test_daily_totals_groups_and_sorts(make_session_record):
    sessions = [
        make_session_record(date=dt.date(2026, 10, 13), pages=5, minutes=10),
        make_session_record(date=dt.date(2026, 10, 12), pages=3),
        make_session_record(date=dt.date(2026, 10, 13), pages=7, minutes=5),
    ]
    assert daily_totals(sessions, 1) == [
        (dt.date(2026, 10, 12), 3, 0),
        (dt.date(2026, 10, 13), 12, 15),
    ]


def test_week_days_and_logged_days(make_session_record):
    days = week_days(WEEK_START)
    assert days[0] == WEEK_START and days[-1] == dt.date(2026, 10, 17)
    assert len(days) == 7

    sessions = [
        make_session_record(date=dt.date(2026, 10, 13), pages=4),
        make_session_record(date=dt.date(2026, 10, 20), pages=4),  # next week
    ]
    logged = logged_days(sessions, 1, WEEK_START)
    assert list(logged) == days
    assert [d for d, filled in logged.items() if filled] == [dt.date(2026, 10, 13)]

