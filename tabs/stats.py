# tabs/stats.py
from __future__ import annotations

import datetime as dt
from typing import Dict, Optional, Tuple

import pandas as pd
import plotly.express as px
import streamlit as st

import config
from db import StoreError, get_session
from dal import delete_session, load_snapshot, log_session, sessions_for_day, update_session, upsert_goal
from models import BookStatus, GoalRange
from reading_stats.activity import daily_totals, logged_days
from reading_stats.goals import range_summary
from reading_stats.streaks import build_streak_grid
from reading_stats.time_ranges import resolve_ranges

_RANGE_LABELS = {GoalRange.WEEK: "Week", GoalRange.YEAR: "Year"}


# ----------------------------
# Sections
# ----------------------------
def _render_goal(owner_id: int, summary) -> None:
    titled = "This week" if summary.range is GoalRange.WEEK else "This year"
    st.caption(titled)
    st.markdown("### Reading Goal")
    st.progress(summary.progress.display_fraction, text=summary.progress.subtitle)

    label = "Edit goal" if summary.progress.has_goal else "Set goal"
    with st.expander(label):
        with st.form(f"goal_form_{summary.range.value}"):
            pages = st.number_input(
                "Pages", min_value=0, max_value=10_000, step=10, value=summary.goal_pages
            )
            if st.form_submit_button("Save"):
                try:
                    with get_session() as s:
                        upsert_goal(s, owner_id, summary.range, int(pages))
                except StoreError as e:
                    st.error(str(e))
                else:
                    st.rerun()


def _render_totals(summary) -> None:
    period = "this week" if summary.range is GoalRange.WEEK else "this year"
    c1, c2, c3, c4 = st.columns(4)
    c1.metric(f"Pages {period}", summary.totals.pages_total)
    c2.metric("Goal", summary.goal_pages)
    c3.metric("Active days", summary.totals.active_day_count)
    c4.metric("Minutes", summary.totals.minutes_total)


def book_choices(reading_books, linked_id: Optional[int] = None, linked_title: str = "") -> Tuple[list, Dict[int, str]]:
    """
    Options for a session's book picker: None, the books being read, and the
    book the session already points at even if it has left the reading shelf.
    """
    options = [None] + [b.id for b in reading_books]
    titles = {b.id: b.title for b in reading_books}
    if linked_id is not None and linked_id not in titles:
        options.append(linked_id)
        titles[linked_id] = linked_title or "Unknown book"
    return options, titles


def _render_day_editor(owner_id: int, day: dt.date, reading_books) -> None:
    st.markdown(f"#### {day.strftime('%b %d, %Y')}")
    book_options, titles = book_choices(reading_books)

    def _fmt(book_id):
        return "None" if book_id is None else titles.get(book_id, "Unknown book")

    with get_session() as s:
        rows = sessions_for_day(s, owner_id, day)
        logged = [(r.id, r.book.title if r.book else "No book selected", r.pages, r.minutes, r.book_id) for r in rows]

    if not logged:
        st.caption("No sessions logged for this day yet.")
    for sid, title, pages, minutes, book_id in logged:
        options, linked_titles = book_choices(reading_books, book_id, title)
        with st.form(f"edit_session_{sid}"):
            st.write(f"**{title}** — {pages} pages • {minutes} minutes")
            c1, c2, c3 = st.columns(3)
            new_pages = c1.number_input("Pages", 0, 2000, pages, key=f"p_{sid}")
            new_minutes = c2.number_input("Minutes", 0, 1440, minutes, step=5, key=f"m_{sid}")
            new_book = c3.selectbox(
                "Book", options, key=f"b_{sid}",
                format_func=lambda b: "None" if b is None else linked_titles.get(b, "Unknown book"),
                index=options.index(book_id),
            )
            save, remove = st.columns(2)
            try:
                if save.form_submit_button("Save"):
                    with get_session() as s:
                        update_session(s, owner_id, sid, pages=new_pages, minutes=new_minutes, book_id=new_book)
                    st.rerun()
                if remove.form_submit_button("Delete"):
                    with get_session() as s:
                        delete_session(s, owner_id, sid)
                    st.rerun()
            except StoreError as e:
                st.error(str(e))

    with st.form(f"new_session_{day.isoformat()}", clear_on_submit=True):
        st.write("Add another session")
        c1, c2, c3 = st.columns(3)
        pages = c1.number_input("Pages", 0, 2000, 0)
        minutes = c2.number_input("Minutes", 0, 1440, 0, step=5)
        book_id = c3.selectbox("Book", book_options, format_func=_fmt, index=1 if reading_books else 0)
        if st.form_submit_button("Log session"):
            try:
                with get_session() as s:
                    log_session(s, owner_id, day, pages=pages, minutes=minutes, book_id=book_id)
            except StoreError as e:
                st.error(str(e))
            else:
                st.rerun()


def _render_week_log(owner_id: int, snapshot, week_start: dt.date) -> None:
    st.markdown("### Reading log (This week)")
    days = logged_days(snapshot.sessions, owner_id, week_start)
    cols = st.columns(7)
    selected_key = f"selected_day_{owner_id}"
    for col, (day, filled) in zip(cols, days.items()):
        label = f"{day.strftime('%a')[0]} {day.day}" + (" ●" if filled else "")
        if col.button(label, key=f"day_{day.isoformat()}", use_container_width=True):
            st.session_state[selected_key] = day
    st.caption("Pick a day to log multiple sessions (different books is okay).")

    day = st.session_state.get(selected_key)
    if day is not None:
        reading = [b for b in snapshot.books if b.status is BookStatus.READING]
        _render_day_editor(owner_id, day, reading)


def _render_streaks(owner_id: int, snapshot) -> None:
    st.markdown("### Reading streaks")
    grid = build_streak_grid(snapshot.sessions, owner_id, first_weekday=config.FIRST_WEEKDAY)
    df = grid.to_frame()
    z = df.pivot(index="row", columns="col", values="filled").astype(int)
    dates = df.pivot(index="row", columns="col", values="day").astype(str)
    labels = grid.month_labels()

    fig = px.imshow(
        z,
        color_continuous_scale=["#e8efe9", "#2f6b45"],
        zmin=0,
        zmax=1,
        aspect="equal",
    )
    fig.update_traces(customdata=dates.values, hovertemplate="%{customdata}<extra></extra>")
    fig.update_layout(
        coloraxis_showscale=False,
        margin=dict(t=10, l=0, r=0, b=0),
        xaxis=dict(tickmode="array", tickvals=list(labels), ticktext=list(labels.values()), side="top"),
        yaxis=dict(showticklabels=False),
    )
    st.plotly_chart(fig, use_container_width=True)
    st.caption(f"{grid.filled_count} reading days between {grid.start:%b %d} and {grid.end_date:%b %d}.")


def _render_daily_chart(owner_id: int, snapshot, since: dt.date) -> None:
    rows = daily_totals(snapshot.sessions, owner_id, since)
    if not rows:
        return
    df = pd.DataFrame(rows, columns=["day", "pages", "minutes"])
    fig = px.bar(df, x="day", y="pages", hover_data=["minutes"])
    fig.update_layout(xaxis_title="Day", yaxis_title="Pages")
    st.plotly_chart(fig, use_container_width=True)


# ----------------------------
# Renderer
# ----------------------------
def render_stats_tab(owner_id: int) -> None:
    st.subheader("Stats")

    choice = st.radio(
        "Range", list(GoalRange), format_func=_RANGE_LABELS.get, horizontal=True, key=f"range_{owner_id}"
    )

    with get_session() as s:
        snapshot = load_snapshot(s, owner_id)

    today = dt.date.today()
    ranges = resolve_ranges(today)
    summary = range_summary(snapshot, choice, now=today)

    _render_goal(owner_id, summary)
    _render_totals(summary)
    st.divider()
    _render_week_log(owner_id, snapshot, ranges.week_start)
    st.divider()
    _render_streaks(owner_id, snapshot)
    st.caption("Consistency over the last six months: logs fill the map automatically.")

    with st.expander("Pages per day", expanded=False):
        since = ranges.week_start if choice is GoalRange.WEEK else ranges.year_start
        _render_daily_chart(owner_id, snapshot, since)
