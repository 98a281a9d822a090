"""
Home tab for the Streamlit app.

- Continue reading / recently finished come straight from the snapshot.
- "Because you read…" seeds a catalog lookup with one book from the shelf.
- Trending is one evergreen catalog query, cached for a while.
"""

from __future__ import annotations

from typing import List, Sequence

import requests
import streamlit as st

from dal import load_snapshot
from db import get_session
from harvesters.openlibrary_client import SearchHit, search_by_author, search_trending
from models import BookStatus, GoalRange
from reading_stats.goals import range_summary
from reading_stats.recommendations import RelatedBooks, RelatedStatus, find_related, select_seed

CARDS_PER_ROW = 6


@st.cache_data(show_spinner=False, ttl=600)
def cached_trending() -> List[SearchHit]:
    return search_trending()


@st.cache_data(show_spinner=False, ttl=600)
def cached_author_works(author: str) -> List[SearchHit]:
    # exceptions are not cached, so a failed lookup is retried on the next run
    return search_by_author(author)


def related_for(seed) -> RelatedBooks:
    return find_related(seed, search=cached_author_works)


def _render_cards(hits: Sequence, limit: int = 12) -> None:
    cols = st.columns(CARDS_PER_ROW)
    for i, h in enumerate(list(hits)[:limit]):
        with cols[i % CARDS_PER_ROW]:
            cover = getattr(h, "thumbnail_url", None) or getattr(h, "cover_url", None)
            if cover:
                st.image(cover, use_container_width=True)
            st.caption(h.title)


def render_home_tab(owner_id: int) -> None:
    st.subheader("Home")

    with get_session() as s:
        snapshot = load_snapshot(s, owner_id)

    week = range_summary(snapshot, GoalRange.WEEK)
    c1, c2, c3 = st.columns(3)
    c1.metric("Pages this week", week.totals.pages_total)
    c2.metric("Minutes this week", week.totals.minutes_total)
    c3.metric("Reading days", week.totals.active_day_count)
    st.progress(week.progress.display_fraction, text=week.progress.subtitle)

    reading = [b for b in snapshot.books if b.status is BookStatus.READING]
    finished = [b for b in snapshot.books if b.status is BookStatus.FINISHED]

    st.markdown("### Continue reading")
    if reading:
        _render_cards(reading, limit=10)
    else:
        st.caption("Nothing in Currently Reading yet.")

    # ---- Because you read…
    seed = select_seed(snapshot.books, owner_id)
    st.markdown(f"### Because you read {seed.title}" if seed else "### Because you read…")
    related = related_for(seed)
    if related.status is RelatedStatus.OK:
        _render_cards(related.books)
    elif related.status is RelatedStatus.FAILED:
        st.error(related.message)
    else:
        st.caption(related.message)

    # ---- Trending
    st.markdown("### Trending")
    try:
        trending = cached_trending()
    except requests.RequestException:
        st.error("Couldn't load trending books.")
    else:
        if trending:
            _render_cards(trending)
        else:
            st.caption("No results right now.")

    st.markdown("### Recently finished")
    if finished:
        _render_cards(finished, limit=10)
    else:
        st.caption("Finish a book to see it here.")
