"""
Library tab for the Streamlit app.

Notes:
- Catalog search goes through a per-user SearchDebouncer kept in session
  state, so only the last query typed is ever sent to Open Library.
- Shelves are read fresh on every run so edits show up immediately.
"""

from __future__ import annotations

from typing import Optional

import requests
import streamlit as st

from db import StoreError, get_session
from dal import (
    SORT_MOST_LIKED,
    SORT_RECENT,
    add_book_from_hit,
    add_manual_book,
    delete_book,
    list_shelf,
    set_book_rating,
    set_book_status,
    toggle_finished,
)
from harvesters.openlibrary_client import fetch_description, search_title
from harvesters.search_debouncer import SearchDebouncer, SearchPhase
from models import BookStatus

SEARCH_WAIT_SECONDS = 15


@st.cache_data(show_spinner=False, ttl=3600)
def cached_description(external_id: str) -> Optional[str]:
    return fetch_description(external_id)


def _debouncer(owner_id: int) -> SearchDebouncer:
    key = f"library_search_{owner_id}"
    if key not in st.session_state:
        st.session_state[key] = SearchDebouncer(search_title, name=f"library:{owner_id}")
    return st.session_state[key]


def _render_search(owner_id: int) -> None:
    st.markdown("### 🔎 Find a book (Open Library)")
    debouncer = _debouncer(owner_id)

    text = st.text_input("Search titles or authors", key=f"lib_q_{owner_id}", placeholder="e.g., The Hobbit")
    last_key = f"lib_last_q_{owner_id}"
    if text != st.session_state.get(last_key):
        st.session_state[last_key] = text
        debouncer.submit(text)

    state = debouncer.state
    if state.phase is not SearchPhase.IDLE:
        with st.spinner("Searching Open Library..."):
            state = debouncer.wait_idle(timeout=SEARCH_WAIT_SECONDS)
        if state.phase is not SearchPhase.IDLE:
            debouncer.cancel()
            st.warning("Open Library is taking too long. Edit the search to try again.")
            state = debouncer.state

    if state.error:
        st.error(state.error)
    elif state.message:
        st.caption(state.message)

    if not state.results:
        return

    cols = st.columns(3)
    for i, hit in enumerate(state.results):
        with cols[i % 3]:
            if hit.thumbnail_url:
                st.image(hit.thumbnail_url, use_container_width=True)
            st.write(f"**{hit.title}**")
            st.caption(hit.authors_display)
            if st.button("Add to Currently Reading", key=f"add_{hit.external_id}", use_container_width=True):
                try:
                    with get_session() as s:
                        _, created = add_book_from_hit(s, owner_id, hit)
                except StoreError as e:
                    st.error(str(e))
                else:
                    st.success(("✅ Added" if created else "ℹ️ Already on your shelf") + f": {hit.title}")
                    debouncer.clear()
                    st.rerun()


def _render_manual_add(owner_id: int) -> None:
    with st.expander("Add a book manually"):
        with st.form(f"manual_add_{owner_id}", clear_on_submit=True):
            title = st.text_input("Title")
            author = st.text_input("Author")
            if st.form_submit_button("Save"):
                if not (title or "").strip():
                    st.error("Title is required.")
                    return
                try:
                    with get_session() as s:
                        add_manual_book(s, owner_id, title=title, author=author)
                except StoreError as e:
                    st.error(str(e))
                    return
                st.success(f"Added: {title.strip()}")
                st.rerun()


def _render_book(owner_id: int, book) -> None:
    c_cover, c_body = st.columns([1, 4])
    with c_cover:
        if book.cover_url:
            st.image(book.cover_url, use_container_width=True)
    with c_body:
        st.markdown(f"**{book.title}**")
        st.caption(book.authors)

        c1, c2, c3 = st.columns([2, 2, 1])
        rating = c1.select_slider(
            "Rating", options=list(range(6)), value=book.rating, key=f"rating_{book.id}"
        )
        statuses = list(BookStatus)
        status = c2.selectbox(
            "Shelf",
            statuses,
            index=statuses.index(book.status),
            format_func=lambda st_: st_.display_name,
            key=f"status_{book.id}_{book.status.value}",
        )
        finish_label = "Mark unfinished" if book.status is BookStatus.FINISHED else "Mark finished"
        toggled = c3.button(finish_label, key=f"finish_{book.id}")

        try:
            if rating != book.rating or status is not book.status or toggled:
                with get_session() as s:
                    if rating != book.rating:
                        set_book_rating(s, owner_id, book.id, rating)
                    if toggled:
                        toggle_finished(s, owner_id, book.id)
                    elif status is not book.status:
                        set_book_status(s, owner_id, book.id, status)
                st.rerun()
        except StoreError as e:
            st.error(str(e))

        with st.expander("Summary"):
            try:
                summary = cached_description(book.external_id)
            except requests.RequestException:
                st.caption("Couldn't load the summary. Try again later.")
            else:
                st.write(summary or "No summary available.")

        with st.expander("🗑️ Remove"):
            st.caption("Removes the book. Reading sessions you logged stay in your stats.")
            if st.button("Delete permanently", key=f"del_{book.id}"):
                try:
                    with get_session() as s:
                        n = delete_book(s, owner_id, book.id)
                except StoreError as e:
                    st.error(str(e))
                else:
                    if not n:
                        st.warning("Nothing deleted (book may already be gone).")
                    st.rerun()


def render_library_tab(owner_id: int) -> None:
    """Search the catalog, add books, and manage the owner's shelves."""
    st.subheader("Library")

    _render_search(owner_id)
    _render_manual_add(owner_id)
    st.divider()

    c1, c2 = st.columns([3, 1])
    with c1:
        shelf = st.radio(
            "Shelf",
            list(BookStatus),
            format_func=lambda s: s.display_name,
            horizontal=True,
            key=f"shelf_{owner_id}",
        )
    with c2:
        sort = st.selectbox(
            "Sort",
            [SORT_RECENT, SORT_MOST_LIKED],
            format_func=lambda v: "Recent" if v == SORT_RECENT else "Most Liked",
            key=f"sort_{owner_id}",
        )

    with get_session() as s:
        books = list_shelf(s, owner_id, shelf, sort)

    if not books:
        st.caption("Nothing on this shelf yet.")
        return
    for book in books:
        _render_book(owner_id, book)
        st.divider()
