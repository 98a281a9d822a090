"""
Profile tab for the Streamlit app.

- Header: display name, @username and book/board counts.
- Boards: named collections of the user's own books, shown as tiles with a
  2 x 2 cover preview. Each board can be renamed, refilled or deleted.
"""

from __future__ import annotations

import streamlit as st

from dal import (
    create_board,
    delete_board,
    get_user,
    load_snapshot,
    rename_board,
    set_board_books,
    set_display_name,
)
from db import StoreError, get_session
from reading_stats.boards import BoardView, board_views, profile_counts

TILES_PER_ROW = 2


def _render_header(owner_id: int, snapshot) -> None:
    with get_session() as s:
        user = get_user(s, owner_id)
        display_name, username = user.display_name, user.username

    st.markdown(f"## {display_name}")
    st.caption(f"@{username}")
    counts = profile_counts(snapshot)
    c1, c2 = st.columns(2)
    c1.metric("Books", counts.books)
    c2.metric("Boards", counts.boards)

    with st.expander("Edit profile"):
        with st.form(f"profile_form_{owner_id}"):
            name = st.text_input("Display name", value=display_name, max_chars=80)
            if st.form_submit_button("Save"):
                try:
                    with get_session() as s:
                        set_display_name(s, owner_id, name)
                except StoreError as e:
                    st.error(str(e))
                else:
                    st.rerun()


def _render_create_board(owner_id: int, books) -> None:
    titles = {b.id: b.title for b in books}
    with st.expander("➕ Create board"):
        with st.form(f"create_board_{owner_id}", clear_on_submit=True):
            title = st.text_input("Board name", placeholder="e.g. Romance reads")
            picked = st.multiselect("Add books", list(titles), format_func=titles.get)
            if not titles:
                st.caption("No books in your library yet.")
            if st.form_submit_button("Create"):
                if not (title or "").strip() and not picked:
                    st.error("Give the board a name or pick at least one book.")
                    return
                try:
                    with get_session() as s:
                        create_board(s, owner_id, title, picked)
                except StoreError as e:
                    st.error(str(e))
                else:
                    st.rerun()


def _render_preview(view: BoardView) -> None:
    if view.is_empty:
        st.markdown("🗂️")
        return
    cells = st.columns(2)
    for i, cover in enumerate(view.preview):
        with cells[i % 2]:
            if cover:
                st.image(cover, use_container_width=True)
            else:
                st.markdown("&nbsp;")


def _render_board_detail(owner_id: int, view: BoardView, books) -> None:
    board = view.board
    if view.is_empty:
        st.caption("No books yet.")
    for b in view.books:
        st.write(f"• **{b.title}**, {b.authors}")

    titles = {b.id: b.title for b in books}
    with st.form(f"board_books_{board.id}"):
        picked = st.multiselect(
            "Books on this board",
            list(titles),
            default=[i for i in board.book_ids if i in titles],
            format_func=titles.get,
        )
        new_title = st.text_input("Board title", value=board.title)
        if st.form_submit_button("Save board"):
            try:
                with get_session() as s:
                    rename_board(s, owner_id, board.id, new_title)
                    set_board_books(s, owner_id, board.id, picked)
            except StoreError as e:
                st.error(str(e))
            else:
                st.rerun()

    if st.button("🗑️ Delete board", key=f"del_board_{board.id}"):
        try:
            with get_session() as s:
                delete_board(s, owner_id, board.id)
        except StoreError as e:
            st.error(str(e))
        else:
            st.rerun()


def render_profile_tab(owner_id: int) -> None:
    st.subheader("Profile")

    with get_session() as s:
        snapshot = load_snapshot(s, owner_id)

    _render_header(owner_id, snapshot)
    st.divider()

    st.markdown("### Boards")
    _render_create_board(owner_id, snapshot.books)

    views = board_views(snapshot)
    if not views:
        st.caption("No boards yet. Create one to organize your library into boards.")
        return

    cols = st.columns(TILES_PER_ROW)
    for i, view in enumerate(views):
        with cols[i % TILES_PER_ROW]:
            with st.container(border=True):
                _render_preview(view)
                st.markdown(f"**{view.board.title}**")
                st.caption(f"{view.book_count} books")
            with st.expander(f"Open {view.board.title}"):
                _render_board_detail(owner_id, view, snapshot.books)
