from __future__ import annotations

import logging

import streamlit as st

import config
from dal import get_or_create_user
from db import StoreError, engine, get_session
from models import Base

from tabs.home import render_home_tab
from tabs.library import render_library_tab
from tabs.profile import render_profile_tab
from tabs.stats import render_stats_tab

config.configure_logging()
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------
# Page config
# ---------------------------------------------------------------------
st.set_page_config(page_title="Reading Log", layout="wide")

# ---------------------------------------------------------------------
# Title
# ---------------------------------------------------------------------
col1, col2, col3 = st.columns([1, 3, 1])
with col2:
    st.title("Reading Log")
    st.markdown(
        "Track what you read, log your sessions day by day, and keep an eye on your goals."
    )

# ---------------------------------------------------------------------
# Ensure tables exist
# ---------------------------------------------------------------------
try:
    Base.metadata.create_all(bind=engine)
except Exception as exc:
    logger.exception("Failed to initialize database tables")
    st.error("Failed to initialize database tables.")
    st.exception(exc)
    st.stop()


# ---------------------------------------------------------------------
# Reader switcher (no passwords; the username picks whose library is shown)
# ---------------------------------------------------------------------
def _switch_reader() -> None:
    st.session_state["username"] = (st.session_state.get("username_input") or "").strip() or "demo"


st.session_state.setdefault("username", "demo")
try:
    with get_session() as s:
        user = get_or_create_user(s, st.session_state["username"])
        owner_id, display_name = user.id, user.display_name
except StoreError as exc:
    st.error(str(exc))
    st.stop()

with st.sidebar:
    st.header(f"Hi, {display_name}")
    st.caption(f"Reading as @{st.session_state['username']}")
    st.text_input(
        "Switch reader",
        key="username_input",
        placeholder="username",
        on_change=_switch_reader,
        help="Each username has its own shelves, sessions, goals and boards.",
    )

# ---------------------------------------------------------------------
# Tabs
# ---------------------------------------------------------------------
home_tab, library_tab, stats_tab, profile_tab = st.tabs(["Home", "Library", "Stats", "Profile"])

with home_tab:
    render_home_tab(owner_id)

with library_tab:
    render_library_tab(owner_id)

with stats_tab:
    render_stats_tab(owner_id)

with profile_tab:
    render_profile_tab(owner_id)
