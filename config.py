# config.py
from __future__ import annotations

import calendar
import logging
import os
from typing import Any, Optional

_WEEKDAYS = {
    "monday": calendar.MONDAY,
    "tuesday": calendar.TUESDAY,
    "wednesday": calendar.WEDNESDAY,
    "thursday": calendar.THURSDAY,
    "friday": calendar.FRIDAY,
    "saturday": calendar.SATURDAY,
    "sunday": calendar.SUNDAY,
}

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _secret(*path: str) -> Optional[Any]:
    # Prefer Streamlit secrets if available
    try:
        import streamlit as st  # noqa: WPS433
        node: Any = st.secrets
        for key in path:
            node = node.get(key, {})
        return node or None
    except Exception:
        return None


def _setting(name: str, default: str, *secret_path: str) -> str:
    value = _secret(*secret_path) if secret_path else None
    if value:
        return str(value)
    # Env var fallback
    return os.getenv(name, default)


def _parse_weekday(raw: str) -> int:
    raw = (raw or "").strip().lower()
    if raw.isdigit() and 0 <= int(raw) <= 6:
        return int(raw)
    if raw not in _WEEKDAYS:
        raise ValueError(f"unknown weekday: {raw!r}")
    return _WEEKDAYS[raw]


DATABASE_URL = _setting("DATABASE_URL", "sqlite:///reading_log.db", "connections", "sql", "url")
DEBOUNCE_SECONDS = float(_setting("DEBOUNCE_SECONDS", "0.35", "app", "debounce_seconds"))
FIRST_WEEKDAY = _parse_weekday(_setting("FIRST_WEEKDAY", "sunday", "app", "first_weekday"))
SEARCH_LIMIT = int(_setting("SEARCH_LIMIT", "20", "app", "search_limit"))
HTTP_TIMEOUT = float(_setting("HTTP_TIMEOUT", "12", "app", "http_timeout"))
HTTP_RETRIES = int(_setting("HTTP_RETRIES", "3", "app", "http_retries"))
LOG_LEVEL = _setting("LOG_LEVEL", "INFO", "app", "log_level").upper()


def configure_logging(level: Optional[str] = None) -> None:
    """
    Attach a single stream handler to the root logger.
    Safe to call on every Streamlit rerun.
    """
    root = logging.getLogger()
    if not any(getattr(h, "_reading_log", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._reading_log = True  # marks our handler across reruns
        root.addHandler(handler)
    root.setLevel(level or LOG_LEVEL)
