# openlibrary_client.py
from __future__ import annotations

import html
import logging
import random
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import requests
from requests.adapters import HTTPAdapter, Retry

import config

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants / session
# ---------------------------------------------------------------------------

BASE = "https://openlibrary.org"
COVERS = "https://covers.openlibrary.org/b/"
DEFAULT_TIMEOUT = config.HTTP_TIMEOUT  # seconds
USER_AGENT = "ReadingLog/1.0 (personal reading tracker)"
RETRY_STATUSES = (429, 500, 502, 503, 504)
DEFAULT_LIMIT = config.SEARCH_LIMIT
MANUAL_PREFIX = "MANUAL-"

TRENDING_QUERIES = (
    "new york times best sellers fiction",
    "popular books",
    "award winning novels",
    "top rated fantasy books",
)

# Shared by every catalog call; built on first use
_session: Optional[requests.Session] = None


def build_session(retries: int = config.HTTP_RETRIES, backoff: float = 0.3) -> requests.Session:
    """
    A JSON session that retries idempotent calls on throttling and 5xx.
    retries=0 turns retrying off (one attempt per call).
    """
    s = requests.Session()
    s.headers.update({"User-Agent": USER_AGENT, "Accept": "application/json"})
    policy = Retry(
        total=max(0, int(retries)),
        backoff_factor=backoff,
        status_forcelist=RETRY_STATUSES,
        allowed_methods=frozenset(["GET", "HEAD"]),
        respect_retry_after_header=True,
    )
    adapter = HTTPAdapter(max_retries=policy)
    for prefix in ("https://", "http://"):
        s.mount(prefix, adapter)
    return s


def _get_session() -> requests.Session:
    global _session
    if _session is None:
        _session = build_session()
        logger.debug("Open Library session ready (retries=%s, timeout=%ss)", config.HTTP_RETRIES, DEFAULT_TIMEOUT)
    return _session


# ---------------------------------------------------------------------------
# Types / helpers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SearchHit:
    """
    One catalog result, light enough for a results list.
    """
    external_id: str
    title: str
    authors: Tuple[str, ...] = field(default_factory=tuple)
    thumbnail_url: Optional[str] = None
    year: Optional[int] = None

    @property
    def authors_display(self) -> str:
        return ", ".join(self.authors) or "Unknown author"


def _cover_url(cover_i: Optional[int], size: str = "M") -> Optional[str]:
    """
    Build a cover URL from a cover id.
    Valid sizes are 'S', 'M', 'L' per OpenLibrary docs.
    """
    if not cover_i:
        return None
    size = size.upper()
    if size not in {"S", "M", "L"}:
        size = "M"
    return f"{COVERS}id/{cover_i}-{size}.jpg"


def _hit_from_doc(d: Dict[str, Any]) -> Optional[SearchHit]:
    key = d.get("key")
    if not key:
        return None
    return SearchHit(
        external_id=key,  # e.g. "/works/OL12345W"
        title=d.get("title") or "Untitled",
        authors=tuple(d.get("author_name") or ()),
        thumbnail_url=_cover_url(d.get("cover_i")),
        year=d.get("first_publish_year"),
    )


def _search(params: Dict[str, Any], limit: int) -> List[SearchHit]:
    session = _get_session()
    r = session.get(
        f"{BASE}/search.json",
        params={**params, "limit": limit},
        timeout=DEFAULT_TIMEOUT,
    )
    r.raise_for_status()
    docs = (r.json() or {}).get("docs", [])[: max(0, int(limit))]
    hits = [h for h in (_hit_from_doc(d) for d in docs) if h is not None]
    logger.debug("search %s -> %d hits", params, len(hits))
    return hits


# ---------------------------------------------------------------------------
# Search (WORK-level)
# ---------------------------------------------------------------------------

def search_title(q: str, limit: int = DEFAULT_LIMIT) -> List[SearchHit]:
    """
    Loose title/keyword search. Returns WORK-level hits suitable for a UI list.
    Transport errors propagate as requests.RequestException.
    """
    q = (q or "").strip()
    if not q:
        return []
    return _search({"q": q}, limit)


def search_by_author(author: str, limit: int = DEFAULT_LIMIT) -> List[SearchHit]:
    """Works by an author name; drives "because you read" suggestions."""
    author = (author or "").strip()
    if not author:
        return []
    return _search({"author": author}, limit)


def search_trending(
    limit: int = DEFAULT_LIMIT,
    choice: Callable[[Sequence[str]], str] = random.choice,
) -> List[SearchHit]:
    """One of a few evergreen queries, picked at random."""
    return search_title(choice(TRENDING_QUERIES), limit)


# ---------------------------------------------------------------------------
# Description (single call per work)
# ---------------------------------------------------------------------------

_TAG = re.compile(r"<[^>]+>")
_BREAK = re.compile(r"<\s*(br|/p|/div)\s*/?\s*>", re.IGNORECASE)
_SPACES = re.compile(r"[ \t]{2,}")


def clean_description(raw: Optional[str]) -> Optional[str]:
    """
    Strip HTML and tidy spacing: one blank line between paragraphs,
    no leading/trailing whitespace. Returns None when nothing is left.
    """
    if not raw:
        return None
    s = _BREAK.sub("\n", raw)
    s = html.unescape(_TAG.sub("", s))
    s = s.replace("\xa0", " ").replace("\r", "\n")
    lines = [_SPACES.sub(" ", ln).strip() for ln in s.split("\n")]
    cleaned = "\n\n".join(ln for ln in lines if ln)
    return cleaned or None


def fetch_description(external_id: str) -> Optional[str]:
    """
    ONE HTTP CALL: /works/{id}.json -> cleaned description, or None.
    Manual entries have nothing to fetch.
    """
    if not external_id or external_id.startswith(MANUAL_PREFIX):
        return None

    wk = external_id.split("/")[-1]  # "OL12345W"
    if not wk:
        return None

    session = _get_session()
    r = session.get(f"{BASE}/works/{wk}.json", timeout=DEFAULT_TIMEOUT)
    if r.status_code == 404:
        return None
    r.raise_for_status()

    desc = (r.json() or {}).get("description")
    # Open Library returns either a plain string or {"type": ..., "value": ...}
    if isinstance(desc, dict):
        desc = desc.get("value")
    return clean_description(desc if isinstance(desc, str) else None)
