# reading_stats/recommendations.py
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional, Sequence, Tuple

from harvesters.openlibrary_client import SearchHit, search_by_author
from models import BookStatus
from snapshot import BookRecord

logger = logging.getLogger(__name__)

# Preference order for the seed: a finished book feels more stable than one in progress.
SEED_PREFERENCE = (BookStatus.FINISHED, BookStatus.READING)


class RelatedStatus(str, enum.Enum):
    INSUFFICIENT_DATA = "insufficient_data"
    OK = "ok"
    EMPTY = "empty"
    FAILED = "failed"


_MESSAGES = {
    RelatedStatus.INSUFFICIENT_DATA: "Add a book to Currently Reading or finish a book to get suggestions.",
    RelatedStatus.EMPTY: "No suggestions right now.",
    RelatedStatus.FAILED: "Couldn't load suggestions.",
}


@dataclass(frozen=True)
class RelatedBooks:
    status: RelatedStatus
    seed: Optional[BookRecord] = None
    books: Tuple[SearchHit, ...] = field(default_factory=tuple)

    @property
    def message(self) -> Optional[str]:
        return _MESSAGES.get(self.status)


def _newest_first(books: Iterable[BookRecord]):
    return sorted(books, key=lambda b: (b.created_at, b.id), reverse=True)


def select_seed(books: Iterable[BookRecord], owner_id: int) -> Optional[BookRecord]:
    """
    Book that drives "because you read…": the most recently added finished
    book, else the most recently added one being read, else None.
    """
    mine = _newest_first(b for b in books if b.owner_id == owner_id)
    for status in SEED_PREFERENCE:
        for b in mine:
            if b.status is status:
                return b
    return None


def find_related(
    seed: Optional[BookRecord],
    search: Callable[[str], Sequence[SearchHit]] = search_by_author,
) -> RelatedBooks:
    """
    Catalog works by the seed's first author, minus the seed itself.
    No seed means not enough data yet; no request is made.
    """
    if seed is None or not seed.first_author:
        return RelatedBooks(status=RelatedStatus.INSUFFICIENT_DATA, seed=seed)

    try:
        hits = search(seed.first_author)
    except Exception as exc:
        logger.warning("Related lookup for %r failed: %s", seed.first_author, exc)
        return RelatedBooks(status=RelatedStatus.FAILED, seed=seed)

    related = tuple(h for h in hits if h.external_id != seed.external_id)
    status = RelatedStatus.OK if related else RelatedStatus.EMPTY
    return RelatedBooks(status=status, seed=seed, books=related)
