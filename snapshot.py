"""
Read-only, ORM-detached view of one owner's library.

The stats code only ever sees these frozen records, so a snapshot can be
handed to any thread and recomputed from scratch whenever the store changes.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Optional, Tuple

from models import Board, Book, BookStatus, Goal, GoalRange, ReadingSession


@dataclass(frozen=True)
class BookRecord:
    id: int
    owner_id: int
    external_id: str
    title: str
    authors: str
    cover_url: Optional[str]
    status: BookStatus
    rating: int
    created_at: dt.datetime

    @property
    def first_author(self) -> Optional[str]:
        first = (self.authors or "").split(",")[0].strip()
        return first or None

    @classmethod
    def from_model(cls, b: Book) -> "BookRecord":
        return cls(
            id=b.id,
            owner_id=b.owner_id,
            external_id=b.external_id,
            title=b.title,
            authors=b.authors or "",
            cover_url=b.cover_url,
            status=b.status,
            rating=b.rating or 0,
            created_at=b.created_at,
        )


@dataclass(frozen=True)
class SessionRecord:
    id: int
    owner_id: int
    date: dt.date
    pages: int = 0
    minutes: int = 0
    book_id: Optional[int] = None

    @property
    def is_active(self) -> bool:
        return self.pages > 0 or self.minutes > 0

    @classmethod
    def from_model(cls, s: ReadingSession) -> "SessionRecord":
        return cls(
            id=s.id,
            owner_id=s.owner_id,
            date=s.date,
            pages=s.pages or 0,
            minutes=s.minutes or 0,
            book_id=s.book_id,
        )


@dataclass(frozen=True)
class GoalRecord:
    id: int
    owner_id: int
    range: GoalRange
    target_pages: int
    start_date: dt.date

    @classmethod
    def from_model(cls, g: Goal) -> "GoalRecord":
        return cls(
            id=g.id,
            owner_id=g.owner_id,
            range=GoalRange(g.range),
            target_pages=g.target_pages or 0,
            start_date=g.start_date,
        )


@dataclass(frozen=True)
class BoardRecord:
    id: int
    owner_id: int
    title: str
    created_at: dt.datetime
    book_ids: Tuple[int, ...] = field(default_factory=tuple)  # board order

    @classmethod
    def from_model(cls, b: Board) -> "BoardRecord":
        return cls(
            id=b.id,
            owner_id=b.owner_id,
            title=b.title,
            created_at=b.created_at,
            book_ids=tuple(e.book_id for e in b.entries),
        )


@dataclass(frozen=True)
class LibrarySnapshot:
    owner_id: int
    books: Tuple[BookRecord, ...] = field(default_factory=tuple)
    sessions: Tuple[SessionRecord, ...] = field(default_factory=tuple)
    goals: Tuple[GoalRecord, ...] = field(default_factory=tuple)
    boards: Tuple[BoardRecord, ...] = field(default_factory=tuple)
