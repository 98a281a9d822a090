"""
=============================================================
Models
=============================================================
This file defines the SQLAlchemy ORM models.
Each class maps to a table; relationships map to foreign keys.

- User -> Book            (a user owns the books on their shelves)
- User -> ReadingSession  (per-day reading logs, optionally linked to a Book)
- User -> Goal            (at most one goal per range: week / year)
- User -> Board           (named, ordered collections of the user's own books)
- Board -> BoardBook      (one row per book on a board, with its position)

Conventions:
- `owner_id` scopes every record to one user; all queries filter by it.
- `external_id` stores the catalog key (Open Library work key) or
  `MANUAL-<uuid>` for books typed in by hand.
- A session's book link is weak: deleting the Book sets `book_id` to NULL.
- (owner_id, range) is unique on goals; writes go through an upsert.
- Deleting a Book or a Board removes its BoardBook rows.
"""

from __future__ import annotations

import enum
import datetime as dt
from typing import List, Optional

from sqlalchemy import Date, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class BookStatus(str, enum.Enum):
    READING = "reading"
    WISHLIST = "wishlist"
    FINISHED = "finished"
    DNF = "dnf"

    @property
    def display_name(self) -> str:
        return {
            BookStatus.READING: "Currently Reading",
            BookStatus.WISHLIST: "Wishlist",
            BookStatus.FINISHED: "Finished",
            BookStatus.DNF: "Didn't Finish",
        }[self]

    @classmethod
    def parse(cls, raw: Optional[str]) -> "BookStatus":
        """Unknown or missing raw values read back as READING."""
        try:
            return cls(raw)
        except ValueError:
            return cls.READING


class GoalRange(str, enum.Enum):
    WEEK = "week"
    YEAR = "year"


class Base(DeclarativeBase):
    pass


class User(Base):
    """
    An account that owns books, sessions and goals.
    Columns:
    - id: PK (used as owner_id everywhere else)
    - username: unique handle for the user (indexed)
    - display_name: name shown on the profile
    - created_at: creation timestamp
    """
    __tablename__ = "users"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    username: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    display_name: Mapped[str] = mapped_column(String(80), default="Reader")
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=dt.datetime.utcnow)

    books: Mapped[List["Book"]] = relationship(back_populates="owner", cascade="all, delete-orphan")


class Book(Base):
    """
    A book on one user's shelf.

    - external_id: catalog key, or 'MANUAL-…' for manual entries
    - authors: display string, comma separated
    - status_raw: one of BookStatus values (see `status`)
    - rating: 0..5, 0 meaning unrated
    """
    __tablename__ = "books"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    external_id: Mapped[str] = mapped_column(String(128), index=True)
    title: Mapped[str] = mapped_column(String(300))
    authors: Mapped[str] = mapped_column(String(500), default="")
    cover_url: Mapped[Optional[str]] = mapped_column(String(500))
    status_raw: Mapped[str] = mapped_column(String(20), default=BookStatus.READING.value)
    rating: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=dt.datetime.utcnow)

    owner: Mapped["User"] = relationship(back_populates="books")
    sessions: Mapped[List["ReadingSession"]] = relationship(back_populates="book")

    __table_args__ = (
        UniqueConstraint("owner_id", "external_id", name="uq_book_owner_external"),  # one copy per shelf
    )

    @property
    def status(self) -> BookStatus:
        return BookStatus.parse(self.status_raw)

    @status.setter
    def status(self, value: BookStatus) -> None:
        self.status_raw = BookStatus(value).value


class ReadingSession(Base):
    """
    One logged stretch of reading on a calendar day.
    Several sessions may share a day (different books is okay).
    """
    __tablename__ = "reading_sessions"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    book_id: Mapped[Optional[int]] = mapped_column(ForeignKey("books.id", ondelete="SET NULL"), index=True)
    date: Mapped[dt.date] = mapped_column(Date, index=True)
    pages: Mapped[int] = mapped_column(Integer, default=0)
    minutes: Mapped[int] = mapped_column(Integer, default=0)

    book: Mapped[Optional["Book"]] = relationship(back_populates="sessions")


class Goal(Base):
    """
    Target pages for a range (week / year), starting at `start_date`.
    """
    __tablename__ = "goals"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    range: Mapped[str] = mapped_column(String(10))
    target_pages: Mapped[int] = mapped_column(Integer, default=0)
    start_date: Mapped[dt.date] = mapped_column(Date)

    __table_args__ = (
        UniqueConstraint("owner_id", "range", name="uq_goal_owner_range"),  # at most one goal per range
    )


class Board(Base):
    """
    A user-named collection of books from the same user's shelves.
    `entries` keeps the books in the order they were picked.
    """
    __tablename__ = "boards"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    title: Mapped[str] = mapped_column(String(120))
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=dt.datetime.utcnow)

    entries: Mapped[List["BoardBook"]] = relationship(
        back_populates="board",
        cascade="all, delete-orphan",
        order_by="BoardBook.position",
    )


class BoardBook(Base):
    __tablename__ = "board_books"
    board_id: Mapped[int] = mapped_column(ForeignKey("boards.id", ondelete="CASCADE"), primary_key=True)
    book_id: Mapped[int] = mapped_column(ForeignKey("books.id", ondelete="CASCADE"), primary_key=True)
    position: Mapped[int] = mapped_column(Integer, default=0)

    board: Mapped["Board"] = relationship(back_populates="entries")
    book: Mapped["Book"] = relationship()
