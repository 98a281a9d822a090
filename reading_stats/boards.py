# reading_stats/boards.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from snapshot import BoardRecord, BookRecord, LibrarySnapshot

PREVIEW_SIZE = 4  # 2 x 2 cover grid on a board tile


@dataclass(frozen=True)
class BoardView:
    board: BoardRecord
    books: Tuple[BookRecord, ...] = field(default_factory=tuple)

    @property
    def book_count(self) -> int:
        return len(self.books)

    @property
    def preview(self) -> Tuple[Optional[str], ...]:
        """Cover URLs of the first books, padded with None to a full grid."""
        covers = [b.cover_url for b in self.books[:PREVIEW_SIZE]]
        return tuple(covers + [None] * (PREVIEW_SIZE - len(covers)))

    @property
    def is_empty(self) -> bool:
        return not self.books


@dataclass(frozen=True)
class ProfileCounts:
    books: int = 0
    boards: int = 0


def board_views(snapshot: LibrarySnapshot) -> List[BoardView]:
    """
    The owner's boards, newest first, each resolved to its books in board order.
    Ids whose book is no longer in the snapshot are skipped.
    """
    by_id = {b.id: b for b in snapshot.books if b.owner_id == snapshot.owner_id}
    mine = [b for b in snapshot.boards if b.owner_id == snapshot.owner_id]
    mine.sort(key=lambda b: (b.created_at, b.id), reverse=True)
    return [
        BoardView(board=b, books=tuple(by_id[i] for i in b.book_ids if i in by_id))
        for b in mine
    ]


def profile_counts(snapshot: LibrarySnapshot) -> ProfileCounts:
    owner = snapshot.owner_id
    return ProfileCounts(
        books=sum(1 for b in snapshot.books if b.owner_id == owner),
        boards=sum(1 for b in snapshot.boards if b.owner_id == owner),
    )
