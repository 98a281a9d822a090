# tests/test_recommendations.py
import requests

from harvesters.openlibrary_client import SearchHit
from models import BookStatus
from reading_stats.recommendations import RelatedStatus, find_related, select_seed


def test_prefers_most_recent_finished(make_book_record):
    old_finished = make_book_record(status=BookStatus.FINISHED)
    reading = make_book_record(status=BookStatus.READING)
    new_finished = make_book_record(status=BookStatus.FINISHED)
    wishlist = make_book_record(status=BookStatus.WISHLIST)
    books = [reading, wishlist, old_finished, new_finished]
    assert select_seed(books, 1) == new_finished


def test_falls_back_to_most_recent_reading(make_book_record):
    first = make_book_record(status=BookStatus.READING)
    second = make_book_record(status=BookStatus.READING)
    dnf = make_book_record(status=BookStatus.DNF)
    assert select_seed([second, dnf, first], 1) == second


def test_no_seed_without_finished_or_reading(make_book_record):
    books = [make_book_record(status=BookStatus.WISHLIST), make_book_record(status=BookStatus.DNF)]
    assert select_seed(books, 1) is None
    assert select_seed([], 1) is None


def test_seed_is_scoped_to_owner(make_book_record):
    theirs = make_book_record(owner_id=2, status=BookStatus.FINISHED)
    mine = make_book_record(owner_id=1, status=BookStatus.READING)
    assert select_seed([theirs, mine], 1) == mine


def test_find_related_without_seed_issues_no_request():
    calls = []
    result = find_related(None, search=lambda q: calls.append(q) or [])
    assert result.status is RelatedStatus.INSUFFICIENT_DATA
    assert result.message.startswith("Add a book")
    assert calls == []


def test_find_related_searches_first_author_and_drops_seed(make_book_record):
    seed = make_book_record(status=BookStatus.FINISHED, authors="Ursula K. Le Guin, Someone Else",
                            external_id="/works/OL1W")
    calls = []

    def search(author):
        calls.append(author)
        return [
            SearchHit(external_id="/works/OL1W", title="The Dispossessed"),
            SearchHit(external_id="/works/OL2W", title="The Lathe of Heaven"),
        ]

    result = find_related(seed, search=search)
    assert calls == ["Ursula K. Le Guin"]
    assert result.status is RelatedStatus.OK
    assert [h.external_id for h in result.books] == ["/works/OL2W"]
    assert result.message is None


def test_find_related_empty(make_book_record):
    seed = make_book_record(status=BookStatus.READING, external_id="/works/OL1W")
    result = find_related(seed, search=lambda a: [SearchHit(external_id="/works/OL1W", title="Only me")])
    assert result.status is RelatedStatus.EMPTY
    assert result.message == "No suggestions right now."


def test_find_related_contains_transport_errors(make_book_record):
    seed = make_book_record(status=BookStatus.READING)

    def search(author):
        raise requests.ConnectionError("boom")

    result = find_related(seed, search=search)
    assert result.status is RelatedStatus.FAILED
    assert result.books == ()
