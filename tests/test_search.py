"""Tests for the phrase search interface."""

from __future__ import annotations

import threading
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from ftsearch.index.search import SearchCancelled, Searcher, build_snippet
from ftsearch.index.storage import SQLiteDocumentStore, StorageError
from ftsearch.models import Document, SearchMatch

CAT_TEXT = "the cat sat on the mat"


def _store_with(*documents: Document) -> MagicMock:
    """Mock store serving the given documents."""
    by_id = {document.id: document for document in documents}
    store = MagicMock()
    store.get_document.side_effect = by_id.get
    store.list_documents.return_value = list(documents)
    return store


class TestBuildSnippet:
    """Test snippet reconstruction."""

    def test_trailing_space(self) -> None:
        assert build_snippet(["the", "cat", "sat"]) == "the cat sat "

    def test_keeps_literal_tokens(self) -> None:
        assert build_snippet(["The", "Cat,"]) == "The Cat, "


class TestSearchDocument:
    """Test the single-document scanner."""

    def test_stop_after_one(self) -> None:
        """Finds the first typo-tolerant match and stops."""
        searcher = Searcher(_store_with(Document(id="b1", name="Book", text=CAT_TEXT)))

        outcome = searcher.search_document("b1", "the cot sat", stop_after_one=True)

        assert outcome.failed is False
        assert outcome.matches == [
            SearchMatch(document_id="b1", document_name="Book", position=0, snippet="the cat sat ")
        ]

    def test_no_alignment(self) -> None:
        searcher = Searcher(_store_with(Document(id="b1", name="Book", text=CAT_TEXT)))

        outcome = searcher.search_document("b1", "dog sat sat")

        assert outcome.failed is False
        assert outcome.matches == []

    def test_all_matches_in_position_order(self) -> None:
        searcher = Searcher(_store_with(Document(id="b1", name="Book", text=CAT_TEXT)))

        outcome = searcher.search_document("b1", "the")

        assert [match.position for match in outcome.matches] == [0, 4]
        assert all(match.snippet == "the " for match in outcome.matches)

    def test_window_at_end_of_document(self) -> None:
        """A window ending exactly on the last token is scanned."""
        searcher = Searcher(_store_with(Document(id="b1", name="Book", text=CAT_TEXT)))

        outcome = searcher.search_document("b1", "on the mat")

        assert [match.position for match in outcome.matches] == [3]
        assert outcome.matches[0].snippet == "on the mat "

    def test_document_shorter_than_query(self) -> None:
        searcher = Searcher(_store_with(Document(id="b1", name="Book", text="the cat")))

        outcome = searcher.search_document("b1", "the cat sat")

        assert outcome.failed is False
        assert outcome.matches == []

    def test_no_partial_trailing_window(self) -> None:
        """A query overhanging the end of the document never matches."""
        searcher = Searcher(_store_with(Document(id="b1", name="Book", text=CAT_TEXT)))

        outcome = searcher.search_document("b1", "the mat and")

        assert outcome.matches == []

    def test_windows_stay_in_bounds(self) -> None:
        text = "1 2 1 2 1 2"
        searcher = Searcher(_store_with(Document(id="b1", name="Book", text=text)))

        outcome = searcher.search_document("b1", "1 2")

        token_count = len(text.split(" "))
        assert [match.position for match in outcome.matches] == [0, 2, 4]
        for match in outcome.matches:
            assert match.position + 2 <= token_count

    def test_missing_document(self) -> None:
        """Unknown ids give an empty, successful outcome."""
        searcher = Searcher(_store_with())

        outcome = searcher.search_document("nope", "the cat")

        assert outcome.failed is False
        assert outcome.matches == []

    def test_storage_error(self) -> None:
        store = MagicMock()
        store.get_document.side_effect = StorageError("disk on fire")
        searcher = Searcher(store)

        outcome = searcher.search_document("b1", "the cat")

        assert outcome.failed is True
        assert outcome.matches == []

    def test_empty_query(self) -> None:
        searcher = Searcher(_store_with(Document(id="b1", name="Book", text=CAT_TEXT)))

        outcome = searcher.search_document("b1", "")

        assert outcome.failed is False
        assert outcome.matches == []

    def test_double_space_in_query(self) -> None:
        """An empty query token can never be matched."""
        searcher = Searcher(_store_with(Document(id="b1", name="Book", text="a  b")))

        assert searcher.search_document("b1", "a  b").matches == []

    def test_punctuation_and_case_ignored(self) -> None:
        text = "Call me Ishmael. Some years ago"
        searcher = Searcher(_store_with(Document(id="md", name="Moby Dick", text=text)))

        outcome = searcher.search_document("md", "call me ishmael")

        assert len(outcome.matches) == 1
        assert outcome.matches[0].snippet == "Call me Ishmael. "

    def test_cancelled(self) -> None:
        searcher = Searcher(_store_with(Document(id="b1", name="Book", text=CAT_TEXT)))
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(SearchCancelled):
            searcher.search_document("b1", "the", cancel=cancel)

    def test_unset_cancel_event_changes_nothing(self) -> None:
        searcher = Searcher(_store_with(Document(id="b1", name="Book", text=CAT_TEXT)))

        outcome = searcher.search_document("b1", "the", cancel=threading.Event())

        assert [match.position for match in outcome.matches] == [0, 4]


class TestSearchAll:
    """Test the cross-document aggregator."""

    def test_stop_after_one_is_per_document(self) -> None:
        """Every document may contribute one match."""
        store = _store_with(
            Document(id="b1", name="One", text="the cat sat the cat"),
            Document(id="b2", name="Two", text="no felines here"),
            Document(id="b3", name="Three", text="a cat and the cat"),
        )
        searcher = Searcher(store)

        outcome = searcher.search_all("cat", stop_after_one=True)

        assert outcome.failed is False
        assert [(m.document_id, m.position) for m in outcome.matches] == [("b1", 1), ("b3", 1)]

    def test_preserves_document_order(self) -> None:
        store = _store_with(
            Document(id="z", name="Last", text="cat cat"),
            Document(id="a", name="First", text="cat"),
        )
        searcher = Searcher(store)

        outcome = searcher.search_all("cat")

        assert [(m.document_id, m.position) for m in outcome.matches] == [
            ("z", 0),
            ("z", 1),
            ("a", 0),
        ]

    def test_no_documents(self) -> None:
        searcher = Searcher(_store_with())

        outcome = searcher.search_all("cat")

        assert outcome.failed is False
        assert outcome.matches == []

    def test_list_error(self) -> None:
        store = MagicMock()
        store.list_documents.side_effect = StorageError("locked")
        searcher = Searcher(store)

        outcome = searcher.search_all("cat")

        assert outcome.failed is True

    def test_document_error_fails_whole_search(self) -> None:
        """A failing document scan is not swallowed."""
        first = Document(id="b1", name="One", text="cat")
        store = MagicMock()
        store.list_documents.return_value = [first, Document(id="b2", name="Two", text="cat")]
        store.get_document.side_effect = [first, StorageError("gone")]
        searcher = Searcher(store)

        outcome = searcher.search_all("cat")

        assert outcome.failed is True
        assert outcome.matches == []

    def test_cancelled_between_documents(self) -> None:
        cancel = threading.Event()
        store = _store_with(Document(id="b1", name="One", text="cat"))

        def list_then_cancel() -> list[Document]:
            cancel.set()
            return [Document(id="b1", name="One", text="cat")]

        store.list_documents.side_effect = list_then_cancel
        searcher = Searcher(store)

        with pytest.raises(SearchCancelled):
            searcher.search_all("cat", cancel=cancel)
        store.get_document.assert_not_called()


class TestSearcherWithSQLite:
    """Run searches against a real document store."""

    @pytest.fixture
    def store(self, tmp_path: Path):
        store = SQLiteDocumentStore(tmp_path / "search.db")
        yield store
        store.close()

    def test_search_all_real_store(self, store: SQLiteDocumentStore) -> None:
        store.add_document(Document(id="b1", name="Cats", text=CAT_TEXT))
        store.add_document(Document(id="b2", name="Dogs", text="the dog sat on the log"))
        searcher = Searcher(store)

        outcome = searcher.search_all("the cot sat", stop_after_one=True)

        assert [(m.document_id, m.snippet) for m in outcome.matches] == [("b1", "the cat sat ")]

    def test_closed_store_fails(self, store: SQLiteDocumentStore) -> None:
        store.add_document(Document(id="b1", name="Cats", text=CAT_TEXT))
        store.close()
        searcher = Searcher(store)

        assert searcher.search_document("b1", "cat").failed is True
        assert searcher.search_all("cat").failed is True
