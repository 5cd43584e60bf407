"""Fuzzy phrase search over stored documents."""

from __future__ import annotations

import logging
import threading
from typing import List, Optional, Protocol

from ftsearch.index.matcher import check_words
from ftsearch.index.storage import StorageError
from ftsearch.models import Document, SearchMatch, SearchOutcome
from ftsearch.utils.text import TOKEN_DELIMITER, split_tokens

LOGGER = logging.getLogger(__name__)


class SearchCancelled(Exception):
    """Raised when a caller sets the cancel event while a search is running."""


class DocumentSource(Protocol):
    """Read-only view of the document store used by :class:`Searcher`."""

    def get_document(self, document_id: str) -> Document | None: ...

    def list_documents(self) -> List[Document]: ...


def _check_cancelled(cancel: Optional[threading.Event]) -> None:
    if cancel is not None and cancel.is_set():
        raise SearchCancelled("Search cancelled")


def build_snippet(window: List[str]) -> str:
    """Join the literal window tokens, each followed by a single space."""
    return "".join(word + TOKEN_DELIMITER for word in window)


class Searcher:
    """High-level API to run phrase searches against a document source."""

    def __init__(self, store: DocumentSource) -> None:
        self.store = store

    def search_document(
        self,
        document_id: str,
        query_text: str,
        *,
        stop_after_one: bool = False,
        cancel: Optional[threading.Event] = None,
    ) -> SearchOutcome:
        """Slide a query-sized window over one document's tokens.

        A missing document is not an error and yields an empty outcome; a
        storage failure yields a failed one.
        """
        try:
            document = self.store.get_document(document_id)
        except StorageError as exc:
            LOGGER.error("Unable to fetch document %s: %s", document_id, exc)
            return SearchOutcome.failure()

        if document is None:
            LOGGER.debug("Document %s not found", document_id)
            return SearchOutcome()

        text_tokens = split_tokens(document.text)
        query_tokens = split_tokens(query_text)
        window_size = len(query_tokens)

        outcome = SearchOutcome()
        for position in range(len(text_tokens)):
            _check_cancelled(cancel)

            # Never compare against a trailing remainder shorter than the query.
            if position + window_size > len(text_tokens):
                break

            window = text_tokens[position : position + window_size]
            if not check_words(window, query_tokens):
                continue

            outcome.matches.append(
                SearchMatch(
                    document_id=document.id,
                    document_name=document.name,
                    position=position,
                    snippet=build_snippet(window),
                )
            )
            if stop_after_one:
                break

        return outcome

    def search_all(
        self,
        query_text: str,
        *,
        stop_after_one: bool = False,
        cancel: Optional[threading.Event] = None,
    ) -> SearchOutcome:
        """Search every stored document, keeping storage order.

        ``stop_after_one`` limits matches per document, not overall. Any
        failed document scan fails the whole search.
        """
        try:
            documents = self.store.list_documents()
        except StorageError as exc:
            LOGGER.error("Unable to list documents: %s", exc)
            return SearchOutcome.failure()

        outcome = SearchOutcome()
        for document in documents:
            _check_cancelled(cancel)

            result = self.search_document(
                document.id,
                query_text,
                stop_after_one=stop_after_one,
                cancel=cancel,
            )
            if result.failed:
                LOGGER.error("Search aborted while scanning document %s", document.id)
                return SearchOutcome.failure()
            outcome.matches.extend(result.matches)

        LOGGER.debug(
            "Searched %d documents for %r: %d matches",
            len(documents),
            query_text,
            len(outcome.matches),
        )
        return outcome
