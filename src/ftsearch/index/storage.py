"""SQLite document store."""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager, suppress
from pathlib import Path
from typing import Iterator, List

from ftsearch.models import Document

LOGGER = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """Raised when the underlying database cannot serve a request."""


class DocumentExistsError(StorageError):
    """Raised when adding a document whose id is already stored."""


class SQLiteDocumentStore:
    """Persistence layer for searchable documents.

    A single connection is shared between threads; every statement runs
    under the store's lock.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self._lock = threading.RLock()
        try:
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL;")
            self._conn.execute("PRAGMA synchronous=NORMAL;")
        except sqlite3.Error as exc:
            raise StorageError(f"Unable to open database {self.db_path}: {exc}") from exc
        try:
            self._ensure_schema()
        except StorageError:
            self._conn.close()
            raise

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            try:
                yield self._conn
                self._conn.commit()
            except sqlite3.Error as exc:
                self._rollback()
                raise StorageError(str(exc)) from exc
            except Exception:
                self._rollback()
                raise

    def _rollback(self) -> None:
        # A closed or broken connection cannot roll back; the original error wins.
        with suppress(sqlite3.Error):
            self._conn.rollback()

    @contextmanager
    def _reading(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            try:
                yield self._conn
            except sqlite3.Error as exc:
                raise StorageError(str(exc)) from exc

    def _ensure_schema(self) -> None:
        with self.transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS documents (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    document_id TEXT NOT NULL UNIQUE,
                    name TEXT NOT NULL,
                    text TEXT NOT NULL,
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
                """
            )
            conn.execute(
                """
                CREATE TRIGGER IF NOT EXISTS documents_updated
                AFTER UPDATE OF name, text ON documents
                BEGIN
                    UPDATE documents SET updated_at = CURRENT_TIMESTAMP WHERE id = NEW.id;
                END;
                """
            )

    @staticmethod
    def _to_document(row: sqlite3.Row) -> Document:
        return Document(id=row["document_id"], name=row["name"], text=row["text"])

    def add_document(self, document: Document) -> None:
        """Insert a new document. Raises DocumentExistsError on a duplicate id."""
        with self.transaction() as conn:
            try:
                conn.execute(
                    "INSERT INTO documents(document_id, name, text) VALUES (?, ?, ?)",
                    (document.id, document.name, document.text),
                )
            except sqlite3.IntegrityError as exc:
                raise DocumentExistsError(f"Document {document.id!r} already exists") from exc
        LOGGER.debug("Stored document %s", document.id)

    def edit_document(
        self,
        document_id: str,
        *,
        name: str | None = None,
        text: str | None = None,
    ) -> bool:
        """Update name and/or text; omitted fields keep their stored value.

        Returns False when no document has the given id.
        """
        with self.transaction() as conn:
            existing = conn.execute(
                "SELECT name, text FROM documents WHERE document_id = ?",
                (document_id,),
            ).fetchone()
            if existing is None:
                return False

            conn.execute(
                "UPDATE documents SET name = ?, text = ? WHERE document_id = ?",
                (
                    name if name is not None else existing["name"],
                    text if text is not None else existing["text"],
                    document_id,
                ),
            )
        return True

    def remove_document(self, document_id: str) -> bool:
        with self.transaction() as conn:
            cursor = conn.execute("DELETE FROM documents WHERE document_id = ?", (document_id,))
        return cursor.rowcount > 0

    def remove_all(self) -> int:
        """Delete every document and return how many were removed."""
        with self.transaction() as conn:
            removed = conn.execute("SELECT COUNT(*) FROM documents").fetchone()[0]
            conn.execute("DELETE FROM documents")
        return removed

    def get_document(self, document_id: str) -> Document | None:
        with self._reading() as conn:
            row = conn.execute(
                "SELECT document_id, name, text FROM documents WHERE document_id = ?",
                (document_id,),
            ).fetchone()
        return self._to_document(row) if row is not None else None

    def list_documents(self) -> List[Document]:
        """Return all documents in insertion order."""
        with self._reading() as conn:
            rows = conn.execute(
                "SELECT document_id, name, text FROM documents ORDER BY id"
            ).fetchall()
        return [self._to_document(row) for row in rows]

    def count(self) -> int:
        with self._reading() as conn:
            return conn.execute("SELECT COUNT(*) FROM documents").fetchone()[0]
