"""Service context shared by request handlers."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from ftsearch.config import AppConfig
from ftsearch.index.search import Searcher
from ftsearch.index.storage import SQLiteDocumentStore
from ftsearch.metrics import RequestMetrics

LOGGER = logging.getLogger(__name__)


def _ensure_db_parent(db_path: Path) -> None:
    db_path.parent.mkdir(parents=True, exist_ok=True)


@dataclass(slots=True)
class ServiceContext:
    """Everything a running service owns: config, store, metrics and searcher.

    Created once at startup and closed at shutdown.
    """

    config: AppConfig
    store: SQLiteDocumentStore
    metrics: RequestMetrics = field(default_factory=RequestMetrics)
    searcher: Searcher = field(init=False)

    def __post_init__(self) -> None:
        self.searcher = Searcher(self.store)

    @classmethod
    def open(cls, config: AppConfig, base_dir: Path | None = None) -> ServiceContext:
        resolved_db = config.resolve_db_path(base_dir)
        _ensure_db_parent(resolved_db)
        LOGGER.info("Opening document store at %s", resolved_db)
        return cls(config=config, store=SQLiteDocumentStore(resolved_db))

    def close(self) -> None:
        self.store.close()
