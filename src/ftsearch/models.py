"""Core ftsearch data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List


@dataclass(slots=True)
class Document:
    """A stored document. The search core only ever reads these."""

    id: str
    name: str
    text: str


@dataclass(slots=True)
class SearchMatch:
    """A phrase match anchored at a token position inside one document."""

    document_id: str
    document_name: str
    position: int
    snippet: str


@dataclass(slots=True)
class SearchOutcome:
    """Ordered matches of a single search call plus its failure flag."""

    matches: List[SearchMatch] = field(default_factory=list)
    failed: bool = False

    @classmethod
    def failure(cls) -> SearchOutcome:
        return cls(matches=[], failed=True)