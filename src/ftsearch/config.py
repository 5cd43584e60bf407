"""Application configuration defaults."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

DEFAULT_PERI_TEXT_LENGTH = 15
DEFAULT_MAX_RESULTS = 50


def _get_default_db_path() -> Path:
    """Get the default database path, relative to the working directory."""
    return Path("data") / "fulltext.db"


@dataclass(slots=True)
class AppConfig:
    db_path: Path | None = None
    host: str = "127.0.0.1"
    port: int = 1984
    peri_text_length: int = DEFAULT_PERI_TEXT_LENGTH
    max_results: int = DEFAULT_MAX_RESULTS
    log_file: Path | None = None

    def __post_init__(self) -> None:
        if self.db_path is None:
            self.db_path = _get_default_db_path()

    def resolve_db_path(self, base_dir: Path | None = None) -> Path:
        if self.db_path is None:
            self.db_path = _get_default_db_path()
        if Path(self.db_path).is_absolute() or base_dir is None:
            return Path(self.db_path)
        return base_dir / self.db_path
