"""Logging setup shared by the CLI and the web server."""

from __future__ import annotations

import logging
from pathlib import Path

CONSOLE_FORMAT = "[%(levelname)s] %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: int = logging.INFO, log_file: Path | None = None) -> None:
    """Configure root logging, optionally mirroring records into ``log_file``."""
    logging.basicConfig(level=level, format=CONSOLE_FORMAT)
    if log_file is None:
        return

    log_file = Path(log_file)
    root = logging.getLogger()
    for handler in root.handlers:
        if isinstance(handler, logging.FileHandler) and Path(handler.baseFilename) == log_file.resolve():
            return

    log_file.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    root.addHandler(file_handler)
