"""Per-route request counters exposed in Prometheus text format."""

from __future__ import annotations

import threading
from typing import Dict, Iterable

PROJECT_NAME = "fts"

TRACKED_PATHS = (
    "/add",
    "/edit",
    "/remove",
    "/removeAll",
    "/search/all",
    "/search/one",
)


class RequestMetrics:
    """Thread-safe request counter keyed by route path."""

    def __init__(
        self, paths: Iterable[str] = TRACKED_PATHS, *, project_name: str = PROJECT_NAME
    ) -> None:
        self.project_name = project_name
        self._lock = threading.Lock()
        self._counts: Dict[str, int] = {path: 0 for path in paths}

    def tracks(self, path: str) -> bool:
        with self._lock:
            return path in self._counts

    def increment(self, path: str) -> None:
        with self._lock:
            self._counts[path] = self._counts.get(path, 0) + 1

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._counts)

    def render(self) -> str:
        lines = [
            f'http_request_duration_seconds_count{{path="{path}",project_name="{self.project_name}"}} {count}'
            for path, count in self.snapshot().items()
        ]
        lines.append("")
        lines.append(f'up{{project_name="{self.project_name}"}} 1')
        return "\n".join(lines) + "\n"
