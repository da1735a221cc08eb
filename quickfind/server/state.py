"""The project directory the search API walks."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Optional

from quickfind.core.errors import BackendError
from .adapters.files import FileAccessError


class ServedRoot:
    """Holds the selected root; request handlers run on uvicorn's thread pool."""

    def __init__(self) -> None:
        self._path: Optional[Path] = None
        self._lock = threading.Lock()

    def select(self, path: str | Path) -> Path:
        candidate = Path(path).expanduser().resolve()
        if not candidate.is_dir():
            raise FileAccessError(f"Project directory does not exist: {candidate}")
        with self._lock:
            self._path = candidate
        return candidate

    def require(self) -> Path:
        with self._lock:
            path = self._path
        if path is None:
            raise BackendError("No project root selected; POST /api/root/select first")
        return path

    def clear(self) -> None:
        with self._lock:
            self._path = None


served_root = ServedRoot()
