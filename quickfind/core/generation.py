from __future__ import annotations

import threading
from typing import Optional

from quickfind.core.errors import ExhaustedError

MAX_GENERATION_ID = 2**63 - 1


class GenerationTracker:
    """Hands out strictly increasing generation ids.

    Only the most recently issued id is "current"; everything older is stale.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._current: Optional[int] = None

    @property
    def current(self) -> Optional[int]:
        return self._current

    def next(self) -> int:
        with self._lock:
            last = self._current if self._current is not None else 0
            if last >= MAX_GENERATION_ID:
                raise ExhaustedError(f"generation counter exhausted at {last}")
            self._current = last + 1
            return self._current

    def is_current(self, generation_id: int) -> bool:
        return self._current is not None and generation_id == self._current
