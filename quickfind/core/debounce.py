"""Quiet-window debouncer built on a single-shot QTimer."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from PySide6.QtCore import QObject, QTimer

from quickfind.core.models import DEFAULT_QUIET_WINDOW_MS

logger = logging.getLogger(__name__)


class RequestDebouncer(QObject):
    """Coalesce bursts of ``schedule()`` calls into one callback.

    Every call restarts the quiet window; only the last call in a burst
    survives. Must be used from the thread that owns the object (the GUI thread).
    """

    def __init__(self, callback: Callable[[], None], quiet_window_ms: int = DEFAULT_QUIET_WINDOW_MS, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._callback = callback
        self._quiet_window_ms = max(0, int(quiet_window_ms))
        self._disposed = False
        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.timeout.connect(self._fire)

    @property
    def quiet_window_ms(self) -> int:
        return self._quiet_window_ms

    @property
    def disposed(self) -> bool:
        return self._disposed

    def is_pending(self) -> bool:
        return self._timer.isActive()

    def schedule(self) -> None:
        """Cancel the pending evaluation (if any) and arm a fresh one."""
        if self._disposed:
            return
        self._timer.stop()
        self._timer.start(self._quiet_window_ms)

    def cancel(self) -> None:
        self._timer.stop()

    def dispose(self) -> None:
        """Stop the timer for good; no callback fires after this returns."""
        self._disposed = True
        self._timer.stop()

    def _fire(self) -> None:
        # A timeout already queued before dispose() must not reach the callback.
        if self._disposed:
            return
        self._callback()
