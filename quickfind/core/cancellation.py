"""Progress tokens and the controller that owns the active one."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class ProgressToken:
    """Cancellable/finishable handle for one search generation.

    ``cancelled`` and ``finished`` only ever go from False to True. The worker
    thread reads ``cancelled``; the owner (GUI thread) sets it.
    """

    def __init__(self, generation_id: int, on_stop: Optional[Callable[["ProgressToken"], None]] = None) -> None:
        self.generation_id = generation_id
        self._on_stop = on_stop
        self._lock = threading.Lock()
        self._consumed = threading.Condition(self._lock)
        self._cancelled = threading.Event()
        self._finished = False
        self._stop_fired = False
        self._acks = 0

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def finished(self) -> bool:
        return self._finished

    def cancel(self) -> bool:
        """Flip the cancelled flag and fire the stop hook once.

        Returns True only for the call that actually cancelled the token.
        """
        with self._lock:
            if self._cancelled.is_set():
                return False
            self._cancelled.set()
            # Wake a worker blocked in wait_acknowledged()
            self._consumed.notify_all()
            hook = None
            if self._on_stop is not None and not self._stop_fired:
                self._stop_fired = True
                hook = self._on_stop
        if hook is not None:
            try:
                hook(self)
            except Exception:
                logger.exception("Stop hook failed for generation %s", self.generation_id)
        return True

    def mark_finished(self) -> bool:
        """Set ``finished``; True for the first caller only."""
        with self._lock:
            if self._finished:
                return False
            self._finished = True
            return True

    def acknowledge(self) -> None:
        """Called by the owner once a forwarded match has been applied."""
        with self._consumed:
            self._acks += 1
            self._consumed.notify_all()

    def wait_acknowledged(self, timeout: Optional[float] = None) -> bool:
        """Block until the owner acknowledges one match.

        Returns False when the token is cancelled (or ``timeout`` expires)
        first, so a worker never outlives the owner waiting for consumption.
        """
        with self._consumed:
            self._consumed.wait_for(lambda: self._acks > 0 or self._cancelled.is_set(), timeout)
            if self._acks > 0:
                self._acks -= 1
                return True
            return False

    def __repr__(self) -> str:
        return (
            f"ProgressToken(generation_id={self.generation_id}, "
            f"cancelled={self.cancelled}, finished={self.finished})"
        )


class CancellationController:
    """Owns the currently active token; older tokens are always cancelled."""

    def __init__(self) -> None:
        self._active: Optional[ProgressToken] = None

    @property
    def active(self) -> Optional[ProgressToken]:
        return self._active

    def supersede(self, new_token: ProgressToken) -> None:
        """Cancel the active token (if any) and install ``new_token``."""
        previous = self._active
        if previous is not None and previous is not new_token:
            if previous.cancel():
                logger.debug(
                    "Generation %s superseded by %s", previous.generation_id, new_token.generation_id
                )
        self._active = new_token

    def cancel(self, token: Optional[ProgressToken] = None) -> None:
        """Cancel ``token`` (default: the active one), e.g. when the popup closes."""
        target = token if token is not None else self._active
        if target is None:
            return
        target.cancel()
        if target is self._active:
            self._active = None
