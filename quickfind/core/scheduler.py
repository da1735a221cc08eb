"""Debounced, cancellable, generation-tracked search scheduler."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional, Tuple

from PySide6.QtCore import QObject, Qt, Signal

from quickfind.core.cancellation import CancellationController, ProgressToken
from quickfind.core.debounce import RequestDebouncer
from quickfind.core.executor import SearchBackend, SearchExecutor
from quickfind.core.generation import GenerationTracker
from quickfind.core.models import (
    DEFAULT_PAGE_SIZE,
    FinishReport,
    GenerationCounters,
    MatchEvent,
    ScopeOptions,
    SearchConfig,
    SearchOutcome,
    SearchRequest,
    ViewState,
)
from quickfind.core.sink import ResultSink, UiShell

logger = logging.getLogger(__name__)

RequestFactory = Callable[[], Tuple[str, Optional[ScopeOptions]]]


class SearchScheduler(QObject):
    """Owns all scheduler state on the GUI thread.

    Worker threads never touch the sink directly: match and finish callbacks
    are emitted as signals with queued connections, so they are drained by
    the GUI thread's event loop in emission order. A worker does not pull the
    next hit until the GUI thread has acknowledged the previous match.
    """

    searchStarted = Signal(int)  # generation_id
    searchCancelled = Signal(int)  # generation_id
    searchFinished = Signal(int, str)  # generation_id, outcome
    countersChanged = Signal(int, int)  # total_matches, distinct_files

    _matchDelivered = Signal(object, object)  # MatchEvent, ProgressToken
    _finishDelivered = Signal(object, object)  # ProgressToken, FinishReport

    def __init__(
        self,
        backend: SearchBackend,
        shell: UiShell,
        request_factory: RequestFactory,
        config: Optional[SearchConfig] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        if config is None:
            config = SearchConfig(page_size_cap=getattr(backend, "page_size", DEFAULT_PAGE_SIZE))
        self._config = config
        self._request_factory = request_factory
        self._disposed = False
        self._workers: set[threading.Thread] = set()
        self._workers_lock = threading.Lock()

        self.tracker = GenerationTracker()
        self.cancellation = CancellationController()
        self.executor = SearchExecutor(backend, config.page_size_cap)
        self.sink = ResultSink(self.tracker, shell, config.page_size_cap)
        self.debouncer = RequestDebouncer(self._start_search, config.quiet_window_ms, self)

        self._matchDelivered.connect(self._deliver_match, Qt.QueuedConnection)
        self._finishDelivered.connect(self._deliver_finish, Qt.QueuedConnection)

    @property
    def config(self) -> SearchConfig:
        return self._config

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def counters(self) -> GenerationCounters:
        return self.sink.counters

    @property
    def view_state(self) -> ViewState:
        return self.sink.view_state

    @property
    def active_token(self) -> Optional[ProgressToken]:
        return self.cancellation.active

    def schedule_search(self) -> None:
        """Call on every query or option change; the search starts after the quiet window."""
        if self._disposed:
            return
        self.debouncer.schedule()

    def dispose(self) -> None:
        """Stop the pending timer and cancel the running generation. Safe to call repeatedly."""
        if self._disposed:
            return
        self._disposed = True
        self.debouncer.dispose()
        self.cancellation.cancel()
        logger.debug("Search scheduler disposed")

    def wait_for_workers(self, timeout: float = 5.0) -> bool:
        """Join worker threads; True when none is left running.

        Blocks the GUI thread, so a worker still waiting for its match to be
        applied only returns once its token is cancelled (see ``dispose``).
        """
        deadline = time.monotonic() + timeout
        with self._workers_lock:
            workers = list(self._workers)
        for worker in workers:
            worker.join(max(0.0, deadline - time.monotonic()))
        with self._workers_lock:
            return not any(worker.is_alive() for worker in self._workers)

    def _start_search(self) -> None:
        if self._disposed:
            return
        query_text, scope_options = self._request_factory()
        query_text = query_text or ""
        generation_id = self.tracker.next()
        token = ProgressToken(generation_id, on_stop=self._on_token_stopped)
        self.cancellation.supersede(token)
        self.sink.begin(token)

        if not query_text.strip():
            # Blank query: the previous search is cancelled and the view goes idle.
            token.mark_finished()
            self.sink.show_idle(token)
            return

        request = SearchRequest.build(query_text, scope_options, generation_id)
        logger.debug("Starting generation %s for %r", generation_id, query_text)
        self.searchStarted.emit(generation_id)
        worker = threading.Thread(
            target=self._run_worker,
            args=(request, token),
            name=f"quickfind-search-{generation_id}",
            daemon=True,
        )
        with self._workers_lock:
            self._workers.add(worker)
        worker.start()

    def _run_worker(self, request: SearchRequest, token: ProgressToken) -> None:
        try:
            self.executor.run(request, token, self._forward_match, self._finishDelivered.emit)
        except Exception as exc:
            logger.exception("Search worker for generation %s crashed: %s", request.generation_id, exc)
        finally:
            with self._workers_lock:
                self._workers.discard(threading.current_thread())

    def _on_token_stopped(self, token: ProgressToken) -> None:
        self.searchCancelled.emit(token.generation_id)

    def _forward_match(self, event: MatchEvent, token: ProgressToken) -> None:
        # Worker side: hand the match to the GUI thread and wait until the sink applied it
        self._matchDelivered.emit(event, token)
        if not token.wait_acknowledged():
            logger.debug("Generation %s cancelled while a match was in flight", token.generation_id)

    def _deliver_match(self, event: MatchEvent, token: ProgressToken) -> None:
        try:
            accepted = self.sink.on_match(event, token)
        finally:
            token.acknowledge()
        if accepted:
            counters = self.sink.counters
            self.countersChanged.emit(counters.total_matches, counters.distinct_files)

    def _deliver_finish(self, token: ProgressToken, report: FinishReport) -> None:
        if (
            report.outcome is SearchOutcome.CANCELLED
            and not token.cancelled
            and not self._disposed
            and self.tracker.is_current(token.generation_id)
        ):
            logger.info("Search generation %s was interrupted; rescheduling", token.generation_id)
            self.schedule_search()
            return
        if self.sink.on_finish(token, report):
            self.searchFinished.emit(token.generation_id, report.outcome.value)
