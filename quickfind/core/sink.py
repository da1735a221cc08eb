"""The single place where search results mutate visible state."""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from quickfind.core.cancellation import ProgressToken
from quickfind.core.generation import GenerationTracker
from quickfind.core.models import (
    NOTHING_FOUND_MESSAGE,
    FinishReport,
    GenerationCounters,
    MatchEvent,
    SearchOutcome,
    ViewState,
)

logger = logging.getLogger(__name__)


class UiShell(Protocol):
    """Widget-side operations the sink drives."""

    def reveal_results_area(self) -> None: ...

    def append_result_row(self, event: MatchEvent) -> None: ...

    def set_empty_text(self, message: str) -> None: ...

    def set_preview_visible(self, visible: bool) -> None: ...

    def clear_results(self) -> None: ...


def error_message(detail: Optional[str]) -> str:
    return f"error: {detail or 'search failed'}"


class ResultSink:
    """Applies match/finish deliveries for the current generation only.

    Must only be called from the owner (GUI) thread. Rows of the previous
    generation stay on screen until the new one accepts its first match or
    finishes empty, so typing does not make the list flicker.
    """

    def __init__(self, tracker: GenerationTracker, shell: UiShell, page_size_cap: Optional[int] = None) -> None:
        self._tracker = tracker
        self._shell = shell
        self._page_size_cap = page_size_cap
        self._generation_id: Optional[int] = None
        self._counters = GenerationCounters()
        self._needs_reset = False
        self._finished_generation: Optional[int] = None
        self.view_state = ViewState()

    @property
    def counters(self) -> GenerationCounters:
        return self._counters

    @property
    def generation_id(self) -> Optional[int]:
        return self._generation_id

    def is_stale(self, token: ProgressToken) -> bool:
        return token.cancelled or not self._tracker.is_current(token.generation_id)

    def begin(self, token: ProgressToken) -> None:
        """Start tracking a new generation; counters of the previous one are dropped."""
        if self.is_stale(token) or token.generation_id == self._generation_id:
            return
        self._generation_id = token.generation_id
        self._counters = GenerationCounters()
        self._needs_reset = True

    def on_match(self, event: MatchEvent, token: ProgressToken) -> bool:
        if self.is_stale(token):
            logger.debug("Dropping stale match for generation %s", token.generation_id)
            return False
        self.begin(token)
        if self._finished_generation == token.generation_id:
            return False
        if self._page_size_cap is not None and self._counters.total_matches >= self._page_size_cap:
            return False

        self._reset_previous_rows()
        self._counters.total_matches += 1
        if event.is_new_file_in_this_generation:
            self._counters.distinct_files += 1

        if self._counters.total_matches == 1:
            if self.view_state.empty_message is not None:
                self.view_state.empty_message = None
                self._shell.set_empty_text("")
            self.view_state.has_visible_results = True
            self._shell.reveal_results_area()
            self._shell.set_preview_visible(True)
        self._shell.append_result_row(event)
        return True

    def on_finish(self, token: ProgressToken, report: FinishReport) -> bool:
        if self.is_stale(token):
            logger.debug("Dropping stale finish for generation %s", token.generation_id)
            return False
        self.begin(token)
        if self._finished_generation == token.generation_id:
            return False
        self._finished_generation = token.generation_id

        if report.outcome is SearchOutcome.CANCELLED:
            return True

        nothing_accepted = self._counters.total_matches == 0
        if nothing_accepted:
            self._reset_previous_rows()
            self.view_state.has_visible_results = False
            self._shell.set_preview_visible(False)

        if report.outcome is SearchOutcome.FAULTED:
            self._show_empty(error_message(report.message))
        elif nothing_accepted:
            self._show_empty(NOTHING_FOUND_MESSAGE)
        elif self.view_state.empty_message is not None:
            self.view_state.empty_message = None
            self._shell.set_empty_text("")
        return True

    def show_idle(self, token: ProgressToken) -> None:
        """Clear rows and messages for a generation that has nothing to search."""
        if self.is_stale(token):
            return
        self.begin(token)
        self._finished_generation = token.generation_id
        self._needs_reset = False
        self._shell.clear_results()
        self._shell.set_preview_visible(False)
        if self.view_state.empty_message is not None:
            self._shell.set_empty_text("")
        self.view_state = ViewState()

    def _reset_previous_rows(self) -> None:
        if not self._needs_reset:
            return
        self._needs_reset = False
        self._shell.clear_results()

    def _show_empty(self, message: str) -> None:
        self.view_state.empty_message = message
        self._shell.set_empty_text(message)
