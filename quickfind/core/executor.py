"""Runs a single search generation against a backend."""

from __future__ import annotations

import logging
from typing import Callable, Iterator, Optional, Protocol

from quickfind.core.cancellation import ProgressToken
from quickfind.core.errors import SearchInterrupted
from quickfind.core.models import (
    DEFAULT_PAGE_SIZE,
    FinishReport,
    MatchEvent,
    ScopeOptions,
    SearchHit,
    SearchOutcome,
    SearchRequest,
)

logger = logging.getLogger(__name__)


class SearchBackend(Protocol):
    """What the executor needs from a search implementation.

    ``find_matches`` returns a lazy iterator. Implementations should check
    ``token.cancelled`` between batches and stop promptly; they may raise.
    """

    page_size: int

    def find_matches(self, query: str, scope_options: ScopeOptions, token: ProgressToken) -> Iterator[SearchHit]:
        ...


MatchCallback = Callable[[MatchEvent, ProgressToken], None]
FinishCallback = Callable[[ProgressToken, FinishReport], None]


class SearchExecutor:
    """Pull hits from the backend one at a time and forward them as MatchEvents.

    ``on_match`` must return only once the event has been consumed; the next
    hit is pulled after that. Stops on cancellation, on reaching the page-size
    cap, on exhaustion or on a backend fault. Exactly one finish report is
    emitted per token.
    """

    def __init__(self, backend: SearchBackend, page_size: Optional[int] = None) -> None:
        self.backend = backend
        if page_size is None:
            page_size = getattr(backend, "page_size", DEFAULT_PAGE_SIZE)
        self.page_size = max(1, int(page_size))

    def run(
        self,
        request: SearchRequest,
        token: ProgressToken,
        on_match: MatchCallback,
        on_finish: FinishCallback,
    ) -> FinishReport:
        delivered = 0
        report: FinishReport
        last_file: Optional[str] = None
        hits: Optional[Iterator[SearchHit]] = None

        try:
            if token.cancelled:
                report = FinishReport(SearchOutcome.CANCELLED, delivered)
            else:
                hits = iter(self.backend.find_matches(request.query_text, request.scope_options, token))
                for hit in hits:
                    if token.cancelled:
                        report = FinishReport(SearchOutcome.CANCELLED, delivered)
                        break
                    is_new_file = hit.path != last_file
                    last_file = hit.path
                    on_match(MatchEvent(hit.path, is_new_file, hit.line, hit.text), token)
                    delivered += 1
                    if delivered >= self.page_size:
                        report = FinishReport(SearchOutcome.CAPPED, delivered)
                        break
                    # on_match may have been interrupted by a cancel; no further pulls then
                    if token.cancelled:
                        report = FinishReport(SearchOutcome.CANCELLED, delivered)
                        break
                else:
                    report = FinishReport(SearchOutcome.COMPLETED, delivered)
        except SearchInterrupted as exc:
            logger.debug("Generation %s interrupted by backend: %s", request.generation_id, exc)
            report = FinishReport(SearchOutcome.CANCELLED, delivered, str(exc) or None)
        except Exception as exc:
            logger.warning("Search for %r failed: %s", request.query_text, exc)
            report = FinishReport(SearchOutcome.FAULTED, delivered, str(exc) or exc.__class__.__name__)
        finally:
            close = getattr(hits, "close", None)
            if close is not None:
                try:
                    close()
                except Exception:
                    logger.exception("Closing backend iterator failed")

        if token.mark_finished():
            logger.debug(
                "Generation %s finished: %s (%d delivered)",
                request.generation_id,
                report.outcome.value,
                delivered,
            )
            on_finish(token, report)
        return report
