from __future__ import annotations

from quickfind.core.cancellation import ProgressToken
from quickfind.core.errors import SearchInterrupted
from quickfind.core.executor import SearchExecutor
from quickfind.core.models import ScopeOptions, SearchHit, SearchOutcome, SearchRequest

from search_fakes import FaultyBackend, ListBackend, make_hits


def _request(query: str = "needle", generation_id: int = 1) -> SearchRequest:
    return SearchRequest.build(query, ScopeOptions(), generation_id)


class Collector:
    def __init__(self):
        self.events = []
        self.finishes = []

    def on_match(self, event, token):
        self.events.append(event)

    def on_finish(self, token, report):
        self.finishes.append(report)


def test_completed_when_backend_exhausts():
    backend = ListBackend(default=make_hits(3))
    collector = Collector()
    token = ProgressToken(1)
    report = SearchExecutor(backend).run(_request(), token, collector.on_match, collector.on_finish)
    assert report.outcome is SearchOutcome.COMPLETED
    assert report.delivered == 3
    assert [e.line for e in collector.events] == [1, 2, 3]
    assert collector.finishes == [report]
    assert token.finished


def test_cap_stops_pulling_from_backend():
    backend = ListBackend(default=make_hits(250))
    collector = Collector()
    report = SearchExecutor(backend, page_size=100).run(
        _request(), ProgressToken(1), collector.on_match, collector.on_finish
    )
    assert report.outcome is SearchOutcome.CAPPED
    assert len(collector.events) == 100
    assert backend.pulled == 100


def test_page_size_defaults_to_backend():
    backend = ListBackend(default=make_hits(10), page_size=4)
    executor = SearchExecutor(backend)
    assert executor.page_size == 4


def test_new_file_flag_follows_file_changes():
    hits = [
        SearchHit("/a.py", 1),
        SearchHit("/a.py", 5),
        SearchHit("/b.py", 2),
        SearchHit("/a.py", 9),
    ]
    collector = Collector()
    SearchExecutor(ListBackend(default=hits)).run(
        _request(), ProgressToken(1), collector.on_match, collector.on_finish
    )
    assert [e.is_new_file_in_this_generation for e in collector.events] == [True, False, True, True]


def test_cancelled_token_never_reaches_backend():
    backend = ListBackend(default=make_hits(3))
    token = ProgressToken(1)
    token.cancel()
    collector = Collector()
    report = SearchExecutor(backend).run(_request(), token, collector.on_match, collector.on_finish)
    assert report.outcome is SearchOutcome.CANCELLED
    assert backend.queries == []
    assert collector.events == []


class StubbornBackend:
    """Ignores the token and counts how many hits were pulled."""

    page_size = 100

    def __init__(self, count: int = 10):
        self.count = count
        self.pulls = 0

    def find_matches(self, query, scope_options, tok):
        for hit in make_hits(self.count):
            self.pulls += 1
            yield hit


def test_cancellation_mid_stream_stops_forwarding():
    token = ProgressToken(1)
    collector = Collector()
    backend = StubbornBackend()

    def cancel_after_two(event, tok):
        collector.on_match(event, tok)
        if len(collector.events) == 2:
            tok.cancel()

    report = SearchExecutor(backend).run(_request(), token, cancel_after_two, collector.on_finish)
    assert report.outcome is SearchOutcome.CANCELLED
    assert len(collector.events) == 2
    assert backend.pulls == 2
    assert collector.finishes == [report]


def test_cancel_during_first_match_makes_no_further_pull():
    backend = StubbornBackend()

    def cancel_immediately(event, tok):
        tok.cancel()

    report = SearchExecutor(backend).run(_request(), ProgressToken(1), cancel_immediately, lambda t, r: None)
    assert report.outcome is SearchOutcome.CANCELLED
    assert report.delivered == 1
    assert backend.pulls == 1


def test_backend_fault_is_reported_not_raised():
    backend = FaultyBackend(make_hits(2), RuntimeError("disk on fire"))
    collector = Collector()
    token = ProgressToken(1)
    report = SearchExecutor(backend).run(_request(), token, collector.on_match, collector.on_finish)
    assert report.outcome is SearchOutcome.FAULTED
    assert report.message == "disk on fire"
    assert report.delivered == 2
    assert len(collector.events) == 2
    assert token.finished


def test_fault_without_message_uses_exception_name():
    backend = FaultyBackend([], ValueError())
    report = SearchExecutor(backend).run(_request(), ProgressToken(1), lambda e, t: None, lambda t, r: None)
    assert report.message == "ValueError"


def test_interruption_reports_cancelled_without_cancelling_token():
    backend = FaultyBackend(make_hits(1), SearchInterrupted("index rebuilding"))
    token = ProgressToken(1)
    report = SearchExecutor(backend).run(_request(), token, lambda e, t: None, lambda t, r: None)
    assert report.outcome is SearchOutcome.CANCELLED
    assert not token.cancelled


def test_finish_reported_once_per_token():
    backend = ListBackend(default=make_hits(1))
    collector = Collector()
    token = ProgressToken(1)
    executor = SearchExecutor(backend)
    executor.run(_request(), token, collector.on_match, collector.on_finish)
    executor.run(_request(), token, collector.on_match, collector.on_finish)
    assert len(collector.finishes) == 1


def test_backend_generator_is_closed_on_early_exit():
    closed = []

    class TrackingBackend:
        page_size = 2

        def find_matches(self, query, scope_options, token):
            try:
                yield from make_hits(10)
            finally:
                closed.append(True)

    SearchExecutor(TrackingBackend()).run(_request(), ProgressToken(1), lambda e, t: None, lambda t, r: None)
    assert closed == [True]


def test_multiline_query_forces_multiline_scope():
    request = SearchRequest.build("first\nsecond", ScopeOptions(), 3)
    assert request.scope_options.multiline
    assert request.generation_id == 3
