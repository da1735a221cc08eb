from __future__ import annotations

import threading

import pytest

from quickfind.core import generation
from quickfind.core.errors import ExhaustedError
from quickfind.core.generation import GenerationTracker


def test_ids_strictly_increase():
    tracker = GenerationTracker()
    ids = [tracker.next() for _ in range(5)]
    assert ids == sorted(ids)
    assert len(set(ids)) == 5


def test_only_last_id_is_current():
    tracker = GenerationTracker()
    assert tracker.current is None
    first = tracker.next()
    assert tracker.is_current(first)
    second = tracker.next()
    assert not tracker.is_current(first)
    assert tracker.is_current(second)
    assert tracker.current == second


def test_concurrent_callers_never_share_an_id():
    tracker = GenerationTracker()
    seen: list[int] = []
    lock = threading.Lock()

    def worker():
        for _ in range(200):
            value = tracker.next()
            with lock:
                seen.append(value)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert len(seen) == len(set(seen)) == 800
    assert tracker.current == max(seen)


def test_exhausted_counter_fails(monkeypatch):
    monkeypatch.setattr(generation, "MAX_GENERATION_ID", 2)
    tracker = GenerationTracker()
    tracker.next()
    tracker.next()
    with pytest.raises(ExhaustedError):
        tracker.next()
    # The failed call must not disturb the current id
    assert tracker.is_current(2)
