from __future__ import annotations

from quickfind.core.debounce import RequestDebouncer


def test_burst_fires_once(qtbot):
    fired = []
    debouncer = RequestDebouncer(lambda: fired.append(True), quiet_window_ms=100)
    for _ in range(5):
        debouncer.schedule()
        qtbot.wait(4)
    assert fired == []
    qtbot.waitUntil(lambda: fired == [True], timeout=1000)
    qtbot.wait(150)
    assert fired == [True]


def test_each_quiet_window_fires_separately(qtbot):
    fired = []
    debouncer = RequestDebouncer(lambda: fired.append(True), quiet_window_ms=10)
    debouncer.schedule()
    qtbot.waitUntil(lambda: len(fired) == 1, timeout=1000)
    debouncer.schedule()
    qtbot.waitUntil(lambda: len(fired) == 2, timeout=1000)


def test_dispose_cancels_pending_callback(qtbot):
    fired = []
    debouncer = RequestDebouncer(lambda: fired.append(True), quiet_window_ms=20)
    debouncer.schedule()
    assert debouncer.is_pending()
    debouncer.dispose()
    assert not debouncer.is_pending()
    qtbot.wait(80)
    assert fired == []


def test_schedule_after_dispose_is_ignored(qtbot):
    fired = []
    debouncer = RequestDebouncer(lambda: fired.append(True), quiet_window_ms=5)
    debouncer.dispose()
    debouncer.dispose()
    debouncer.schedule()
    assert not debouncer.is_pending()
    qtbot.wait(40)
    assert fired == []
    assert debouncer.disposed


def test_cancel_after_fire_is_noop(qtbot):
    fired = []
    debouncer = RequestDebouncer(lambda: fired.append(True), quiet_window_ms=5)
    debouncer.schedule()
    qtbot.waitUntil(lambda: fired == [True], timeout=1000)
    debouncer.cancel()
    debouncer.dispose()
    assert fired == [True]


def test_negative_window_is_clamped(qtbot):
    debouncer = RequestDebouncer(lambda: None, quiet_window_ms=-5)
    assert debouncer.quiet_window_ms == 0
