from __future__ import annotations

import threading

from quickfind.core.cancellation import CancellationController, ProgressToken


class TestProgressToken:
    def test_flags_start_false(self):
        token = ProgressToken(1)
        assert not token.cancelled
        assert not token.finished

    def test_cancel_is_idempotent_and_fires_hook_once(self):
        stopped = []
        token = ProgressToken(7, on_stop=lambda t: stopped.append(t.generation_id))
        assert token.cancel() is True
        assert token.cancel() is False
        assert token.cancelled
        assert stopped == [7]

    def test_mark_finished_only_succeeds_once(self):
        token = ProgressToken(1)
        assert token.mark_finished() is True
        assert token.mark_finished() is False
        assert token.finished

    def test_failing_hook_does_not_break_cancellation(self):
        def boom(_token):
            raise RuntimeError("hook failed")

        token = ProgressToken(3, on_stop=boom)
        assert token.cancel() is True
        assert token.cancelled

    def test_wait_acknowledged_consumes_one_ack(self):
        token = ProgressToken(1)
        assert token.wait_acknowledged(0.01) is False
        token.acknowledge()
        assert token.wait_acknowledged(0.01) is True
        assert token.wait_acknowledged(0.01) is False

    def test_cancel_wakes_a_waiting_worker(self):
        token = ProgressToken(1)
        result = {}

        def worker():
            result["acknowledged"] = token.wait_acknowledged()

        thread = threading.Thread(target=worker, daemon=True)
        thread.start()
        token.cancel()
        thread.join(2.0)
        assert not thread.is_alive()
        assert result == {"acknowledged": False}


class TestCancellationController:
    def test_supersede_cancels_previous(self):
        controller = CancellationController()
        first = ProgressToken(1)
        second = ProgressToken(2)
        controller.supersede(first)
        assert controller.active is first
        controller.supersede(second)
        assert first.cancelled
        assert not second.cancelled
        assert controller.active is second

    def test_supersede_fires_each_hook_at_most_once(self):
        stopped = []
        controller = CancellationController()
        first = ProgressToken(1, on_stop=lambda t: stopped.append(t.generation_id))
        controller.supersede(first)
        controller.cancel(first)
        controller.supersede(ProgressToken(2))
        assert stopped == [1]

    def test_cancel_active_clears_it(self):
        controller = CancellationController()
        token = ProgressToken(1)
        controller.supersede(token)
        controller.cancel()
        assert token.cancelled
        assert controller.active is None
        # Repeated cancel is a no-op
        controller.cancel()
        controller.cancel(token)
        assert controller.active is None

    def test_cancel_other_token_keeps_active(self):
        controller = CancellationController()
        old = ProgressToken(1)
        new = ProgressToken(2)
        controller.supersede(new)
        controller.cancel(old)
        assert old.cancelled
        assert controller.active is new
