"""Tests for the update throttler."""

import pytest

from moodlight.throttle import UpdateThrottler


@pytest.fixture
def calls():
    return []


@pytest.fixture
def throttler(calls, clock, timers):
    return UpdateThrottler(lambda: calls.append(clock()), min_interval_ms=800, clock=clock, timer_factory=timers)


class TestUpdateThrottler:
    """Tests for debounce and spacing of updates."""

    def test_first_request_fires_immediately(self, throttler, timers):
        assert throttler.request() is True
        assert timers.last.delay == 0.0
        assert timers.last.started
        assert throttler.pending

    def test_requests_coalesce_while_pending(self, throttler, timers, calls):
        throttler.request()
        assert throttler.request() is False
        assert throttler.request() is False
        assert len(timers.timers) == 1
        timers.last.fire()
        assert calls == [0.0]
        assert not throttler.pending

    def test_waits_out_remaining_interval(self, throttler, timers, clock):
        throttler.request()
        timers.last.fire()
        clock.advance(300)
        throttler.request()
        assert timers.last.delay == pytest.approx(0.5)

    def test_no_wait_after_interval_elapsed(self, throttler, timers, clock):
        throttler.request()
        timers.last.fire()
        clock.advance(2000)
        throttler.request()
        assert timers.last.delay == 0.0

    def test_callback_errors_do_not_block_next_update(self, clock, timers):
        def boom():
            raise RuntimeError("bridge down")

        throttler = UpdateThrottler(boom, clock=clock, timer_factory=timers)
        throttler.request()
        timers.last.fire()
        assert not throttler.pending
        assert throttler.request() is True

    def test_cancel(self, throttler, timers, calls):
        throttler.request()
        timer = timers.last
        throttler.cancel()
        assert timer.cancelled
        assert not throttler.pending
        timer.fire()
        assert calls == []

    def test_real_timer(self):
        import threading

        done = threading.Event()
        throttler = UpdateThrottler(done.set, min_interval_ms=800)
        throttler.request()
        assert done.wait(2.0)
