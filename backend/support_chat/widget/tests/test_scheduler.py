"""Tests for PollingScheduler."""

import asyncio

import pytest

from support_chat.widget.scheduler import PollingScheduler


class _Recorder:
    """Poll double that records calls and tracks concurrency."""

    def __init__(self, delay=0.0, fail=False):
        self.calls = 0
        self.running = 0
        self.max_running = 0
        self.delay = delay
        self.fail = fail

    async def __call__(self):
        self.calls += 1
        self.running += 1
        self.max_running = max(self.max_running, self.running)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.fail:
                raise RuntimeError("backend down")
        finally:
            self.running -= 1


async def _wait_for(predicate, timeout=1.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


class TestForeground:
    @pytest.mark.asyncio
    async def test_polls_immediately_on_open(self):
        poll = _Recorder()
        scheduler = PollingScheduler(poll, lambda: True, foreground_seconds=10, background_seconds=10)

        scheduler.start_foreground()
        await _wait_for(lambda: poll.calls >= 1, timeout=0.5)

        assert poll.calls == 1
        scheduler.cancel()

    @pytest.mark.asyncio
    async def test_repeats_at_foreground_interval(self):
        poll = _Recorder()
        scheduler = PollingScheduler(poll, lambda: True, foreground_seconds=0.02, background_seconds=10)

        scheduler.start_foreground()
        await _wait_for(lambda: poll.calls >= 3)
        assert scheduler.cadence == "foreground"
        scheduler.cancel()

    @pytest.mark.asyncio
    async def test_no_identity_no_poll(self):
        poll = _Recorder()
        scheduler = PollingScheduler(poll, lambda: False, foreground_seconds=0.01, background_seconds=10)

        scheduler.start_foreground()
        await asyncio.sleep(0.05)

        assert poll.calls == 0
        assert scheduler.active is True
        scheduler.cancel()

    @pytest.mark.asyncio
    async def test_slow_polls_never_overlap(self):
        poll = _Recorder(delay=0.03)
        scheduler = PollingScheduler(poll, lambda: True, foreground_seconds=0.001, background_seconds=10)

        scheduler.start_foreground()
        await _wait_for(lambda: poll.calls >= 3)
        scheduler.cancel()

        assert poll.max_running == 1

    @pytest.mark.asyncio
    async def test_errors_do_not_stop_the_schedule(self):
        poll = _Recorder(fail=True)
        scheduler = PollingScheduler(poll, lambda: True, foreground_seconds=0.01, background_seconds=10)

        scheduler.start_foreground()
        await _wait_for(lambda: poll.calls >= 3)

        assert scheduler.active is True
        scheduler.cancel()


class TestBackground:
    @pytest.mark.asyncio
    async def test_waits_one_interval_before_first_poll(self):
        poll = _Recorder()
        scheduler = PollingScheduler(poll, lambda: True, foreground_seconds=10, background_seconds=0.05)

        scheduler.start_background()
        await asyncio.sleep(0.01)
        assert poll.calls == 0

        await _wait_for(lambda: poll.calls >= 1)
        assert scheduler.cadence == "background"
        scheduler.cancel()


class TestCadenceSwitching:
    @pytest.mark.asyncio
    async def test_switching_cancels_previous_timer(self):
        poll = _Recorder()
        scheduler = PollingScheduler(poll, lambda: True, foreground_seconds=10, background_seconds=10)

        background = scheduler.start_background()
        foreground = scheduler.start_foreground()
        await asyncio.sleep(0)

        assert background.active is False
        assert foreground.active is True
        assert scheduler.cadence == "foreground"
        scheduler.cancel()

    @pytest.mark.asyncio
    async def test_switch_waits_for_in_flight_poll(self):
        poll = _Recorder(delay=0.05)
        scheduler = PollingScheduler(poll, lambda: True, foreground_seconds=10, background_seconds=10)

        scheduler.start_foreground()
        await _wait_for(lambda: poll.running == 1)

        # closing then reopening the view mid-request
        scheduler.start_background()
        scheduler.start_foreground()
        await _wait_for(lambda: poll.calls >= 2)

        assert poll.max_running == 1
        scheduler.cancel()

    @pytest.mark.asyncio
    async def test_cancel_lets_in_flight_poll_finish(self):
        poll = _Recorder(delay=0.02)
        scheduler = PollingScheduler(poll, lambda: True, foreground_seconds=10, background_seconds=10)

        scheduler.start_foreground()
        await _wait_for(lambda: poll.running == 1)
        scheduler.cancel()

        assert scheduler.active is False
        assert scheduler.cadence is None
        await _wait_for(lambda: not scheduler.in_flight)
        assert poll.running == 0
