"""
Unit tests for interval and focus refresh triggers.
"""

import pytest
import asyncio
from unittest.mock import AsyncMock, MagicMock

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from dashboard_data.app.orchestration.triggers import AutoRefresh, FocusEventSource, IntervalTrigger


class FakeTarget:
    """Refreshable whose staleness is set by the test."""

    def __init__(self, stale: bool = True):
        self.stale = stale
        self.refetches = 0
        self.gate = None

    def is_stale(self) -> bool:
        return self.stale

    async def refetch(self, hard: bool = False):
        self.refetches += 1
        if self.gate is not None:
            await self.gate.wait()


class TestFocusEventSource:
    """Test cases for FocusEventSource."""

    def test_emit_notifies_subscribers(self):
        source = FocusEventSource()
        callback = MagicMock()
        source.subscribe(callback)

        assert source.emit() == 1
        callback.assert_called_once_with()

    def test_unsubscribe(self):
        """Test an unsubscribed handler is no longer called."""
        source = FocusEventSource()
        callback = MagicMock()
        subscription = source.subscribe(callback)

        subscription.unsubscribe()
        subscription.unsubscribe()

        assert not subscription.active
        assert source.subscriber_count == 0
        assert source.emit() == 0
        callback.assert_not_called()

    def test_failing_handler_does_not_block_others(self):
        source = FocusEventSource()
        source.subscribe(MagicMock(side_effect=RuntimeError("boom")))
        healthy = MagicMock()
        source.subscribe(healthy)

        assert source.emit() == 1
        healthy.assert_called_once()


class TestIntervalTrigger:
    """Test cases for IntervalTrigger."""

    @pytest.mark.asyncio
    async def test_runs_until_stopped(self):
        callback = AsyncMock()
        trigger = IntervalTrigger(0.01, callback, name="test")

        await trigger.start()
        await asyncio.sleep(0.05)
        await trigger.stop()
        runs = trigger.runs
        await asyncio.sleep(0.03)

        assert runs >= 2
        assert trigger.runs == runs
        assert callback.await_count == runs
        assert trigger.task is None

    @pytest.mark.asyncio
    async def test_callback_errors_keep_loop_alive(self):
        callback = AsyncMock(side_effect=RuntimeError("boom"))
        trigger = IntervalTrigger(0.01, callback)

        await trigger.start()
        await asyncio.sleep(0.05)
        await trigger.stop()

        assert trigger.runs >= 2


class TestAutoRefresh:
    """Test cases for AutoRefresh."""

    @pytest.mark.asyncio
    async def test_focus_refetches_when_stale(self):
        """Test focus triggers a refetch only for stale data."""
        source = FocusEventSource()
        target = FakeTarget(stale=True)
        auto_refresh = AutoRefresh(target, name="dashboard", focus_source=source)
        await auto_refresh.start()

        source.emit()
        await asyncio.sleep(0)

        assert target.refetches == 1
        await auto_refresh.stop()

    @pytest.mark.asyncio
    async def test_focus_skipped_when_fresh(self):
        source = FocusEventSource()
        target = FakeTarget(stale=False)
        auto_refresh = AutoRefresh(target, name="dashboard", focus_source=source)
        await auto_refresh.start()

        source.emit()
        await asyncio.sleep(0)

        assert target.refetches == 0
        await auto_refresh.stop()

    @pytest.mark.asyncio
    async def test_focus_disabled(self):
        source = FocusEventSource()
        auto_refresh = AutoRefresh(FakeTarget(), name="dashboard", focus_source=source,
                                   refetch_on_focus=False)
        await auto_refresh.start()

        assert source.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_stop_unsubscribes(self):
        """Test no refetch happens after stop."""
        source = FocusEventSource()
        target = FakeTarget(stale=True)
        auto_refresh = AutoRefresh(target, name="dashboard", focus_source=source)
        await auto_refresh.start()
        await auto_refresh.stop()

        source.emit()
        await asyncio.sleep(0)

        assert target.refetches == 0
        assert source.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_in_flight_tracks_focus_refetches(self):
        source = FocusEventSource()
        target = FakeTarget(stale=True)
        target.gate = asyncio.Event()
        auto_refresh = AutoRefresh(target, name="dashboard", focus_source=source)
        await auto_refresh.start()

        source.emit()
        assert len(auto_refresh.in_flight) == 1

        target.gate.set()
        await asyncio.gather(*auto_refresh.in_flight)
        await asyncio.sleep(0)

        assert auto_refresh.in_flight == set()
        await auto_refresh.stop()

    @pytest.mark.asyncio
    async def test_interval_refetches_regardless_of_staleness(self):
        target = FakeTarget(stale=False)
        auto_refresh = AutoRefresh(target, name="dashboard", refetch_interval=0.01)

        await auto_refresh.start()
        await asyncio.sleep(0.05)
        await auto_refresh.stop()

        assert target.refetches >= 2
        assert auto_refresh.interval is None

    @pytest.mark.asyncio
    async def test_no_interval_when_disabled(self):
        auto_refresh = AutoRefresh(FakeTarget(), name="dashboard", refetch_interval=None)

        await auto_refresh.start()

        assert auto_refresh.interval is None
