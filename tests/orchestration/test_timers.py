"""Tests for reflow.orchestration.timers.Ticker."""

import asyncio

import pytest

from reflow.orchestration.timers import TICKER_TASK_PREFIX, Ticker


def _ticker_tasks():
    return [t for t in asyncio.all_tasks() if t.get_name().startswith(TICKER_TASK_PREFIX)]


class TestTicker:
    def test_interval_must_be_positive(self):
        with pytest.raises(ValueError):
            Ticker(0)

    @pytest.mark.asyncio
    async def test_ticks_are_monotonic(self):
        async with Ticker(0.01) as ticker:
            first = await ticker.wait()
            second = await ticker.wait()
        assert second > first

    @pytest.mark.asyncio
    async def test_context_manager_stops_task(self):
        async with Ticker(0.01) as ticker:
            assert ticker.running
            assert len(_ticker_tasks()) == 1
        assert not ticker.running
        assert _ticker_tasks() == []

    @pytest.mark.asyncio
    async def test_stopped_on_error(self):
        with pytest.raises(RuntimeError, match="boom"):
            async with Ticker(0.01):
                raise RuntimeError("boom")
        assert _ticker_tasks() == []

    @pytest.mark.asyncio
    async def test_wait_requires_running(self):
        with pytest.raises(RuntimeError, match="not running"):
            await Ticker(0.01).wait()

    @pytest.mark.asyncio
    async def test_slow_reader_sees_one_buffered_tick(self):
        async with Ticker(0.01) as ticker:
            await asyncio.sleep(0.1)
            assert ticker._ticks.qsize() == 1

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self):
        ticker = Ticker(0.01)
        ticker.start()
        await ticker.stop()
        await ticker.stop()
        assert not ticker.running
