"""Tests for the periodic sweep worker."""

from __future__ import annotations

import asyncio

import pytest

from ghl_bridge.worker import SweepWorker


class TestSweepWorker:
    @pytest.mark.asyncio
    async def test_run_once_sync_and_async(self):
        async def async_sweep():
            return 3

        assert await SweepWorker("sync", 60, lambda: 2).run_once() == 2
        assert await SweepWorker("async", 60, async_sweep).run_once() == 3

    @pytest.mark.asyncio
    async def test_loop_runs_until_stopped(self):
        calls = []

        def sweep():
            calls.append(1)
            return 0

        worker = SweepWorker("test-sweeper", 0.01, sweep)
        worker.start()
        assert worker.running
        await asyncio.sleep(0.1)
        await worker.stop()

        assert not worker.running
        assert len(calls) >= 1
        count = len(calls)
        await asyncio.sleep(0.05)
        assert len(calls) == count

    @pytest.mark.asyncio
    async def test_failing_sweep_keeps_running(self):
        calls = []

        def sweep():
            calls.append(1)
            raise RuntimeError("boom")

        worker = SweepWorker("flaky", 0.01, sweep)
        worker.start()
        await asyncio.sleep(0.1)
        await worker.stop()

        assert len(calls) >= 2
