"""
Tests for fire-and-forget dispatch.
"""

import asyncio
import logging

from sahem.services import dispatch


class TestFireAndForget:
    async def test_runs_and_is_released(self):
        done = asyncio.Event()

        async def work():
            done.set()

        dispatch.fire_and_forget(work(), name="work")
        await dispatch.drain()

        assert done.is_set()
        assert dispatch.pending_count() == 0

    async def test_failure_is_logged_not_raised(self, caplog):
        async def fail():
            raise RuntimeError("boom")

        with caplog.at_level(logging.ERROR, logger="sahem.services.dispatch"):
            task = dispatch.fire_and_forget(fail(), name="failing-task")
            await dispatch.drain()

        assert task.done()
        assert "failing-task" in caplog.text
        assert "boom" in caplog.text

    async def test_drain_cancels_slow_tasks(self):
        async def slow():
            await asyncio.sleep(10)

        task = dispatch.fire_and_forget(slow())
        await dispatch.drain(timeout=0.01)
        await asyncio.wait([task], timeout=1)

        assert task.cancelled()

    async def test_drain_without_tasks(self):
        await dispatch.drain()
        assert dispatch.pending_count() == 0
