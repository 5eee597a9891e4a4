"""Tests for WaitGroup."""

import asyncio

import pytest

from tiles.executor import WaitGroup


class TestWaitGroup:
    @pytest.mark.asyncio
    async def test_wait_on_empty_returns(self):
        wg = WaitGroup()
        await asyncio.wait_for(wg.wait(), timeout=1)
        assert wg.count == 0

    @pytest.mark.asyncio
    async def test_waits_for_all_jobs(self):
        wg = WaitGroup()
        finished = []

        async def job(i):
            await asyncio.sleep(0.01 * i)
            finished.append(i)
            wg.done()

        for i in range(5):
            wg.add()
            asyncio.get_running_loop().create_task(job(i))
        await asyncio.wait_for(wg.wait(), timeout=2)
        assert sorted(finished) == [0, 1, 2, 3, 4]
        assert wg.count == 0

    def test_negative_counter_rejected(self):
        wg = WaitGroup()
        with pytest.raises(ValueError):
            wg.done()
