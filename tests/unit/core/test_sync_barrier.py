import asyncio

import pytest

from antfarm.core import FleetSyncBarrier, ThreadGroup


class TestFleetSyncBarrier:

    @pytest.mark.asyncio
    async def test_wait_blocks_until_release(self):
        barrier = FleetSyncBarrier()

        waiter = asyncio.create_task(barrier.wait())
        await asyncio.sleep(0.01)
        assert not waiter.done()

        barrier.release()
        await asyncio.wait_for(waiter, timeout=1)

        assert barrier.released

    @pytest.mark.asyncio
    async def test_release_wakes_every_waiter(self):
        barrier = FleetSyncBarrier()

        waiters = [asyncio.create_task(barrier.wait()) for _ in range(5)]
        await asyncio.sleep(0)

        barrier.release()
        await asyncio.wait_for(asyncio.gather(*waiters), timeout=1)

    @pytest.mark.asyncio
    async def test_release_is_idempotent_and_never_reengages(self):
        barrier = FleetSyncBarrier()

        barrier.release()
        barrier.release()

        await asyncio.wait_for(barrier.wait(), timeout=0.1)
        await asyncio.wait_for(barrier.wait(), timeout=0.1)

    @pytest.mark.asyncio
    async def test_released_at_construction(self):
        barrier = FleetSyncBarrier(released=True)
        await asyncio.wait_for(barrier.wait(), timeout=0.1)

    @pytest.mark.asyncio
    async def test_stop_takes_priority_over_unreleased_barrier(self):
        barrier = FleetSyncBarrier()
        group = ThreadGroup()

        waiter = asyncio.create_task(group.wait_or_stop(barrier.wait()))
        await asyncio.sleep(0)

        await group.stop()

        assert await asyncio.wait_for(waiter, timeout=1) is False
        assert not barrier.released
