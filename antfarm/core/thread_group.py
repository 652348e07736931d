"""
Thread Group - bounded, cancellable, drainable concurrency.

Every unit of background work an ant runs is registered with a
ThreadGroup:

    try:
        group.try_enter()
    except StoppedError:
        return

    try:
        while True:
            if not await group.sleep(interval):
                return
            ...
    finally:
        group.exit()

or, equivalently, ``async with group.entered(): ...``.

Stopping sets a broadcast stop event that every suspension point races
against, then blocks until every entered unit has exited. After ``stop()``
returns no unit is running and every later ``try_enter()`` fails.
"""

import asyncio
import contextlib
from typing import Any, Awaitable, Coroutine

from antfarm.errors import StoppedError


class ThreadGroup:

    def __init__(self) -> None:
        self._active = 0
        self._stopping = False
        self._stopped = False
        self._stop_event: asyncio.Event | None = None
        self._drained: asyncio.Event | None = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def stop_event(self) -> asyncio.Event:
        # Events bind to the running loop on first use, so create lazily.
        if self._stop_event is None:
            self._stop_event = asyncio.Event()
            if self._stopping:
                self._stop_event.set()

        return self._stop_event

    @property
    def stopping(self) -> bool:
        return self._stopping

    @property
    def stopped(self) -> bool:
        return self._stopped

    @property
    def active(self) -> int:
        return self._active

    def try_enter(self) -> None:
        if self._stopping:
            raise StoppedError()

        self._active += 1
        if self._drained is not None:
            self._drained.clear()

    def exit(self) -> None:
        if self._active == 0:
            raise RuntimeError("exit called more times than try_enter")

        self._active -= 1
        if self._active == 0 and self._drained is not None:
            self._drained.set()

    @contextlib.asynccontextmanager
    async def entered(self):
        self.try_enter()
        try:
            yield self

        finally:
            self.exit()

    def launch(
        self,
        call: Coroutine[Any, Any, Any],
        name: str | None = None,
    ) -> asyncio.Task:
        """
        Enter the group on behalf of ``call`` and run it as a task.

        Entering happens before the task is created, so a launch after
        ``stop()`` has begun raises StoppedError and ``call`` never runs.
        """
        try:
            self.try_enter()

        except StoppedError:
            call.close()
            raise

        task = asyncio.create_task(call, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._release)

        return task

    def _release(self, task: asyncio.Task):
        # Runs for every launched task, including one cancelled before its
        # first step.
        self._tasks.discard(task)
        self.exit()

    async def sleep(self, seconds: float) -> bool:
        """
        Sleep for ``seconds`` unless the group is stopped first.

        Returns True if the full duration elapsed, False on stop.
        """
        if self._stopping:
            return False

        try:
            await asyncio.wait_for(self.stop_event.wait(), timeout=seconds)
            return False

        except asyncio.TimeoutError:
            return True

    async def wait_or_stop(self, awaitable: Awaitable[Any]) -> bool:
        """
        Wait for ``awaitable`` unless the group is stopped first.

        Returns True if ``awaitable`` finished, False on stop.
        """
        if self._stopping:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()

            return False

        waiter = asyncio.ensure_future(awaitable)
        stopper = asyncio.ensure_future(self.stop_event.wait())

        try:
            done, _ = await asyncio.wait(
                [waiter, stopper],
                return_when=asyncio.FIRST_COMPLETED,
            )

        finally:
            for pending in (waiter, stopper):
                if not pending.done():
                    pending.cancel()

        if waiter in done and not self._stopping:
            waiter.result()
            return True

        return False

    async def stop(self) -> None:
        """
        Signal every entered unit to stop and wait until all have exited.

        Calling stop a second time returns immediately.
        """
        if self._stopping:
            return

        self._stopping = True
        self.stop_event.set()

        await self._wait_drained()

        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

        self._stopped = True

    async def _wait_drained(self):
        if self._drained is None:
            self._drained = asyncio.Event()

        if self._active == 0:
            self._drained.set()

        await self._drained.wait()
