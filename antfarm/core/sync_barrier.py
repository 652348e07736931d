import asyncio


class FleetSyncBarrier:
    """
    Fleet-wide one-shot gate.

    Jobs that need the whole farm to be connected and synced wait on the
    barrier before their first iteration. The farm releases it exactly
    once; it never re-engages.
    """

    def __init__(self, released: bool = False) -> None:
        self._released = released
        self._event: asyncio.Event | None = None

    @property
    def released(self) -> bool:
        return self._released

    def _get_event(self) -> asyncio.Event:
        if self._event is None:
            self._event = asyncio.Event()
            if self._released:
                self._event.set()

        return self._event

    def release(self) -> None:
        if self._released:
            return

        self._released = True
        self._get_event().set()

    async def wait(self) -> None:
        if self._released:
            return

        await self._get_event().wait()
