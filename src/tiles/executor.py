from __future__ import annotations

import asyncio


class WaitGroup:
    """
    Counter of outstanding jobs with an awaitable zero.

    Jobs are registered with ``add`` before they are scheduled and report
    with ``done`` when finished; ``wait`` returns once the counter is back at
    zero. Must be used from a single event loop.
    """

    def __init__(self) -> None:
        self._count = 0
        self._zero = asyncio.Event()
        self._zero.set()

    @property
    def count(self) -> int:
        return self._count

    def add(self, n: int = 1) -> None:
        if self._count + n < 0:
            msg = 'WaitGroup counter cannot go negative'
            raise ValueError(msg)
        self._count += n
        if self._count == 0:
            self._zero.set()
        else:
            self._zero.clear()

    def done(self) -> None:
        self.add(-1)

    async def wait(self) -> None:
        await self._zero.wait()
