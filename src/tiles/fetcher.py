from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass
from io import BytesIO
from typing import TYPE_CHECKING

from PIL import Image

from shared.constants import (
    ASYNC_MAX_CONCURRENCY,
    HTTP_BACKOFF_FACTOR,
    TILE_FETCH_MAX_RETRIES,
    TILE_RETRY_DELAY_S,
)
from shared.exceptions import TileFetchError, TileNotAvailableError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from tiles.cache import TileCoord, TileEntry
    from tiles.sources import TileSource

    FetchBytes = Callable[[TileSource, TileCoord], Awaitable[bytes]]

logger = logging.getLogger(__name__)


def decode_tile_image(data: bytes) -> Image.Image:
    """Decode raw tile bytes into an RGB image."""
    if not data:
        msg = 'Empty tile payload'
        raise TileNotAvailableError(msg)
    with Image.open(BytesIO(data)) as img:
        img.load()
        return img.convert('RGB')


@dataclass
class FetchStats:
    submitted: int = 0
    loaded: int = 0
    failed_attempts: int = 0
    retries: int = 0
    given_up: int = 0


class TileFetcher:
    """
    Loads tile entries through a bounded number of concurrent downloads.

    Each job downloads and decodes one tile. On failure the entry is marked
    ERROR and, while it has retry credits left, the job is rescheduled after
    an exponential backoff. An entry therefore sees at most
    ``max_retries + 1`` attempts per job.
    """

    def __init__(
        self,
        fetch_bytes: FetchBytes,
        *,
        concurrency: int = ASYNC_MAX_CONCURRENCY,
        max_retries: int = TILE_FETCH_MAX_RETRIES,
        retry_delay: float = TILE_RETRY_DELAY_S,
        backoff: float = HTTP_BACKOFF_FACTOR,
    ) -> None:
        self._fetch_bytes = fetch_bytes
        self._sem = asyncio.Semaphore(max(1, concurrency))
        self.max_retries = max(0, max_retries)
        self.retry_delay = max(0.0, retry_delay)
        self.backoff = backoff
        self.stats = FetchStats()
        self._in_flight: dict[tuple[str, int, int, int], asyncio.Task[None]] = {}
        self._lock = threading.Lock()

    def submit(self, entry: TileEntry, *, force: bool = False) -> asyncio.Task[None] | None:
        """
        Schedule a load job for ``entry``.

        Returns the running task for the entry (possibly one started by an
        earlier call), or None when there is nothing to do because the entry
        is already loaded or failed and ``force`` is not set.
        """
        with self._lock:
            task = self._in_flight.get(entry.key)
            if task is not None and not task.done():
                return task
            if not entry.begin_loading(force=force):
                logger.debug('Skip %s: state=%s', entry.key, entry.state.value)
                return None
            self.stats.submitted += 1
            task = asyncio.get_running_loop().create_task(self._run(entry))
            self._in_flight[entry.key] = task
        task.add_done_callback(lambda t, key=entry.key: self._forget(key, t))
        return task

    async def fetch(self, entry: TileEntry, *, force: bool = False) -> None:
        """Load ``entry`` and wait for the job, retries included, to finish."""
        task = self.submit(entry, force=force)
        if task is not None:
            await task

    def _forget(self, key: tuple[str, int, int, int], task: asyncio.Task[None]) -> None:
        with self._lock:
            if self._in_flight.get(key) is task:
                del self._in_flight[key]

    async def _attempt(self, entry: TileEntry) -> Image.Image:
        async with self._sem:
            data = await self._fetch_bytes(entry.source, entry.coord)
        return decode_tile_image(data)

    async def _run(self, entry: TileEntry) -> None:
        try:
            while True:
                try:
                    image = await self._attempt(entry)
                except Exception as e:
                    self.stats.failed_attempts += 1
                    entry.mark_error(e, no_tile=isinstance(e, TileNotAvailableError))
                    logger.debug(
                        'Tile %s attempt %d failed: %s', entry.key, entry.attempts, e
                    )
                else:
                    entry.mark_loaded(image)
                    self.stats.loaded += 1
                    return

                if not entry.begin_retry(self.max_retries):
                    self.stats.given_up += 1
                    logger.warning(
                        'Tile %s failed after %d attempts: %s',
                        entry.key,
                        entry.attempts,
                        entry.error,
                    )
                    return
                self.stats.retries += 1
                delay = self.retry_delay * self.backoff ** (entry.retries_used - 1)
                if delay > 0:
                    await asyncio.sleep(delay)
        except asyncio.CancelledError:
            entry.mark_error(TileFetchError('Tile load cancelled', {'tile': entry.key}))
            raise

    def in_flight(self) -> int:
        with self._lock:
            return sum(1 for t in self._in_flight.values() if not t.done())
