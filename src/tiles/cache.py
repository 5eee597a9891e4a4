"""In-memory tile cache with LRU eviction.

This module provides TileCache, a thread-safe registry of TileEntry objects
keyed by (source, x, y, zoom). Each entry tracks its own load state; the
cache only ever evicts entries that reached a terminal state.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, NamedTuple

from shared.constants import TILE_MEMORY_CACHE_CAPACITY

if TYPE_CHECKING:
    from PIL import Image

    from tiles.sources import TileSource

logger = logging.getLogger(__name__)


class TileCoord(NamedTuple):
    x: int
    y: int
    zoom: int


class TileState(str, Enum):
    PENDING = 'pending'
    LOADING = 'loading'
    LOADED = 'loaded'
    ERROR = 'error'


_TERMINAL = (TileState.LOADED, TileState.ERROR)


@dataclass(eq=False)
class TileEntry:
    """A cached tile and its load state.

    State changes go through the methods below so that concurrent workers see
    consistent transitions: PENDING/ERROR -> LOADING -> LOADED | ERROR.
    """

    source: TileSource
    coord: TileCoord
    state: TileState = TileState.PENDING
    image: Image.Image | None = None
    error: BaseException | None = None
    no_tile: bool = False
    attempts: int = 0
    retries_used: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def key(self) -> tuple[str, int, int, int]:
        return (self.source.name, self.coord.x, self.coord.y, self.coord.zoom)

    @property
    def is_loaded(self) -> bool:
        return self.state is TileState.LOADED

    @property
    def is_loading(self) -> bool:
        return self.state is TileState.LOADING

    @property
    def has_error(self) -> bool:
        return self.state is TileState.ERROR

    @property
    def is_terminal(self) -> bool:
        return self.state in _TERMINAL

    def begin_loading(self, *, force: bool = False) -> bool:
        """Move to LOADING for a fresh job.

        Returns False when the entry is already loading, or when it reached a
        terminal state and ``force`` is not set.
        """
        with self._lock:
            if self.state is TileState.LOADING:
                return False
            if self.state in _TERMINAL and not force:
                return False
            self.state = TileState.LOADING
            self.error = None
            self.no_tile = False
            self.retries_used = 0
            self.attempts += 1
            return True

    def begin_retry(self, max_retries: int) -> bool:
        """Spend one retry credit after a failure; False when none are left."""
        with self._lock:
            if self.state is not TileState.ERROR or self.retries_used >= max_retries:
                return False
            self.retries_used += 1
            self.attempts += 1
            self.state = TileState.LOADING
            return True

    def mark_loaded(self, image: Image.Image) -> None:
        with self._lock:
            self.image = image
            self.error = None
            self.no_tile = False
            self.state = TileState.LOADED

    def mark_error(self, exc: BaseException, *, no_tile: bool = False) -> None:
        with self._lock:
            self.image = None
            self.error = exc
            self.no_tile = no_tile
            self.state = TileState.ERROR

    def loaded_image(self) -> Image.Image | None:
        """Image of a LOADED entry, None in any other state."""
        with self._lock:
            return self.image if self.state is TileState.LOADED else None


@dataclass
class CacheStats:
    """Statistics about the tile cache."""

    entries: int
    capacity: int
    hits: int
    misses: int
    evictions: int
    by_state: dict[str, int]


class TileCache:
    """Thread-safe LRU registry of tile entries.

    Usage:
        cache = TileCache(capacity=1024)
        entry = cache.get_or_create(source, TileCoord(x, y, zoom))
        same = cache.get(source, TileCoord(x, y, zoom))
    """

    def __init__(self, capacity: int = TILE_MEMORY_CACHE_CAPACITY) -> None:
        if capacity < 1:
            msg = 'Cache capacity must be positive'
            raise ValueError(msg)
        self.capacity = capacity
        self._entries: OrderedDict[tuple[str, int, int, int], TileEntry] = (
            OrderedDict()
        )
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @staticmethod
    def _key(source: TileSource, coord: TileCoord) -> tuple[str, int, int, int]:
        return (source.name, coord.x, coord.y, coord.zoom)

    def get(self, source: TileSource, coord: TileCoord) -> TileEntry | None:
        """Existing entry or None; never creates one."""
        with self._lock:
            entry = self._entries.get(self._key(source, coord))
            if entry is not None:
                self._entries.move_to_end(entry.key)
            return entry

    def get_or_create(self, source: TileSource, coord: TileCoord) -> TileEntry:
        """Return the unique entry for ``coord``, creating a PENDING one if absent."""
        key = self._key(source, coord)
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                self._hits += 1
                self._entries.move_to_end(key)
                return entry
            self._misses += 1
            entry = TileEntry(source=source, coord=coord)
            self._entries[key] = entry
            self._evict_if_needed()
            return entry

    def _evict_if_needed(self) -> None:
        overflow = len(self._entries) - self.capacity
        if overflow <= 0:
            return
        victims = []
        for key, entry in self._entries.items():
            if entry.is_terminal:
                victims.append(key)
                if len(victims) >= overflow:
                    break
        for key in victims:
            del self._entries[key]
        self._evictions += len(victims)
        if len(victims) < overflow:
            logger.debug(
                'Tile cache over capacity by %d: remaining entries are in flight',
                overflow - len(victims),
            )

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> CacheStats:
        with self._lock:
            by_state: dict[str, int] = {s.value: 0 for s in TileState}
            for entry in self._entries.values():
                by_state[entry.state.value] += 1
            return CacheStats(
                entries=len(self._entries),
                capacity=self.capacity,
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
                by_state=by_state,
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, item: object) -> bool:
        if not isinstance(item, tuple) or len(item) != 2:  # noqa: PLR2004
            return False
        source, coord = item
        with self._lock:
            return self._key(source, coord) in self._entries
