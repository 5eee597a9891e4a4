"""Rectangular tile ranges and the tile set covering a geographic box."""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING

from geo.topography import check_zoom, latlng_to_tile_xy
from shared.constants import XY_EPSILON
from shared.exceptions import InvalidRangeError, InvalidZoomError
from tiles.cache import TileCoord, TileState
from tiles.executor import WaitGroup

if TYPE_CHECKING:
    from geo.geometry import GeoBox
    from tiles.cache import TileCache, TileEntry
    from tiles.fetcher import TileFetcher
    from tiles.sources import TileSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TileRange:
    """Inclusive rectangle of tile indices at one zoom level."""

    min_x: int
    min_y: int
    max_x: int
    max_y: int
    zoom: int

    def __post_init__(self) -> None:
        if self.min_x > self.max_x or self.min_y > self.max_y:
            msg = 'TileRange minimum exceeds maximum'
            raise InvalidRangeError(
                msg,
                {'x': (self.min_x, self.max_x), 'y': (self.min_y, self.max_y)},
            )

    @property
    def count_x(self) -> int:
        return self.max_x - self.min_x + 1

    @property
    def count_y(self) -> int:
        return self.max_y - self.min_y + 1

    @property
    def size(self) -> int:
        return self.count_x * self.count_y

    def positions(self) -> list[TileCoord]:
        """Row-major list of tile coordinates."""
        return [
            TileCoord(x, y, self.zoom)
            for y in range(self.min_y, self.max_y + 1)
            for x in range(self.min_x, self.max_x + 1)
        ]


@dataclass(frozen=True)
class TileSetStatus:
    has_loading_tiles: bool = False
    has_all_loaded_tiles: bool = False
    has_visible_tiles: bool = False
    has_overzoomed_tiles: bool = False


class TileSet:
    """
    The tiles of one source that cover a geographic box at a given zoom.

    The covered range runs from the tile containing the box's north-west
    corner to the tile containing its south-east corner, clamped to the
    source bounds. Zoom 0 or a missing cache give an empty set.
    """

    def __init__(
        self,
        source: TileSource,
        cache: TileCache | None,
        fetcher: TileFetcher,
        box: GeoBox,
        zoom: int,
    ) -> None:
        self._check_zoom(source, zoom)
        # North-west corner has the smaller tile y
        tx1, ty1 = latlng_to_tile_xy(box.max_lat, box.min_lon, zoom)
        tx2, ty2 = latlng_to_tile_xy(box.min_lat, box.max_lon, zoom)

        min_x = math.floor(tx1)
        min_y = math.floor(ty1)
        max_x = max(min_x, math.floor(tx2 - XY_EPSILON))
        max_y = max(min_y, math.floor(ty2 - XY_EPSILON))
        tile_range = TileRange(
            min_x=self._clamp(min_x, source.tile_x_min(zoom), source.tile_x_max(zoom)),
            min_y=self._clamp(min_y, source.tile_y_min(zoom), source.tile_y_max(zoom)),
            max_x=self._clamp(max_x, source.tile_x_min(zoom), source.tile_x_max(zoom)),
            max_y=self._clamp(max_y, source.tile_y_min(zoom), source.tile_y_max(zoom)),
            zoom=zoom,
        )
        self._setup(source, cache, fetcher, tile_range, (tx1, ty1, tx2, ty2))

    @classmethod
    def for_range(
        cls,
        source: TileSource,
        cache: TileCache | None,
        fetcher: TileFetcher,
        tile_range: TileRange,
    ) -> TileSet:
        """Tile set over an explicit range; its fractional bounds are the range edges."""
        cls._check_zoom(source, tile_range.zoom)
        obj = cls.__new__(cls)
        obj._setup(
            source,
            cache,
            fetcher,
            tile_range,
            (
                float(tile_range.min_x),
                float(tile_range.min_y),
                float(tile_range.max_x + 1),
                float(tile_range.max_y + 1),
            ),
        )
        return obj

    def _setup(
        self,
        source: TileSource,
        cache: TileCache | None,
        fetcher: TileFetcher,
        tile_range: TileRange,
        fractional_bounds: tuple[float, float, float, float],
    ) -> None:
        self.source = source
        self.cache = cache
        self.fetcher = fetcher
        self.zoom = tile_range.zoom
        self.range = tile_range
        self.fractional_bounds = fractional_bounds
        # Entries of the last load_all; assembly reads these rather than the cache
        self._entries: list[TileEntry] | None = None
        self._status: TileSetStatus | None = None
        self._status_lock = threading.Lock()

    @staticmethod
    def _check_zoom(source: TileSource, zoom: int) -> None:
        check_zoom(zoom)
        if not source.supports_zoom(zoom):
            msg = f'Source {source.name} does not serve zoom {zoom}'
            raise InvalidZoomError(
                msg, {'min_zoom': source.min_zoom, 'max_zoom': source.max_zoom}
            )

    @staticmethod
    def _clamp(v: int, lo: int, hi: int) -> int:
        return min(max(v, lo), hi)

    @property
    def is_usable(self) -> bool:
        return self.zoom > 0 and self.cache is not None

    def positions(self) -> list[TileCoord]:
        if not self.is_usable:
            return []
        return self.range.positions()

    def size(self) -> int:
        return self.range.size if self.is_usable else 0

    def all_existing_tiles(self) -> list[TileEntry]:
        """Entries already in the cache; never creates new ones."""
        if self.cache is None:
            return []
        found = (self.cache.get(self.source, c) for c in self.positions())
        return [e for e in found if e is not None]

    def all_tiles_create(self) -> list[TileEntry]:
        """Entries for every position, creating missing ones as PENDING."""
        if self.cache is None:
            return []
        return [self.cache.get_or_create(self.source, c) for c in self.positions()]

    def entries(self) -> list[TileEntry]:
        """
        Entries this set loaded.

        After ``load_all`` these are the very entries that were fetched, even if
        the cache has since evicted some of them; before it they are resolved
        through the cache like ``all_tiles_create``.
        """
        if self._entries is not None:
            return list(self._entries)
        return self.all_tiles_create()

    async def _load(self, entries: list[TileEntry], *, force: bool) -> None:
        wg = WaitGroup()
        for entry in entries:
            task = self.fetcher.submit(entry, force=force)
            if task is None:
                continue
            wg.add()
            task.add_done_callback(lambda _t: wg.done())
        await wg.wait()

    async def load_all(self, *, force: bool = False) -> None:
        """Load every tile of the set and wait until each job, retries included, ends."""
        entries = self.all_tiles_create()
        self._entries = entries
        logger.debug(
            'Loading %d tiles of %s at z%d (force=%s)',
            len(entries),
            self.source.name,
            self.zoom,
            force,
        )
        await self._load(entries, force=force)

    async def load_error_tiles(self) -> None:
        """Re-load only the entries that ended in ERROR."""
        held = self._entries if self._entries is not None else self.all_existing_tiles()
        failed = [e for e in held if e.has_error]
        if failed:
            logger.debug('Reloading %d failed tiles of %s', len(failed), self.source.name)
            await self._load(failed, force=True)

    def status(self) -> TileSetStatus:
        """Aggregate state of the set; computed on first use and then kept."""
        if self._status is None:
            with self._status_lock:
                if self._status is None:
                    self._status = self._compute_status()
        return self._status

    def _compute_status(self) -> TileSetStatus:
        positions = self.positions()
        if not positions:
            return TileSetStatus()
        existing = self._entries if self._entries is not None else self.all_existing_tiles()
        loading = len(existing) < len(positions)
        all_loaded = len(existing) == len(positions)
        visible = False
        overzoomed = False
        for entry in existing:
            if entry.no_tile:
                overzoomed = True
            if entry.state is TileState.LOADED:
                visible = True
            elif entry.state is not TileState.ERROR:
                all_loaded = False
                if entry.state is TileState.LOADING:
                    loading = True
        return TileSetStatus(
            has_loading_tiles=loading,
            has_all_loaded_tiles=all_loaded,
            has_visible_tiles=visible,
            has_overzoomed_tiles=overzoomed,
        )
