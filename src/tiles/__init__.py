"""Tile acquisition.

This module provides:
- TileSource: description of a remote imagery service
- TileCache: in-memory LRU registry of tile entries and their load state
- TileFetcher: bounded, retrying loader of tile entries
- TileSet: the tiles covering a geographic box, with bulk loading
"""

from tiles.cache import CacheStats, TileCache, TileCoord, TileEntry, TileState
from tiles.coverage import TileRange, TileSet, TileSetStatus
from tiles.executor import WaitGroup
from tiles.fetcher import TileFetcher
from tiles.sources import TileSource, TileSourceKind

__all__ = [
    'CacheStats',
    'TileCache',
    'TileCoord',
    'TileEntry',
    'TileFetcher',
    'TileRange',
    'TileSet',
    'TileSetStatus',
    'TileSource',
    'TileSourceKind',
    'TileState',
    'WaitGroup',
]
