"""Tile source descriptions and URL building."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from geo.topography import check_zoom, tile_bounds_mercator_m
from shared.constants import MAX_ZOOM, TILE_SIZE

if TYPE_CHECKING:
    from domain.models import TileSourceSettings
    from tiles.cache import TileCoord

_SWITCH_RE = re.compile(r'\{switch:([^}]*)\}')


class TileSourceKind(str, Enum):
    """How a source addresses its tiles."""

    XYZ = 'xyz'
    TMS = 'tms'
    WMS = 'wms'
    WMTS = 'wmts'


@dataclass(frozen=True)
class TileSource:
    """
    A remote imagery service.

    ``url_template`` placeholders:
      - XYZ/TMS: ``{z}`` or ``{zoom}``, ``{x}``, ``{y}``, ``{-y}``;
        for TMS ``{y}`` already refers to the flipped row.
      - WMS: ``{bbox}`` (EPSG:3857 metres), ``{width}``, ``{height}``,
        ``{proj}``.
      - WMTS: ``{TileMatrix}``, ``{TileRow}``, ``{TileCol}``.
      - Any kind: ``{switch:a,b,c}`` picks a mirror deterministically and
        ``{api_key}`` inserts the source's key.
    """

    name: str
    url_template: str
    kind: TileSourceKind = TileSourceKind.XYZ
    tile_size: int = TILE_SIZE
    min_zoom: int = 0
    max_zoom: int = 19
    headers: dict[str, str] = field(default_factory=dict, compare=False, hash=False)
    api_key: str = field(default='', compare=False, repr=False)

    @classmethod
    def from_settings(cls, settings: TileSourceSettings) -> TileSource:
        return cls(
            name=settings.name,
            url_template=settings.url,
            kind=TileSourceKind(settings.kind),
            tile_size=settings.tile_size,
            min_zoom=settings.min_zoom,
            max_zoom=settings.max_zoom,
            headers=dict(settings.headers),
            api_key=os.getenv(settings.api_key_env, '').strip()
            if settings.api_key_env
            else '',
        )

    def is_valid(self) -> bool:
        """True when the source has a usable template, zoom range and key."""
        return (
            bool(self.url_template)
            and self.tile_size > 0
            and 0 <= self.min_zoom <= self.max_zoom <= MAX_ZOOM
            and ('{api_key}' not in self.url_template or bool(self.api_key))
        )

    def supports_zoom(self, zoom: int) -> bool:
        return self.min_zoom <= zoom <= self.max_zoom

    def tile_x_min(self, zoom: int) -> int:
        check_zoom(zoom)
        return 0

    def tile_y_min(self, zoom: int) -> int:
        check_zoom(zoom)
        return 0

    def tile_x_max(self, zoom: int) -> int:
        check_zoom(zoom)
        return 2**zoom - 1

    def tile_y_max(self, zoom: int) -> int:
        check_zoom(zoom)
        return 2**zoom - 1

    def url_for(self, coord: TileCoord) -> str:
        """Build the request URL of a tile given in XYZ addressing."""
        x, y, z = coord.x, coord.y, coord.zoom
        flipped = (2**z - 1) - y
        url = self.url_template.replace('{api_key}', self.api_key)
        match = _SWITCH_RE.search(url)
        if match:
            choices = [c.strip() for c in match.group(1).split(',') if c.strip()]
            pick = choices[(x + y) % len(choices)] if choices else ''
            url = url[: match.start()] + pick + url[match.end() :]

        if self.kind is TileSourceKind.WMS:
            min_x, min_y, max_x, max_y = tile_bounds_mercator_m(x, y, z)
            bbox = f'{min_x:.6f},{min_y:.6f},{max_x:.6f},{max_y:.6f}'
            return (
                url.replace('{bbox}', bbox)
                .replace('{width}', str(self.tile_size))
                .replace('{height}', str(self.tile_size))
                .replace('{proj}', 'EPSG:3857')
            )
        if self.kind is TileSourceKind.WMTS:
            return (
                url.replace('{TileMatrix}', str(z))
                .replace('{TileRow}', str(y))
                .replace('{TileCol}', str(x))
            )

        row = flipped if self.kind is TileSourceKind.TMS else y
        return (
            url.replace('{zoom}', str(z))
            .replace('{z}', str(z))
            .replace('{x}', str(x))
            .replace('{-y}', str(flipped))
            .replace('{y}', str(row))
        )
