"""Geo module - Web Mercator tile math and bounding box geometry."""

from .geometry import GeoBox, check_min_size, check_min_size_and_grow, haversine_m
from .topography import latlng_to_tile_xy, tile_xy_to_latlng

__all__ = [
    'GeoBox',
    'check_min_size',
    'check_min_size_and_grow',
    'haversine_m',
    'latlng_to_tile_xy',
    'tile_xy_to_latlng',
]
