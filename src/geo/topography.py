import math

from shared.constants import (
    EARTH_RADIUS_M,
    MAX_ZOOM,
    MERCATOR_MAX_SIN,
    TILE_SIZE,
    WORLD_LAT_MAX_DEG,
    WORLD_LNG_HALF_SPAN_DEG,
    WORLD_LNG_SPAN_DEG,
)
from shared.exceptions import InvalidZoomError


def check_zoom(zoom: int) -> int:
    """Return ``zoom`` unchanged or raise InvalidZoomError."""
    if isinstance(zoom, bool) or not isinstance(zoom, int):
        msg = 'Zoom must be an integer'
        raise InvalidZoomError(msg, {'zoom': zoom})
    if zoom < 0 or zoom > MAX_ZOOM:
        msg = f'Zoom must be within [0, {MAX_ZOOM}]'
        raise InvalidZoomError(msg, {'zoom': zoom})
    return zoom


def meters_per_pixel(lat_deg: float, zoom: int, scale: int = 1) -> float:
    """Ground resolution of a Web Mercator pixel at the given latitude and zoom."""
    lat_rad = math.radians(lat_deg)
    return (math.cos(lat_rad) * 2 * math.pi * EARTH_RADIUS_M) / (
        TILE_SIZE * (2**zoom) * scale
    )


def latlng_to_pixel_xy(
    lat_deg: float,
    lng_deg: float,
    zoom: int,
) -> tuple[float, float]:
    """WGS84 (lat, lng) to Web Mercator world pixels."""
    siny = math.sin(math.radians(lat_deg))
    siny = min(max(siny, -MERCATOR_MAX_SIN), MERCATOR_MAX_SIN)
    world_size = TILE_SIZE * (2**zoom)
    x = (lng_deg + WORLD_LNG_HALF_SPAN_DEG) / WORLD_LNG_SPAN_DEG * world_size
    y = (0.5 - math.log((1 + siny) / (1 - siny)) / (4 * math.pi)) * world_size
    return x, y


def pixel_xy_to_latlng(x: float, y: float, zoom: int) -> tuple[float, float]:
    """Inverse of latlng_to_pixel_xy: world pixels to WGS84 (lat, lng)."""
    world_size = TILE_SIZE * (2**zoom)
    lng = (x / world_size) * WORLD_LNG_SPAN_DEG - WORLD_LNG_HALF_SPAN_DEG
    merc_y = 0.5 - (y / world_size)
    lat = (
        WORLD_LAT_MAX_DEG
        - WORLD_LNG_SPAN_DEG * math.atan(math.exp(-merc_y * 2 * math.pi)) / math.pi
    )
    return lat, lng


def latlng_to_tile_xy(lat_deg: float, lng_deg: float, zoom: int) -> tuple[float, float]:
    """
    Fractional tile coordinates of a WGS84 point.

    The integer part of each value is the XYZ tile index, the fraction is the
    position inside that tile. ``y`` grows southwards.

    Raises:
        InvalidZoomError: zoom outside [0, MAX_ZOOM].
    """
    check_zoom(zoom)
    x, y = latlng_to_pixel_xy(lat_deg, lng_deg, zoom)
    return x / TILE_SIZE, y / TILE_SIZE


def tile_xy_to_latlng(tx: float, ty: float, zoom: int) -> tuple[float, float]:
    """Inverse of latlng_to_tile_xy."""
    check_zoom(zoom)
    return pixel_xy_to_latlng(tx * TILE_SIZE, ty * TILE_SIZE, zoom)


def tile_bounds_mercator_m(x: int, y: int, zoom: int) -> tuple[float, float, float, float]:
    """EPSG:3857 bounds (min_x, min_y, max_x, max_y) of an XYZ tile in metres."""
    check_zoom(zoom)
    origin = math.pi * EARTH_RADIUS_M
    span = 2 * origin / (2**zoom)
    min_x = -origin + x * span
    max_y = origin - y * span
    return min_x, max_y - span, min_x + span, max_y
