from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass

from shared.constants import (
    DEGENERATE_SPAN_DEG,
    EARTH_MEAN_RADIUS_M,
    MIN_SIZE_OVERSHOOT,
)
from shared.exceptions import InvalidRangeError


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two WGS84 points in metres."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_MEAN_RADIUS_M * c


@dataclass(frozen=True)
class GeoBox:
    """Axis-aligned WGS84 rectangle, degrees."""

    min_lat: float
    min_lon: float
    max_lat: float
    max_lon: float

    def __post_init__(self) -> None:
        if self.min_lat > self.max_lat or self.min_lon > self.max_lon:
            msg = 'GeoBox minimum exceeds maximum'
            raise InvalidRangeError(
                msg,
                {
                    'lat': (self.min_lat, self.max_lat),
                    'lon': (self.min_lon, self.max_lon),
                },
            )

    @classmethod
    def from_points(cls, points: Iterable[tuple[float, float]]) -> GeoBox:
        """Bounding box of (lat, lon) pairs."""
        pts = list(points)
        if not pts:
            msg = 'Cannot build a GeoBox from no points'
            raise InvalidRangeError(msg)
        lats = [p[0] for p in pts]
        lons = [p[1] for p in pts]
        return cls(min(lats), min(lons), max(lats), max(lons))

    @property
    def center(self) -> tuple[float, float]:
        return (
            (self.min_lat + self.max_lat) / 2,
            (self.min_lon + self.max_lon) / 2,
        )

    @property
    def lat_span(self) -> float:
        return self.max_lat - self.min_lat

    @property
    def lon_span(self) -> float:
        return self.max_lon - self.min_lon

    @property
    def height_m(self) -> float:
        """North-south extent measured along the western edge."""
        return haversine_m(self.min_lat, self.min_lon, self.max_lat, self.min_lon)

    @property
    def width_m(self) -> float:
        """East-west extent measured along the southern edge."""
        return haversine_m(self.min_lat, self.min_lon, self.min_lat, self.max_lon)

    def grow(self, percent: float, *, lat: bool = True, lon: bool = True) -> GeoBox:
        """
        Expand the selected axes by ``percent`` of their span, keeping the center.

        Half of the added span goes to each side, so the new span is
        ``span * (1 + percent)``.
        """
        min_lat, max_lat = self.min_lat, self.max_lat
        min_lon, max_lon = self.min_lon, self.max_lon
        if lat:
            d = 0.5 * self.lat_span * percent
            min_lat, max_lat = min_lat - d, max_lat + d
        if lon:
            d = 0.5 * self.lon_span * percent
            min_lon, max_lon = min_lon - d, max_lon + d
        return GeoBox(min_lat, min_lon, max_lat, max_lon)

    def with_min_span(self, span_deg: float = DEGENERATE_SPAN_DEG) -> GeoBox:
        """Give zero-extent axes a small span around their center."""
        c_lat, c_lon = self.center
        min_lat, max_lat = self.min_lat, self.max_lat
        min_lon, max_lon = self.min_lon, self.max_lon
        if self.lat_span <= 0:
            min_lat, max_lat = c_lat - span_deg / 2, c_lat + span_deg / 2
        if self.lon_span <= 0:
            min_lon, max_lon = c_lon - span_deg / 2, c_lon + span_deg / 2
        return GeoBox(min_lat, min_lon, max_lat, max_lon)


def check_min_size(box: GeoBox, min_size_m: float) -> GeoBox:
    """
    Grow each axis of ``box`` until it spans at least ``min_size_m`` metres.

    Axes that are already large enough are left untouched. The latitude axis
    is handled first; the longitude extent is then measured on the southern
    edge of the adjusted box.

    Args:
        box: Box to check.
        min_size_m: Minimum extent per axis in metres.

    Returns:
        The original box or an enlarged copy with the same center.
    """
    if min_size_m <= 0:
        return box
    box = box.with_min_span()

    height = box.height_m
    if height < min_size_m:
        box = box.grow(min_size_m / height - 1 + MIN_SIZE_OVERSHOOT, lon=False)

    width = box.width_m
    if width < min_size_m:
        box = box.grow(min_size_m / width - 1 + MIN_SIZE_OVERSHOOT, lat=False)
    return box


def check_min_size_and_grow(
    box: GeoBox,
    min_size_m: float,
    grow_factor: float,
) -> GeoBox:
    """Enforce the minimum physical size, then pad both axes by ``grow_factor``."""
    box = check_min_size(box, min_size_m)
    if grow_factor:
        box = box.grow(grow_factor)
    return box
