"""
Geographic primitives: positions, bounding boxes, great circle distance
and projected track geometry.
"""

from datetime import datetime
from typing import Iterable, List, NamedTuple, Optional
import logging
import math

from shapely.geometry import LineString
import pyproj

logger = logging.getLogger(__name__)

# WGS84 equatorial radius in meters (appropriate for non-polar regions)
EARTH_RADIUS = 6378137.0

# Rough conversion used to turn a search radius into a latitude margin
MILES_PER_DEGREE = 69.0
FEET_PER_MILE = 5280.0


class Position(NamedTuple):
    """A track point: geographic position plus optional elevation and time.

    ``elevation`` and ``time`` are None when the source point did not carry
    them, which is distinct from an elevation of zero.
    """

    latitude: float
    longitude: float
    elevation: Optional[float] = None
    time: Optional[datetime] = None


def feet_to_degrees(feet: float) -> float:
    """Convert a distance in feet to an approximate latitude margin in degrees."""
    return feet / (MILES_PER_DEGREE * FEET_PER_MILE)


class GeoBoundingBox(NamedTuple):
    """A latitude/longitude rectangle in decimal degrees."""

    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    @classmethod
    def around(cls, position: Position) -> "GeoBoundingBox":
        """Create a degenerate box containing only the given position."""
        return cls(
            min_lat=position.latitude,
            max_lat=position.latitude,
            min_lng=position.longitude,
            max_lng=position.longitude,
        )

    def extend(self, margin: float) -> "GeoBoundingBox":
        """
        Grow the box symmetrically by a latitude margin.

        The longitude margin is widened by the cosine of the box's center
        latitude so the box covers roughly the same ground distance in both
        directions. Results are clamped to valid coordinate ranges.

        Args:
            margin: Latitude margin in decimal degrees (non-negative)

        Returns:
            A new, larger GeoBoundingBox
        """
        if margin < 0:
            raise ValueError(f"Bounding box margin must be non-negative, got {margin}")

        center_lat = (self.min_lat + self.max_lat) / 2
        cos_lat = abs(math.cos(math.radians(center_lat)))
        if cos_lat < 1e-9:
            lng_margin = 360.0
        else:
            lng_margin = margin / cos_lat

        return GeoBoundingBox(
            min_lat=max(-90.0, self.min_lat - margin),
            max_lat=min(90.0, self.max_lat + margin),
            min_lng=max(-180.0, self.min_lng - lng_margin),
            max_lng=min(180.0, self.max_lng + lng_margin),
        )

    def contains(self, latitude: float, longitude: float) -> bool:
        """Check whether a coordinate lies inside the box or on its boundary."""
        return (
            self.min_lat <= latitude <= self.max_lat
            and self.min_lng <= longitude <= self.max_lng
        )

    @classmethod
    def enclosing(cls, positions: Iterable[Position]) -> Optional["GeoBoundingBox"]:
        """Smallest box containing all positions, or None if there are none."""
        latitudes: List[float] = []
        longitudes: List[float] = []
        for position in positions:
            latitudes.append(position.latitude)
            longitudes.append(position.longitude)
        if not latitudes:
            return None
        return cls(min(latitudes), max(latitudes), min(longitudes), max(longitudes))


def haversine_distance(
    lat1: float, lon1: float, lat2: float, lon2: float
) -> float:
    """
    Calculate the great circle distance between two coordinates.

    Returns:
        Distance in meters
    """
    phi1, lam1 = math.radians(lat1), math.radians(lon1)
    phi2, lam2 = math.radians(lat2), math.radians(lon2)

    dphi = phi2 - phi1
    dlam = lam2 - lam1

    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlam / 2) ** 2
    # Guard against rounding pushing a slightly above 1
    a = min(1.0, a)

    return 2 * EARTH_RADIUS * math.asin(math.sqrt(a))


def create_transverse_mercator_projection(bbox: GeoBoundingBox) -> pyproj.Proj:
    """
    Create a custom transverse mercator projection centered on the given bounding box.

    Args:
        bbox: Area the projection should be accurate for

    Returns:
        pyproj.Proj object for the custom projection
    """
    center_lat = (bbox.min_lat + bbox.max_lat) / 2.0
    center_lon = (bbox.min_lng + bbox.max_lng) / 2.0

    proj_string = f"+proj=tmerc +lat_0={center_lat} +lon_0={center_lon} +k=1 +x_0=0 +y_0=0 +datum=WGS84 +units=m +no_defs"
    return pyproj.Proj(proj_string)


def positions_to_polyline(
    positions: List[Position], projection: Optional[pyproj.Proj] = None
) -> LineString:
    """
    Convert positions to a Shapely LineString.

    Args:
        positions: At least two positions
        projection: Optional projection; if None, the LineString is in
                    (longitude, latitude) degrees

    Returns:
        LineString in projected meters if a projection is given

    Raises:
        ValueError: If fewer than two positions are given
    """
    if len(positions) < 2:
        raise ValueError("At least two positions are required to create a LineString.")

    lons = [pos.longitude for pos in positions]
    lats = [pos.latitude for pos in positions]
    if projection is not None:
        x_coords, y_coords = projection(lons, lats)
        return LineString(list(zip(x_coords, y_coords)))

    return LineString(list(zip(lons, lats)))
