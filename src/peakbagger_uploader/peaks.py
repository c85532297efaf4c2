#!/usr/bin/env python3
"""Matching a track's highest point to a catalog peak."""

from typing import List, NamedTuple
import logging

from .errors import NoPeaksFoundError
from .geometry import GeoBoundingBox, Position, feet_to_degrees, haversine_distance

logger = logging.getLogger(__name__)

# Search radius around the highest point, in feet
PEAK_SEARCH_RADIUS = 1000


class Peak(NamedTuple):
    """A peak from the catalog."""

    peak_id: str
    name: str
    latitude: float
    longitude: float

    def __str__(self) -> str:
        return f"{self.name} ({self.peak_id})"


def peak_search_box(position: Position) -> GeoBoundingBox:
    """Build the search area for peaks around a summit position."""
    return GeoBoundingBox.around(position).extend(feet_to_degrees(PEAK_SEARCH_RADIUS))


def rank_peaks(peaks: List[Peak], position: Position) -> List[Peak]:
    """
    Order peaks by great circle distance from a position, nearest first.

    The sort is stable, so equidistant peaks keep their catalog order.
    """
    return sorted(
        peaks,
        key=lambda peak: haversine_distance(
            peak.latitude, peak.longitude, position.latitude, position.longitude
        ),
    )


def match_peak(highest: Position, client) -> Peak:
    """
    Find the catalog peak corresponding to a track's highest point.

    GPS summit positions are off by meters to tens of meters, so the catalog
    is searched within a generous fixed radius and the nearest peak wins.
    Multiple candidates are not an error but are logged as a warning.

    Args:
        highest: Highest point of the track
        client: Catalog client providing ``search_peaks(box)``

    Returns:
        The nearest Peak

    Raises:
        NoPeaksFoundError: If the catalog has no peak within the search area.
        CatalogError: If the catalog query fails.
    """
    search_box = peak_search_box(highest)
    peaks = client.search_peaks(search_box)
    logger.info(f"Found {len(peaks)} matching peaks")

    for peak in peaks:
        if not search_box.contains(peak.latitude, peak.longitude):
            logger.debug(f"Catalog returned {peak} outside the search area")

    if not peaks:
        raise NoPeaksFoundError("no peaks found")

    ranked = rank_peaks(peaks, highest)
    if len(ranked) > 1:
        logger.warning(
            f"Expected 1 matching peak, found {len(ranked)}: "
            f"{', '.join(str(p) for p in ranked)}. Using nearest."
        )

    peak = ranked[0]
    logger.info(f"Highest point corresponds to {peak.name!r}")
    return peak
