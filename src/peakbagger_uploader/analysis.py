#!/usr/bin/env python3
"""Extraction of the start, summit and end points of a track."""

from typing import NamedTuple, Optional
import logging

from .errors import MissingElevationError, MissingPointsError, MissingTimestampError
from .geometry import Position
from .track import Track

logger = logging.getLogger(__name__)


class TrackBounds(NamedTuple):
    """The first, highest and last points of a track."""

    start: Position
    highest: Position
    end: Position


def analyze_track(track: Track) -> TrackBounds:
    """
    Find the start, highest and end points of a track in a single pass.

    The highest point is the point with the greatest elevation among points
    that carry one. On ties the earlier point wins.

    Args:
        track: Track to analyze

    Returns:
        TrackBounds for the track

    Raises:
        MissingPointsError: If the track has no points.
        MissingElevationError: If no point carries an elevation.
        MissingTimestampError: If the highest point has no timestamp.
    """
    start: Optional[Position] = None
    highest: Optional[Position] = None
    end: Optional[Position] = None

    for point in track:
        if start is None:
            start = point
            highest = point
        end = point

        if point.elevation is None:
            continue
        if highest.elevation is None or point.elevation > highest.elevation:
            highest = point

    if start is None or highest is None or end is None:
        raise MissingPointsError()
    if highest.elevation is None:
        raise MissingElevationError()
    if highest.time is None:
        raise MissingTimestampError()

    logger.debug(
        f"Track {track.name!r}: start={start}, highest={highest}, end={end}"
    )
    return TrackBounds(start=start, highest=highest, end=end)
