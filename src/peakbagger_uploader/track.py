#!/usr/bin/env python3
"""
Track data model built from parsed GPX documents.
"""

from datetime import datetime
from typing import Iterator, List, Optional, TextIO, Tuple, Union
import logging

import gpxpy
import gpxpy.gpx

from .errors import ParseError
from .geometry import (
    GeoBoundingBox,
    Position,
    create_transverse_mercator_projection,
    positions_to_polyline,
)

logger = logging.getLogger(__name__)


class Track:
    """A named, time-ordered sequence of track segments."""

    def __init__(
        self,
        name: str,
        segments: List[List[Position]],
        gpx_track: Optional[gpxpy.gpx.GPXTrack] = None,
    ):
        """Initializes a Track object.

        Args:
            name: Track name as recorded by the device (may be empty).
            segments: Ordered segments, each an ordered list of Position objects.
            gpx_track: The originating GPX track, kept for re-serialization.
        """
        self.name = name
        self.segments = segments
        self.gpx_track = gpx_track

    def __iter__(self) -> Iterator[Position]:
        """Iterate over every point of every segment in order."""
        for segment in self.segments:
            yield from segment

    def __len__(self) -> int:
        return sum(len(segment) for segment in self.segments)

    def __repr__(self) -> str:
        return f"Track(name={self.name!r}, points={len(self)})"

    def bounding_box(self) -> Optional[GeoBoundingBox]:
        """Smallest box containing every point, or None for an empty track."""
        return GeoBoundingBox.enclosing(self)

    def length(self) -> float:
        """
        Total length of all segments in meters.

        Segments are measured in a transverse mercator projection centered on
        the track; gaps between segments are not counted.
        """
        bbox = self.bounding_box()
        if bbox is None:
            return 0.0

        projection = create_transverse_mercator_projection(bbox)
        return sum(
            positions_to_polyline(segment, projection).length
            for segment in self.segments
            if len(segment) >= 2
        )

    def time_bounds(self) -> Tuple[Optional[datetime], Optional[datetime]]:
        """
        Find the first and last timestamps across all segments.

        Returns:
            Tuple of (start_time, end_time); either is None if no point carries a time
        """
        start_time = None
        end_time = None
        for point in self:
            if point.time is None:
                continue
            if start_time is None:
                start_time = point.time
            end_time = point.time
        return start_time, end_time

    def to_gpx_xml(self) -> str:
        """Serialize this track as a standalone GPX document."""
        document = gpxpy.gpx.GPX()
        if self.gpx_track is not None:
            document.tracks.append(self.gpx_track)
        else:
            gpx_track = gpxpy.gpx.GPXTrack(name=self.name or None)
            for segment in self.segments:
                gpx_segment = gpxpy.gpx.GPXTrackSegment()
                for point in segment:
                    gpx_segment.points.append(
                        gpxpy.gpx.GPXTrackPoint(
                            latitude=point.latitude,
                            longitude=point.longitude,
                            elevation=point.elevation,
                            time=point.time,
                        )
                    )
                gpx_track.segments.append(gpx_segment)
            document.tracks.append(gpx_track)
        return document.to_xml()

    @classmethod
    def from_gpx_track(cls, gpx_track: gpxpy.gpx.GPXTrack) -> "Track":
        """Build a Track from a parsed gpxpy track."""
        segments = [
            [
                Position(
                    latitude=point.latitude,
                    longitude=point.longitude,
                    elevation=point.elevation,
                    time=point.time,
                )
                for point in segment.points
            ]
            for segment in gpx_track.segments
        ]
        return cls(name=gpx_track.name or "", segments=segments, gpx_track=gpx_track)


def load_tracks(file_input: Union[str, TextIO]) -> List[Track]:
    """
    Parse GPX data into a list of tracks.

    Args:
        file_input: GPX document as a string or file-like object

    Returns:
        Tracks in document order

    Raises:
        ParseError: If the GPX data is malformed.
    """
    try:
        gpx_data = gpxpy.parse(file_input)
    except gpxpy.gpx.GPXException as e:
        raise ParseError(f"parse gpx: {e}") from e

    tracks = [Track.from_gpx_track(gpx_track) for gpx_track in gpx_data.tracks]
    logger.debug(f"Parsed {len(tracks)} tracks from GPX data")
    return tracks


def load_tracks_from_file(filename: str) -> List[Track]:
    """
    Read and parse a GPX file.

    Raises:
        ParseError: If the file can't be read or is malformed.
    """
    logger.debug(f"Reading GPX file: {filename}")
    try:
        with open(filename, "r", encoding="utf-8") as f:
            return load_tracks(f)
    except (OSError, UnicodeDecodeError) as e:
        raise ParseError(f"read gpx file {filename!r}: {e}") from e
