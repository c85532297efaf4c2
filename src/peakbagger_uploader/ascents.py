#!/usr/bin/env python3
"""
Ascent records: duplicate detection against the climber's existing ascents
and construction of new ascent submissions.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Iterator, List, NamedTuple, Optional
import logging

from .analysis import TrackBounds
from .peaks import Peak
from .track import Track

logger = logging.getLogger(__name__)

TRIP_REPORT_TEMPLATE = "[i]Uploaded by peakbagger-uploader on {timestamp}[/i]"


class ExistingAscent(NamedTuple):
    """An ascent already recorded in the catalog."""

    peak_id: str
    date: datetime


class AscentList:
    """The climber's recorded ascents as reported by the catalog."""

    def __init__(self, ascents: Iterable[ExistingAscent] = ()):
        self.ascents: List[ExistingAscent] = list(ascents)

    def __len__(self) -> int:
        return len(self.ascents)

    def __iter__(self) -> Iterator[ExistingAscent]:
        return iter(self.ascents)

    def has(self, peak_id: str, date: datetime) -> bool:
        """Check for an ascent of ``peak_id`` at exactly ``date``."""
        return is_duplicate(peak_id, date, self.ascents)


def is_duplicate(
    peak_id: str, date: datetime, existing: Iterable[ExistingAscent]
) -> bool:
    """
    Check whether an ascent is already recorded.

    Dates are compared exactly, not truncated to the day, because that is
    how the catalog reports prior submissions.
    """
    return any(
        ascent.peak_id == peak_id and ascent.date == date for ascent in existing
    )


@dataclass
class AscentRecord:
    """A new ascent to submit to the catalog."""

    peak_id: str
    date: datetime
    track: Track
    trip_report: str
    time_up: timedelta
    time_down: timedelta
    start_elevation: Optional[float]
    end_elevation: Optional[float]

    def __str__(self) -> str:
        return (
            f"AscentRecord(peak_id={self.peak_id}, date={self.date.isoformat()}, "
            f"track={self.track.name!r}, time_up={self.time_up}, "
            f"time_down={self.time_down}, start_elevation={self.start_elevation}, "
            f"end_elevation={self.end_elevation})"
        )


def build_ascent(
    track: Track, bounds: TrackBounds, peak: Peak, now: datetime
) -> AscentRecord:
    """
    Assemble the ascent submission for a matched track.

    Time up and down are measured against the track's own first and last
    timestamps, which may come from different segments than the start and
    end points.

    Args:
        track: The originating track
        bounds: Result of analyze_track for the track
        peak: The matched catalog peak
        now: Current time, stamped into the trip report

    Returns:
        AscentRecord ready for submission
    """
    date = bounds.highest.time
    # The highest point has a timestamp, so neither bound is None
    start_time, end_time = track.time_bounds()

    return AscentRecord(
        peak_id=peak.peak_id,
        date=date,
        track=track,
        trip_report=TRIP_REPORT_TEMPLATE.format(timestamp=now.isoformat()),
        time_up=date - start_time,
        time_down=end_time - date,
        start_elevation=bounds.start.elevation,
        end_elevation=bounds.end.elevation,
    )
