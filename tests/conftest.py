from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence, Tuple

import gpxpy.gpx
import pytest

from peakbagger_uploader.ascents import AscentList, ExistingAscent
from peakbagger_uploader.errors import AuthenticationError, UploadError
from peakbagger_uploader.geometry import Position
from peakbagger_uploader.peaks import Peak
from peakbagger_uploader.track import Track

T0 = datetime(2024, 7, 1, 8, 0, 0, tzinfo=timezone.utc)
T1 = T0 + timedelta(hours=3, minutes=12)
T2 = T1 + timedelta(hours=2, minutes=5)

SUMMIT_PEAK = Peak(peak_id="1234", name="Mount Example", latitude=44.1001, longitude=-71.1001)

# (latitude, longitude, elevation, time)
SUMMIT_POINTS = [
    (44.0, -71.0, 1000.0, T0),
    (44.1, -71.1, 2000.0, T1),
    (44.05, -71.05, 1800.0, T2),
]


def make_track(points: Sequence[Tuple], name: str = "Test track") -> Track:
    """Build a single-segment track from (lat, lon, elevation, time) tuples."""
    return Track(name=name, segments=[[Position(*p) for p in points]])


def make_gpx(tracks: List[Tuple[str, Sequence[Tuple]]]) -> str:
    """Build a GPX document with one single-segment track per (name, points) pair."""
    document = gpxpy.gpx.GPX()
    for name, points in tracks:
        gpx_track = gpxpy.gpx.GPXTrack(name=name)
        segment = gpxpy.gpx.GPXTrackSegment()
        for latitude, longitude, elevation, time in points:
            segment.points.append(
                gpxpy.gpx.GPXTrackPoint(
                    latitude=latitude, longitude=longitude, elevation=elevation, time=time
                )
            )
        gpx_track.segments.append(segment)
        document.tracks.append(gpx_track)
    return document.to_xml()


class FakeCatalogClient:
    """In-memory stand-in for CatalogClient."""

    def __init__(
        self,
        peaks: Optional[List[Peak]] = None,
        ascents: Optional[List[ExistingAscent]] = None,
        fail_login: bool = False,
        reject_uploads: bool = False,
    ):
        self.peaks = list(peaks) if peaks is not None else [SUMMIT_PEAK]
        self.ascents = list(ascents or [])
        self.fail_login = fail_login
        self.reject_uploads = reject_uploads
        self.searches = []
        self.submitted = []

    def authenticate(self, username, password):
        if self.fail_login:
            raise AuthenticationError("peak catalog login rejected")
        return "42"

    def search_peaks(self, bounding_box):
        self.searches.append(bounding_box)
        return list(self.peaks)

    def list_ascents(self):
        return AscentList(self.ascents)

    def submit_ascent(self, record):
        if self.reject_uploads:
            raise UploadError("failed to add ascent 400 Client Error")
        self.submitted.append(record)
        self.ascents.append(ExistingAscent(record.peak_id, record.date))
        return str(len(self.submitted))


class RecordingConverter:
    """Converter that treats every input as GPX already and records the calls."""

    def __init__(self):
        self.calls = []

    @contextmanager
    def __call__(self, path, simplify_count):
        self.calls.append(path)
        yield path


@pytest.fixture
def catalog():
    return FakeCatalogClient()


@pytest.fixture
def converter():
    return RecordingConverter()
