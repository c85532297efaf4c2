#!/usr/bin/env python3
"""
Peakbagger Uploader - bulk ascent logging from recorded GPS tracks.

This package finds the summit of each GPS track, matches it to a peak in
the catalog and records the ascent, keeping a history so that a directory
of tracks can be processed repeatedly without duplicate uploads.
"""
import importlib.metadata

__version__ = importlib.metadata.version("peakbagger-uploader")

# Import main classes for public API
from .analysis import TrackBounds, analyze_track
from .ascents import AscentList, AscentRecord, ExistingAscent, build_ascent, is_duplicate
from .batch import BatchRunner
from .config import UploaderConfig
from .geometry import GeoBoundingBox, Position
from .history import HistoryEntry, HistoryStore
from .peaks import Peak, match_peak
from .track import Track

__all__ = [
    "AscentList",
    "AscentRecord",
    "BatchRunner",
    "ExistingAscent",
    "GeoBoundingBox",
    "HistoryEntry",
    "HistoryStore",
    "Peak",
    "Position",
    "Track",
    "TrackBounds",
    "UploaderConfig",
    "analyze_track",
    "build_ascent",
    "is_duplicate",
    "match_peak",
]
