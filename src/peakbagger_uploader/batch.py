#!/usr/bin/env python3
"""
Batch processing of track files: conversion, summit detection, peak
matching, duplicate checks and ascent submission.
"""

from collections import defaultdict
from datetime import datetime, timezone
from typing import Callable, ContextManager, Dict, List
import logging
import os

from .analysis import analyze_track
from .ascents import AscentRecord, build_ascent, is_duplicate
from .config import UploaderConfig
from .converter import converted_gpx
from .errors import (
    DuplicateAscentError,
    FileError,
    FileProcessingError,
    TrackError,
    TrackFailure,
)
from .file_utils import list_track_files
from .history import HistoryStore
from .metrics import FileStatus, RunSummary
from .peaks import match_peak
from .track import Track, load_tracks_from_file

logger = logging.getLogger(__name__)

Converter = Callable[[str, int], ContextManager[str]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BatchRunner:
    """Uploads ascents for a single track file or a directory of them.

    Files move from unprocessed to processing to either succeeded or failed.
    In directory mode the outcome of each file is written to the history
    document as soon as the file is done, so an interrupted run loses at most
    the file in progress.
    """

    def __init__(
        self,
        config: UploaderConfig,
        client,
        converter: Converter = converted_gpx,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """Initializes a BatchRunner.

        Args:
            config: Uploader configuration.
            client: Catalog client (see catalog.CatalogClient).
            converter: Context manager factory turning a track file into a GPX path.
            clock: Source of the current time.
        """
        self.config = config
        self.client = client
        self.converter = converter
        self.clock = clock
        self.track_counts: Dict[str, int] = defaultdict(int)

    def run(self) -> RunSummary:
        """
        Authenticate and process the configured file or directory.

        Returns:
            RunSummary with the outcome of every file considered

        Raises:
            InfrastructureError: If the run cannot continue (login failure,
                unreadable directory, unreadable or unwritable history).
        """
        self.client.authenticate(self.config.username, self.config.password)

        summary = RunSummary()
        if self.config.filename:
            filename = self.config.filename
            self._process_and_report(filename, os.path.basename(filename), summary)
            return summary

        if not self.config.directory:
            raise ValueError("Either a filename or a directory must be configured")

        directory = self.config.directory
        filenames = list_track_files(directory)
        history = HistoryStore.load(directory, clock=self.clock)

        for name in filenames:
            if history.should_skip(name, self.config.retry):
                logger.info(f"Skipping already processed file {name!r}")
                summary.add(name, FileStatus.SKIPPED)
                continue

            error = self._process_and_report(
                os.path.join(directory, name), name, summary
            )
            history.record(name, error)
            history.save(directory)

        return summary

    def _process_and_report(self, path: str, name: str, summary: RunSummary) -> str:
        """Process one file, log and summarize its outcome.

        Returns:
            The file's error message, empty on success
        """
        try:
            self.process_file(path)
        except FileError as e:
            message = str(e)
            logger.error(f"Failed to process {name!r}: {message}")
            summary.add(name, FileStatus.FAILED, message)
            return message

        logger.info(f"Processed {name!r}")
        summary.add(name, FileStatus.SUCCEEDED)
        return ""

    def process_file(self, path: str) -> None:
        """
        Convert a track file and process every track in it.

        Every track is attempted even if an earlier one fails.

        Raises:
            ConversionError: If the file could not be converted.
            ParseError: If the converted file could not be parsed.
            FileProcessingError: If any track failed.
        """
        with self.converter(path, self.config.simplify_count) as gpx_path:
            tracks = load_tracks_from_file(gpx_path)
            if not tracks:
                logger.warning(f"No tracks found in {path!r}")

            failures: List[TrackFailure] = []
            for track in tracks:
                try:
                    self.process_track(track)
                except TrackError as e:
                    self.track_counts["failed"] += 1
                    failures.append(TrackFailure(track.name, e))

        if failures:
            raise FileProcessingError(failures)

    def process_track(self, track: Track) -> AscentRecord:
        """
        Upload the ascent recorded by one track.

        Returns:
            The ascent record, submitted unless this is a dry run

        Raises:
            TrackError: If the track can't be turned into a new ascent.
        """
        logger.info(
            f"Track {track.name!r}: {len(track)} points, {track.length() / 1000:.2f} km"
        )
        bounds = analyze_track(track)
        logger.info(f"Highest point is {bounds.highest}")

        peak = match_peak(bounds.highest, self.client)

        existing = self.client.list_ascents()
        date = bounds.highest.time
        if is_duplicate(peak.peak_id, date, existing):
            self.track_counts["duplicate"] += 1
            raise DuplicateAscentError(
                f"already have ascent logged for {peak.name!r} on {date.isoformat()}"
            )

        record = build_ascent(track, bounds, peak, now=self.clock())
        logger.info(f"Adding ascent {record}")

        if self.config.dry_run:
            logger.info("DRY RUN, skipping ascent add")
            self.track_counts["dry_run"] += 1
            return record

        ascent_id = self.client.submit_ascent(record)
        self.track_counts["submitted"] += 1
        logger.info(f"Uploaded new ascent {ascent_id} for {peak.name!r}")
        return record
