#!/usr/bin/env python3
"""Exception hierarchy for the ascent uploader.

Errors fall into three groups that decide how far a failure propagates:

- InfrastructureError aborts the whole run.
- FileError fails the current file; it is recorded in the history document.
- TrackError fails a single track; sibling tracks in the file are still tried.
"""

from typing import List, NamedTuple


class UploaderError(Exception):
    """Base class for all uploader errors."""


class InfrastructureError(UploaderError):
    """A failure that makes continuing the run pointless."""


class DirectoryError(InfrastructureError):
    """The input directory could not be read."""


class AuthenticationError(InfrastructureError):
    """The catalog service rejected our credentials."""


class HistoryError(InfrastructureError):
    """The history document exists but could not be read or written."""


class ConverterUnavailableError(InfrastructureError):
    """The external format converter could not be started."""


class FileError(UploaderError):
    """Processing of one input file failed."""


class ConversionError(FileError):
    """The format converter exited with an error."""


class ParseError(FileError):
    """The converted track file could not be parsed."""


class TrackError(UploaderError):
    """Processing of one track failed."""


class ValidationError(TrackError):
    """The track cannot be used to derive an ascent."""


class MissingPointsError(ValidationError):
    def __init__(self) -> None:
        super().__init__("highest point missing points")


class MissingElevationError(ValidationError):
    def __init__(self) -> None:
        super().__init__("highest point missing elevation")


class MissingTimestampError(ValidationError):
    def __init__(self) -> None:
        super().__init__("highest point missing timestamp")


class NoPeaksFoundError(TrackError):
    """No catalog peak lies within the search area."""


class CatalogError(TrackError):
    """A catalog query failed."""


class DuplicateAscentError(TrackError):
    """The climber already has this ascent recorded."""


class UploadError(TrackError):
    """The catalog rejected the ascent submission."""


class TrackFailure(NamedTuple):
    """A failed track and the reason it failed."""

    track_name: str
    error: TrackError

    def __str__(self) -> str:
        return f"{self.error} processing track {self.track_name!r}"


class FileProcessingError(FileError):
    """One or more tracks of a file failed.

    Failures are kept in track order so the combined message is deterministic.
    """

    def __init__(self, failures: List[TrackFailure]):
        self.failures = list(failures)
        super().__init__(", ".join(str(failure) for failure in self.failures))
