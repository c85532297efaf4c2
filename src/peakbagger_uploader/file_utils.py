#!/usr/bin/env python3
"""
Filename utilities for finding track files to process.
"""

from typing import Dict, List, Optional
import os
import logging

from .errors import DirectoryError

logger = logging.getLogger(__name__)

# Maps file extension to gpsbabel input format string
EXTENSION_FORMATS: Dict[str, str] = {
    ".gdb": "gdb",
    ".gpx": "gpx",
    ".kml": "kml",
    ".kmz": "kmz",
}


def track_format(filename: str) -> Optional[str]:
    """
    Look up the converter format code for a track file.

    Extensions are matched case-insensitively.

    Returns:
        Format code, or None if the extension is not a known track format
    """
    extension = os.path.splitext(filename)[1].lower()
    return EXTENSION_FORMATS.get(extension)


def list_track_files(directory: str) -> List[str]:
    """
    List the track files in a directory.

    Only regular files with a known track format extension are returned,
    in directory-listing order. Subdirectories are not descended into.

    Args:
        directory: Directory to scan

    Returns:
        File names (not paths) of eligible track files

    Raises:
        DirectoryError: If the directory cannot be read
    """
    try:
        with os.scandir(directory) as entries:
            names = [
                entry.name
                for entry in entries
                if entry.is_file() and track_format(entry.name) is not None
            ]
    except OSError as e:
        logger.error(f"Cannot read input directory {directory}: {e}")
        raise DirectoryError(f"read directory {directory!r}: {e}") from e

    logger.debug(f"Found {len(names)} track files in {directory}")
    return names
