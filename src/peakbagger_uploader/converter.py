"""
Conversion of track files in any supported format to temporary GPX files
using gpsbabel.
"""

from contextlib import contextmanager
from typing import Iterator
import logging
import os
import subprocess
import tempfile

from .config import DEFAULT_SIMPLIFY_COUNT
from .errors import ConversionError, ConverterUnavailableError
from .file_utils import track_format

logger = logging.getLogger(__name__)

GPSBABEL = "gpsbabel"


def gpsbabel_command(
    input_path: str, input_format: str, output_path: str, simplify_count: int
) -> list:
    """Build the gpsbabel command line for converting tracks to GPX."""
    return [
        GPSBABEL,
        "-t",
        "-i",
        input_format,
        "-f",
        input_path,
        "-x",
        f"simplify,count={simplify_count}",
        "-o",
        "gpx,garminextensions",
        "-F",
        output_path,
    ]


@contextmanager
def converted_gpx(
    input_path: str, simplify_count: int = DEFAULT_SIMPLIFY_COUNT
) -> Iterator[str]:
    """
    Convert a track file to a temporary GPX file.

    The temporary file is removed when the context exits, whether or not
    processing succeeded.

    Args:
        input_path: Track file in any supported format
        simplify_count: Maximum number of points to keep per track

    Yields:
        Path of the converted GPX file

    Raises:
        ConversionError: If the format is unknown or gpsbabel fails.
        ConverterUnavailableError: If gpsbabel cannot be executed.
    """
    input_format = track_format(input_path)
    if input_format is None:
        extension = os.path.splitext(input_path)[1]
        raise ConversionError(f"file extension {extension!r} is not a known GPS format")

    fd, output_path = tempfile.mkstemp(prefix="peakbagger-uploader.", suffix=".gpx")
    os.close(fd)
    try:
        logger.info(f"Converting {input_path!r} to {output_path!r}")
        command = gpsbabel_command(input_path, input_format, output_path, simplify_count)
        try:
            result = subprocess.run(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
            )
        except FileNotFoundError as e:
            raise ConverterUnavailableError(f"cannot run {GPSBABEL}: {e}") from e

        if result.returncode != 0:
            # gpsbabel output is not guaranteed to be UTF-8
            output = result.stdout.decode("utf-8", errors="replace").strip()
            raise ConversionError(
                f"gpsbabel conversion failed (exit status {result.returncode}): {output}"
            )
        yield output_path
    finally:
        try:
            os.remove(output_path)
        except FileNotFoundError:
            pass
