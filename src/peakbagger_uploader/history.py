#!/usr/bin/env python3
"""
Persistent record of which track files have been processed.

The history document lives in the input directory as ``history.json`` and
maps each file name to its outcome::

    {"track.gpx": {"Error": "", "Added": "2024-07-01T18:22:05.123456+00:00"}}

An empty ``Error`` means the file was processed successfully.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Optional
import json
import logging
import os

from .errors import HistoryError

logger = logging.getLogger(__name__)

HISTORY_FILENAME = "history.json"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class HistoryEntry:
    """Outcome of processing one file."""

    error: str
    added: datetime

    @property
    def succeeded(self) -> bool:
        return self.error == ""

    def to_json(self) -> Dict[str, str]:
        return {"Error": self.error, "Added": self.added.isoformat()}

    @classmethod
    def from_json(cls, data: Dict[str, str]) -> "HistoryEntry":
        return cls(error=data["Error"], added=datetime.fromisoformat(data["Added"]))


class HistoryStore:
    """Processing status of each file in an input directory, keyed by file name."""

    def __init__(
        self,
        entries: Optional[Dict[str, HistoryEntry]] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.entries: Dict[str, HistoryEntry] = dict(entries or {})
        self.clock = clock

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, filename: str) -> bool:
        return filename in self.entries

    def get(self, filename: str) -> Optional[HistoryEntry]:
        return self.entries.get(filename)

    @staticmethod
    def path(directory: str) -> str:
        return os.path.join(directory, HISTORY_FILENAME)

    @classmethod
    def load(
        cls, directory: str, clock: Callable[[], datetime] = _utcnow
    ) -> "HistoryStore":
        """
        Load the history document for a directory.

        A missing document yields an empty store.

        Raises:
            HistoryError: If the document exists but can't be read or parsed.
        """
        path = cls.path(directory)
        try:
            with open(path, "r", encoding="utf-8") as f:
                document = json.load(f)
        except FileNotFoundError:
            logger.debug(f"No history document at {path}, starting fresh")
            return cls(clock=clock)
        except (OSError, ValueError) as e:
            raise HistoryError(f"read history {path!r}: {e}") from e

        if not isinstance(document, dict):
            raise HistoryError(f"read history {path!r}: expected a JSON object")

        try:
            entries = {
                filename: HistoryEntry.from_json(data)
                for filename, data in document.items()
            }
        except (KeyError, TypeError, ValueError) as e:
            raise HistoryError(f"read history {path!r}: malformed entry {e}") from e

        logger.info(f"Loaded history for {len(entries)} files from {path}")
        return cls(entries, clock=clock)

    def save(self, directory: str) -> None:
        """
        Overwrite the history document for a directory.

        Raises:
            HistoryError: If the document can't be written.
        """
        path = self.path(directory)
        document = {
            filename: entry.to_json() for filename, entry in self.entries.items()
        }
        try:
            with open(path, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=1)
        except OSError as e:
            raise HistoryError(f"write history {path!r}: {e}") from e

    def should_skip(self, filename: str, retry_failures: bool) -> bool:
        """
        Decide whether a file was already handled.

        Successes are always skipped; failures are skipped unless retrying.
        """
        entry = self.entries.get(filename)
        if entry is None:
            return False
        return entry.succeeded or not retry_failures

    def record(self, filename: str, error_message: str) -> HistoryEntry:
        """Record the outcome of processing a file, replacing any earlier entry."""
        entry = HistoryEntry(error=error_message, added=self.clock())
        self.entries[filename] = entry
        return entry
