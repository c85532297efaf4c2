"""
Module for collecting and logging metrics about a batch run.
"""

from enum import Enum
from typing import Dict, List, NamedTuple
import collections
import logging

logger = logging.getLogger(__name__)


class FileStatus(Enum):
    """Final state of an input file in a run."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"

    def __str__(self) -> str:
        return self.value


class FileOutcome(NamedTuple):
    """What happened to one input file."""

    filename: str
    status: FileStatus
    error: str = ""


class RunSummary:
    """Ordered outcomes of every file considered in a run."""

    def __init__(self) -> None:
        self.outcomes: List[FileOutcome] = []

    def add(self, filename: str, status: FileStatus, error: str = "") -> None:
        self.outcomes.append(FileOutcome(filename, status, error))

    def failures(self) -> List[FileOutcome]:
        return [o for o in self.outcomes if o.status == FileStatus.FAILED]

    @property
    def failed(self) -> bool:
        return bool(self.failures())


class RunMetrics(NamedTuple):
    """Container for run metrics data."""

    file_counts: Dict[str, int]
    track_counts: Dict[str, int]


def collect_metrics(summary: RunSummary, track_counts: Dict[str, int]) -> RunMetrics:
    """
    Count file outcomes by status.

    Args:
        summary: Outcomes of the run
        track_counts: Per-track counters kept by the batch runner

    Returns:
        RunMetrics containing all collected metrics
    """
    file_counts: Dict[str, int] = collections.defaultdict(int)
    for outcome in summary.outcomes:
        file_counts["total"] += 1
        file_counts[outcome.status.value] += 1

    return RunMetrics(file_counts=dict(file_counts), track_counts=dict(track_counts))


def log_metrics(metrics: RunMetrics, enabled: bool) -> None:
    """Log run metrics as a structured block when enabled."""
    if not enabled:
        return

    logger.info("=== UPLOADER_METRICS ===")
    logger.info(f"files_total={metrics.file_counts.get('total', 0)}")
    for status in FileStatus:
        logger.info(f"files_{status.value}={metrics.file_counts.get(status.value, 0)}")
    for key, count in sorted(metrics.track_counts.items()):
        logger.info(f"tracks_{key}={count}")
    logger.info("=== END_UPLOADER_METRICS ===")
