from dataclasses import dataclass
from typing import Optional

DEFAULT_API_URL = "https://peakbagger.com/api"
DEFAULT_API_TIMEOUT = 30
DEFAULT_SIMPLIFY_COUNT = 2900


@dataclass(frozen=True)
class UploaderConfig:
    """Configuration for the uploader CLI, built once at startup."""

    username: str = ""
    password: str = ""
    filename: Optional[str] = None
    directory: Optional[str] = None
    dry_run: bool = False
    retry: bool = False
    log_level: str = "INFO"
    metrics: bool = False
    api_url: str = DEFAULT_API_URL
    timeout: int = DEFAULT_API_TIMEOUT
    simplify_count: int = DEFAULT_SIMPLIFY_COUNT
