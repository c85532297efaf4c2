"""
HTTP client for the peak catalog service.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
import logging
import time

import requests

from .ascents import AscentList, AscentRecord, ExistingAscent
from .config import DEFAULT_API_TIMEOUT, DEFAULT_API_URL
from .errors import AuthenticationError, CatalogError, UploadError
from .geometry import GeoBoundingBox
from .peaks import Peak

logger = logging.getLogger(__name__)

MAX_RETRIES = 5
BASE_DELAY = 2.0

# Failed requests and well-formed responses with unexpected content
RESPONSE_ERRORS = (
    requests.exceptions.RequestException,
    ValueError,
    KeyError,
    TypeError,
    AttributeError,
)


def _is_retryable_error(e: requests.exceptions.HTTPError) -> bool:
    """Check if an HTTP error is retryable."""
    if e.response is not None and hasattr(e.response, "status_code"):
        return e.response.status_code == 429 or e.response.status_code >= 500
    else:
        error_msg = str(e).lower()
        return any(code in error_msg for code in ["429", "500", "502", "503", "504"])


def _parse_date(value: str) -> datetime:
    """Parse an ISO 8601 timestamp as sent by the catalog."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def ascent_payload(record: AscentRecord) -> Dict[str, Any]:
    """Build the JSON body for an ascent submission."""
    return {
        "peak_id": record.peak_id,
        "date": record.date.isoformat(),
        "gpx": record.track.to_gpx_xml(),
        "trip_report": record.trip_report,
        "time_up": int(record.time_up.total_seconds()),
        "time_down": int(record.time_down.total_seconds()),
        "start_elevation": record.start_elevation,
        "end_elevation": record.end_elevation,
    }


class CatalogClient:
    """Client for searching peaks and recording ascents for one climber."""

    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        timeout: int = DEFAULT_API_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()
        self.climber_id: Optional[str] = None

    def _request(self, method: str, path: str, **kwargs) -> Any:
        """Send a request, retrying with exponential backoff on 429/5xx.

        Raises:
            requests.exceptions.RequestException: On network or HTTP errors after retries
        """
        url = f"{self.api_url}{path}"
        attempt = 0

        while True:
            try:
                response = self.session.request(
                    method, url, timeout=self.timeout, **kwargs
                )
                response.raise_for_status()
                return response.json()

            except requests.exceptions.HTTPError as e:
                status_code = e.response.status_code if e.response is not None else None
                if _is_retryable_error(e) and attempt < MAX_RETRIES:
                    delay = BASE_DELAY * (2**attempt)
                    error_type = (
                        "Server error"
                        if status_code and status_code >= 500
                        else "Rate limited"
                    )
                    logger.warning(
                        f"{error_type} ({status_code or 'unknown'}) from {method} {path}, retrying in {delay:.0f}s (attempt {attempt + 1} of {MAX_RETRIES + 1})"
                    )
                    time.sleep(delay)
                    attempt += 1
                    continue
                logger.debug(f"Not retrying {method} {path}: status={status_code}")
                raise

    def _climber_path(self) -> str:
        if self.climber_id is None:
            raise AuthenticationError("not logged in to the peak catalog")
        return f"/climbers/{self.climber_id}"

    def authenticate(self, username: str, password: str) -> str:
        """
        Log in and remember the climber id for later calls.

        Raises:
            AuthenticationError: If the login is rejected or fails.
        """
        try:
            data = self._request(
                "POST", "/login", json={"username": username, "password": password}
            )
        except RESPONSE_ERRORS as e:
            raise AuthenticationError(f"peak catalog login {e}") from e

        if not isinstance(data, dict):
            raise AuthenticationError(
                "peak catalog login returned an unexpected response"
            )
        climber_id = data.get("climber_id")
        if not climber_id:
            raise AuthenticationError("peak catalog login returned no climber id")
        token = data.get("token")
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

        self.climber_id = str(climber_id)
        logger.info(f"Logged in as {self.climber_id}")
        return self.climber_id

    def search_peaks(self, bounding_box: GeoBoundingBox) -> List[Peak]:
        """
        Find catalog peaks within a bounding box.

        Raises:
            CatalogError: If the query fails.
        """
        params = {
            "min_lat": bounding_box.min_lat,
            "max_lat": bounding_box.max_lat,
            "min_lng": bounding_box.min_lng,
            "max_lng": bounding_box.max_lng,
        }
        try:
            data = self._request("GET", "/peaks", params=params)
            return [
                Peak(
                    peak_id=str(item["id"]),
                    name=item.get("name", ""),
                    latitude=float(item["latitude"]),
                    longitude=float(item["longitude"]),
                )
                for item in data.get("peaks", [])
            ]
        except RESPONSE_ERRORS as e:
            raise CatalogError(f"find peaks {e}") from e

    def list_ascents(self) -> AscentList:
        """
        List the logged-in climber's recorded ascents.

        Raises:
            CatalogError: If the query fails.
        """
        try:
            data = self._request("GET", f"{self._climber_path()}/ascents")
            ascents = AscentList(
                ExistingAscent(peak_id=str(item["peak_id"]), date=_parse_date(item["date"]))
                for item in data.get("ascents", [])
            )
        except RESPONSE_ERRORS as e:
            raise CatalogError(f"list ascents {e}") from e

        logger.info(f"Loaded {len(ascents)} ascents")
        return ascents

    def submit_ascent(self, record: AscentRecord) -> str:
        """
        Submit a new ascent.

        Returns:
            The catalog's id for the new ascent

        Raises:
            UploadError: If the catalog rejects the submission.
        """
        try:
            data = self._request(
                "POST", f"{self._climber_path()}/ascents", json=ascent_payload(record)
            )
            return str(data["ascent_id"])
        except RESPONSE_ERRORS as e:
            raise UploadError(f"failed to add ascent {e}") from e
