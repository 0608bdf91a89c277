"""Aviation Weather (aviationweather.gov) dataserver source for METAR XML documents."""

import logging
from pathlib import Path
from typing import Optional, Union

import requests

from metarwx import config
from metarwx.sources.cached import CachedSource

logger = logging.getLogger(__name__)


class AvWxSource(CachedSource):
    """
    Fetch METAR XML documents from the aviationweather.gov dataserver.

    One best-effort GET per station, no retry. The HTTP session is owned by
    the source and released by close(); use it as a context manager.

    Example:
        with AvWxSource(cache_dir="/tmp", hours=2) as source:
            xml = source.get_document("KJFK")
    """

    BASE_URL = config.DEFAULT_BASE_URL
    DEFAULT_TIMEOUT = config.REQUEST_TIMEOUT
    USER_AGENT = config.USER_AGENT

    def __init__(
        self,
        cache_dir: Union[str, Path, None] = None,
        base_url: Optional[str] = None,
        hours: int = config.DEFAULT_HOURS,
        session: Optional[requests.Session] = None,
        timeout: int = DEFAULT_TIMEOUT,
        max_age_seconds: int = config.CACHE_MAX_AGE_SECONDS,
    ):
        """
        Args:
            cache_dir: Directory for cached documents.
            base_url: Dataserver endpoint (config.BASE_URL if None).
            hours: Number of hours of history to request.
            session: Optional requests.Session for dependency injection (testing).
            timeout: HTTP request timeout in seconds.
            max_age_seconds: Age after which a cached document is refetched.
        """
        super().__init__(cache_dir, max_age_seconds=max_age_seconds)
        self.base_url = base_url or config.BASE_URL
        self.hours = hours
        self._timeout = timeout
        self._owns_session = session is None
        self._session = session or requests.Session()
        self._session.headers.setdefault("User-Agent", self.USER_AGENT)

    def __enter__(self) -> 'AvWxSource':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        """Release the HTTP session if this source created it."""
        if self._session is not None and self._owns_session:
            self._session.close()
        self._session = None

    def request_params(self, station: str) -> dict:
        return {
            "dataSource": "metars",
            "requestType": "retrieve",
            "format": "xml",
            "stationString": station,
            "hoursBeforeNow": str(self.hours),
        }

    def fetch_document(self, station: str) -> Optional[bytes]:
        """
        Make HTTP GET request and return the raw XML.

        Handles 204 (no data) and any transport failure by returning None.
        """
        if self._session is None:
            raise RuntimeError("AvWxSource is closed")
        try:
            response = self._session.get(
                self.base_url,
                params=self.request_params(station),
                timeout=self._timeout,
                allow_redirects=True,
            )
            if response.status_code == 204:
                return None
            response.raise_for_status()
            return response.content
        except requests.RequestException as e:
            logger.warning("AvWx fetch failed for %s: %s", station, e)
            return None
