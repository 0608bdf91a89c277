import re
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Optional, Tuple, Union

from metarwx import config

logger = logging.getLogger(__name__)

_UNSAFE_STATION_CHARS = re.compile(r"[^A-Za-z0-9]")


class CachedSource(ABC):
    """
    Base class for sources that cache raw station documents on disk.

    Each station has one cache file, ``metar-<STATION>.xml``, directly under
    the cache directory. A cached file is used when:
    - refresh is not forced, and
    - it is younger than max_age_seconds, or timestamps are ignored

    Otherwise the document is fetched with fetch_document() and the cache
    file replaced. A failed fetch returns None and leaves the cache as is.
    """

    def __init__(self, cache_dir: Union[str, Path, None] = None,
                 max_age_seconds: int = config.CACHE_MAX_AGE_SECONDS):
        """
        Initialize the cached source.

        Args:
            cache_dir: Directory for cache files (config.CACHE_DIR if None)
            max_age_seconds: Age after which a cache file is stale
        """
        self.cache_dir = Path(cache_dir if cache_dir is not None else config.CACHE_DIR)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.max_age_seconds = max_age_seconds
        self._force_refresh = False
        self._never_refresh = False

    @abstractmethod
    def fetch_document(self, station: str) -> Optional[bytes]:
        """Retrieve the raw document for a station, or None on failure."""

    def set_force_refresh(self, force_refresh: bool = True) -> None:
        """
        Set whether to force refresh of cached data.

        Args:
            force_refresh: Whether to force refresh of cached data
        """
        self._force_refresh = force_refresh

    def set_never_refresh(self, never_refresh: bool = True) -> None:
        """
        Set whether to ignore cache timestamps.
        If set to True, will use cached data if it exists, regardless of age.

        Args:
            never_refresh: Whether to never refresh cached data
        """
        self._never_refresh = never_refresh

    @staticmethod
    def normalize_station(station: str) -> str:
        """Upper-case a station code and strip characters unsafe in file names."""
        return _UNSAFE_STATION_CHARS.sub("", station).upper()

    def get_cache_file(self, station: str) -> Path:
        """Get the cache file path for a station."""
        name = self.normalize_station(station)
        return self.cache_dir / f"{config.CACHE_PREFIX}{name}{config.CACHE_SUFFIX}"

    def _is_cache_valid(self, cache_file: Path) -> Tuple[bool, Optional[str]]:
        """
        Check if the cache file is valid (exists and not too old).

        Returns:
            Tuple[bool, Optional[str]]: (is_valid, reason if invalid)
        """
        if self._force_refresh:
            return False, "force refresh"
        if not cache_file.exists():
            return False, "missing"
        if self._never_refresh:
            return True, None
        file_age = datetime.now() - datetime.fromtimestamp(cache_file.stat().st_mtime)
        if file_age.total_seconds() < self.max_age_seconds:
            return True, None
        return False, "expired"

    def _save_to_cache(self, data: bytes, cache_file: Path) -> None:
        try:
            cache_file.unlink(missing_ok=True)
            cache_file.write_bytes(data)
        except OSError as e:
            logger.warning("Could not write cache file %s: %s", cache_file, e)

    def get_document(self, station: str) -> Optional[bytes]:
        """
        Get a station document from cache or fetch it if needed.

        Args:
            station: ICAO station code

        Returns:
            Raw document bytes, or None if nothing could be retrieved
        """
        cache_file = self.get_cache_file(station)

        is_valid, reason = self._is_cache_valid(cache_file)
        if is_valid:
            data = cache_file.read_bytes()
            if data:
                logger.info(f"{cache_file.name} retrieved from cache")
                return data
            reason = "empty"

        data = self.fetch_document(self.normalize_station(station))
        if not data:
            return None

        self._save_to_cache(data, cache_file)
        logger.info(f"{cache_file.name} [{reason}] fetched using {self.__class__.__name__}")
        return data

    def purge(self) -> int:
        """
        Delete every cached station document in the cache directory.

        Returns:
            Number of files removed
        """
        removed = 0
        for cache_file in self.cache_dir.glob(f"{config.CACHE_PREFIX}*{config.CACHE_SUFFIX}"):
            try:
                cache_file.unlink()
                removed += 1
            except OSError as e:
                logger.warning("Could not remove %s: %s", cache_file, e)
        logger.info("Purged %d cached documents from %s", removed, self.cache_dir)
        return removed
