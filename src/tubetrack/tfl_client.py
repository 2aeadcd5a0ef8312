"""TfL Unified API client for lines, route geometry and arrivals."""

import logging
import threading
import time
from typing import Any, Dict, List, Optional, Tuple

import requests

from .models import ArrivalPrediction, RouteData, StationRecord

logger = logging.getLogger(__name__)

TFL_BASE_URL = "https://api.tfl.gov.uk"
DEFAULT_MODE = "tube"
DEFAULT_DIRECTION = "outbound"
DEFAULT_TIMEOUT = 10  # seconds
DEFAULT_CACHE_TTL = 30  # seconds


class TfLClient:
    """Fetches and normalizes TfL line, route and arrival data."""

    def __init__(
        self,
        base_url: str = TFL_BASE_URL,
        mode: str = DEFAULT_MODE,
        direction: str = DEFAULT_DIRECTION,
        timeout: float = DEFAULT_TIMEOUT,
        cache_ttl: float = DEFAULT_CACHE_TTL,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: Root of the TfL Unified API.
            mode: Transport mode whose lines are listed (e.g., "tube").
            direction: Route sequence direction ("outbound" or "inbound").
            timeout: Per-request timeout in seconds.
            cache_ttl: How long line lists and routes are reused. Arrivals are never cached.
            session: Optional requests.Session to reuse connections.
        """
        self.base_url = base_url.rstrip("/")
        self.mode = mode
        self.direction = direction
        self.timeout = timeout
        self.session = session or requests.Session()
        self._cache: Dict[str, Tuple[Any, float]] = {}  # url -> (data, timestamp)
        self._cache_ttl = cache_ttl
        self._max_cache_size = 32
        self._cache_lock = threading.Lock()  # Routes are fetched from worker threads

    def get_line_ids(self) -> List[str]:
        """
        Get the ids of all lines for the configured mode.

        Returns:
            Line ids in the order TfL lists them.

        Raises:
            requests.RequestException: If the request fails.
            ValueError: If the response is not a list of line records.
        """
        data = self._get_json(f"/Line/Mode/{self.mode}", use_cache=True)
        if not isinstance(data, list):
            raise ValueError(f"Unexpected line list payload: {type(data).__name__}")

        line_ids = []
        for record in data:
            line_id = record.get("id") if isinstance(record, dict) else None
            if line_id:
                line_ids.append(line_id)
            else:
                logger.warning(f"Skipping line record without id: {record!r}")
        return line_ids

    def get_route(self, line_id: str) -> RouteData:
        """
        Get the route sequence for a line.

        Args:
            line_id: TfL line id (e.g., "central")

        Returns:
            RouteData with the line's stations and serialized line strings.
        """
        data = self._get_json(f"/Line/{line_id}/Route/Sequence/{self.direction}", use_cache=True)
        if not isinstance(data, dict):
            raise ValueError(f"Unexpected route payload for {line_id}: {type(data).__name__}")

        stations: List[StationRecord] = []
        for record in data.get("stations") or []:
            if not isinstance(record, dict) or not isinstance(record.get("name"), str):
                logger.warning(f"Skipping station without a name on {line_id}: {record!r}")
                continue
            try:
                stations.append(StationRecord(name=record["name"], lon=float(record["lon"]), lat=float(record["lat"])))
            except (KeyError, TypeError, ValueError):
                logger.warning(f"Skipping malformed station on {line_id}: {record!r}")

        return RouteData(stations=stations, line_strings=list(data.get("lineStrings") or []))

    def get_arrivals(self, line_id: str) -> List[ArrivalPrediction]:
        """
        Get the current arrival predictions for a line.

        Args:
            line_id: TfL line id (e.g., "central")

        Returns:
            List of ArrivalPrediction objects, in feed order.
        """
        data = self._get_json(f"/Line/{line_id}/Arrivals", use_cache=False)
        if not isinstance(data, list):
            raise ValueError(f"Unexpected arrivals payload for {line_id}: {type(data).__name__}")

        arrivals: List[ArrivalPrediction] = []
        for record in data:
            if not isinstance(record, dict):
                continue
            current_location = record.get("currentLocation") or ""
            station_name = record.get("stationName") or ""
            if not isinstance(current_location, str) or not isinstance(station_name, str):
                logger.warning(f"Skipping malformed arrival on {line_id}: {record!r}")
                continue
            arrivals.append(
                ArrivalPrediction(
                    line_id=record.get("lineId") or line_id,
                    current_location=current_location,
                    station_name=station_name,
                    towards=record.get("towards") or "",
                    vehicle_id=record.get("vehicleId"),
                )
            )
        return arrivals

    def _get_json(self, path: str, use_cache: bool) -> Any:
        """
        Fetch a JSON document, optionally through the cache.

        Args:
            path: API path, starting with "/".
            use_cache: Whether a cached response younger than the TTL may be returned.

        Returns:
            Decoded JSON.
        """
        url = f"{self.base_url}{path}"
        now = time.time()

        cached = self._cache.get(url) if use_cache else None
        if cached is not None:
            data, timestamp = cached
            if now - timestamp < self._cache_ttl:
                logger.debug(f"Using cached data for {url}")
                return data

        logger.debug(f"Fetching {url}")
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            logger.error(f"Failed to fetch {url}: {e}")
            raise

        if use_cache:
            self._store(url, data, now)
        return data

    def _store(self, url: str, data: Any, now: float) -> None:
        with self._cache_lock:
            # Evict expired entries to prevent unbounded growth
            self._evict_expired_cache(now)

            if len(self._cache) >= self._max_cache_size:
                oldest_key = min(self._cache.keys(), key=lambda k: self._cache[k][1])
                del self._cache[oldest_key]

            self._cache[url] = (data, now)

    def _evict_expired_cache(self, current_time: float) -> None:
        """Remove expired cache entries."""
        expired_keys = [
            url for url, (_, timestamp) in self._cache.items()
            if current_time - timestamp >= self._cache_ttl
        ]
        for key in expired_keys:
            del self._cache[key]

        if expired_keys:
            logger.debug(f"Evicted {len(expired_keys)} expired cache entries")

    def clear_cache(self) -> None:
        """Manually clear the cache."""
        with self._cache_lock:
            self._cache.clear()

    def close(self) -> None:
        self.session.close()
