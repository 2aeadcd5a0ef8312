"""Main TubeTrack position tracker."""

import itertools
import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple, TypeVar

from .descriptor_parser import parse_location
from .geometry import GeometryIndex
from .models import ArrivalPrediction, Line, ResolvedPosition, RouteData, Station
from .projector import PositionProjector
from .station_catalog import StationCatalog
from .station_resolver import StationResolver
from .tfl_client import TfLClient

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 8

T = TypeVar("T")
ErrorSink = Callable[[str, Exception], None]


@dataclass
class RefreshResult:
    """Snapshot produced by one refresh cycle."""
    lines: List[Line]
    catalog: StationCatalog
    positions: List[ResolvedPosition]
    errors: List[Tuple[str, str]]  # (line_id, message)
    refreshed_at: datetime


class TubePositionTracker:
    """
    Estimates live vehicle positions along tube lines.

    Each call to refresh() runs one cycle:
    - Fetch the line list, then every line's route concurrently
    - Build the geometry index and station catalog once all routes are in
    - Fetch every line's arrivals concurrently
    - Parse, resolve and project each arrival to a ResolvedPosition

    A failure for one line only empties that line's contribution. Only a
    failure to fetch the line list aborts the cycle.
    """

    def __init__(
        self,
        client: Optional[TfLClient] = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
        error_sink: Optional[ErrorSink] = None,
        projector: Optional[PositionProjector] = None,
    ):
        """
        Initialize the tracker.

        Args:
            client: TfL API client. A default client is created if not given.
            max_workers: Maximum number of concurrent fetches per stage.
            error_sink: Called with (line_id, exception) for every per-line fetch failure.
            projector: Position projector. Defaults to the midpoint projector.
        """
        self.client = client or TfLClient()
        self.max_workers = max_workers
        self.error_sink = error_sink
        self.projector = projector or PositionProjector()

        self.index = GeometryIndex()
        self.catalog = StationCatalog()
        self.resolver = StationResolver(self.index, self.catalog)
        self.latest: Optional[RefreshResult] = None
        self._cycles = itertools.count(1)
        self._current_cycle = 0

    def refresh(self) -> RefreshResult:
        """
        Run one refresh cycle.

        Returns:
            RefreshResult with the lines, catalog and positions for this cycle.

        Raises:
            requests.RequestException, ValueError: If the line list cannot be fetched.
        """
        cycle = next(self._cycles)
        self._current_cycle = cycle
        errors: List[Tuple[str, str]] = []

        try:
            line_ids = self.client.get_line_ids()
        except Exception as e:
            logger.error(f"Failed to fetch line list: {e}")
            raise

        routes = self._fetch_all(line_ids, self.client.get_route, "route", errors)

        # Join point: nothing is resolved until every route is in
        index, catalog = self._build(line_ids, routes, errors)
        resolver = StationResolver(index, catalog)

        arrivals = self._fetch_all(
            [line_id for line_id in line_ids if line_id in routes],
            self.client.get_arrivals,
            "arrivals",
            errors,
        )

        positions: List[ResolvedPosition] = []
        for line_id in line_ids:
            for arrival in arrivals.get(line_id, []):
                try:
                    position = self._locate(resolver, arrival)
                except Exception as e:
                    logger.warning(f"Failed to locate arrival on {line_id}: {e}")
                    continue
                if position is not None:
                    positions.append(position)

        result = RefreshResult(
            lines=index.lines,
            catalog=catalog,
            positions=positions,
            errors=errors,
            refreshed_at=datetime.now(),
        )

        if cycle != self._current_cycle:
            logger.info(f"Discarding stale refresh cycle {cycle}")
            return result

        self.index, self.catalog, self.resolver = index, catalog, resolver
        self.latest = result
        logger.info(
            f"Refresh {cycle}: {len(positions)} positions across {len(index.line_ids)} lines "
            f"({len(errors)} failures)"
        )
        return result

    def _fetch_all(
        self,
        line_ids: List[str],
        fetch: Callable[[str], T],
        kind: str,
        errors: List[Tuple[str, str]],
    ) -> Dict[str, T]:
        """Run one fetch per line concurrently and wait for all of them."""
        results: Dict[str, T] = {}
        if not line_ids:
            return results

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(line_ids))) as executor:
            futures = {executor.submit(fetch, line_id): line_id for line_id in line_ids}
            for future in as_completed(futures):
                line_id = futures[future]
                try:
                    results[line_id] = future.result()
                except Exception as e:
                    logger.warning(f"Failed to fetch {kind} for {line_id}: {e}")
                    errors.append((line_id, f"{kind}: {e}"))
                    self._report(line_id, e)
        return results

    def _report(self, line_id: str, error: Exception) -> None:
        if self.error_sink is None:
            return
        try:
            self.error_sink(line_id, error)
        except Exception as e:
            logger.error(f"Error sink failed for {line_id}: {e}", exc_info=True)

    def _build(
        self,
        line_ids: List[str],
        routes: Dict[str, RouteData],
        errors: List[Tuple[str, str]],
    ) -> Tuple[GeometryIndex, StationCatalog]:
        """Build the geometry index and station catalog, in line list order."""
        index = GeometryIndex()
        catalog = StationCatalog()

        for line_id in line_ids:
            route = routes.get(line_id)
            if route is None:
                continue
            try:
                index.add_line(line_id, route.line_strings)
            except Exception as e:
                logger.warning(f"Failed to build geometry for {line_id}: {e}")
                errors.append((line_id, f"route: {e}"))
                self._report(line_id, e)
                del routes[line_id]
                continue
            catalog.add_stations(route.stations)

        catalog.build_membership(index)
        return index, catalog

    def locate(self, arrival: ArrivalPrediction) -> Optional[ResolvedPosition]:
        """
        Estimate the position of one arrival against the latest snapshot.

        Args:
            arrival: Prediction from the arrivals feed.

        Returns:
            ResolvedPosition, or None if the location could not be parsed or resolved.
        """
        return self._locate(self.resolver, arrival)

    def _locate(self, resolver: StationResolver, arrival: ArrivalPrediction) -> Optional[ResolvedPosition]:
        descriptor = parse_location(arrival.current_location, arrival.station_name)
        if not descriptor.recognized:
            return None

        resolved = resolver.resolve(descriptor, arrival.line_id)
        if resolved is None:
            logger.debug(f"Could not resolve {arrival.current_location!r} on {arrival.line_id}")
            return None

        longitude, latitude = self.projector.project(resolved)
        return ResolvedPosition(
            line_id=resolved.line_id,
            longitude=longitude,
            latitude=latitude,
            vehicle_id=arrival.vehicle_id,
            towards=arrival.towards,
        )

    def poll(
        self,
        interval: float,
        on_update: Callable[[RefreshResult], None],
        max_cycles: Optional[int] = None,
    ) -> None:
        """
        Refresh repeatedly, handing each result to a callback.

        A failed cycle is logged and skipped; the previous result stays in
        self.latest.

        Args:
            interval: Seconds to wait between cycles.
            on_update: Called with every successful RefreshResult.
            max_cycles: Stop after this many cycles. Runs forever if None.
        """
        completed = 0
        while max_cycles is None or completed < max_cycles:
            try:
                result = self.refresh()
                # A cycle overtaken by a newer one is not published
                if result is self.latest:
                    on_update(result)
            except Exception as e:
                logger.error(f"Refresh failed: {e}", exc_info=True)
            completed += 1
            if max_cycles is None or completed < max_cycles:
                time.sleep(interval)

    def get_line(self, line_id: str) -> Line:
        """
        Get a line from the latest snapshot.

        Raises:
            ValueError: If the line is not known.
        """
        return self.index.get_line(line_id)

    def find_stations_by_name(self, name: str) -> List[Station]:
        """
        Find all stations matching a name (partial match).

        Args:
            name: Station name or partial name.

        Returns:
            List of matching Station objects.
        """
        return self.catalog.find_stations_by_name(name)

    def cleanup(self) -> None:
        """Release resources and clear caches."""
        if self.client:
            self.client.clear_cache()
        logger.info("Cleaned up tracker resources")
