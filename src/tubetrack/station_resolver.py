"""Fuzzy resolution of feed station names to catalog stations."""

import logging
from typing import List, Optional

from .geometry import GeometryIndex
from .models import Coordinate, DescriptorKind, LocationDescriptor, ResolvedStations, Segment, Station
from .station_catalog import StationCatalog

logger = logging.getLogger(__name__)


class StationResolver:
    """
    Resolves free-text station references against a catalog.

    Lines are scanned in index order and the first line that matches wins,
    even when a later line would be a closer match.
    """

    def __init__(self, index: GeometryIndex, catalog: StationCatalog):
        self.index = index
        self.catalog = catalog

    def resolve(self, descriptor: LocationDescriptor, line_id: str) -> Optional[ResolvedStations]:
        """
        Resolve a parsed location descriptor.

        Args:
            descriptor: Output of parse_location().
            line_id: Line the arrival was reported on. Scopes single-station lookups.

        Returns:
            ResolvedStations, or None if the descriptor is unrecognized or names
            stations that cannot be found.
        """
        if descriptor.kind is DescriptorKind.UNRECOGNIZED:
            return None
        if descriptor.kind is DescriptorKind.BETWEEN:
            return self.resolve_pair(descriptor.station, descriptor.other_station)
        return self.resolve_station(descriptor.station, line_id)

    def resolve_pair(self, reference_a: str, reference_b: str) -> Optional[ResolvedStations]:
        """Find the first line whose stations match both references."""
        if not isinstance(reference_a, str) or not isinstance(reference_b, str) or not reference_a or not reference_b:
            return None

        for line_id in self.index.line_ids:
            stations = self.catalog.stations_for_line(line_id)
            station_a = self._first_match(stations, reference_a)
            if station_a is None:
                continue
            station_b = self._first_match(stations, reference_b)
            if station_b is None:
                continue

            start, end = station_a.coordinate, station_b.coordinate
            segment = self._owning_segment(line_id, start, end)
            if segment is None:
                continue
            logger.debug(f"Resolved {reference_a!r}/{reference_b!r} to {station_a.name}/{station_b.name} on {line_id}")
            return ResolvedStations(line_id=line_id, segment=segment, start=start, end=end)

        logger.debug(f"No line serves both {reference_a!r} and {reference_b!r}")
        return None

    def resolve_station(self, reference: str, line_id: str) -> Optional[ResolvedStations]:
        """Find a single station among the member stations of a line."""
        if not isinstance(reference, str) or not reference or not self.index.has_line(line_id):
            return None

        station = self._first_match(self.catalog.stations_for_line(line_id), reference)
        if station is None:
            logger.debug(f"No station matching {reference!r} on {line_id}")
            return None

        coordinate = station.coordinate
        segment = self._owning_segment(line_id, coordinate, coordinate)
        if segment is None:
            return None
        return ResolvedStations(line_id=line_id, segment=segment, start=coordinate, end=coordinate)

    @staticmethod
    def _first_match(stations: List[Station], reference: str) -> Optional[Station]:
        reference_lower = reference.lower()
        for station in stations:
            if reference_lower in station.name.lower():
                return station
        return None

    def _owning_segment(self, line_id: str, start: Coordinate, end: Coordinate) -> Optional[Segment]:
        """Prefer a segment holding both coordinates, else one holding the start."""
        fallback = None
        for segment in self.index.get_line(line_id).segments:
            if segment.contains(start):
                if segment.contains(end):
                    return segment
                if fallback is None:
                    fallback = segment
        return fallback
