"""Station catalog and station-to-line membership."""

import logging
from typing import Dict, Iterable, List, Tuple

from .geometry import GeometryIndex
from .models import Coordinate, Station, StationRecord

logger = logging.getLogger(__name__)


class StationCatalog:
    """
    Canonical station names and coordinates for one refresh cycle.

    Membership of a station in a line is established by exact coordinate
    equality with a point of one of the line's segments. A station whose
    coordinate is not shared byte-for-byte with the route geometry stays in
    the catalog but belongs to no line.
    """

    def __init__(self):
        """Initialize an empty catalog."""
        self.stations: Dict[str, Station] = {}
        self._membership: Dict[str, List[Tuple[str, int]]] = {}  # name -> [(line_id, segment index)]
        self._stations_by_line: Dict[str, List[str]] = {}  # line_id -> [names]

    def add_stations(self, records: Iterable[StationRecord]) -> None:
        """
        Add station records to the name -> coordinate map.

        The same station may be repeated (e.g. once per direction); the last
        record for a name wins.
        """
        for record in records:
            if not isinstance(record.name, str) or not record.name:
                logger.warning(f"Skipping station without a name: {record!r}")
                continue
            existing = self.stations.get(record.name)
            if existing is not None and existing.coordinate != (record.lon, record.lat):
                logger.debug(f"Replacing coordinate for {record.name}")
            self.stations[record.name] = Station(
                name=record.name,
                longitude=record.lon,
                latitude=record.lat,
            )

    def build_membership(self, index: GeometryIndex) -> None:
        """Match every segment point against the catalog coordinates."""
        names_by_coordinate: Dict[Coordinate, List[str]] = {}
        for name, station in self.stations.items():
            station.lines = []
            names_by_coordinate.setdefault(station.coordinate, []).append(name)

        self._membership = {}
        self._stations_by_line = {line_id: [] for line_id in index.line_ids}

        for segment, point in index.points():
            for name in names_by_coordinate.get(point, []):
                edges = self._membership.setdefault(name, [])
                edge = (segment.line_id, segment.index)
                if edge not in edges:
                    edges.append(edge)
                station = self.stations[name]
                if segment.line_id not in station.lines:
                    station.lines.append(segment.line_id)

        # Member stations keep catalog insertion order within each line
        for name, station in self.stations.items():
            for line_id in station.lines:
                self._stations_by_line[line_id].append(name)

        unmatched = [name for name in self.stations if name not in self._membership]
        if unmatched:
            logger.debug(f"{len(unmatched)} stations do not coincide with any route point")
        logger.debug(f"Built membership for {len(self._membership)} stations")

    def get_station(self, name: str) -> Station:
        """Get station by exact canonical name."""
        if name not in self.stations:
            raise ValueError(f"Station {name} not found")
        return self.stations[name]

    def find_stations_by_name(self, name: str) -> List[Station]:
        """Find stations by name (partial match)."""
        name_lower = name.lower()
        return [station for station_name, station in self.stations.items() if name_lower in station_name.lower()]

    def stations_for_line(self, line_id: str) -> List[Station]:
        """Get the member stations of a line in catalog order."""
        return [self.stations[name] for name in self._stations_by_line.get(line_id, [])]

    def membership(self, name: str) -> List[Tuple[str, int]]:
        """Get the (line_id, segment index) pairs a station belongs to."""
        return list(self._membership.get(name, []))

    def __len__(self) -> int:
        return len(self.stations)
