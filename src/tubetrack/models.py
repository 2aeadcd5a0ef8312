"""Data models for TubeTrack."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

Coordinate = Tuple[float, float]  # (longitude, latitude)

# TfL brand colours, keyed by line id
LINE_COLOURS = {
    "bakerloo": "#B36305",
    "central": "#E32017",
    "circle": "#FFD300",
    "district": "#00782A",
    "hammersmith-city": "#F3A9BB",
    "jubilee": "#A0A5A9",
    "metropolitan": "#9B0056",
    "northern": "#000000",
    "piccadilly": "#003688",
    "victoria": "#00A0E2",
    "waterloo-city": "#95CDBA",
}
DEFAULT_LINE_COLOUR = "#888888"


@dataclass(frozen=True)
class Segment:
    """One continuous polyline belonging to a line."""
    line_id: str
    index: int  # Position within the owning line
    points: Tuple[Coordinate, ...]

    def contains(self, coordinate: Coordinate) -> bool:
        return coordinate in self.points


@dataclass(frozen=True)
class Line:
    """A tube line and its segments, fixed for one refresh cycle."""
    line_id: str
    colour: str
    segments: Tuple[Segment, ...]


@dataclass
class Station:
    """A canonical station and the lines it was matched to."""
    name: str
    longitude: float
    latitude: float
    lines: List[str] = field(default_factory=list)  # Line ids, membership order

    @property
    def coordinate(self) -> Coordinate:
        return (self.longitude, self.latitude)


@dataclass(frozen=True)
class StationRecord:
    """Raw station record as returned by the route source."""
    name: str
    lon: float
    lat: float


@dataclass
class RouteData:
    """Route geometry and stations for a single line."""
    stations: List[StationRecord]
    line_strings: list  # Serialized coordinate groups, one per segment


class DescriptorKind(Enum):
    AT = "at"
    AT_PLATFORM = "at_platform"
    BETWEEN = "between"
    APPROACHING = "approaching"
    LEAVING = "leaving"
    LEFT = "left"
    DEPARTED = "departed"
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class LocationDescriptor:
    """Structured interpretation of an arrival's free-text location."""
    kind: DescriptorKind
    raw_text: str
    station: Optional[str] = None
    other_station: Optional[str] = None  # Only set for BETWEEN

    @property
    def recognized(self) -> bool:
        return self.kind is not DescriptorKind.UNRECOGNIZED


@dataclass(frozen=True)
class ArrivalPrediction:
    """One vehicle's prediction record from the arrivals feed."""
    line_id: str
    current_location: str
    station_name: str
    towards: str
    vehicle_id: Optional[str] = None


@dataclass(frozen=True)
class ResolvedStations:
    """Canonical station coordinates on the line/segment they were matched to."""
    line_id: str
    segment: Segment
    start: Coordinate
    end: Coordinate  # Same as start for single-station states

    @property
    def is_pair(self) -> bool:
        return self.start != self.end


@dataclass(frozen=True)
class ResolvedPosition:
    """Estimated vehicle position handed to the rendering layer."""
    line_id: str
    longitude: float
    latitude: float
    vehicle_id: Optional[str] = None
    towards: Optional[str] = None

