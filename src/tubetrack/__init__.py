"""TubeTrack - Live London Underground vehicle positions from TfL arrival predictions."""

__version__ = "0.1.0"

from .models import (
    ArrivalPrediction,
    DescriptorKind,
    Line,
    LocationDescriptor,
    ResolvedPosition,
    ResolvedStations,
    Segment,
    Station,
)
from .descriptor_parser import parse_location
from .geometry import GeometryIndex
from .station_catalog import StationCatalog
from .station_resolver import StationResolver
from .projector import PositionProjector
from .tfl_client import TfLClient
from .position_tracker import RefreshResult, TubePositionTracker

__all__ = [
    "TubePositionTracker",
    "TfLClient",
    "GeometryIndex",
    "StationCatalog",
    "StationResolver",
    "PositionProjector",
    "parse_location",
    "ArrivalPrediction",
    "DescriptorKind",
    "Line",
    "LocationDescriptor",
    "RefreshResult",
    "ResolvedPosition",
    "ResolvedStations",
    "Segment",
    "Station",
]
