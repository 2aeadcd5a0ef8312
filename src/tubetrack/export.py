"""pandas exports of tracker output for map rendering."""

from typing import Iterable

import pandas as pd

from .models import Line, ResolvedPosition

POSITION_COLUMNS = ["line_id", "longitude", "latitude", "vehicle_id", "towards"]
SEGMENT_COLUMNS = ["line_id", "segment", "order", "longitude", "latitude", "colour"]


def positions_to_frame(positions: Iterable[ResolvedPosition]) -> pd.DataFrame:
    """One row per vehicle position."""
    rows = [
        (p.line_id, p.longitude, p.latitude, p.vehicle_id, p.towards)
        for p in positions
    ]
    return pd.DataFrame(rows, columns=POSITION_COLUMNS)


def segments_to_frame(lines: Iterable[Line]) -> pd.DataFrame:
    """One row per route point, in traversal order within each segment."""
    rows = [
        (line.line_id, segment.index, order, lon, lat, line.colour)
        for line in lines
        for segment in line.segments
        for order, (lon, lat) in enumerate(segment.points)
    ]
    return pd.DataFrame(rows, columns=SEGMENT_COLUMNS)
