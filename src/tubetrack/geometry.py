"""Line geometry index built from TfL route line strings."""

import json
import logging
from typing import Dict, Iterable, List, Optional, Tuple

from .models import Coordinate, DEFAULT_LINE_COLOUR, LINE_COLOURS, Line, Segment

logger = logging.getLogger(__name__)


class GeometryIndex:
    """Normalizes per-line polylines into segments and indexes their points."""

    def __init__(self):
        """Initialize an empty index."""
        self._lines: Dict[str, Line] = {}
        self._segments_by_point: Dict[Coordinate, List[Segment]] = {}

    def add_line(self, line_id: str, line_strings: Iterable, colour: Optional[str] = None) -> Line:
        """
        Build the segments for a line and add them to the index.

        Args:
            line_id: TfL line id (e.g., "central")
            line_strings: Coordinate groups in route order. Each group is either the
                JSON string TfL serves (e.g., "[[[-0.1,51.5],[-0.2,51.6]]]") or an
                already decoded list of point lists.
            colour: Display colour. Defaults to the TfL colour for the line.

        Returns:
            The Line that was added. Adding the same line id again replaces it.
        """
        segments: List[Segment] = []

        for group_number, group in enumerate(line_strings):
            points = self._flatten_group(line_id, group_number, group)
            if not points:
                logger.debug(f"Dropping empty geometry group {group_number} for {line_id}")
                continue
            segments.append(Segment(line_id=line_id, index=len(segments), points=tuple(points)))

        if colour is None:
            colour = LINE_COLOURS.get(line_id, DEFAULT_LINE_COLOUR)

        line = Line(line_id=line_id, colour=colour, segments=tuple(segments))
        if line_id in self._lines:
            self._unindex(self._lines[line_id])
        self._lines[line_id] = line

        for segment in segments:
            for point in segment.points:
                bucket = self._segments_by_point.setdefault(point, [])
                # A segment can pass through the same point twice (loops)
                if not bucket or bucket[-1] is not segment:
                    bucket.append(segment)

        logger.debug(f"Indexed {len(segments)} segments for {line_id}")
        return line

    @staticmethod
    def _flatten_group(line_id: str, group_number: int, group) -> List[Coordinate]:
        """Flatten one group's point lists into a single ordered point list."""
        if isinstance(group, str):
            try:
                group = json.loads(group)
            except ValueError as e:
                logger.warning(f"Could not decode geometry group {group_number} for {line_id}: {e}")
                return []

        points: List[Coordinate] = []
        if not isinstance(group, list):
            return points

        for point_list in group:
            if not isinstance(point_list, list):
                continue
            for point in point_list:
                try:
                    lon, lat = point[0], point[1]
                    points.append((float(lon), float(lat)))
                except (TypeError, ValueError, LookupError):
                    logger.warning(f"Skipping malformed point {point!r} on {line_id}")
        return points

    def _unindex(self, line: Line) -> None:
        for segment in line.segments:
            for point in segment.points:
                bucket = self._segments_by_point.get(point)
                if bucket is None:
                    continue
                bucket[:] = [s for s in bucket if s is not segment]
                if not bucket:
                    del self._segments_by_point[point]

    def segments_at(self, longitude: float, latitude: float) -> List[Segment]:
        """Return every segment with a point exactly at the given coordinate."""
        return list(self._segments_by_point.get((longitude, latitude), []))

    def get_line(self, line_id: str) -> Line:
        """Get a line by id."""
        if line_id not in self._lines:
            raise ValueError(f"Line {line_id} not found")
        return self._lines[line_id]

    def has_line(self, line_id: str) -> bool:
        return line_id in self._lines

    @property
    def line_ids(self) -> List[str]:
        """Line ids in the order they were added."""
        return list(self._lines)

    @property
    def lines(self) -> List[Line]:
        return list(self._lines.values())

    def points(self) -> Iterable[Tuple[Segment, Coordinate]]:
        """Yield (segment, point) pairs in line, segment and traversal order."""
        for line in self._lines.values():
            for segment in line.segments:
                for point in segment.points:
                    yield segment, point
