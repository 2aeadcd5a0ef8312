"""Projection of resolved stations onto line geometry."""

from typing import Optional, Sequence

from shapely.geometry import LineString, Point

from .models import Coordinate, ResolvedStations


class PositionProjector:
    """
    Computes a single renderable coordinate from resolved stations.

    The feed gives no timing or progress between stations, so a vehicle
    between two stations is placed at the midpoint of the pair, snapped to the
    nearest point of the owning segment. Distances are planar in lon/lat,
    which is adequate at the scale of adjacent stations.
    """

    def __init__(self, default_fraction: float = 0.5):
        """
        Args:
            default_fraction: Where to place a vehicle between its two stations,
                from 0.0 (the first station) to 1.0 (the second).
        """
        self.default_fraction = default_fraction

    def project(self, resolved: ResolvedStations, fraction: Optional[float] = None) -> Coordinate:
        """
        Compute the vehicle position.

        Args:
            resolved: Output of StationResolver.
            fraction: Optional progress from start to end station; overrides the
                default when the feed provides something better than a guess.

        Returns:
            (longitude, latitude)
        """
        if not resolved.is_pair:
            return resolved.start

        if fraction is None:
            fraction = self.default_fraction
        fraction = min(max(fraction, 0.0), 1.0)

        (lon_a, lat_a), (lon_b, lat_b) = resolved.start, resolved.end
        target = (lon_a + (lon_b - lon_a) * fraction, lat_a + (lat_b - lat_a) * fraction)
        return snap_to_polyline(target, resolved.segment.points)


def snap_to_polyline(point: Coordinate, polyline: Sequence[Coordinate]) -> Coordinate:
    """Return the point on the polyline closest to the given point."""
    if not polyline:
        return point
    if len(set(polyline)) == 1:
        return tuple(polyline[0])

    line = LineString(polyline)
    snapped = line.interpolate(line.project(Point(point)))
    return (snapped.x, snapped.y)
