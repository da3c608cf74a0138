from __future__ import annotations

import math
from functools import lru_cache
from typing import Dict, List, Optional, Tuple

from pyproj import Geod
from shapely.geometry import LineString, Point, Polygon

from hdmap.errors import LaneGeometryError
from hdmap.geo.projection import Projection, create_projection

_GEOD = Geod(ellps="WGS84")

SAMPLE_STEP_M = 1.0
SNAP_THRESHOLD_M = 5.0


@lru_cache(maxsize=64)
def _local_projection(lat: float, lon: float) -> Projection:
    return create_projection(lat, lon)


def local_projection_for(line: LineString) -> Projection:
    lon, lat = line.coords[0][:2]
    return _local_projection(round(float(lat), 6), round(float(lon), 6))


def line_length(line: LineString) -> float:
    coords = list(line.coords)
    if len(coords) < 2:
        return 0.0
    lons = [c[0] for c in coords]
    lats = [c[1] for c in coords]
    return float(_GEOD.line_length(lons, lats))


def bearing(a, b) -> float:
    az, _, _ = _GEOD.inv(a[0], a[1], b[0], b[1])
    return float(az)


def compute_start_heading(line: LineString) -> float:
    coords = list(line.coords)
    if len(coords) < 2:
        return 0.0
    # compass bearing (N=0, CW) -> math angle (E=0, CCW)
    return math.radians(90.0 - bearing(coords[0], coords[1]))


def point_along(line: LineString, distance_m: float) -> Point:
    coords = list(line.coords)
    if len(coords) < 2 or distance_m <= 0:
        return Point(coords[0][:2])
    travelled = 0.0
    for a, b in zip(coords[:-1], coords[1:]):
        az, _, seg = _GEOD.inv(a[0], a[1], b[0], b[1])
        if travelled + seg >= distance_m:
            lon, lat, _ = _GEOD.fwd(a[0], a[1], az, distance_m - travelled)
            return Point(float(lon), float(lat))
        travelled += seg
    return Point(coords[-1][:2])


def point_to_s(line: LineString, point, projection: Optional[Projection] = None) -> float:
    proj = projection or local_projection_for(line)
    enu = LineString(proj.to_enu_many(line.coords))
    x, y = proj.to_enu(point.x, point.y) if isinstance(point, Point) else proj.to_enu(point[0], point[1])
    return float(enu.project(Point(x, y)))


def _offset(enu_line: LineString, distance: float, lane_id: str) -> LineString:
    out = enu_line.offset_curve(distance, join_style="mitre", mitre_limit=5.0)
    if out.is_empty or out.geom_type != "LineString":
        raise LaneGeometryError(f"offset_failed:{out.geom_type}", lane_id)
    return out


def compute_boundaries(
    center_line: LineString,
    width: float,
    projection: Optional[Projection] = None,
    lane_id: str = "",
) -> Tuple[LineString, LineString]:
    if width <= 0:
        raise LaneGeometryError(f"non_positive_width:{width}", lane_id)
    proj = projection or local_projection_for(center_line)
    enu = LineString(proj.to_enu_many(center_line.coords))
    if enu.length <= 0:
        raise LaneGeometryError("degenerate_centerline", lane_id)
    if not enu.is_simple:
        raise LaneGeometryError("self_intersecting_centerline", lane_id)
    half = width / 2.0
    left = _offset(enu, half, lane_id)
    right = _offset(enu, -half, lane_id)
    return (
        LineString(proj.to_lnglat_many(left.coords)),
        LineString(proj.to_lnglat_many(right.coords)),
    )


def compute_lane_samples(center_line: LineString, width: float) -> Tuple[List[Dict[str, float]], List[Dict[str, float]]]:
    total = line_length(center_line)
    half = width / 2.0
    left: List[Dict[str, float]] = []
    right: List[Dict[str, float]] = []
    s = 0.0
    while s <= total:
        left.append({"s": s, "width": half})
        right.append({"s": s, "width": half})
        s += SAMPLE_STEP_M
    if total % SAMPLE_STEP_M != 0:
        left.append({"s": total, "width": half})
        right.append({"s": total, "width": half})
    return left, right


def build_lane_polygon(left: LineString, right: LineString) -> Polygon:
    left_coords = list(left.coords)
    right_coords = list(right.coords)
    ring = left_coords + right_coords[::-1] + [left_coords[0]]
    return Polygon(ring)


def lane_midpoint_info(center_line: LineString) -> Tuple[Point, float]:
    """Arc-length midpoint and the first-to-last bearing (a coarse lane direction)."""
    mid = point_along(center_line, line_length(center_line) / 2.0)
    coords = list(center_line.coords)
    return mid, bearing(coords[0], coords[-1])


def snap_lane_endpoints(
    from_line: LineString,
    to_line: LineString,
    threshold_m: float = SNAP_THRESHOLD_M,
) -> Optional[LineString]:
    from_end = from_line.coords[-1]
    to_coords = list(to_line.coords)
    _, _, dist = _GEOD.inv(from_end[0], from_end[1], to_coords[0][0], to_coords[0][1])
    if dist > threshold_m:
        return None
    return LineString([from_end] + to_coords[1:])


__all__ = [
    "SAMPLE_STEP_M",
    "SNAP_THRESHOLD_M",
    "bearing",
    "build_lane_polygon",
    "compute_boundaries",
    "compute_lane_samples",
    "compute_start_heading",
    "lane_midpoint_info",
    "line_length",
    "local_projection_for",
    "point_along",
    "point_to_s",
    "snap_lane_endpoints",
]
