from __future__ import annotations

from hdmap.geo.lane_geometry import (
    build_lane_polygon,
    compute_boundaries,
    compute_lane_samples,
    compute_start_heading,
    lane_midpoint_info,
    line_length,
    point_to_s,
    snap_lane_endpoints,
)
from hdmap.geo.overlap_calc import OverlapResult, compute_all_overlaps
from hdmap.geo.projection import (
    Projection,
    create_projection,
    lnglat_to_enu,
    parse_proj_string,
    positions_to_enu,
)

__all__ = [
    "OverlapResult",
    "Projection",
    "build_lane_polygon",
    "compute_all_overlaps",
    "compute_boundaries",
    "compute_lane_samples",
    "compute_start_heading",
    "create_projection",
    "lane_midpoint_info",
    "line_length",
    "lnglat_to_enu",
    "parse_proj_string",
    "point_to_s",
    "positions_to_enu",
    "snap_lane_endpoints",
]
