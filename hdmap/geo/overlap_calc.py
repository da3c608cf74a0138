from __future__ import annotations

import logging
from dataclasses import dataclass, field
from itertools import count
from typing import Dict, List, Optional, Tuple

from shapely.geometry import LineString, Point, Polygon

from hdmap.geo.lane_geometry import line_length
from hdmap.geo.projection import Projection, require_projection
from hdmap.geo.shapes import require_line, require_polygon
from hdmap.schema import Lane, MapElements

LOG = logging.getLogger("overlap_calc")

LINE_OVERLAP_HALF_WINDOW_M = 0.5


@dataclass
class OverlapResult:
    overlaps: List[dict] = field(default_factory=list)
    lane_overlap_ids: Dict[str, List[str]] = field(default_factory=dict)
    element_overlap_ids: Dict[str, List[str]] = field(default_factory=dict)


@dataclass
class LaneShape:
    lane_id: str
    enu: LineString
    length: float


@dataclass
class _TargetGroup:
    mode: str
    info_key: str
    items: List[Tuple[str, object]]


def lane_shape(lane: Lane, projection: Projection) -> LaneShape:
    line = require_line(lane.center_line, lane.id)
    return LaneShape(
        lane_id=lane.id,
        enu=LineString(projection.to_enu_many(line.coords)),
        length=line_length(line),
    )


def _intersection_points(geom) -> List[Point]:
    if geom is None or geom.is_empty:
        return []
    if geom.geom_type == "Point":
        return [geom]
    if geom.geom_type in ("LineString", "LinearRing"):
        coords = list(geom.coords)
        return [Point(coords[0]), Point(coords[-1])] if coords else []
    if hasattr(geom, "geoms"):
        out: List[Point] = []
        for g in geom.geoms:
            out.extend(_intersection_points(g))
        return out
    return []


def _s_of(shape: LaneShape, pt: Point) -> float:
    # planar ENU projection, kept inside the geodesic lane length
    return max(0.0, min(shape.length, float(shape.enu.project(pt))))


def lane_polygon_overlap(shape: LaneShape, polygon: Polygon) -> Optional[Tuple[float, float]]:
    # a centerline fully inside the polygon never crosses the ring and is not reported
    pts = _intersection_points(shape.enu.intersection(polygon.exterior))
    if not pts:
        return None
    s_list = sorted(_s_of(shape, p) for p in pts)
    return s_list[0], s_list[-1]


def lane_line_overlap(shape: LaneShape, line: LineString) -> Optional[Tuple[float, float]]:
    pts = _intersection_points(shape.enu.intersection(line))
    if not pts:
        return None
    s = min(_s_of(shape, p) for p in pts)
    return (
        max(0.0, s - LINE_OVERLAP_HALF_WINDOW_M),
        min(shape.length, s + LINE_OVERLAP_HALF_WINDOW_M),
    )


def lane_in_junction(shape: LaneShape, polygon: Polygon) -> bool:
    coords = list(shape.enu.coords)
    mid = Point(coords[len(coords) // 2])
    return bool(polygon.covers(mid))


def _enu_line(projection: Projection, geom, element_id: str) -> LineString:
    line = require_line(geom, element_id)
    return LineString(projection.to_enu_many(line.coords))


def _enu_polygon(projection: Projection, geom, element_id: str) -> Polygon:
    poly = require_polygon(geom, element_id)
    return Polygon(projection.to_enu_many(poly.exterior.coords))


def _target_groups(elements: MapElements, projection: Projection) -> List[_TargetGroup]:
    p = projection
    return [
        _TargetGroup("polygon", "crosswalkOverlapInfo", [(e.id, _enu_polygon(p, e.polygon, e.id)) for e in elements.crosswalks]),
        _TargetGroup("line", "signalOverlapInfo", [(e.id, _enu_line(p, e.stop_line, e.id)) for e in elements.signals]),
        _TargetGroup("line", "stopSignOverlapInfo", [(e.id, _enu_line(p, e.stop_line, e.id)) for e in elements.stop_signs]),
        _TargetGroup("junction", "junctionOverlapInfo", [(e.id, _enu_polygon(p, e.polygon, e.id)) for e in elements.junctions]),
        _TargetGroup("polygon", "clearAreaOverlapInfo", [(e.id, _enu_polygon(p, e.polygon, e.id)) for e in elements.clear_areas]),
        _TargetGroup("line", "speedBumpOverlapInfo", [(e.id, _enu_line(p, e.line, e.id)) for e in elements.speed_bumps]),
    ]


def _detect(mode: str, shape: LaneShape, geom) -> Optional[Tuple[float, float]]:
    if mode == "polygon":
        return lane_polygon_overlap(shape, geom)
    if mode == "line":
        return lane_line_overlap(shape, geom)
    if lane_in_junction(shape, geom):
        return 0.0, shape.length
    return None


def make_overlap(oid: str, lane_id: str, start_s: float, end_s: float, other_id: str, info_key: str) -> dict:
    return {
        "id": {"id": oid},
        "object": [
            {
                "id": {"id": lane_id},
                "laneOverlapInfo": {"startS": start_s, "endS": end_s, "isMerge": False},
            },
            {"id": {"id": other_id}, info_key: {}},
        ],
    }


def compute_all_overlaps(elements: MapElements, projection: Optional[Projection]) -> OverlapResult:
    proj = require_projection(projection)
    ids = count(1)
    result = OverlapResult()
    shapes = [lane_shape(lane, proj) for lane in elements.lanes]
    groups = _target_groups(elements, proj)

    for group in groups:
        for shape in shapes:
            for other_id, geom in group.items:
                rng = _detect(group.mode, shape, geom)
                if rng is None:
                    continue
                oid = f"overlap_{next(ids)}"
                result.overlaps.append(make_overlap(oid, shape.lane_id, rng[0], rng[1], other_id, group.info_key))
                result.lane_overlap_ids.setdefault(shape.lane_id, []).append(oid)
                result.element_overlap_ids.setdefault(other_id, []).append(oid)

    LOG.info(
        "overlaps=%d lanes=%d targets=%d",
        len(result.overlaps),
        len(shapes),
        sum(len(g.items) for g in groups),
    )
    return result


__all__ = [
    "LINE_OVERLAP_HALF_WINDOW_M",
    "LaneShape",
    "OverlapResult",
    "compute_all_overlaps",
    "lane_in_junction",
    "lane_line_overlap",
    "lane_polygon_overlap",
    "lane_shape",
    "make_overlap",
]
