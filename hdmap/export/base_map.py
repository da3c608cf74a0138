from __future__ import annotations

import logging
import math
from typing import Dict, List, Optional, Sequence, Tuple

from shapely.geometry import LineString, Polygon

from hdmap.enums import BoundaryType, RoadType
from hdmap.errors import LaneBuildFailure, LaneGeometryError, MapBuildError, ToolMetaEncodeError
from hdmap.geo.lane_geometry import (
    compute_boundaries,
    compute_lane_samples,
    compute_start_heading,
    line_length,
)
from hdmap.geo.overlap_calc import compute_all_overlaps
from hdmap.geo.projection import Projection, create_projection, positions_to_enu
from hdmap.geo.shapes import line_coords, require_line, require_point, require_polygon, ring_coords
from hdmap.metadata.coord_codec import encode_tool_meta
from hdmap.schema import Lane, MapElements, ProjectConfig, RoadDefinition, ToolMeta

LOG = logging.getLogger("base_map")

DEFAULT_VENDOR = "Apollo Map Editor"


def _ids(values: Sequence[str]) -> List[Dict[str, str]]:
    return [{"id": v} for v in values]


def _planar_length(points: Sequence[Dict[str, float]]) -> float:
    total = 0.0
    for a, b in zip(points[:-1], points[1:]):
        total += math.hypot(b["x"] - a["x"], b["y"] - a["y"])
    return total


def build_curve(points: Sequence[Dict[str, float]], heading: float = 0.0) -> dict:
    if len(points) < 2:
        return {"segment": []}
    pts = [dict(p) for p in points]
    return {
        "segment": [
            {
                "lineSegment": {"point": pts},
                "s": 0.0,
                "startPosition": dict(pts[0]),
                "heading": heading,
                "length": _planar_length(pts),
            }
        ]
    }


def _embed(
    points: List[Dict[str, float]], meta: Optional[ToolMeta], enabled: bool, element_id: str = ""
) -> List[Dict[str, float]]:
    if meta is None or not enabled:
        return points
    try:
        return encode_tool_meta(points, meta)
    except ToolMetaEncodeError as exc:
        LOG.warning("tool meta not embedded: element=%s reason=%s", element_id, exc)
        return points


def _curve_with_meta(curve: dict, meta: Optional[ToolMeta], enabled: bool) -> dict:
    # length and heading are taken from the clean points before embedding
    if meta is None or not enabled or not curve["segment"]:
        return curve
    seg = curve["segment"][0]
    encoded = encode_tool_meta(seg["lineSegment"]["point"], meta)
    seg["lineSegment"]["point"] = encoded
    seg["startPosition"] = dict(encoded[0])
    return curve


def _element_curve(curve: dict, meta: Optional[ToolMeta], enabled: bool, element_id: str) -> dict:
    try:
        return _curve_with_meta(curve, meta, enabled)
    except ToolMetaEncodeError as exc:
        LOG.warning("tool meta not embedded: element=%s reason=%s", element_id, exc)
        return curve


def line_to_curve(projection: Projection, line: LineString) -> dict:
    points = positions_to_enu(projection, line_coords(line))
    if len(points) < 2:
        return {"segment": []}
    return build_curve(points, compute_start_heading(line))


def build_polygon(
    projection: Projection,
    poly: Polygon,
    meta: Optional[ToolMeta] = None,
    embed: bool = True,
    element_id: str = "",
) -> dict:
    points = positions_to_enu(projection, ring_coords(poly))
    return {"point": _embed(points, meta, embed, element_id)}


def build_lane_boundary(projection: Projection, line: Optional[LineString], boundary_type: BoundaryType) -> dict:
    points = positions_to_enu(projection, line_coords(line)) if line is not None else []
    return {
        "curve": build_curve(points),
        "length": _planar_length(points),
        "virtual": False,
        "boundaryType": [{"s": 0.0, "types": [int(boundary_type)]}],
    }


def build_lane(
    lane: Lane,
    overlap_ids: Sequence[str],
    projection: Projection,
    embed_tool_meta: bool = True,
) -> Tuple[dict, Optional[LaneBuildFailure]]:
    center = require_line(lane.center_line, lane.id)
    central_curve = build_curve(positions_to_enu(projection, line_coords(center)), compute_start_heading(center))
    reasons: List[str] = []
    try:
        central_curve = _curve_with_meta(central_curve, lane.tool_meta, embed_tool_meta)
    except ToolMetaEncodeError as exc:
        LOG.warning("lane tool meta failed: lane=%s reason=%s", lane.id, exc)
        reasons.append(str(exc))

    try:
        left, right = compute_boundaries(center, lane.width, projection, lane_id=lane.id)
    except LaneGeometryError as exc:
        LOG.warning("lane boundary failed: lane=%s reason=%s", lane.id, exc.reason)
        reasons.append(exc.reason)
        left = right = None
    left_sample, right_sample = compute_lane_samples(center, lane.width)

    record = {
        "id": {"id": lane.id},
        "centralCurve": central_curve,
        "leftBoundary": build_lane_boundary(projection, left, lane.left_boundary_type),
        "rightBoundary": build_lane_boundary(projection, right, lane.right_boundary_type),
        "length": line_length(center),
        "speedLimit": float(lane.speed_limit),
        "overlapId": _ids(overlap_ids),
        "predecessorId": _ids(lane.predecessor_ids),
        "successorId": _ids(lane.successor_ids),
        "leftNeighborForwardLaneId": _ids(lane.left_neighbor_ids),
        "rightNeighborForwardLaneId": _ids(lane.right_neighbor_ids),
        "leftNeighborReverseLaneId": [],
        "rightNeighborReverseLaneId": [],
        "type": int(lane.lane_type),
        "turn": int(lane.turn),
        "direction": int(lane.direction),
        "leftSample": left_sample,
        "rightSample": right_sample,
        # lane boundaries stand in for road boundaries
        "leftRoadSample": [dict(s) for s in left_sample],
        "rightRoadSample": [dict(s) for s in right_sample],
        "selfReverseLaneId": [],
    }
    if lane.junction_id:
        record["junctionId"] = {"id": lane.junction_id}
    failure = LaneBuildFailure(lane_id=lane.id, reason=";".join(reasons)) if reasons else None
    return record, failure


def build_roads(lanes: Sequence[Lane], road_defs: Sequence[RoadDefinition]) -> List[dict]:
    defs = {rd.id: rd for rd in road_defs}
    grouped: Dict[str, List[Lane]] = {}
    unassigned: List[Lane] = []
    for lane in lanes:
        if lane.road_id and lane.road_id in defs:
            grouped.setdefault(lane.road_id, []).append(lane)
        else:
            unassigned.append(lane)

    roads: List[dict] = []
    for road_id, road_lanes in grouped.items():
        road = {
            "id": {"id": road_id},
            "section": [{"id": {"id": f"{road_id}_section_0"}, "laneId": _ids([l.id for l in road_lanes])}],
            "type": int(defs[road_id].type),
        }
        junctions = {l.junction_id for l in road_lanes if l.junction_id}
        if len(junctions) == 1:
            road["junctionId"] = {"id": next(iter(junctions))}
        roads.append(road)

    for lane in unassigned:
        auto_id = f"road_{lane.id}"
        road = {
            "id": {"id": auto_id},
            "section": [{"id": {"id": f"{auto_id}_section_0"}, "laneId": [{"id": lane.id}]}],
            "type": int(RoadType.CITY_ROAD),
        }
        if lane.junction_id:
            road["junctionId"] = {"id": lane.junction_id}
        roads.append(road)
    return roads


def _bbox(lanes: Sequence[Lane]) -> Dict[str, float]:
    lons: List[float] = []
    lats: List[float] = []
    for lane in lanes:
        for c in lane.center_line.coords:
            lons.append(float(c[0]))
            lats.append(float(c[1]))
    if not lons:
        return {"left": 0.0, "top": 0.0, "right": 0.0, "bottom": 0.0}
    return {"left": min(lons), "top": max(lats), "right": max(lons), "bottom": min(lats)}


def assemble_base_map(
    project: ProjectConfig,
    elements: MapElements,
    roads: Sequence[RoadDefinition] = (),
    projection: Optional[Projection] = None,
    vendor: str = DEFAULT_VENDOR,
    embed_tool_meta: bool = True,
) -> Tuple[dict, List[LaneBuildFailure]]:
    proj = projection or create_projection(project.origin_lat, project.origin_lon)
    embed = embed_tool_meta

    overlaps = compute_all_overlaps(elements, proj)

    def back_refs(element_id: str) -> List[Dict[str, str]]:
        return _ids(overlaps.element_overlap_ids.get(element_id, []))

    lanes: List[dict] = []
    failures: List[LaneBuildFailure] = []
    for lane in elements.lanes:
        record, failure = build_lane(lane, overlaps.lane_overlap_ids.get(lane.id, []), proj, embed)
        lanes.append(record)
        if failure is not None:
            failures.append(failure)

    junctions = [
        {
            "id": {"id": j.id},
            "polygon": build_polygon(proj, require_polygon(j.polygon, j.id), j.tool_meta, embed, j.id),
            "overlapId": back_refs(j.id),
        }
        for j in elements.junctions
    ]

    signals = []
    for s in elements.signals:
        pos = require_point(s.position, s.id)
        stop_line = require_line(s.stop_line, s.id)
        signals.append(
            {
                "id": {"id": s.id},
                "boundary": {"point": positions_to_enu(proj, [(pos.x, pos.y)])},
                "subsignal": [],
                "overlapId": back_refs(s.id),
                "type": int(s.signal_type),
                "stopLine": [_element_curve(line_to_curve(proj, stop_line), s.tool_meta, embed, s.id)],
            }
        )

    stop_signs = [
        {
            "id": {"id": ss.id},
            "stopLine": [_element_curve(line_to_curve(proj, require_line(ss.stop_line, ss.id)), ss.tool_meta, embed, ss.id)],
            "overlapId": back_refs(ss.id),
            "type": int(ss.stop_sign_type),
        }
        for ss in elements.stop_signs
    ]

    crosswalks = [
        {
            "id": {"id": cw.id},
            "polygon": build_polygon(proj, require_polygon(cw.polygon, cw.id), cw.tool_meta, embed, cw.id),
            "overlapId": back_refs(cw.id),
        }
        for cw in elements.crosswalks
    ]

    clear_areas = [
        {
            "id": {"id": ca.id},
            "polygon": build_polygon(proj, require_polygon(ca.polygon, ca.id), ca.tool_meta, embed, ca.id),
            "overlapId": back_refs(ca.id),
        }
        for ca in elements.clear_areas
    ]

    speed_bumps = [
        {
            "id": {"id": sb.id},
            "position": [_element_curve(line_to_curve(proj, require_line(sb.line, sb.id)), sb.tool_meta, embed, sb.id)],
            "overlapId": back_refs(sb.id),
        }
        for sb in elements.speed_bumps
    ]

    parking_spaces = []
    for ps in elements.parking_spaces:
        record = {
            "id": {"id": ps.id},
            "polygon": build_polygon(proj, require_polygon(ps.polygon, ps.id), ps.tool_meta, embed, ps.id),
            "overlapId": back_refs(ps.id),
        }
        if ps.heading is not None:
            record["heading"] = float(ps.heading)
        parking_spaces.append(record)

    header = {
        "version": project.version,
        "date": project.date,
        "projection": {"proj": proj.proj_string},
        "district": project.name,
        **_bbox(elements.lanes),
        "vendor": vendor,
    }

    base_map = {
        "header": header,
        "crosswalk": crosswalks,
        "junction": junctions,
        "lane": lanes,
        "stopSign": stop_signs,
        "signal": signals,
        "overlap": overlaps.overlaps,
        "clearArea": clear_areas,
        "speedBump": speed_bumps,
        "road": build_roads(elements.lanes, roads),
        "parkingSpace": parking_spaces,
    }
    LOG.info(
        "base_map lanes=%d roads=%d overlaps=%d failures=%d",
        len(lanes),
        len(base_map["road"]),
        len(overlaps.overlaps),
        len(failures),
    )
    return base_map, failures


def build_base_map(
    project: ProjectConfig,
    elements: MapElements,
    roads: Sequence[RoadDefinition] = (),
    projection: Optional[Projection] = None,
    vendor: str = DEFAULT_VENDOR,
    embed_tool_meta: bool = True,
) -> dict:
    base_map, failures = assemble_base_map(project, elements, roads, projection, vendor, embed_tool_meta)
    if failures:
        raise MapBuildError(failures, partial_map=base_map)
    return base_map


__all__ = [
    "DEFAULT_VENDOR",
    "assemble_base_map",
    "build_base_map",
    "build_curve",
    "build_lane",
    "build_lane_boundary",
    "build_polygon",
    "build_roads",
    "line_to_curve",
]
