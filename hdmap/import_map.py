from __future__ import annotations

import datetime
import logging
from typing import Dict, List, Optional, Tuple

from shapely.geometry import LineString, Point, Polygon

from hdmap.enums import (
    BoundaryType,
    LaneDirection,
    LaneTurn,
    LaneType,
    RoadType,
    SignalType,
    StopSignType,
    coerce_enum,
)
from hdmap.geo.projection import Projection, create_projection, parse_proj_string
from hdmap.geo.shapes import close_ring
from hdmap.metadata.bezier import rebuild_bezier_meta
from hdmap.metadata.coord_codec import decode_tool_meta
from hdmap.metadata.geometry_detector import detect_tool_from_geometry
from hdmap.proto.codec import MapCodec
from hdmap.schema import (
    DEFAULT_LANE_WIDTH_M,
    DEFAULT_SPEED_LIMIT_MPS,
    ClearArea,
    Crosswalk,
    Junction,
    Lane,
    MapElements,
    ParkingSpace,
    ParsedMapState,
    ProjectConfig,
    RoadDefinition,
    Signal,
    SpeedBump,
    StopSign,
    ToolMeta,
)

LOG = logging.getLogger("import_map")

XY = Tuple[float, float]


def _curve_points(curve: Optional[dict]) -> List[dict]:
    out: List[dict] = []
    for seg in (curve or {}).get("segment", []):
        out.extend((seg.get("lineSegment") or {}).get("point", []))
    return out


def _xy(points: List[dict]) -> List[XY]:
    return [(float(p.get("x", 0.0)), float(p.get("y", 0.0))) for p in points]


def recover_shape(points: List[dict], kind: str, projection: Projection) -> Tuple[List[XY], ToolMeta]:
    """Clean lon/lat coordinates of one shape plus how it was drawn.

    Embedded metadata wins; otherwise the tool is guessed from the geometry
    (rectangle test for polygons), falling back to a generic tool.
    """
    decoded = decode_tool_meta(points)
    if decoded is not None:
        enu = _xy(decoded.clean_points)
        lnglat = [tuple(c) for c in projection.to_lnglat_many(enu).tolist()]
        meta = decoded.meta
        if meta.tool == "bezier":
            meta = rebuild_bezier_meta(meta, lnglat)
        return lnglat, meta
    enu = _xy(points)
    lnglat = [tuple(c) for c in projection.to_lnglat_many(enu).tolist()]
    return lnglat, detect_tool_from_geometry(kind, enu)


def _lane_width(lane: dict) -> float:
    left = lane.get("leftSample") or []
    right = lane.get("rightSample") or []
    if not left:
        return DEFAULT_LANE_WIDTH_M
    widths = []
    for i, s in enumerate(left):
        lw = float(s.get("width", 0.0))
        rw = float(right[i].get("width", lw)) if i < len(right) else lw
        widths.append(lw + rw)
    return sum(widths) / len(widths)


def _boundary_type(boundary: Optional[dict]) -> BoundaryType:
    entries = (boundary or {}).get("boundaryType") or []
    if not entries or not entries[0].get("types"):
        return BoundaryType.SOLID_WHITE
    return coerce_enum(BoundaryType, entries[0]["types"][0], BoundaryType.SOLID_WHITE)


def _id_list(refs: Optional[List[dict]]) -> List[str]:
    return [r.get("id", "") for r in (refs or [])]


def _parse_lane(raw: dict, projection: Projection) -> Optional[Lane]:
    lane_id = raw.get("id", {}).get("id", "")
    coords, meta = recover_shape(_curve_points(raw.get("centralCurve")), "LineString", projection)
    if len(coords) < 2:
        LOG.warning("import skip lane=%s reason=centerline_points:%d", lane_id, len(coords))
        return None
    return Lane(
        id=lane_id,
        center_line=LineString(coords),
        width=_lane_width(raw),
        speed_limit=float(raw.get("speedLimit", DEFAULT_SPEED_LIMIT_MPS)),
        lane_type=coerce_enum(LaneType, raw.get("type"), LaneType.CITY_DRIVING),
        turn=coerce_enum(LaneTurn, raw.get("turn"), LaneTurn.NO_TURN),
        direction=coerce_enum(LaneDirection, raw.get("direction"), LaneDirection.FORWARD),
        left_boundary_type=_boundary_type(raw.get("leftBoundary")),
        right_boundary_type=_boundary_type(raw.get("rightBoundary")),
        predecessor_ids=_id_list(raw.get("predecessorId")),
        successor_ids=_id_list(raw.get("successorId")),
        left_neighbor_ids=_id_list(raw.get("leftNeighborForwardLaneId")),
        right_neighbor_ids=_id_list(raw.get("rightNeighborForwardLaneId")),
        junction_id=(raw.get("junctionId") or {}).get("id") or None,
        tool_meta=meta,
    )


def _parse_polygon(raw: dict, kind: str, projection: Projection) -> Optional[Tuple[str, Polygon, ToolMeta]]:
    element_id = raw.get("id", {}).get("id", "")
    coords, meta = recover_shape((raw.get("polygon") or {}).get("point", []), "Polygon", projection)
    if len(coords) < 3:
        LOG.warning("import skip %s=%s reason=polygon_points:%d", kind, element_id, len(coords))
        return None
    return element_id, Polygon(close_ring(coords)), meta


def _parse_line(raw_curve: Optional[dict], element_id: str, kind: str, projection: Projection):
    coords, meta = recover_shape(_curve_points(raw_curve), "LineString", projection)
    if len(coords) < 2:
        LOG.warning("import skip %s=%s reason=line_points:%d", kind, element_id, len(coords))
        return None, None
    return LineString(coords), meta


def _first(items: Optional[List[dict]]) -> Optional[dict]:
    return items[0] if items else None


def parse_map_dict(data: dict) -> ParsedMapState:
    header = data.get("header") or {}
    origin = parse_proj_string((header.get("projection") or {}).get("proj", ""))
    origin_lat, origin_lon = origin if origin else (0.0, 0.0)
    projection = create_projection(origin_lat, origin_lon)

    project = ProjectConfig(
        name=header.get("district") or "Imported Map",
        origin_lat=origin_lat,
        origin_lon=origin_lon,
        version=header.get("version") or "1.0.0",
        date=header.get("date") or datetime.date.today().isoformat(),
    )

    elements = MapElements()
    for raw in data.get("lane", []):
        lane = _parse_lane(raw, projection)
        if lane is not None:
            elements.lanes.append(lane)

    polygon_kinds = (
        ("junction", Junction, elements.junctions),
        ("crosswalk", Crosswalk, elements.crosswalks),
        ("clearArea", ClearArea, elements.clear_areas),
    )
    for key, cls, target in polygon_kinds:
        for raw in data.get(key, []):
            parsed = _parse_polygon(raw, key, projection)
            if parsed is not None:
                target.append(cls(id=parsed[0], polygon=parsed[1], tool_meta=parsed[2]))

    for raw in data.get("parkingSpace", []):
        parsed = _parse_polygon(raw, "parkingSpace", projection)
        if parsed is not None:
            heading = raw.get("heading")
            elements.parking_spaces.append(
                ParkingSpace(
                    id=parsed[0],
                    polygon=parsed[1],
                    heading=float(heading) if heading is not None else None,
                    tool_meta=parsed[2],
                )
            )

    for raw in data.get("stopSign", []):
        sid = raw.get("id", {}).get("id", "")
        line, meta = _parse_line(_first(raw.get("stopLine")), sid, "stopSign", projection)
        if line is not None:
            elements.stop_signs.append(
                StopSign(
                    id=sid,
                    stop_line=line,
                    stop_sign_type=coerce_enum(StopSignType, raw.get("type"), StopSignType.ONE_WAY),
                    tool_meta=meta,
                )
            )

    for raw in data.get("speedBump", []):
        bid = raw.get("id", {}).get("id", "")
        line, meta = _parse_line(_first(raw.get("position")), bid, "speedBump", projection)
        if line is not None:
            elements.speed_bumps.append(SpeedBump(id=bid, line=line, tool_meta=meta))

    for raw in data.get("signal", []):
        sid = raw.get("id", {}).get("id", "")
        line, meta = _parse_line(_first(raw.get("stopLine")), sid, "signal", projection)
        if line is None:
            continue
        coords = list(line.coords)
        elements.signals.append(
            Signal(
                id=sid,
                position=Point(coords[len(coords) // 2]),
                stop_line=line,
                signal_type=coerce_enum(SignalType, raw.get("type"), SignalType.MIX_3_VERTICAL),
                tool_meta=meta,
            )
        )

    lane_road: Dict[str, str] = {}
    roads: List[RoadDefinition] = []
    for raw in data.get("road", []):
        road_id = raw.get("id", {}).get("id", "")
        for section in raw.get("section", []):
            for ref in section.get("laneId", []):
                lane_road[ref.get("id", "")] = road_id
        roads.append(
            RoadDefinition(
                id=road_id,
                name=road_id,
                type=coerce_enum(RoadType, raw.get("type"), RoadType.CITY_ROAD),
            )
        )
    for lane in elements.lanes:
        lane.road_id = lane_road.get(lane.id, lane.road_id)

    LOG.info(
        "import roads=%d lanes=%d junctions=%d signals=%d",
        len(data.get("road", [])),
        len(data.get("lane", [])),
        len(data.get("junction", [])),
        len(data.get("signal", [])),
    )
    return ParsedMapState(project=project, elements=elements, roads=roads)


def parse_base_map(buffer: bytes, codec: MapCodec) -> ParsedMapState:
    # decode errors are not caught, a broken map aborts the import
    return parse_map_dict(codec.decode(buffer))


__all__ = ["parse_base_map", "parse_map_dict", "recover_shape"]
