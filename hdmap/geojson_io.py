from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from shapely.geometry import GeometryCollection, mapping, shape

from hdmap._io import dump_yaml, load_yaml
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
from hdmap.schema import (
    DEFAULT_LANE_WIDTH_M,
    DEFAULT_SPEED_LIMIT_MPS,
    ClearArea,
    Crosswalk,
    Junction,
    Lane,
    MapElements,
    ParkingSpace,
    ProjectConfig,
    RoadDefinition,
    Signal,
    SpeedBump,
    StopSign,
    ToolMeta,
)

LOG = logging.getLogger("geojson_io")


def _meta_to_dict(meta: Optional[ToolMeta]) -> Optional[dict]:
    if meta is None:
        return None
    out: Dict[str, Any] = {"tool": meta.tool}
    if meta.tool == "rotatable_rect":
        out.update(rotation=meta.rotation, width=meta.width, height=meta.height)
    if meta.control_offsets:
        out["control_offsets"] = [list(o) for o in meta.control_offsets]
    if meta.anchors:
        out["anchors"] = [list(a) for a in meta.anchors]
    return out


def _meta_from_dict(raw: Optional[dict]) -> Optional[ToolMeta]:
    if not raw:
        return None
    return ToolMeta(
        tool=raw["tool"],
        rotation=raw.get("rotation"),
        width=raw.get("width"),
        height=raw.get("height"),
        control_offsets=tuple(tuple(o) for o in raw.get("control_offsets", [])),
        anchors=tuple(tuple(a) for a in raw.get("anchors", [])),
    )


def _feature(kind: str, element_id: str, geom, props: Dict[str, Any], meta: Optional[ToolMeta]) -> dict:
    properties = {"type": kind, "id": element_id}
    properties.update(props)
    if meta is not None:
        properties["tool_meta"] = _meta_to_dict(meta)
    return {"type": "Feature", "id": element_id, "geometry": mapping(geom), "properties": properties}


def _lane_props(lane: Lane) -> Dict[str, Any]:
    return {
        "width": lane.width,
        "speed_limit": lane.speed_limit,
        "lane_type": lane.lane_type.name,
        "turn": lane.turn.name,
        "direction": lane.direction.name,
        "left_boundary_type": lane.left_boundary_type.name,
        "right_boundary_type": lane.right_boundary_type.name,
        "predecessor_ids": list(lane.predecessor_ids),
        "successor_ids": list(lane.successor_ids),
        "left_neighbor_ids": list(lane.left_neighbor_ids),
        "right_neighbor_ids": list(lane.right_neighbor_ids),
        "junction_id": lane.junction_id,
        "road_id": lane.road_id,
    }


def elements_to_feature_collection(elements: MapElements) -> dict:
    features: List[dict] = []
    for lane in elements.lanes:
        features.append(_feature("lane", lane.id, lane.center_line, _lane_props(lane), lane.tool_meta))
    for j in elements.junctions:
        features.append(_feature("junction", j.id, j.polygon, {}, j.tool_meta))
    for s in elements.signals:
        geom = GeometryCollection([s.position, s.stop_line])
        features.append(_feature("signal", s.id, geom, {"signal_type": s.signal_type.name}, s.tool_meta))
    for ss in elements.stop_signs:
        props = {"stop_sign_type": ss.stop_sign_type.name}
        features.append(_feature("stop_sign", ss.id, ss.stop_line, props, ss.tool_meta))
    for cw in elements.crosswalks:
        features.append(_feature("crosswalk", cw.id, cw.polygon, {}, cw.tool_meta))
    for ca in elements.clear_areas:
        features.append(_feature("clear_area", ca.id, ca.polygon, {}, ca.tool_meta))
    for sb in elements.speed_bumps:
        features.append(_feature("speed_bump", sb.id, sb.line, {}, sb.tool_meta))
    for ps in elements.parking_spaces:
        features.append(_feature("parking_space", ps.id, ps.polygon, {"heading": ps.heading}, ps.tool_meta))
    return {"type": "FeatureCollection", "features": features}


def _signal_parts(geom) -> Tuple[Any, Any]:
    if geom.geom_type != "GeometryCollection":
        raise ValueError(f"signal_geometry:{geom.geom_type}")
    point = next((g for g in geom.geoms if g.geom_type == "Point"), None)
    line = next((g for g in geom.geoms if g.geom_type == "LineString"), None)
    return point, line


def _element_from_feature(feat: dict):
    props = dict(feat.get("properties") or {})
    kind = props.get("type")
    element_id = str(props.get("id") or feat.get("id") or "")
    geom = shape(feat["geometry"])
    meta = _meta_from_dict(props.get("tool_meta"))

    if kind == "lane":
        return kind, Lane(
            id=element_id,
            center_line=geom,
            width=float(props.get("width", DEFAULT_LANE_WIDTH_M)),
            speed_limit=float(props.get("speed_limit", DEFAULT_SPEED_LIMIT_MPS)),
            lane_type=coerce_enum(LaneType, props.get("lane_type"), LaneType.CITY_DRIVING),
            turn=coerce_enum(LaneTurn, props.get("turn"), LaneTurn.NO_TURN),
            direction=coerce_enum(LaneDirection, props.get("direction"), LaneDirection.FORWARD),
            left_boundary_type=coerce_enum(BoundaryType, props.get("left_boundary_type"), BoundaryType.SOLID_WHITE),
            right_boundary_type=coerce_enum(BoundaryType, props.get("right_boundary_type"), BoundaryType.SOLID_WHITE),
            predecessor_ids=list(props.get("predecessor_ids") or []),
            successor_ids=list(props.get("successor_ids") or []),
            left_neighbor_ids=list(props.get("left_neighbor_ids") or []),
            right_neighbor_ids=list(props.get("right_neighbor_ids") or []),
            junction_id=props.get("junction_id") or None,
            road_id=props.get("road_id") or None,
            tool_meta=meta,
        )
    if kind == "signal":
        point, line = _signal_parts(geom)
        return kind, Signal(
            id=element_id,
            position=point,
            stop_line=line,
            signal_type=coerce_enum(SignalType, props.get("signal_type"), SignalType.MIX_3_VERTICAL),
            tool_meta=meta,
        )
    if kind == "stop_sign":
        return kind, StopSign(
            id=element_id,
            stop_line=geom,
            stop_sign_type=coerce_enum(StopSignType, props.get("stop_sign_type"), StopSignType.ONE_WAY),
            tool_meta=meta,
        )
    if kind == "junction":
        return kind, Junction(id=element_id, polygon=geom, tool_meta=meta)
    if kind == "crosswalk":
        return kind, Crosswalk(id=element_id, polygon=geom, tool_meta=meta)
    if kind == "clear_area":
        return kind, ClearArea(id=element_id, polygon=geom, tool_meta=meta)
    if kind == "speed_bump":
        return kind, SpeedBump(id=element_id, line=geom, tool_meta=meta)
    if kind == "parking_space":
        heading = props.get("heading")
        return kind, ParkingSpace(
            id=element_id,
            polygon=geom,
            heading=float(heading) if heading is not None else None,
            tool_meta=meta,
        )
    raise ValueError(f"unknown_element_kind:{kind}:{element_id}")


def feature_collection_to_elements(fc: dict) -> MapElements:
    elements = MapElements()
    for feat in fc.get("features", []):
        kind, element = _element_from_feature(feat)
        elements.add(kind, element)
    LOG.info("elements loaded: %s", elements.counts())
    return elements


def read_elements(path: Path) -> MapElements:
    data = json.loads(path.read_text(encoding="utf-8"))
    return feature_collection_to_elements(data)


def write_elements(path: Path, elements: MapElements) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fc = elements_to_feature_collection(elements)
    path.write_text(json.dumps(fc, ensure_ascii=False, indent=2), encoding="utf-8")


def read_project(path: Path) -> Tuple[ProjectConfig, List[RoadDefinition]]:
    raw = load_yaml(path)
    project = ProjectConfig(
        name=str(raw.get("name", "")),
        origin_lat=float(raw["origin_lat"]),
        origin_lon=float(raw["origin_lon"]),
        version=str(raw.get("version", "1.0.0")),
        date=str(raw.get("date", "")),
    )
    roads = [
        RoadDefinition(
            id=str(r["id"]),
            name=str(r.get("name", r["id"])),
            type=coerce_enum(RoadType, r.get("type"), RoadType.CITY_ROAD),
        )
        for r in raw.get("roads") or []
    ]
    return project, roads


def write_project(path: Path, project: ProjectConfig, roads: List[RoadDefinition]) -> None:
    dump_yaml(
        path,
        {
            "name": project.name,
            "origin_lat": project.origin_lat,
            "origin_lon": project.origin_lon,
            "version": project.version,
            "date": project.date,
            "roads": [{"id": r.id, "name": r.name, "type": r.type.name} for r in roads],
        },
    )


__all__ = [
    "elements_to_feature_collection",
    "feature_collection_to_elements",
    "read_elements",
    "read_project",
    "write_elements",
    "write_project",
]
