from __future__ import annotations

import logging
import math
from dataclasses import dataclass, fields
from typing import Any, Dict, List, Mapping, Optional

from hdmap.enums import BoundaryType, EdgeDirection, LaneTurn, coerce_enum

LOG = logging.getLogger("routing_map")

ALLOWED_OUT = (BoundaryType.DOTTED_YELLOW, BoundaryType.DOTTED_WHITE)


@dataclass(frozen=True)
class RoutingConfig:
    # defaults: modules/routing/conf/routing_config.pb.txt
    base_speed: float = 4.167
    left_turn_penalty: float = 50.0
    right_turn_penalty: float = 20.0
    uturn_penalty: float = 100.0
    change_penalty: float = 500.0
    base_changing_length: float = 50.0

    @classmethod
    def from_dict(cls, raw: Optional[Mapping[str, Any]]) -> "RoutingConfig":
        known = {f.name for f in fields(cls)}
        return cls(**{k: float(v) for k, v in (raw or {}).items() if k in known})


def lane_length(lane: dict) -> float:
    if lane.get("length") is not None:
        return float(lane["length"])
    return sum(float(seg.get("length", 0.0)) for seg in lane.get("centralCurve", {}).get("segment", []))


def _boundary_type(boundary: Optional[dict]) -> BoundaryType:
    entries = (boundary or {}).get("boundaryType") or []
    if not entries or not entries[0].get("types"):
        return BoundaryType.UNKNOWN
    return coerce_enum(BoundaryType, entries[0]["types"][0], BoundaryType.UNKNOWN)


def out_ranges(boundary_type: BoundaryType, length: float) -> List[dict]:
    if boundary_type not in ALLOWED_OUT:
        return []
    return [{"start": {"s": 0.0}, "end": {"s": length}}]


def node_cost(lane: dict, config: RoutingConfig) -> float:
    speed_limit = float(lane.get("speedLimit") or 0.0)
    if speed_limit <= 0:
        speed_limit = config.base_speed
    ratio = math.sqrt(config.base_speed / speed_limit) if speed_limit >= config.base_speed else 1.0
    cost = lane_length(lane) * ratio

    turn = coerce_enum(LaneTurn, lane.get("turn"), LaneTurn.NO_TURN)
    if turn == LaneTurn.LEFT_TURN:
        cost += config.left_turn_penalty
    elif turn == LaneTurn.RIGHT_TURN:
        cost += config.right_turn_penalty
    elif turn == LaneTurn.U_TURN:
        cost += config.uturn_penalty
    return cost


def change_cost(changing_length: float, config: RoutingConfig) -> float:
    if changing_length <= 0:
        return config.change_penalty
    ratio = 1.0
    if changing_length < config.base_changing_length:
        ratio = math.pow(changing_length / config.base_changing_length, -1.5)
    return config.change_penalty * ratio


def is_virtual(lane: dict) -> bool:
    if not (lane.get("junctionId") or {}).get("id"):
        return False
    return not (lane.get("leftNeighborForwardLaneId") or lane.get("rightNeighborForwardLaneId"))


def _lane_to_road(base_map: dict) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for road in base_map.get("road", []):
        for section in road.get("section", []):
            for lid in section.get("laneId", []):
                out[lid["id"]] = road["id"]["id"]
    return out


def _changing_length(ranges: List[dict]) -> float:
    return sum(r["end"]["s"] - r["start"]["s"] for r in ranges)


def build_routing_map(base_map: dict, config: Optional[RoutingConfig] = None) -> dict:
    cfg = config or RoutingConfig()
    road_of = _lane_to_road(base_map)
    lanes = base_map.get("lane", [])

    nodes: List[dict] = []
    edges: List[dict] = []
    for lane in lanes:
        lane_id = lane["id"]["id"]
        length = lane_length(lane)
        left_out = out_ranges(_boundary_type(lane.get("leftBoundary")), length)
        right_out = out_ranges(_boundary_type(lane.get("rightBoundary")), length)
        nodes.append(
            {
                "laneId": lane_id,
                "length": length,
                "leftOut": left_out,
                "rightOut": right_out,
                "cost": node_cost(lane, cfg),
                "centralCurve": lane.get("centralCurve", {"segment": []}),
                "isVirtual": is_virtual(lane),
                "roadId": road_of.get(lane_id, ""),
            }
        )

    for lane in lanes:
        for succ in lane.get("successorId", []):
            edges.append(
                {
                    "fromLaneId": lane["id"]["id"],
                    "toLaneId": succ["id"],
                    "cost": 0.0,
                    "directionType": int(EdgeDirection.FORWARD),
                }
            )

    for lane, node in zip(lanes, nodes):
        sides = (
            ("leftNeighborForwardLaneId", node["leftOut"], EdgeDirection.LEFT),
            ("rightNeighborForwardLaneId", node["rightOut"], EdgeDirection.RIGHT),
        )
        for key, ranges, direction in sides:
            changing = _changing_length(ranges)
            if changing <= 0:
                continue
            for neighbor in lane.get(key, []):
                edges.append(
                    {
                        "fromLaneId": node["laneId"],
                        "toLaneId": neighbor["id"],
                        "cost": change_cost(changing, cfg),
                        "directionType": int(direction),
                    }
                )

    header = base_map.get("header") or {}
    graph = {
        "hdmapVersion": header.get("version", "1.0.0"),
        "hdmapDistrict": header.get("district", ""),
        "node": nodes,
        "edge": edges,
    }
    LOG.info("routing_map nodes=%d edges=%d", len(nodes), len(edges))
    return graph


__all__ = [
    "RoutingConfig",
    "build_routing_map",
    "change_cost",
    "is_virtual",
    "lane_length",
    "node_cost",
    "out_ranges",
]
