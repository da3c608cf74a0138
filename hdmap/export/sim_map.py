"""sim_map: base_map with width samples dropped and curves thinned out.

Thinning follows Apollo's ``points_downsampler.h`` (angle pass, then a
distance pass) as used by ``sim_map_generator``.
"""
from __future__ import annotations

import copy
import logging
import math
from typing import Dict, List, Sequence

LOG = logging.getLogger("sim_map")

ANGLE_THRESHOLD_RAD = math.pi / 180.0
DOWNSAMPLE_DISTANCE_M = 5.0
STEEP_TURN_DOWNSAMPLE_DISTANCE_M = 1.0
STEEP_TURN_ANGLE_RAD = math.radians(80.0)

SAMPLE_KEYS = ("leftSample", "rightSample", "leftRoadSample", "rightRoadSample")


def get_path_angle(points: Sequence[Dict[str, float]], start: int, end: int) -> float:
    n = len(points)
    if start >= n - 1 or end >= n - 1 or start >= end:
        return 0.0
    vsx = points[start + 1]["x"] - points[start]["x"]
    vsy = points[start + 1]["y"] - points[start]["y"]
    vex = points[end + 1]["x"] - points[end]["x"]
    vey = points[end + 1]["y"] - points[end]["y"]
    ns = math.hypot(vsx, vsy)
    ne = math.hypot(vex, vey)
    if ns == 0 or ne == 0:
        return 0.0
    cos = (vsx * vex + vsy * vey) / (ns * ne)
    return math.acos(max(-1.0, min(1.0, cos)))


def downsample_by_angle(points: Sequence[Dict[str, float]], threshold: float = ANGLE_THRESHOLD_RAD) -> List[int]:
    if not points:
        return []
    indices = [0]
    if len(points) > 1:
        start = 0
        end = 1
        accum = 0.0
        while end + 1 < len(points):
            accum += abs(get_path_angle(points, start, end))
            if accum > threshold:
                indices.append(end)
                start = end
                accum = 0.0
            end += 1
        indices.append(end)
    return indices


def downsample_by_distance(
    points: Sequence[Dict[str, float]],
    downsample_dist: float = DOWNSAMPLE_DISTANCE_M,
    steep_turn_dist: float = STEEP_TURN_DOWNSAMPLE_DISTANCE_M,
) -> List[int]:
    n = len(points)
    if n <= 4:
        return list(range(n))

    vsx = points[1]["x"] - points[0]["x"]
    vsy = points[1]["y"] - points[0]["y"]
    vex = points[-1]["x"] - points[-2]["x"]
    vey = points[-1]["y"] - points[-2]["y"]
    ns = math.hypot(vsx, vsy)
    ne = math.hypot(vex, vey)
    inner = 0.0
    if ns > 0 and ne > 0:
        inner = (vsx * vex + vsy * vey) / (ns * ne)
    rate = steep_turn_dist if inner <= math.cos(STEEP_TURN_ANGLE_RAD) else downsample_dist

    indices = [0]
    accum = 0.0
    for pos in range(1, n - 1):
        accum += math.hypot(points[pos]["x"] - points[pos - 1]["x"], points[pos]["y"] - points[pos - 1]["y"])
        if accum > rate:
            indices.append(pos)
            accum = 0.0
    indices.append(n - 1)
    return indices


def downsample_points(points: Sequence[Dict[str, float]]) -> List[Dict[str, float]]:
    if len(points) <= 2:
        return [dict(p) for p in points]
    after_angle = [points[i] for i in downsample_by_angle(points)]
    return [dict(after_angle[i]) for i in downsample_by_distance(after_angle)]


def downsample_curve(curve: dict) -> dict:
    for seg in curve.get("segment", []):
        line = seg.get("lineSegment")
        if line is None:
            continue
        line["point"] = downsample_points(line.get("point", []))
    return curve


def build_sim_map(base_map: dict) -> dict:
    sim = copy.deepcopy(base_map)
    before = 0
    after = 0
    for lane in sim.get("lane", []):
        for key in SAMPLE_KEYS:
            lane[key] = []
        curves = [lane.get("centralCurve")]
        curves += [(lane.get(side) or {}).get("curve") for side in ("leftBoundary", "rightBoundary")]
        for curve in curves:
            if not curve:
                continue
            before += sum(len(s.get("lineSegment", {}).get("point", [])) for s in curve.get("segment", []))
            downsample_curve(curve)
            after += sum(len(s.get("lineSegment", {}).get("point", [])) for s in curve.get("segment", []))
    LOG.info("sim_map lanes=%d points=%d->%d", len(sim.get("lane", [])), before, after)
    return sim


__all__ = [
    "build_sim_map",
    "downsample_by_angle",
    "downsample_by_distance",
    "downsample_curve",
    "downsample_points",
    "get_path_angle",
]
