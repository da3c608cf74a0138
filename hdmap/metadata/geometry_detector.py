from __future__ import annotations

import math
from typing import Optional, Sequence, Tuple

from hdmap.schema import ToolMeta

RIGHT_ANGLE_TOLERANCE_RAD = 0.018


def _angle_at(a, b, c) -> float:
    ba = (a[0] - b[0], a[1] - b[1])
    bc = (c[0] - b[0], c[1] - b[1])
    mag_ba = math.hypot(*ba)
    mag_bc = math.hypot(*bc)
    if mag_ba == 0 or mag_bc == 0:
        return 0.0
    cos = (ba[0] * bc[0] + ba[1] * bc[1]) / (mag_ba * mag_bc)
    return math.acos(max(-1.0, min(1.0, cos)))


def detect_rotatable_rect(points: Sequence[Tuple[float, float]]) -> Optional[ToolMeta]:
    """Recognise a four-cornered ring with right angles.

    ``points`` are planar metres (ENU), optionally closed.
    """
    verts = [(float(p[0]), float(p[1])) for p in points]
    if len(verts) > 1 and verts[0] == verts[-1]:
        verts = verts[:-1]
    if len(verts) != 4:
        return None

    for i in range(4):
        angle = _angle_at(verts[i], verts[(i + 1) % 4], verts[(i + 2) % 4])
        if abs(angle - math.pi / 2) > RIGHT_ANGLE_TOLERANCE_RAD:
            return None

    p0, p1, p2 = verts[0], verts[1], verts[2]
    return ToolMeta(
        tool="rotatable_rect",
        rotation=math.atan2(p1[1] - p0[1], p1[0] - p0[0]),
        width=math.hypot(p1[0] - p0[0], p1[1] - p0[1]),
        height=math.hypot(p2[0] - p1[0], p2[1] - p1[1]),
    )


def detect_tool_from_geometry(kind: str, points: Optional[Sequence[Tuple[float, float]]] = None) -> ToolMeta:
    if kind == "Polygon" and points:
        rect = detect_rotatable_rect(points)
        if rect is not None:
            return rect
        return ToolMeta(tool="polygon")
    if kind == "LineString":
        return ToolMeta(tool="line")
    if kind == "Point":
        return ToolMeta(tool="point")
    return ToolMeta(tool="polygon")


__all__ = ["RIGHT_ANGLE_TOLERANCE_RAD", "detect_rotatable_rect", "detect_tool_from_geometry"]
