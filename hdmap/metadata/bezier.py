from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple

from hdmap.schema import ToolMeta

XY = Tuple[float, float]

SAMPLES_PER_SEGMENT = 20


@dataclass
class BezierSegment:
    anchor0: XY
    cp1: XY
    cp2: XY
    anchor1: XY


def cubic_bezier(p0: XY, cp1: XY, cp2: XY, p1: XY, t: float) -> XY:
    mt = 1.0 - t
    a = mt * mt * mt
    b = 3.0 * mt * mt * t
    c = 3.0 * mt * t * t
    d = t * t * t
    return (
        a * p0[0] + b * cp1[0] + c * cp2[0] + d * p1[0],
        a * p0[1] + b * cp1[1] + c * cp2[1] + d * p1[1],
    )


def sample_bezier_curve(segments: Sequence[BezierSegment], samples_per_segment: int = SAMPLES_PER_SEGMENT) -> List[XY]:
    if not segments:
        return []
    out: List[XY] = [segments[0].anchor0]
    for seg in segments:
        for i in range(1, samples_per_segment + 1):
            out.append(cubic_bezier(seg.anchor0, seg.cp1, seg.cp2, seg.anchor1, i / samples_per_segment))
    return out


def default_control_points(p0: XY, p1: XY) -> Tuple[XY, XY]:
    dx = p1[0] - p0[0]
    dy = p1[1] - p0[1]
    return (p0[0] + dx / 3.0, p0[1] + dy / 3.0), (p0[0] + dx * 2.0 / 3.0, p0[1] + dy * 2.0 / 3.0)


def anchors_from_samples(points: Sequence[XY], segment_count: int) -> List[XY]:
    """Pick segment anchors back out of a sampled curve (every ``(n-1)//segments`` vertex)."""
    pts = [(float(p[0]), float(p[1])) for p in points]
    if segment_count <= 0 or len(pts) < 2:
        return pts[:1]
    step = max(1, (len(pts) - 1) // segment_count)
    anchors = [pts[min(i * step, len(pts) - 1)] for i in range(segment_count)]
    anchors.append(pts[-1])
    return anchors


def segments_from_meta(meta: ToolMeta) -> List[BezierSegment]:
    anchors = list(meta.anchors)
    cps = meta.control_points()
    segs: List[BezierSegment] = []
    for i in range(len(anchors) - 1):
        if 2 * i + 1 < len(cps):
            cp1, cp2 = cps[2 * i], cps[2 * i + 1]
        else:
            cp1, cp2 = default_control_points(anchors[i], anchors[i + 1])
        segs.append(BezierSegment(anchors[i], cp1, cp2, anchors[i + 1]))
    return segs


def rebuild_bezier_meta(meta: ToolMeta, points: Sequence[XY]) -> ToolMeta:
    # two control offsets per segment
    segment_count = len(meta.control_offsets) // 2
    anchors = anchors_from_samples(points, segment_count)
    return ToolMeta(tool="bezier", control_offsets=meta.control_offsets, anchors=tuple(anchors))


__all__ = [
    "BezierSegment",
    "SAMPLES_PER_SEGMENT",
    "anchors_from_samples",
    "cubic_bezier",
    "default_control_points",
    "rebuild_bezier_meta",
    "sample_bezier_curve",
    "segments_from_meta",
]
