"""Drawing-tool metadata carried in the low digits of ENU coordinates.

Every x/y value is split into a visible part rounded to 4 decimals (0.1 mm)
and a 6-digit integer slot below that precision:

* vertex 0, x slot: ``tool_code * 10000 + payload_slot_count``
* vertex 0, y slot: ``314159`` (presence sentinel)
* vertex 1.., x then y slots: tool-specific payload

The arithmetic (including half-up rounding) matches maps written by the web
editor, so an unedited shape re-exports with identical payload digits. Values
stay exact while ``|coord| * 1e10`` fits in a double's integer range, i.e. up
to several hundred kilometres from the map origin.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from hdmap.errors import ToolMetaEncodeError
from hdmap.schema import ToolMeta

PRECISION = 10_000
META_SPACE = 1_000_000
COMBINED_SCALE = PRECISION * META_SPACE
MAGIC = 314159
SIGNED_BIAS = 500_000
OFFSET_SCALE = 1e7
SLOT_MAX = META_SPACE - 1

TOOL_CODES: Dict[str, int] = {
    "point": 1,
    "line": 2,
    "bezier": 3,
    "rotatable_rect": 4,
    "polygon": 5,
}
TOOL_NAMES: Dict[int, str] = {v: k for k, v in TOOL_CODES.items()}


@dataclass
class DecodedToolMeta:
    meta: ToolMeta
    clean_points: List[Dict[str, float]]


def _round_half_up(v: float) -> int:
    return int(math.floor(v + 0.5))


def encode_slot(coord: float, meta: int) -> float:
    sign = 1 if coord >= 0 else -1
    rounded = _round_half_up(abs(coord) * PRECISION)
    packed = rounded * META_SPACE + int(meta)
    return sign * packed / COMBINED_SCALE


def decode_slot(coord: float) -> Tuple[float, int]:
    combined = _round_half_up(abs(coord) * COMBINED_SCALE)
    meta = combined % META_SPACE
    rounded = combined // META_SPACE
    sign = -1 if coord < 0 else 1
    return sign * (rounded / PRECISION), meta


def _encode_offset(degree_diff: float) -> int:
    scaled = _round_half_up(degree_diff * OFFSET_SCALE) + SIGNED_BIAS
    return max(0, min(SLOT_MAX, scaled))


def _decode_offset(encoded: int) -> float:
    return (encoded - SIGNED_BIAS) / OFFSET_SCALE


def _payload(meta: ToolMeta) -> List[int]:
    if meta.tool == "rotatable_rect":
        centideg = _round_half_up(math.degrees(meta.rotation or 0.0) * 100) % 36000
        return [
            centideg,
            0,
            _round_half_up((meta.width or 0.0) * 1000),
            _round_half_up((meta.height or 0.0) * 1000),
        ]
    if meta.tool == "bezier":
        out: List[int] = []
        for dx, dy in meta.control_offsets:
            out.append(_encode_offset(dx))
            out.append(_encode_offset(dy))
        return out
    return []


def _point(x: float, y: float, z: float) -> Dict[str, float]:
    return {"x": x, "y": y, "z": z}


def encode_tool_meta(points: Sequence[Dict[str, float]], meta: ToolMeta) -> List[Dict[str, float]]:
    out = [dict(p) for p in points]
    if not out:
        return out
    payload = _payload(meta)
    capacity = (len(out) - 1) * 2
    if len(payload) > capacity:
        raise ToolMetaEncodeError(f"tool_meta_overflow:{meta.tool}:slots={len(payload)}:capacity={capacity}")
    if any(v < 0 or v > SLOT_MAX for v in payload):
        raise ToolMetaEncodeError(f"tool_meta_range:{meta.tool}:{payload}")

    header = TOOL_CODES[meta.tool] * 10000 + len(payload)
    p0 = out[0]
    out[0] = _point(encode_slot(p0["x"], header), encode_slot(p0["y"], MAGIC), p0.get("z", 0.0))

    slot = 0
    for idx in range(1, len(out)):
        if slot >= len(payload):
            break
        x_meta = payload[slot]
        slot += 1
        y_meta = payload[slot] if slot < len(payload) else 0
        slot += 1
        p = out[idx]
        out[idx] = _point(encode_slot(p["x"], x_meta), encode_slot(p["y"], y_meta), p.get("z", 0.0))
    return out


def decode_tool_meta(points: Sequence[Dict[str, float]]) -> Optional[DecodedToolMeta]:
    if not points:
        return None
    _, sentinel = decode_slot(points[0].get("y", 0.0))
    if sentinel != MAGIC:
        return None

    _, header = decode_slot(points[0].get("x", 0.0))
    tool = TOOL_NAMES.get(header // 10000)
    slots = header % 10000
    if tool is None:
        return None
    if slots > (len(points) - 1) * 2:
        return None

    payload: List[int] = []
    for p in points[1:]:
        if len(payload) >= slots:
            break
        payload.append(decode_slot(p.get("x", 0.0))[1])
        if len(payload) < slots:
            payload.append(decode_slot(p.get("y", 0.0))[1])

    clean = []
    for p in points:
        cx, _ = decode_slot(p.get("x", 0.0))
        cy, _ = decode_slot(p.get("y", 0.0))
        clean.append(_point(cx, cy, p.get("z", 0.0)))

    if tool == "rotatable_rect" and len(payload) >= 4:
        meta = ToolMeta(
            tool=tool,
            rotation=math.radians(payload[0] / 100.0),
            width=payload[2] / 1000.0,
            height=payload[3] / 1000.0,
        )
    elif tool == "bezier" and len(payload) >= 4:
        pairs = []
        for i in range(0, len(payload), 2):
            dy = payload[i + 1] if i + 1 < len(payload) else SIGNED_BIAS
            pairs.append((_decode_offset(payload[i]), _decode_offset(dy)))
        meta = ToolMeta(tool=tool, control_offsets=tuple(pairs))
    else:
        meta = ToolMeta(tool=tool)
    return DecodedToolMeta(meta=meta, clean_points=clean)


__all__ = [
    "MAGIC",
    "TOOL_CODES",
    "DecodedToolMeta",
    "decode_slot",
    "decode_tool_meta",
    "encode_slot",
    "encode_tool_meta",
]
