from __future__ import annotations

from hdmap.metadata.coord_codec import DecodedToolMeta, decode_tool_meta, encode_tool_meta
from hdmap.metadata.geometry_detector import detect_rotatable_rect, detect_tool_from_geometry

__all__ = [
    "DecodedToolMeta",
    "decode_tool_meta",
    "detect_rotatable_rect",
    "detect_tool_from_geometry",
    "encode_tool_meta",
]
