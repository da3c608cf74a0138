from __future__ import annotations

from hdmap.proto.codec import JsonCodec, MapCodec, ProtoCodec, graph_codec, map_codec
from hdmap.proto.loader import get_graph_type, get_map_type, load_message_class

__all__ = [
    "JsonCodec",
    "MapCodec",
    "ProtoCodec",
    "get_graph_type",
    "get_map_type",
    "graph_codec",
    "load_message_class",
    "map_codec",
]
