from __future__ import annotations

import importlib
import logging
from functools import lru_cache
from typing import Any, Dict

LOG = logging.getLogger("proto_loader")

MAP_PB2_MODULE = "modules.map.proto.map_pb2"
GRAPH_PB2_MODULE = "modules.routing.proto.topo_graph_pb2"
MAP_MESSAGE = "Map"
GRAPH_MESSAGE = "Graph"


@lru_cache(maxsize=None)
def load_message_class(module_path: str, message_name: str):
    """Import a compiled ``*_pb2`` module and return one of its message classes."""
    try:
        module = importlib.import_module(module_path)
    except ImportError as exc:
        raise ImportError(f"proto_module_missing:{module_path}:{exc}") from exc
    cls = getattr(module, message_name, None)
    if cls is None:
        raise AttributeError(f"proto_message_missing:{module_path}.{message_name}")
    LOG.info("proto loaded: %s.%s", module_path, message_name)
    return cls


def get_map_type(module_path: str = MAP_PB2_MODULE):
    return load_message_class(module_path, MAP_MESSAGE)


def get_graph_type(module_path: str = GRAPH_PB2_MODULE):
    return load_message_class(module_path, GRAPH_MESSAGE)


def module_paths(cfg: Dict[str, Any]) -> Dict[str, str]:
    return {
        "map": str(cfg.get("MAP_PB2_MODULE") or MAP_PB2_MODULE),
        "graph": str(cfg.get("GRAPH_PB2_MODULE") or GRAPH_PB2_MODULE),
    }


__all__ = [
    "GRAPH_PB2_MODULE",
    "MAP_PB2_MODULE",
    "get_graph_type",
    "get_map_type",
    "load_message_class",
    "module_paths",
]
