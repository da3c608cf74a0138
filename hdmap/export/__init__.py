from __future__ import annotations

from hdmap.export.base_map import assemble_base_map, build_base_map
from hdmap.export.pipeline import ExportResult, run_export
from hdmap.export.routing_map import RoutingConfig, build_routing_map
from hdmap.export.sim_map import build_sim_map, downsample_points

__all__ = [
    "ExportResult",
    "RoutingConfig",
    "assemble_base_map",
    "build_base_map",
    "build_routing_map",
    "build_sim_map",
    "downsample_points",
    "run_export",
]
