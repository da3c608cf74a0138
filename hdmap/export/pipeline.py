from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from hdmap._io import write_bytes
from hdmap.config import DEFAULTS
from hdmap.errors import BuildCancelledError
from hdmap.export.base_map import build_base_map
from hdmap.export.routing_map import RoutingConfig, build_routing_map
from hdmap.export.sim_map import build_sim_map
from hdmap.geo.projection import Projection
from hdmap.proto.codec import JsonCodec, graph_codec, map_codec
from hdmap.proto.loader import module_paths
from hdmap.schema import MapElements, ProjectConfig, RoadDefinition

LOG = logging.getLogger("export")

PHASES = ("base_map", "sim_map", "routing_map", "encode")


@dataclass
class ExportResult:
    base_map: Dict[str, Any]
    sim_map: Dict[str, Any]
    routing_map: Dict[str, Any]
    artifacts: Dict[str, bytes] = field(default_factory=dict)


def _check(cancel_event: Optional[threading.Event], phase: str) -> None:
    if cancel_event is not None and cancel_event.is_set():
        LOG.warning("export cancelled before %s", phase)
        raise BuildCancelledError(phase)


def encode_artifacts(result: ExportResult, cfg: Dict[str, Any]) -> Dict[str, bytes]:
    kind = cfg.get("CODEC", DEFAULTS["CODEC"])
    paths = module_paths(cfg)
    mcodec = map_codec(kind, paths["map"])
    gcodec = graph_codec(kind, paths["graph"])

    artifacts = {
        "base_map.bin": mcodec.encode(result.base_map),
        "sim_map.bin": mcodec.encode(result.sim_map),
        "routing_map.bin": gcodec.encode(result.routing_map),
    }
    if cfg.get("WRITE_JSON_MIRRORS", DEFAULTS["WRITE_JSON_MIRRORS"]):
        mirror = JsonCodec(indent=2)
        artifacts["base_map.json"] = mirror.encode(result.base_map)
        artifacts["sim_map.json"] = mirror.encode(result.sim_map)
        artifacts["routing_map.json"] = mirror.encode(result.routing_map)
    return artifacts


def run_export(
    project: ProjectConfig,
    elements: MapElements,
    roads: Sequence[RoadDefinition] = (),
    cfg: Optional[Dict[str, Any]] = None,
    projection: Optional[Projection] = None,
    out_dir: Optional[Path] = None,
    cancel_event: Optional[threading.Event] = None,
) -> ExportResult:
    cfg = dict(DEFAULTS) if cfg is None else cfg

    _check(cancel_event, "base_map")
    base_map = build_base_map(
        project,
        elements,
        roads,
        projection=projection,
        vendor=cfg.get("VENDOR", DEFAULTS["VENDOR"]),
        embed_tool_meta=bool(cfg.get("EMBED_TOOL_META", DEFAULTS["EMBED_TOOL_META"])),
    )

    _check(cancel_event, "sim_map")
    sim_map = build_sim_map(base_map)

    _check(cancel_event, "routing_map")
    routing_map = build_routing_map(base_map, RoutingConfig.from_dict(cfg.get("ROUTING")))

    result = ExportResult(base_map=base_map, sim_map=sim_map, routing_map=routing_map)

    _check(cancel_event, "encode")
    result.artifacts = encode_artifacts(result, cfg)

    if out_dir is not None:
        for name, data in result.artifacts.items():
            write_bytes(out_dir / name, data)
        LOG.info("export wrote %d artifacts -> %s", len(result.artifacts), out_dir)
    return result


__all__ = ["PHASES", "ExportResult", "encode_artifacts", "run_export"]
