from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any, Dict, Iterable

import yaml


REQUIRED_KEYS = [
    "VENDOR",
    "CODEC",
    "MAP_PB2_MODULE",
    "GRAPH_PB2_MODULE",
    "WRITE_JSON_MIRRORS",
    "EMBED_TOOL_META",
    "OVERWRITE",
    "ROUTING",
]

DEFAULTS: Dict[str, Any] = {
    "VENDOR": "Apollo Map Editor",
    "CODEC": "proto",
    "MAP_PB2_MODULE": "modules.map.proto.map_pb2",
    "GRAPH_PB2_MODULE": "modules.routing.proto.topo_graph_pb2",
    "WRITE_JSON_MIRRORS": True,
    "EMBED_TOOL_META": True,
    "OVERWRITE": True,
    "ROUTING": {
        "base_speed": 4.167,
        "left_turn_penalty": 50.0,
        "right_turn_penalty": 20.0,
        "uturn_penalty": 100.0,
        "change_penalty": 500.0,
        "base_changing_length": 50.0,
    },
}

CODEC_CHOICES = ("proto", "json")


def _normalize(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {k: _normalize(obj[k]) for k in sorted(obj.keys())}
    if isinstance(obj, list):
        return [_normalize(v) for v in obj]
    return obj


def get_params_hash(cfg: Dict[str, Any]) -> str:
    payload = _normalize(dict(cfg))
    raw = json.dumps(payload, sort_keys=True, ensure_ascii=True, separators=(",", ":")).encode("utf-8")
    return hashlib.sha1(raw).hexdigest()


def _write_resolved(run_dir: Path, cfg: Dict[str, Any]) -> None:
    run_dir.mkdir(parents=True, exist_ok=True)
    out_path = run_dir / "resolved_config.yaml"
    with out_path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(cfg, f, sort_keys=False, allow_unicode=False)
    params_hash = get_params_hash(cfg)
    (run_dir / "params_hash.txt").write_text(params_hash + "\n", encoding="utf-8")


def _assert_required(cfg: Dict[str, Any], required: Iterable[str]) -> None:
    missing = [k for k in required if k not in cfg]
    if missing:
        raise KeyError(f"Missing required keys: {missing}")


def apply_defaults(base_cfg: Dict[str, Any]) -> Dict[str, Any]:
    cfg = dict(base_cfg)
    for k, v in DEFAULTS.items():
        if k not in cfg:
            cfg[k] = v
    routing = dict(DEFAULTS["ROUTING"])
    routing.update(cfg.get("ROUTING") or {})
    cfg["ROUTING"] = routing

    codec = str(cfg.get("CODEC") or "").strip().lower()
    if codec not in CODEC_CHOICES:
        raise ValueError(f"config_error:CODEC:{codec}")
    cfg["CODEC"] = codec
    _assert_required(cfg, REQUIRED_KEYS)
    return cfg


def resolve_config(base_cfg: Dict[str, Any], run_dir: Path) -> Dict[str, Any]:
    cfg = apply_defaults(base_cfg)
    _write_resolved(run_dir, cfg)
    return cfg


__all__ = [
    "CODEC_CHOICES",
    "DEFAULTS",
    "REQUIRED_KEYS",
    "apply_defaults",
    "get_params_hash",
    "resolve_config",
]
