from __future__ import annotations

import argparse
import logging
from pathlib import Path

from hdmap._io import ensure_dir, ensure_overwrite, load_yaml, new_run_id, setup_logging, write_json
from hdmap._report import write_run_card, write_validation_report
from hdmap.config import get_params_hash, resolve_config
from hdmap.errors import GeometryTypeError, MapBuildError, ProjectionNotInitializedError
from hdmap.export.pipeline import run_export
from hdmap.geojson_io import read_elements, read_project
from hdmap.validation import validate_map

LOG = logging.getLogger("run_export")


def main() -> int:
    ap = argparse.ArgumentParser(description="Build base_map / sim_map / routing_map from editor elements.")
    ap.add_argument("--elements", required=True, help="GeoJSON FeatureCollection of map elements")
    ap.add_argument("--project", required=True, help="project YAML (name, origin_lat, origin_lon, roads)")
    ap.add_argument("--config", default="configs/map_build.yaml")
    ap.add_argument("--run-id", default="")
    ap.add_argument("--out-root", default="runs")
    args = ap.parse_args()

    config_path = Path(args.config)
    base_cfg = load_yaml(config_path) if config_path.exists() else {}
    run_id = args.run_id or new_run_id("export")
    run_dir = Path(args.out_root) / run_id

    if bool(base_cfg.get("OVERWRITE", True)):
        ensure_overwrite(run_dir)
    ensure_dir(run_dir)
    setup_logging(run_dir / "run.log")
    LOG.info("run_id=%s", run_id)
    if not config_path.exists():
        LOG.warning("config not found, using defaults: %s", config_path)

    try:
        cfg = resolve_config(base_cfg, run_dir)
    except (KeyError, ValueError) as exc:
        LOG.error("config invalid: %s", exc)
        return 2

    elements_path = Path(args.elements)
    project_path = Path(args.project)
    if not elements_path.exists():
        LOG.error("elements not found: %s", elements_path)
        return 3
    if not project_path.exists():
        LOG.error("project not found: %s", project_path)
        return 3

    project, roads = read_project(project_path)
    elements = read_elements(elements_path)

    report = validate_map(elements, roads)
    write_validation_report(run_dir / "validation.md", report)
    write_json(run_dir / "validation.json", report.to_dict())

    failures = []
    try:
        result = run_export(project, elements, roads, cfg=cfg, out_dir=run_dir / "maps")
    except MapBuildError as exc:
        for f in exc.failures:
            LOG.error("lane failed: %s %s", f.lane_id, f.reason)
        failures = [{"lane_id": f.lane_id, "reason": f.reason} for f in exc.failures]
        result = None
    except (GeometryTypeError, ProjectionNotInitializedError) as exc:
        LOG.error("export failed: %s", exc)
        return 4
    except ImportError as exc:
        LOG.error("proto modules unavailable (set CODEC: json or MAP_PB2_MODULE): %s", exc)
        return 5

    summary = {
        "run_id": run_id,
        "config": args.config,
        "params_hash": get_params_hash(cfg),
        "project": project.name,
        "elements": elements.counts(),
        "validation": report.stats,
        "artifacts": sorted(result.artifacts) if result else [],
        "lanes_failed": failures,
    }
    write_json(run_dir / "run_summary.json", summary)
    write_run_card(run_dir / "RunCard.md", summary)

    if result is None:
        return 6
    LOG.info("DONE -> %s", run_dir)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
