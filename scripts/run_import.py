from __future__ import annotations

import argparse
import logging
from pathlib import Path

from hdmap._io import ensure_dir, setup_logging, write_json
from hdmap.config import CODEC_CHOICES, DEFAULTS
from hdmap.geojson_io import write_elements, write_project
from hdmap.import_map import parse_base_map
from hdmap.proto.codec import map_codec

LOG = logging.getLogger("run_import")


def main() -> int:
    ap = argparse.ArgumentParser(description="Recover editor elements from an Apollo base_map.")
    ap.add_argument("--input", required=True, help="base_map.bin (or base_map.json with --codec json)")
    ap.add_argument("--codec", default=DEFAULTS["CODEC"], choices=CODEC_CHOICES)
    ap.add_argument("--map-pb2", default=DEFAULTS["MAP_PB2_MODULE"])
    ap.add_argument("--out", required=True, help="output directory")
    args = ap.parse_args()

    out_dir = ensure_dir(Path(args.out))
    setup_logging(out_dir / "run.log")

    in_path = Path(args.input)
    if not in_path.exists():
        LOG.error("input not found: %s", in_path)
        return 2

    try:
        codec = map_codec(args.codec, args.map_pb2)
    except ImportError as exc:
        LOG.error("proto modules unavailable: %s", exc)
        return 3

    state = parse_base_map(in_path.read_bytes(), codec)

    write_elements(out_dir / "elements.geojson", state.elements)
    write_project(out_dir / "project.yaml", state.project, state.roads)
    write_json(
        out_dir / "import_summary.json",
        {
            "input": str(in_path),
            "codec": args.codec,
            "project": state.project.name,
            "origin": [state.project.origin_lat, state.project.origin_lon],
            "elements": state.elements.counts(),
            "roads": len(state.roads),
        },
    )
    LOG.info("DONE -> %s", out_dir)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
