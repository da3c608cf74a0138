from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
from pyproj import CRS, Transformer

from hdmap.errors import ProjectionNotInitializedError

PROJ_TEMPLATE = "+proj=tmerc +lat_0={lat} +lon_0={lon} +k=1 +ellps=WGS84 +no_defs"

_NUM = r"([-+]?\d*\.?\d+(?:[eE][-+]?\d+)?)"
_LAT0_RE = re.compile(r"\+lat_0=" + _NUM)
_LON0_RE = re.compile(r"\+lon_0=" + _NUM)


def _format_deg(v: float) -> str:
    # 37 -> "37", 37.5 -> "37.5"
    v = float(v)
    if v.is_integer():
        return str(int(v))
    return repr(v)


def format_proj_string(origin_lat: float, origin_lon: float) -> str:
    return PROJ_TEMPLATE.format(lat=_format_deg(origin_lat), lon=_format_deg(origin_lon))


def parse_proj_string(proj_str: str) -> Optional[Tuple[float, float]]:
    if not proj_str:
        return None
    lat_m = _LAT0_RE.search(proj_str)
    lon_m = _LON0_RE.search(proj_str)
    if not lat_m or not lon_m:
        return None
    return float(lat_m.group(1)), float(lon_m.group(1))


@dataclass(frozen=True)
class Projection:
    origin_lat: float
    origin_lon: float
    proj_string: str
    _fwd: Transformer = field(repr=False, compare=False)
    _inv: Transformer = field(repr=False, compare=False)

    def to_enu(self, lng: float, lat: float) -> Tuple[float, float]:
        x, y = self._fwd.transform(lng, lat)
        return float(x), float(y)

    def to_lnglat(self, x: float, y: float) -> Tuple[float, float]:
        lng, lat = self._inv.transform(x, y)
        return float(lng), float(lat)

    def to_enu_many(self, coords: Iterable[Sequence[float]]) -> np.ndarray:
        pts = _as_xy(coords)
        if pts.shape[0] == 0:
            return pts
        xs, ys = self._fwd.transform(pts[:, 0], pts[:, 1])
        return np.vstack([np.asarray(xs, dtype=float), np.asarray(ys, dtype=float)]).T

    def to_lnglat_many(self, coords: Iterable[Sequence[float]]) -> np.ndarray:
        pts = _as_xy(coords)
        if pts.shape[0] == 0:
            return pts
        lngs, lats = self._inv.transform(pts[:, 0], pts[:, 1])
        return np.vstack([np.asarray(lngs, dtype=float), np.asarray(lats, dtype=float)]).T


def _as_xy(coords: Iterable[Sequence[float]]) -> np.ndarray:
    rows = [(float(c[0]), float(c[1])) for c in coords]
    if not rows:
        return np.zeros((0, 2), dtype=float)
    return np.asarray(rows, dtype=float)


def create_projection(origin_lat: float, origin_lon: float) -> Projection:
    proj_string = format_proj_string(origin_lat, origin_lon)
    tmerc = CRS.from_proj4(proj_string)
    fwd = Transformer.from_crs("EPSG:4326", tmerc, always_xy=True)
    inv = Transformer.from_crs(tmerc, "EPSG:4326", always_xy=True)
    return Projection(
        origin_lat=float(origin_lat),
        origin_lon=float(origin_lon),
        proj_string=proj_string,
        _fwd=fwd,
        _inv=inv,
    )


def require_projection(projection: Optional[Projection]) -> Projection:
    if projection is None:
        raise ProjectionNotInitializedError()
    return projection


def lnglat_to_enu(projection: Optional[Projection], lng: float, lat: float, z: float = 0.0) -> Dict[str, float]:
    proj = require_projection(projection)
    x, y = proj.to_enu(lng, lat)
    return {"x": x, "y": y, "z": float(z)}


def positions_to_enu(projection: Optional[Projection], coords: Iterable[Sequence[float]]) -> List[Dict[str, float]]:
    proj = require_projection(projection)
    xy = proj.to_enu_many(coords)
    return [{"x": float(x), "y": float(y), "z": 0.0} for x, y in xy]


__all__ = [
    "PROJ_TEMPLATE",
    "Projection",
    "create_projection",
    "format_proj_string",
    "lnglat_to_enu",
    "parse_proj_string",
    "positions_to_enu",
    "require_projection",
]
