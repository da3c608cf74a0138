from __future__ import annotations

from typing import List, Tuple

from shapely.geometry import LineString, Point, Polygon

from hdmap.errors import GeometryTypeError


def _check(geom, expected: str, element_id: str):
    actual = "None" if geom is None else geom.geom_type
    if actual != expected:
        raise GeometryTypeError(element_id, expected, actual)
    return geom


def require_line(geom, element_id: str) -> LineString:
    return _check(geom, "LineString", element_id)


def require_polygon(geom, element_id: str) -> Polygon:
    return _check(geom, "Polygon", element_id)


def require_point(geom, element_id: str) -> Point:
    return _check(geom, "Point", element_id)


def ring_coords(poly: Polygon) -> List[Tuple[float, float]]:
    # Apollo polygons are implicitly closed, the repeated first vertex is dropped
    coords = [(float(c[0]), float(c[1])) for c in poly.exterior.coords]
    if len(coords) > 1 and coords[0] == coords[-1]:
        coords = coords[:-1]
    return coords


def line_coords(line: LineString) -> List[Tuple[float, float]]:
    return [(float(c[0]), float(c[1])) for c in line.coords]


def close_ring(coords: List[Tuple[float, float]]) -> List[Tuple[float, float]]:
    if not coords:
        return []
    if coords[0] == coords[-1]:
        return list(coords)
    return list(coords) + [coords[0]]


__all__ = [
    "close_ring",
    "line_coords",
    "require_line",
    "require_point",
    "require_polygon",
    "ring_coords",
]
