from __future__ import annotations

import math
import sys
import unittest
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from pyproj import Geod
from shapely.geometry import LineString, Polygon

from hdmap.errors import LaneGeometryError, ProjectionNotInitializedError
from hdmap.geo.lane_geometry import (
    build_lane_polygon,
    compute_boundaries,
    compute_lane_samples,
    compute_start_heading,
    lane_midpoint_info,
    line_length,
    point_to_s,
    snap_lane_endpoints,
)
from hdmap.geo.projection import (
    create_projection,
    format_proj_string,
    lnglat_to_enu,
    parse_proj_string,
    positions_to_enu,
)

from hdmap_fixtures import ORIGIN_LAT, ORIGIN_LON, enu_line, projection

_GEOD = Geod(ellps="WGS84")


def _north_line(distance_m: float = 50.0) -> LineString:
    lon, lat, _ = _GEOD.fwd(ORIGIN_LON, ORIGIN_LAT, 0.0, distance_m)
    return LineString([(ORIGIN_LON, ORIGIN_LAT), (lon, lat)])


class ProjectionTests(unittest.TestCase):
    def test_proj_string_format(self) -> None:
        proj = projection()
        self.assertEqual(
            proj.proj_string,
            "+proj=tmerc +lat_0=37.4153 +lon_0=-122.0119 +k=1 +ellps=WGS84 +no_defs",
        )
        self.assertEqual(format_proj_string(37.0, -122.0), "+proj=tmerc +lat_0=37 +lon_0=-122 +k=1 +ellps=WGS84 +no_defs")

    def test_parse_proj_string(self) -> None:
        self.assertEqual(parse_proj_string(projection().proj_string), (ORIGIN_LAT, ORIGIN_LON))
        self.assertIsNone(parse_proj_string("+proj=utm +zone=10"))
        self.assertIsNone(parse_proj_string(""))

    def test_origin_maps_to_zero(self) -> None:
        x, y = projection().to_enu(ORIGIN_LON, ORIGIN_LAT)
        self.assertAlmostEqual(x, 0.0, places=6)
        self.assertAlmostEqual(y, 0.0, places=6)

    def test_round_trip(self) -> None:
        proj = projection()
        for x, y in [(10.0, 20.0), (-250.5, 1300.25), (0.0, -75.0)]:
            lng, lat = proj.to_lnglat(x, y)
            x2, y2 = proj.to_enu(lng, lat)
            self.assertAlmostEqual(x, x2, places=6)
            self.assertAlmostEqual(y, y2, places=6)

    def test_north_is_positive_y(self) -> None:
        line = _north_line(100.0)
        x, y = projection().to_enu(*line.coords[-1])
        self.assertAlmostEqual(x, 0.0, places=3)
        self.assertAlmostEqual(y, 100.0, delta=0.05)

    def test_helpers_require_projection(self) -> None:
        with self.assertRaises(ProjectionNotInitializedError):
            lnglat_to_enu(None, ORIGIN_LON, ORIGIN_LAT)
        with self.assertRaises(ProjectionNotInitializedError):
            positions_to_enu(None, [(ORIGIN_LON, ORIGIN_LAT)])

    def test_projections_are_independent(self) -> None:
        a = create_projection(ORIGIN_LAT, ORIGIN_LON)
        b = create_projection(48.0, 11.0)
        self.assertNotEqual(a.proj_string, b.proj_string)
        self.assertAlmostEqual(a.to_enu(ORIGIN_LON, ORIGIN_LAT)[0], 0.0, places=6)


class LaneGeometryTests(unittest.TestCase):
    def test_length_and_heading(self) -> None:
        line = _north_line(50.0)
        self.assertAlmostEqual(line_length(line), 50.0, delta=1e-6)
        self.assertAlmostEqual(compute_start_heading(line), math.pi / 2, places=6)
        self.assertEqual(compute_start_heading(LineString()), 0.0)

    def test_boundaries_sit_either_side(self) -> None:
        proj = projection()
        line = _north_line(50.0)
        left, right = compute_boundaries(line, 3.75, proj)
        lx, _ = proj.to_enu(*left.coords[0])
        rx, _ = proj.to_enu(*right.coords[0])
        self.assertAlmostEqual(lx, -1.875, places=3)
        self.assertAlmostEqual(rx, 1.875, places=3)
        # same direction as the centerline
        _, ly_end = proj.to_enu(*left.coords[-1])
        self.assertGreater(ly_end, 49.0)

    def test_bad_width_and_degenerate_line(self) -> None:
        line = _north_line(50.0)
        with self.assertRaises(LaneGeometryError):
            compute_boundaries(line, 0.0)
        point_line = LineString([(ORIGIN_LON, ORIGIN_LAT), (ORIGIN_LON, ORIGIN_LAT)])
        with self.assertRaises(LaneGeometryError) as ctx:
            compute_boundaries(point_line, 3.75, lane_id="lane_x")
        self.assertEqual(ctx.exception.lane_id, "lane_x")

    def test_self_intersecting_line(self) -> None:
        proj = projection()
        loop = enu_line(proj, [(0, 0), (10, 10), (10, 0), (0, 10)])
        with self.assertRaises(LaneGeometryError):
            compute_boundaries(loop, 3.75, proj)

    def test_samples_every_metre_plus_end(self) -> None:
        line = _north_line(10.5)
        left, right = compute_lane_samples(line, 4.0)
        self.assertEqual(left, right)
        self.assertEqual(len(left), 12)
        self.assertEqual(left[0], {"s": 0.0, "width": 2.0})
        self.assertAlmostEqual(left[-1]["s"], 10.5, places=6)

    def test_lane_polygon_area(self) -> None:
        proj = projection()
        left, right = compute_boundaries(_north_line(50.0), 3.75, proj)
        poly = build_lane_polygon(left, right)
        enu = [proj.to_enu(*c) for c in poly.exterior.coords]
        self.assertAlmostEqual(Polygon(enu).area, 50.0 * 3.75, delta=0.5)

    def test_point_to_s_and_midpoint(self) -> None:
        proj = projection()
        line = enu_line(proj, [(0, 0), (0, 40)])
        s = point_to_s(line, proj.to_lnglat(3.0, 12.0), proj)
        self.assertAlmostEqual(s, 12.0, places=3)
        mid, brg = lane_midpoint_info(line)
        mx, my = proj.to_enu(mid.x, mid.y)
        self.assertAlmostEqual(my, 20.0, delta=0.05)
        self.assertAlmostEqual(brg, 0.0, delta=0.01)

    def test_snap_endpoints(self) -> None:
        proj = projection()
        a = enu_line(proj, [(0, 0), (0, 10)])
        near = enu_line(proj, [(1, 10), (1, 20)])
        far = enu_line(proj, [(20, 10), (20, 20)])
        snapped = snap_lane_endpoints(a, near)
        self.assertIsNotNone(snapped)
        self.assertEqual(snapped.coords[0], a.coords[-1])
        self.assertEqual(snapped.coords[-1], near.coords[-1])
        self.assertIsNone(snap_lane_endpoints(a, far))


if __name__ == "__main__":
    unittest.main()
