from __future__ import annotations

import copy
import math
import sys
import unittest
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from hdmap.enums import EdgeDirection, LaneTurn
from hdmap.export.base_map import build_base_map
from hdmap.export.routing_map import RoutingConfig, build_routing_map, change_cost, node_cost
from hdmap.export.sim_map import (
    build_sim_map,
    downsample_by_angle,
    downsample_by_distance,
    downsample_points,
    get_path_angle,
)

from hdmap_fixtures import project, projection, roads, sample_elements


def _pts(xy):
    return [{"x": float(x), "y": float(y), "z": 0.0} for x, y in xy]


def _arc(radius: float, n: int, sweep: float = math.pi / 2):
    return _pts([(radius * math.cos(sweep * i / (n - 1)), radius * math.sin(sweep * i / (n - 1))) for i in range(n)])


class DownsampleTests(unittest.TestCase):
    def test_straight_line_keeps_ends(self) -> None:
        line = _pts([(0, i) for i in range(12)])
        out = downsample_points(line)
        self.assertEqual(out, [line[0], line[-1]])

    def test_short_inputs_untouched(self) -> None:
        two = _pts([(0, 0), (1, 1)])
        self.assertEqual(downsample_points(two), two)
        four = _pts([(0, 0), (1, 0), (2, 0), (3, 0)])
        self.assertEqual(downsample_by_distance(four), [0, 1, 2, 3])

    def test_curve_never_grows_and_keeps_ends(self) -> None:
        for pts in (_arc(20.0, 60), _arc(5.0, 30, math.pi), _arc(200.0, 80, 0.3)):
            out = downsample_points(pts)
            self.assertLessEqual(len(out), len(pts))
            self.assertEqual(out[0], pts[0])
            self.assertEqual(out[-1], pts[-1])

    def test_angle_stage(self) -> None:
        pts = _pts([(0, 0), (1, 0), (2, 0), (3, 1), (4, 2), (5, 3)])
        self.assertAlmostEqual(get_path_angle(pts, 0, 2), math.pi / 4)
        self.assertEqual(get_path_angle(pts, 2, 2), 0.0)
        self.assertEqual(get_path_angle(pts, 0, 5), 0.0)
        self.assertEqual(downsample_by_angle(pts), [0, 2, 5])

    def test_steep_turn_uses_short_interval(self) -> None:
        # L-shaped path: first and last segments at 90 degrees
        pts = _pts([(0, 0), (0.6, 0), (1.2, 0), (1.8, 0), (2.4, 0), (2.4, 0.6), (2.4, 1.2)])
        self.assertEqual(downsample_by_distance(pts), [0, 2, 4, 6])
        gentle = _pts([(0, 0), (0.6, 0), (1.2, 0), (1.8, 0), (2.4, 0), (3.0, 0.1), (3.6, 0.2)])
        self.assertEqual(downsample_by_distance(gentle), [0, 6])

    def test_sim_map_from_base(self) -> None:
        proj = projection()
        base = build_base_map(project(), sample_elements(proj), roads(), proj)
        before = copy.deepcopy(base)
        sim = build_sim_map(base)
        self.assertEqual(base, before)
        for lane in sim["lane"]:
            for key in ("leftSample", "rightSample", "leftRoadSample", "rightRoadSample"):
                self.assertEqual(lane[key], [])
            pts = lane["centralCurve"]["segment"][0]["lineSegment"]["point"]
            self.assertEqual(len(pts), 2)
        self.assertEqual(len(sim["lane"]), len(base["lane"]))
        self.assertEqual(sim["header"], base["header"])


class RoutingTests(unittest.TestCase):
    def setUp(self) -> None:
        proj = projection()
        self.base = build_base_map(project(), sample_elements(proj), roads(), proj)
        self.graph = build_routing_map(self.base)
        self.nodes = {n["laneId"]: n for n in self.graph["node"]}

    def test_turn_penalty(self) -> None:
        cfg = RoutingConfig()
        lane = {"length": 50.0, "speedLimit": 13.89, "turn": int(LaneTurn.NO_TURN)}
        left = dict(lane, turn=int(LaneTurn.LEFT_TURN))
        self.assertAlmostEqual(node_cost(left, cfg) - node_cost(lane, cfg), 50.0, places=9)
        self.assertAlmostEqual(node_cost(lane, cfg), 50.0 * math.sqrt(4.167 / 13.89), places=9)

    def test_slow_and_missing_speed_limit(self) -> None:
        cfg = RoutingConfig()
        self.assertAlmostEqual(node_cost({"length": 30.0, "speedLimit": 2.0}, cfg), 30.0)
        self.assertAlmostEqual(node_cost({"length": 30.0, "speedLimit": 0.0}, cfg), 30.0)
        self.assertAlmostEqual(node_cost({"length": 30.0}, cfg), 30.0)

    def test_change_cost(self) -> None:
        cfg = RoutingConfig()
        self.assertEqual(change_cost(60.0, cfg), 500.0)
        self.assertEqual(change_cost(50.0, cfg), 500.0)
        self.assertAlmostEqual(change_cost(25.0, cfg), 500.0 * 0.5 ** -1.5)
        self.assertEqual(change_cost(0.0, cfg), 500.0)

    def test_nodes(self) -> None:
        n1 = self.nodes["lane_1"]
        self.assertEqual(len(n1["leftOut"]), 1)
        self.assertEqual(n1["leftOut"][0]["start"]["s"], 0.0)
        self.assertAlmostEqual(n1["leftOut"][0]["end"]["s"], n1["length"])
        self.assertEqual(self.nodes["lane_2"]["leftOut"], [])
        self.assertEqual(n1["roadId"], "r1")
        self.assertEqual(self.nodes["lane_2"]["roadId"], "road_lane_2")
        self.assertFalse(n1["isVirtual"])
        self.assertTrue(self.nodes["lane_2"]["isVirtual"])
        self.assertEqual(n1["centralCurve"], self.base["lane"][0]["centralCurve"])

    def test_edges(self) -> None:
        edges = {(e["fromLaneId"], e["toLaneId"], e["directionType"]): e for e in self.graph["edge"]}
        fwd = edges[("lane_1", "lane_2", int(EdgeDirection.FORWARD))]
        self.assertEqual(fwd["cost"], 0.0)
        right = edges[("lane_1", "lane_3", int(EdgeDirection.RIGHT))]
        self.assertAlmostEqual(right["cost"], 500.0, delta=1.0)
        self.assertIn(("lane_3", "lane_1", int(EdgeDirection.LEFT)), edges)
        self.assertEqual(len(self.graph["edge"]), 3)

    def test_solid_boundary_blocks_change(self) -> None:
        base = copy.deepcopy(self.base)
        base["lane"][0]["rightBoundary"]["boundaryType"][0]["types"] = [4]
        graph = build_routing_map(base)
        kinds = [e["directionType"] for e in graph["edge"] if e["fromLaneId"] == "lane_1"]
        self.assertNotIn(int(EdgeDirection.RIGHT), kinds)

    def test_header_and_config(self) -> None:
        self.assertEqual(self.graph["hdmapVersion"], "1.0.0")
        self.assertEqual(self.graph["hdmapDistrict"], "sunnyvale_test")
        cfg = RoutingConfig.from_dict({"left_turn_penalty": 80, "unknown": 1})
        self.assertEqual(cfg.left_turn_penalty, 80.0)
        self.assertEqual(cfg.base_speed, 4.167)


if __name__ == "__main__":
    unittest.main()
