from __future__ import annotations

import copy
import math
import sys
import unittest
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from hdmap.metadata.bezier import (
    BezierSegment,
    anchors_from_samples,
    cubic_bezier,
    default_control_points,
    sample_bezier_curve,
    segments_from_meta,
)
from hdmap.metadata.coord_codec import MAGIC, decode_slot, decode_tool_meta, encode_slot, encode_tool_meta
from hdmap.metadata.geometry_detector import detect_rotatable_rect, detect_tool_from_geometry
from hdmap.schema import ToolMeta


def _pts(xy):
    return [{"x": x, "y": y, "z": 0.0} for x, y in xy]


RECT_POINTS = _pts([(10.12345, 20.5), (14.0, 22.1), (13.2, 24.0), (9.3, 22.4)])

# coordinates as they come out of the projection for hand-drawn shapes
HAND_DRAWN = _pts(
    [
        (0.0, 0.0),
        (12.345678912, -45.678912345),
        (-1023.4567891, 2048.1234567),
        (3.75, 49.999812),
        (-0.000123, 0.98765),
        (731.12, -12.3456789),
    ]
)


class CoordCodecTests(unittest.TestCase):
    def test_slot_round_trip(self) -> None:
        for coord, meta in [(12.3456, 42), (-7.5, 999999), (0.0, 314159), (1523.0001, 0)]:
            clean, got = decode_slot(encode_slot(coord, meta))
            self.assertEqual(got, meta)
            self.assertAlmostEqual(clean, coord, places=4)

    def test_rotatable_rect_round_trip(self) -> None:
        meta = ToolMeta(tool="rotatable_rect", rotation=math.radians(30.0), width=4.5, height=2.0)
        original = copy.deepcopy(RECT_POINTS)
        encoded = encode_tool_meta(RECT_POINTS, meta)
        self.assertEqual(RECT_POINTS, original)

        decoded = decode_tool_meta(encoded)
        self.assertIsNotNone(decoded)
        self.assertEqual(decoded.meta, meta)
        for a, b in zip(decoded.clean_points, RECT_POINTS):
            self.assertLessEqual(abs(a["x"] - b["x"]), 1e-4)
            self.assertLessEqual(abs(a["y"] - b["y"]), 1e-4)

    def test_rotation_is_normalised(self) -> None:
        meta = ToolMeta(tool="rotatable_rect", rotation=math.radians(-90.0), width=1.0, height=1.0)
        decoded = decode_tool_meta(encode_tool_meta(RECT_POINTS, meta))
        self.assertAlmostEqual(decoded.meta.rotation, math.radians(270.0), places=9)

    def test_bezier_round_trip(self) -> None:
        offsets = ((0.00012, -0.0005), (-0.0003, 0.00025))
        meta = ToolMeta(tool="bezier", control_offsets=offsets)
        points = _pts([(0.0, 0.0), (5.0, 1.0), (10.0, 4.0), (15.0, 9.0)])
        decoded = decode_tool_meta(encode_tool_meta(points, meta))
        self.assertEqual(decoded.meta.tool, "bezier")
        self.assertEqual(len(decoded.meta.control_offsets), 2)
        for (ex, ey), (gx, gy) in zip(offsets, decoded.meta.control_offsets):
            self.assertAlmostEqual(ex, gx, places=9)
            self.assertAlmostEqual(ey, gy, places=9)

    def test_negative_coordinates(self) -> None:
        points = _pts([(-12.5, -3.25), (-20.0, 7.0)])
        decoded = decode_tool_meta(encode_tool_meta(points, ToolMeta(tool="line")))
        self.assertEqual(decoded.meta, ToolMeta(tool="line"))
        self.assertAlmostEqual(decoded.clean_points[0]["x"], -12.5, places=4)
        self.assertAlmostEqual(decoded.clean_points[0]["y"], -3.25, places=4)

    def test_header_layout(self) -> None:
        encoded = encode_tool_meta(RECT_POINTS, ToolMeta(tool="rotatable_rect", rotation=0.0, width=1.0, height=1.0))
        self.assertEqual(decode_slot(encoded[0]["x"])[1], 4 * 10000 + 4)
        self.assertEqual(decode_slot(encoded[0]["y"])[1], MAGIC)

    def test_sentinel_absent_on_hand_drawn(self) -> None:
        self.assertIsNone(decode_tool_meta(HAND_DRAWN))
        for i in range(len(HAND_DRAWN)):
            self.assertIsNone(decode_tool_meta(HAND_DRAWN[i:]))
        self.assertIsNone(decode_tool_meta([]))

    def test_declared_slots_must_fit(self) -> None:
        points = _pts([(1.0, 1.0), (2.0, 2.0)])
        points[0] = {"x": encode_slot(1.0, 3 * 10000 + 10), "y": encode_slot(1.0, MAGIC), "z": 0.0}
        self.assertIsNone(decode_tool_meta(points))

    def test_short_bezier_payload_has_no_controls(self) -> None:
        points = _pts([(1.0, 1.0), (2.0, 2.0)])
        points[0] = {"x": encode_slot(1.0, 3 * 10000 + 2), "y": encode_slot(1.0, MAGIC), "z": 0.0}
        points[1] = {"x": encode_slot(2.0, 500100), "y": encode_slot(2.0, 499900), "z": 0.0}
        decoded = decode_tool_meta(points)
        self.assertEqual(decoded.meta, ToolMeta(tool="bezier"))
        self.assertEqual(decoded.meta.control_offsets, ())

    def test_unknown_tool_code(self) -> None:
        points = _pts([(1.0, 1.0), (2.0, 2.0)])
        points[0] = {"x": encode_slot(1.0, 9 * 10000), "y": encode_slot(1.0, MAGIC), "z": 0.0}
        self.assertIsNone(decode_tool_meta(points))

    def test_payload_overflow(self) -> None:
        meta = ToolMeta(tool="rotatable_rect", rotation=0.0, width=1.0, height=1.0)
        with self.assertRaises(ValueError):
            encode_tool_meta(_pts([(0.0, 0.0), (1.0, 1.0)]), meta)


class GeometryDetectorTests(unittest.TestCase):
    def _rect(self, rotation: float, w: float, h: float):
        c, s = math.cos(rotation), math.sin(rotation)
        corners = [(0.0, 0.0), (w, 0.0), (w, h), (0.0, h)]
        return [(100.0 + x * c - y * s, 50.0 + x * s + y * c) for x, y in corners]

    def test_detects_rotated_rectangle(self) -> None:
        ring = self._rect(math.radians(30.0), 4.5, 2.0)
        meta = detect_rotatable_rect(ring + [ring[0]])
        self.assertIsNotNone(meta)
        self.assertAlmostEqual(meta.rotation, math.radians(30.0), places=9)
        self.assertAlmostEqual(meta.width, 4.5, places=9)
        self.assertAlmostEqual(meta.height, 2.0, places=9)

    def test_rejects_non_rectangles(self) -> None:
        self.assertIsNone(detect_rotatable_rect([(0, 0), (4, 0), (5, 2), (0, 2)]))
        self.assertIsNone(detect_rotatable_rect([(0, 0), (4, 0), (4, 2)]))
        self.assertIsNone(detect_rotatable_rect([(0, 0), (4, 0), (4, 2), (2, 3), (0, 2)]))

    def test_tool_from_geometry(self) -> None:
        ring = self._rect(0.0, 3.0, 1.0)
        self.assertEqual(detect_tool_from_geometry("Polygon", ring).tool, "rotatable_rect")
        self.assertEqual(detect_tool_from_geometry("Polygon", [(0, 0), (4, 0), (5, 2)]), ToolMeta(tool="polygon"))
        self.assertEqual(detect_tool_from_geometry("LineString"), ToolMeta(tool="line"))
        self.assertEqual(detect_tool_from_geometry("Point"), ToolMeta(tool="point"))
        self.assertEqual(detect_tool_from_geometry("MultiPolygon"), ToolMeta(tool="polygon"))


class BezierTests(unittest.TestCase):
    def test_endpoints_and_sample_count(self) -> None:
        seg = BezierSegment((0.0, 0.0), (1.0, 2.0), (3.0, 2.0), (4.0, 0.0))
        pts = sample_bezier_curve([seg, BezierSegment((4.0, 0.0), (5.0, -1.0), (7.0, -1.0), (8.0, 0.0))])
        self.assertEqual(len(pts), 41)
        self.assertEqual(pts[0], (0.0, 0.0))
        self.assertAlmostEqual(pts[20][0], 4.0)
        self.assertAlmostEqual(pts[-1][0], 8.0)
        self.assertEqual(sample_bezier_curve([]), [])

    def test_default_controls_give_straight_line(self) -> None:
        cp1, cp2 = default_control_points((0.0, 0.0), (3.0, 6.0))
        mid = cubic_bezier((0.0, 0.0), cp1, cp2, (3.0, 6.0), 0.5)
        self.assertAlmostEqual(mid[0], 1.5)
        self.assertAlmostEqual(mid[1], 3.0)

    def test_meta_offsets_rebuild_control_points(self) -> None:
        anchors = [(-122.0, 37.0), (-121.999, 37.001)]
        cps = [(-121.9997, 37.0001), (-121.9993, 37.0012)]
        meta = ToolMeta.for_bezier(anchors, cps)
        for got, want in zip(meta.control_points(), cps):
            self.assertAlmostEqual(got[0], want[0], places=12)
            self.assertAlmostEqual(got[1], want[1], places=12)
        samples = sample_bezier_curve(segments_from_meta(meta))
        self.assertEqual(anchors_from_samples(samples, 1), [samples[0], samples[-1]])


if __name__ == "__main__":
    unittest.main()
