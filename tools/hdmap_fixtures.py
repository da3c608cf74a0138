from __future__ import annotations

import sys
from pathlib import Path
from typing import Iterable, List, Tuple

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from shapely.geometry import LineString, Point, Polygon

from hdmap.enums import BoundaryType, LaneTurn, RoadType
from hdmap.geo.projection import Projection, create_projection
from hdmap.schema import (
    ClearArea,
    Crosswalk,
    Junction,
    Lane,
    MapElements,
    ParkingSpace,
    ProjectConfig,
    RoadDefinition,
    Signal,
    SpeedBump,
    StopSign,
    ToolMeta,
)

ORIGIN_LAT = 37.4153
ORIGIN_LON = -122.0119


def projection() -> Projection:
    return create_projection(ORIGIN_LAT, ORIGIN_LON)


def project() -> ProjectConfig:
    return ProjectConfig(
        name="sunnyvale_test",
        origin_lat=ORIGIN_LAT,
        origin_lon=ORIGIN_LON,
        version="1.0.0",
        date="2026-01-01",
    )


def enu_line(proj: Projection, pts: Iterable[Tuple[float, float]]) -> LineString:
    return LineString([proj.to_lnglat(x, y) for x, y in pts])


def enu_polygon(proj: Projection, pts: Iterable[Tuple[float, float]]) -> Polygon:
    return Polygon([proj.to_lnglat(x, y) for x, y in pts])


def enu_point(proj: Projection, x: float, y: float) -> Point:
    return Point(proj.to_lnglat(x, y))


def roads() -> List[RoadDefinition]:
    return [RoadDefinition(id="r1", name="main", type=RoadType.CITY_ROAD)]


def sample_elements(proj: Projection) -> MapElements:
    """Two lanes heading north from the origin, a right neighbour and one of each element type.

    lane_1: (0,0)->(0,50), crosses the crosswalk at y=20..24, signal stop line at y=30,
    stop sign at y=40. lane_2: (0,50)->(0,100), middle vertex inside junction j1, crosses
    the clear area at y=60..65 and the speed bump at y=80.
    """
    lane_1 = Lane(
        id="lane_1",
        center_line=enu_line(proj, [(0.0, 0.0), (0.0, 25.0), (0.0, 50.0)]),
        left_boundary_type=BoundaryType.DOTTED_WHITE,
        right_boundary_type=BoundaryType.DOTTED_WHITE,
        successor_ids=["lane_2"],
        right_neighbor_ids=["lane_3"],
        road_id="r1",
    )
    lane_2 = Lane(
        id="lane_2",
        center_line=enu_line(proj, [(0.0, 50.0), (0.0, 52.0), (0.0, 100.0)]),
        turn=LaneTurn.LEFT_TURN,
        predecessor_ids=["lane_1"],
        junction_id="j1",
    )
    lane_3 = Lane(
        id="lane_3",
        center_line=enu_line(proj, [(3.75, 0.0), (3.75, 25.0), (3.75, 50.0)]),
        left_boundary_type=BoundaryType.DOTTED_WHITE,
        left_neighbor_ids=["lane_1"],
        road_id="r1",
    )
    return MapElements(
        lanes=[lane_1, lane_2, lane_3],
        junctions=[Junction(id="j1", polygon=enu_polygon(proj, [(-10, 45), (10, 45), (10, 55), (-10, 55)]))],
        signals=[
            Signal(
                id="sig_1",
                position=enu_point(proj, 0.0, 30.0),
                stop_line=enu_line(proj, [(-2.0, 30.0), (0.0, 30.0), (2.0, 30.0)]),
            )
        ],
        stop_signs=[StopSign(id="ss_1", stop_line=enu_line(proj, [(-2.0, 40.0), (2.0, 40.0)]))],
        crosswalks=[Crosswalk(id="cw_1", polygon=enu_polygon(proj, [(-5, 20), (10, 20), (10, 24), (-5, 24)]))],
        clear_areas=[ClearArea(id="ca_1", polygon=enu_polygon(proj, [(-3, 60), (3, 60), (3, 65), (-3, 65)]))],
        speed_bumps=[SpeedBump(id="sb_1", line=enu_line(proj, [(-2.0, 80.0), (2.0, 80.0)]))],
        parking_spaces=[
            ParkingSpace(
                id="ps_1",
                polygon=enu_polygon(proj, [(20, 0), (25, 0), (25, 2.5), (20, 2.5)]),
                heading=0.5,
                tool_meta=ToolMeta(tool="rotatable_rect", rotation=0.0, width=5.0, height=2.5),
            )
        ],
    )


__all__ = [
    "ORIGIN_LAT",
    "ORIGIN_LON",
    "enu_line",
    "enu_point",
    "enu_polygon",
    "project",
    "projection",
    "roads",
    "sample_elements",
]
