from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from shapely.geometry import LineString, Point, Polygon

from hdmap.enums import (
    BoundaryType,
    LaneDirection,
    LaneTurn,
    LaneType,
    RoadType,
    SignalType,
    StopSignType,
)

TOOL_KINDS = ("point", "line", "bezier", "rotatable_rect", "polygon")

DEFAULT_LANE_WIDTH_M = 3.75
DEFAULT_SPEED_LIMIT_MPS = 13.89

LonLat = Tuple[float, float]


@dataclass(frozen=True)
class ToolMeta:
    """How a shape was drawn, so an imported map keeps its editing handles.

    ``control_offsets`` holds two ``(dlng, dlat)`` offsets per bezier segment:
    the first control point relative to the segment's start anchor, the second
    relative to its end anchor. ``anchors`` is derived from the sampled
    geometry and is not part of equality.
    """

    tool: str
    rotation: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None
    control_offsets: Tuple[LonLat, ...] = ()
    anchors: Tuple[LonLat, ...] = field(default=(), compare=False)

    def __post_init__(self) -> None:
        if self.tool not in TOOL_KINDS:
            raise ValueError(f"unknown_tool:{self.tool}")

    @classmethod
    def for_bezier(cls, anchors: Sequence[LonLat], control_points: Sequence[LonLat]) -> "ToolMeta":
        offsets: List[LonLat] = []
        for i in range(0, len(control_points), 2):
            seg = i // 2
            a0 = anchors[seg] if seg < len(anchors) else (0.0, 0.0)
            a1 = anchors[seg + 1] if seg + 1 < len(anchors) else (0.0, 0.0)
            cp1 = control_points[i]
            offsets.append((cp1[0] - a0[0], cp1[1] - a0[1]))
            if i + 1 < len(control_points):
                cp2 = control_points[i + 1]
                offsets.append((cp2[0] - a1[0], cp2[1] - a1[1]))
        return cls(
            tool="bezier",
            control_offsets=tuple(offsets),
            anchors=tuple((float(x), float(y)) for x, y in anchors),
        )

    def control_points(self) -> List[LonLat]:
        out: List[LonLat] = []
        if not self.anchors:
            return out
        for i, (dx, dy) in enumerate(self.control_offsets):
            seg = i // 2
            idx = seg if i % 2 == 0 else seg + 1
            if idx >= len(self.anchors):
                break
            ax, ay = self.anchors[idx]
            out.append((ax + dx, ay + dy))
        return out


@dataclass
class ProjectConfig:
    name: str
    origin_lat: float
    origin_lon: float
    version: str = "1.0.0"
    date: str = ""


@dataclass
class RoadDefinition:
    id: str
    name: str = ""
    type: RoadType = RoadType.CITY_ROAD


@dataclass
class Lane:
    id: str
    center_line: LineString
    width: float = DEFAULT_LANE_WIDTH_M
    speed_limit: float = DEFAULT_SPEED_LIMIT_MPS
    lane_type: LaneType = LaneType.CITY_DRIVING
    turn: LaneTurn = LaneTurn.NO_TURN
    direction: LaneDirection = LaneDirection.FORWARD
    left_boundary_type: BoundaryType = BoundaryType.SOLID_WHITE
    right_boundary_type: BoundaryType = BoundaryType.SOLID_WHITE
    predecessor_ids: List[str] = field(default_factory=list)
    successor_ids: List[str] = field(default_factory=list)
    left_neighbor_ids: List[str] = field(default_factory=list)
    right_neighbor_ids: List[str] = field(default_factory=list)
    junction_id: Optional[str] = None
    road_id: Optional[str] = None
    tool_meta: Optional[ToolMeta] = None


@dataclass
class Junction:
    id: str
    polygon: Polygon
    tool_meta: Optional[ToolMeta] = None


@dataclass
class Signal:
    id: str
    position: Point
    stop_line: LineString
    signal_type: SignalType = SignalType.MIX_3_VERTICAL
    tool_meta: Optional[ToolMeta] = None


@dataclass
class StopSign:
    id: str
    stop_line: LineString
    stop_sign_type: StopSignType = StopSignType.ONE_WAY
    tool_meta: Optional[ToolMeta] = None


@dataclass
class Crosswalk:
    id: str
    polygon: Polygon
    tool_meta: Optional[ToolMeta] = None


@dataclass
class ClearArea:
    id: str
    polygon: Polygon
    tool_meta: Optional[ToolMeta] = None


@dataclass
class SpeedBump:
    id: str
    line: LineString
    tool_meta: Optional[ToolMeta] = None


@dataclass
class ParkingSpace:
    id: str
    polygon: Polygon
    heading: Optional[float] = None
    tool_meta: Optional[ToolMeta] = None


@dataclass
class MapElements:
    lanes: List[Lane] = field(default_factory=list)
    junctions: List[Junction] = field(default_factory=list)
    signals: List[Signal] = field(default_factory=list)
    stop_signs: List[StopSign] = field(default_factory=list)
    crosswalks: List[Crosswalk] = field(default_factory=list)
    clear_areas: List[ClearArea] = field(default_factory=list)
    speed_bumps: List[SpeedBump] = field(default_factory=list)
    parking_spaces: List[ParkingSpace] = field(default_factory=list)

    def iter_kinds(self) -> Iterator[Tuple[str, list]]:
        yield "lane", self.lanes
        yield "junction", self.junctions
        yield "signal", self.signals
        yield "stop_sign", self.stop_signs
        yield "crosswalk", self.crosswalks
        yield "clear_area", self.clear_areas
        yield "speed_bump", self.speed_bumps
        yield "parking_space", self.parking_spaces

    def counts(self) -> Dict[str, int]:
        return {kind: len(items) for kind, items in self.iter_kinds()}

    def add(self, kind: str, element) -> None:
        for k, items in self.iter_kinds():
            if k == kind:
                items.append(element)
                return
        raise KeyError(f"unknown_element_kind:{kind}")


@dataclass
class ParsedMapState:
    project: ProjectConfig
    elements: MapElements
    roads: List[RoadDefinition] = field(default_factory=list)


__all__ = [
    "DEFAULT_LANE_WIDTH_M",
    "DEFAULT_SPEED_LIMIT_MPS",
    "TOOL_KINDS",
    "ClearArea",
    "Crosswalk",
    "Junction",
    "Lane",
    "MapElements",
    "ParkingSpace",
    "ParsedMapState",
    "ProjectConfig",
    "RoadDefinition",
    "Signal",
    "SpeedBump",
    "StopSign",
    "ToolMeta",
]
