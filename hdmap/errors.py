from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional


class ProjectionNotInitializedError(RuntimeError):
    def __init__(self) -> None:
        super().__init__("projection_not_initialized")


class GeometryTypeError(TypeError):
    def __init__(self, element_id: str, expected: str, actual: str) -> None:
        super().__init__(f"geometry_type:{element_id}:expected={expected}:got={actual}")
        self.element_id = element_id
        self.expected = expected
        self.actual = actual


class LaneGeometryError(ValueError):
    def __init__(self, reason: str, lane_id: str = "") -> None:
        super().__init__(f"lane_geometry:{lane_id or '?'}:{reason}")
        self.lane_id = lane_id
        self.reason = reason


@dataclass
class LaneBuildFailure:
    lane_id: str
    reason: str


class MapBuildError(RuntimeError):
    def __init__(self, failures: List[LaneBuildFailure], partial_map: Optional[Dict[str, Any]] = None) -> None:
        ids = ",".join(f.lane_id for f in failures)
        super().__init__(f"map_build_failed:lanes={ids}")
        self.failures = failures
        self.partial_map = partial_map


class ToolMetaEncodeError(ValueError):
    pass


class BuildCancelledError(RuntimeError):
    def __init__(self, phase: str) -> None:
        super().__init__(f"build_cancelled:before={phase}")
        self.phase = phase


__all__ = [
    "BuildCancelledError",
    "GeometryTypeError",
    "LaneBuildFailure",
    "LaneGeometryError",
    "MapBuildError",
    "ProjectionNotInitializedError",
    "ToolMetaEncodeError",
]
