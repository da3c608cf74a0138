from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Sequence

from hdmap.schema import MapElements, RoadDefinition

LOG = logging.getLogger("validation")

SEVERITIES = ("error", "warning", "info")


@dataclass
class ValidationIssue:
    severity: str
    category: str
    element_id: str
    message: str


@dataclass
class ValidationReport:
    issues: List[ValidationIssue] = field(default_factory=list)
    stats: Dict[str, int] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.stats.get("error_count", 0) == 0

    def to_dict(self) -> dict:
        return {"issues": [asdict(i) for i in self.issues], "stats": dict(self.stats)}


def validate_map(elements: MapElements, roads: Sequence[RoadDefinition] = ()) -> ValidationReport:
    issues: List[ValidationIssue] = []
    lanes = {lane.id: lane for lane in elements.lanes}
    road_ids = {r.id for r in roads}
    connections = 0
    isolated = 0

    def add(severity: str, category: str, element_id: str, message: str) -> None:
        issues.append(ValidationIssue(severity, category, element_id, message))

    for lane in elements.lanes:
        connections += len(lane.successor_ids)
        if not (lane.successor_ids or lane.predecessor_ids or lane.left_neighbor_ids or lane.right_neighbor_ids):
            add("warning", "topology", lane.id, "lane has no connections (isolated)")
            isolated += 1

        if lane.id in lane.successor_ids or lane.id in lane.predecessor_ids:
            add("error", "topology", lane.id, "lane is connected to itself")

        for succ_id in lane.successor_ids:
            if succ_id not in lanes:
                add("error", "reference", lane.id, f"successor {succ_id!r} does not exist")
        for pred_id in lane.predecessor_ids:
            if pred_id not in lanes:
                add("error", "reference", lane.id, f"predecessor {pred_id!r} does not exist")

        for succ_id in lane.successor_ids:
            succ = lanes.get(succ_id)
            if succ is not None and lane.id not in succ.predecessor_ids:
                add(
                    "warning",
                    "topology",
                    lane.id,
                    f"asymmetric connection: successor {succ_id!r} does not list this lane as predecessor",
                )

        if not lane.road_id:
            add("info", "organization", lane.id, "lane is not assigned to any road")
        elif lane.road_id not in road_ids:
            add("error", "reference", lane.id, f"assigned road {lane.road_id!r} does not exist")

    seen: Dict[str, str] = {}
    for kind, items in elements.iter_kinds():
        for el in items:
            if el.id in seen:
                add("error", "ids", el.id, f"duplicate id: used by both {seen[el.id]} and {kind}")
            seen[el.id] = kind

    counts = {sev: sum(1 for i in issues if i.severity == sev) for sev in SEVERITIES}
    report = ValidationReport(
        issues=issues,
        stats={
            "total_lanes": len(elements.lanes),
            "total_connections": connections,
            "isolated_lanes": isolated,
            "error_count": counts["error"],
            "warning_count": counts["warning"],
            "info_count": counts["info"],
        },
    )
    LOG.info(
        "validation errors=%d warnings=%d info=%d",
        counts["error"],
        counts["warning"],
        counts["info"],
    )
    return report


__all__ = ["ValidationIssue", "ValidationReport", "validate_map"]
