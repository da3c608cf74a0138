from __future__ import annotations

from enum import IntEnum

# Numbering follows the Apollo map / routing protos.


class LaneType(IntEnum):
    NONE = 1
    CITY_DRIVING = 2
    BIKING = 3
    SIDEWALK = 4
    PARKING = 5
    SHOULDER = 6
    SHARED = 7


class LaneTurn(IntEnum):
    NO_TURN = 1
    LEFT_TURN = 2
    RIGHT_TURN = 3
    U_TURN = 4


class LaneDirection(IntEnum):
    FORWARD = 1
    BACKWARD = 2
    BIDIRECTION = 3


class BoundaryType(IntEnum):
    UNKNOWN = 0
    DOTTED_YELLOW = 1
    DOTTED_WHITE = 2
    SOLID_YELLOW = 3
    SOLID_WHITE = 4
    DOUBLE_YELLOW = 5
    CURB = 6


class RoadType(IntEnum):
    UNKNOWN = 0
    HIGHWAY = 1
    CITY_ROAD = 2
    PARK = 3


class SignalType(IntEnum):
    UNKNOWN = 1
    MIX_2_HORIZONTAL = 2
    MIX_2_VERTICAL = 3
    MIX_3_HORIZONTAL = 4
    MIX_3_VERTICAL = 5
    SINGLE = 6


class StopSignType(IntEnum):
    UNKNOWN = 0
    ONE_WAY = 1
    TWO_WAY = 2
    THREE_WAY = 3
    FOUR_WAY = 4
    ALL_WAY = 5


class EdgeDirection(IntEnum):
    FORWARD = 0
    LEFT = 1
    RIGHT = 2


def coerce_enum(enum_cls, value, default):
    """Map a decoded field (int, float from JSON, enum name or None) onto ``enum_cls``."""
    if value is None or value == "":
        return default
    if isinstance(value, str):
        try:
            return enum_cls[value]
        except KeyError:
            return default
    try:
        return enum_cls(int(value))
    except (TypeError, ValueError):
        return default


__all__ = [
    "BoundaryType",
    "EdgeDirection",
    "LaneDirection",
    "LaneTurn",
    "LaneType",
    "RoadType",
    "SignalType",
    "StopSignType",
    "coerce_enum",
]
