"""
Match event vocabulary.

Defines the closed set of event tags a client can record during a match and
the structured detail attached to serve and point events.
"""

import enum
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from padel_stats.utils.exceptions import ValidationFailure


class EventType(str, enum.Enum):
    """Recordable match event tags."""

    FIRST_SERVE_IN = "FIRST_SERVE_IN"
    FIRST_SERVE_OUT = "FIRST_SERVE_OUT"
    SECOND_SERVE_IN = "SECOND_SERVE_IN"
    SECOND_SERVE_OUT = "SECOND_SERVE_OUT"
    POINT_WON = "POINT_WON"
    POINT_WON_FIRST_SERVE = "POINT_WON_FIRST_SERVE"
    POINT_WON_RETURN = "POINT_WON_RETURN"
    POINT_LOST = "POINT_LOST"
    UNFORCED_ERROR = "UNFORCED_ERROR"
    FORCED_ERROR = "FORCED_ERROR"
    NET_ERROR = "NET_ERROR"
    RETURN_ERROR = "RETURN_ERROR"
    SMASH_ERROR = "SMASH_ERROR"
    LOB_ERROR = "LOB_ERROR"
    EXIT_BY_3 = "EXIT_BY_3"
    EXIT_BY_4 = "EXIT_BY_4"
    POINT_WON_EXIT_3_4 = "POINT_WON_EXIT_3_4"


class ServeType(str, enum.Enum):
    """Which serve of the point."""

    FIRST = "FIRST"
    SECOND = "SECOND"


class WinType(str, enum.Enum):
    """How a point was won."""

    WINNER = "WINNER"
    OPPONENT_ERROR = "OPPONENT_ERROR"
    EXIT_34 = "EXIT_34"
    RETURN_WIN = "RETURN_WIN"


class LossType(str, enum.Enum):
    """How a point was lost."""

    UNFORCED_ERROR = "UNFORCED_ERROR"
    FORCED_ERROR = "FORCED_ERROR"
    NET_ERROR = "NET_ERROR"
    EXIT_34 = "EXIT_34"


class ServeResult(str, enum.Enum):
    IN = "IN"
    OUT = "OUT"


SERVE_EVENTS = frozenset(
    {
        EventType.FIRST_SERVE_IN,
        EventType.FIRST_SERVE_OUT,
        EventType.SECOND_SERVE_IN,
        EventType.SECOND_SERVE_OUT,
    }
)


@dataclass(frozen=True)
class ServeDetail:
    serve_type: Optional[ServeType] = None
    serve_result: Optional[ServeResult] = None


@dataclass(frozen=True)
class PointWonDetail:
    serve_type: Optional[ServeType] = None
    exit34: bool = False
    return_point: bool = False
    win_type: Optional[WinType] = None


@dataclass(frozen=True)
class PointLostDetail:
    exit34: bool = False
    loss_type: Optional[LossType] = None


EventDetail = Union[ServeDetail, PointWonDetail, PointLostDetail]


def parse_event_type(tag: Optional[str]) -> Optional[EventType]:
    """
    Resolve a raw tag to an EventType.

    Unknown tags resolve to None; callers record them but never count them.
    """
    if not tag:
        return None
    try:
        return EventType(tag)
    except ValueError:
        return None


def _enum_field(
    enum_cls, payload: Dict[str, Any], key: str, errors: List[str]
) -> Optional[enum.Enum]:
    value = payload.get(key)
    if value is None or value == "":
        return None
    try:
        return enum_cls(str(value).upper())
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        errors.append(f"{key} must be one of: {allowed}")
        return None


def _bool_field(payload: Dict[str, Any], key: str, errors: List[str]) -> bool:
    value = payload.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        errors.append(f"{key} must be a boolean")
        return False
    return value


def build_event_detail(
    event_type: Optional[EventType], payload: Optional[Dict[str, Any]]
) -> Optional[EventDetail]:
    """
    Validate a raw additional-data payload and turn it into the detail variant
    for the given event type.

    Accepts both the legacy flags (serveType, exit34, returnPoint) and the
    subtype keys sent by the recorder (winType, lossType, serveResult).
    Payloads of unknown tags are stored as sent and never inspected.

    Raises:
        ValidationFailure: If a known key carries a malformed value
    """
    payload = payload or {}
    if not isinstance(payload, dict):
        raise ValidationFailure("Invalid event payload", ["additionalData must be an object"])
    if event_type is None:
        return None

    errors: List[str] = []
    serve_type = _enum_field(ServeType, payload, "serveType", errors)
    serve_result = _enum_field(ServeResult, payload, "serveResult", errors)
    win_type = _enum_field(WinType, payload, "winType", errors)
    loss_type = _enum_field(LossType, payload, "lossType", errors)
    exit34 = _bool_field(payload, "exit34", errors)
    return_point = _bool_field(payload, "returnPoint", errors)

    if errors:
        raise ValidationFailure("Invalid event payload", errors)

    if event_type == EventType.POINT_WON:
        return PointWonDetail(
            serve_type=serve_type,
            exit34=exit34 or win_type == WinType.EXIT_34,
            return_point=return_point or win_type == WinType.RETURN_WIN,
            win_type=win_type,
        )
    if event_type == EventType.POINT_LOST:
        return PointLostDetail(
            exit34=exit34 or loss_type == LossType.EXIT_34,
            loss_type=loss_type,
        )
    if event_type in SERVE_EVENTS:
        return ServeDetail(serve_type=serve_type, serve_result=serve_result)
    return None
