"""
Match statistics calculation service.
Turns recorded match events into per-player statistics.
"""

from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Iterable, List, Optional, Sequence

from padel_stats.utils.event_taxonomy import (
    EventDetail,
    EventType,
    PointLostDetail,
    PointWonDetail,
    ServeType,
    build_event_detail,
    parse_event_type,
)
from padel_stats.utils.exceptions import ValidationFailure


# ============================================================================
# PlayerStats
# ============================================================================

@dataclass(frozen=True)
class PlayerStats:
    """Running statistics for one player in one match."""

    player_id: int
    first_serves_in: int = 0
    first_serves_out: int = 0
    points_won_first_serve: int = 0
    points_won_second_serve: int = 0
    points_won_exit34: int = 0
    points_lost_exit34: int = 0
    points_won_return: int = 0
    unforced_errors: int = 0
    forced_errors: int = 0
    net_errors: int = 0
    return_errors: int = 0
    smash_errors: int = 0
    lob_errors: int = 0
    first_serve_percentage: float = 0.0

    @property
    def first_serves(self) -> int:
        """Total first serves attempted."""
        return self.first_serves_in + self.first_serves_out

    @property
    def total_errors(self) -> int:
        return sum(getattr(self, field) for field in ERROR_FIELDS)

    def counters(self) -> Dict[str, int]:
        """Counter fields only, keyed by column name."""
        return {field: getattr(self, field) for field in COUNTER_FIELDS}

    def to_dict(self) -> Dict[str, Any]:
        data = {"player_id": self.player_id}
        data.update(self.counters())
        data["first_serve_percentage"] = self.first_serve_percentage
        data["total_errors"] = self.total_errors
        return data

    @classmethod
    def from_record(cls, player_id: int, record: Optional[Any]) -> "PlayerStats":
        """
        Build a PlayerStats from a stored row (or anything with the counter
        attributes). A missing row yields a zero aggregate.
        """
        if record is None:
            return cls(player_id=player_id)
        values = {field: getattr(record, field, 0) or 0 for field in COUNTER_FIELDS}
        return cls(
            player_id=player_id,
            first_serve_percentage=getattr(record, "first_serve_percentage", 0.0) or 0.0,
            **values,
        )


COUNTER_FIELDS = tuple(
    f.name for f in fields(PlayerStats) if f.name not in ("player_id", "first_serve_percentage")
)

ERROR_FIELDS = (
    "unforced_errors",
    "forced_errors",
    "net_errors",
    "return_errors",
    "smash_errors",
    "lob_errors",
)

# Event types that always bump a single counter
_SIMPLE_COUNTERS = {
    EventType.FIRST_SERVE_IN: "first_serves_in",
    EventType.FIRST_SERVE_OUT: "first_serves_out",
    EventType.UNFORCED_ERROR: "unforced_errors",
    EventType.FORCED_ERROR: "forced_errors",
    EventType.NET_ERROR: "net_errors",
    EventType.RETURN_ERROR: "return_errors",
    EventType.SMASH_ERROR: "smash_errors",
    EventType.LOB_ERROR: "lob_errors",
}


# ============================================================================
# Incremental update
# ============================================================================

def counters_for_event(
    event_type: Optional[EventType], detail: Optional[EventDetail] = None
) -> List[str]:
    """
    Return the counter fields a single event increments.

    POINT_WON can touch several counters at once since its flags are
    independent. Unknown or untracked tags touch nothing.
    """
    if event_type is None:
        return []

    if event_type in _SIMPLE_COUNTERS:
        return [_SIMPLE_COUNTERS[event_type]]

    if event_type == EventType.POINT_WON:
        if not isinstance(detail, PointWonDetail):
            return []
        touched = []
        if detail.serve_type == ServeType.FIRST:
            touched.append("points_won_first_serve")
        elif detail.serve_type == ServeType.SECOND:
            touched.append("points_won_second_serve")
        if detail.exit34:
            touched.append("points_won_exit34")
        if detail.return_point:
            touched.append("points_won_return")
        return touched

    if event_type == EventType.POINT_LOST:
        if isinstance(detail, PointLostDetail) and detail.exit34:
            return ["points_lost_exit34"]
        return []

    return []


def apply_event(
    stats: Optional[PlayerStats],
    event_type: Optional[EventType],
    detail: Optional[EventDetail] = None,
    player_id: Optional[int] = None,
) -> PlayerStats:
    """
    Apply one event to a player's aggregate and return the new aggregate.

    The input is never modified. When ``stats`` is None a zero aggregate for
    ``player_id`` is used.
    """
    if stats is None:
        stats = PlayerStats(player_id=player_id)

    touched = counters_for_event(event_type, detail)
    if not touched:
        return stats
    return replace(stats, **{field: getattr(stats, field) + 1 for field in touched})


def first_serve_percentage(first_serves_in: int, first_serves_out: int) -> float:
    """Percentage of first serves that went in, 0.0 when none were hit."""
    attempts = first_serves_in + first_serves_out
    if attempts == 0:
        return 0.0
    return round(first_serves_in * 100.0 / attempts, 1)


def finalize(stats: PlayerStats) -> PlayerStats:
    """Fill in the derived percentage from the accumulated counters."""
    return replace(
        stats,
        first_serve_percentage=first_serve_percentage(
            stats.first_serves_in, stats.first_serves_out
        ),
    )


# ============================================================================
# Batch recompute
# ============================================================================

def _event_value(event: Any, key: str) -> Any:
    if isinstance(event, dict):
        return event.get(key)
    return getattr(event, key, None)


def _detail_for_stored_event(event_type: Optional[EventType], payload: Any) -> Optional[EventDetail]:
    """Rebuild the detail for an already stored event.

    Stored payloads were validated on the way in; anything that no longer
    validates is counted as if it carried no detail.
    """
    try:
        return build_event_detail(event_type, payload)
    except ValidationFailure:
        return build_event_detail(event_type, None)


def _sort_key(event: Any):
    timestamp = _event_value(event, "timestamp")
    event_id = _event_value(event, "id")
    return (timestamp is None, timestamp or 0, event_id or 0)


def recompute(
    events: Iterable[Any], roster_player_ids: Sequence[int]
) -> Dict[int, PlayerStats]:
    """
    Recompute every roster player's statistics from a match's event log.

    Args:
        events: MatchEvent rows (or dicts) with player_id, event_type,
            additional_data, timestamp and id
        roster_player_ids: Players assigned to the match

    Returns:
        Dict mapping player_id to finalized PlayerStats, one entry per roster
        player. Events for players outside the roster are skipped.
    """
    totals: Dict[int, PlayerStats] = {
        player_id: PlayerStats(player_id=player_id) for player_id in roster_player_ids
    }

    for event in sorted(events, key=_sort_key):
        player_id = _event_value(event, "player_id")
        if player_id not in totals:
            continue
        event_type = parse_event_type(_event_value(event, "event_type"))
        detail = _detail_for_stored_event(event_type, _event_value(event, "additional_data"))
        totals[player_id] = apply_event(totals[player_id], event_type, detail)

    return {player_id: finalize(stats) for player_id, stats in totals.items()}
