"""
Tests for the calculation service - per-player match statistics.
"""
from datetime import datetime, timedelta

import pytest
from padel_stats.services import calculation_service
from padel_stats.services.calculation_service import PlayerStats
from padel_stats.utils.event_taxonomy import EventType, build_event_detail, parse_event_type


def _event(event_id, player_id, event_type, additional_data=None, offset=None):
    """Build a stored-event dict; timestamps follow the id unless given."""
    base = datetime(2026, 5, 1, 18, 0, 0)
    return {
        "id": event_id,
        "player_id": player_id,
        "event_type": event_type,
        "additional_data": additional_data,
        "timestamp": base + timedelta(seconds=offset if offset is not None else event_id),
    }


def _fold(events, player_id):
    """Apply events one at a time the way the live recorder does."""
    stats = PlayerStats(player_id=player_id)
    for event in events:
        if event["player_id"] != player_id:
            continue
        event_type = parse_event_type(event["event_type"])
        detail = build_event_detail(event_type, event["additional_data"])
        stats = calculation_service.finalize(calculation_service.apply_event(stats, event_type, detail))
    return stats


# Test helper functions
def test_first_serve_percentage():
    """Percentage uses in / (in + out), rounded to one decimal."""
    assert calculation_service.first_serve_percentage(0, 0) == 0.0
    assert calculation_service.first_serve_percentage(3, 0) == 100.0
    assert calculation_service.first_serve_percentage(2, 1) == 66.7
    assert calculation_service.first_serve_percentage(1, 3) == 25.0


def test_zero_aggregate():
    stats = PlayerStats(player_id=7)
    assert all(value == 0 for value in stats.counters().values())
    assert stats.first_serve_percentage == 0.0
    assert stats.total_errors == 0


def test_apply_event_does_not_mutate_input():
    stats = PlayerStats(player_id=1)
    updated = calculation_service.apply_event(stats, EventType.UNFORCED_ERROR)
    assert stats.unforced_errors == 0
    assert updated.unforced_errors == 1


def test_apply_event_without_stats_starts_from_zero():
    updated = calculation_service.apply_event(None, EventType.NET_ERROR, player_id=4)
    assert updated.player_id == 4
    assert updated.net_errors == 1


@pytest.mark.parametrize(
    "event_type, field",
    [
        (EventType.FIRST_SERVE_IN, "first_serves_in"),
        (EventType.FIRST_SERVE_OUT, "first_serves_out"),
        (EventType.UNFORCED_ERROR, "unforced_errors"),
        (EventType.FORCED_ERROR, "forced_errors"),
        (EventType.NET_ERROR, "net_errors"),
        (EventType.RETURN_ERROR, "return_errors"),
        (EventType.SMASH_ERROR, "smash_errors"),
        (EventType.LOB_ERROR, "lob_errors"),
    ],
)
def test_simple_counters(event_type, field):
    assert calculation_service.counters_for_event(event_type) == [field]


@pytest.mark.parametrize(
    "event_type",
    [
        EventType.SECOND_SERVE_IN,
        EventType.SECOND_SERVE_OUT,
        EventType.POINT_WON_FIRST_SERVE,
        EventType.POINT_WON_RETURN,
        EventType.EXIT_BY_3,
        EventType.EXIT_BY_4,
        EventType.POINT_WON_EXIT_3_4,
    ],
)
def test_untracked_tags_change_nothing(event_type):
    stats = PlayerStats(player_id=1)
    assert calculation_service.apply_event(stats, event_type) == stats


def test_unknown_tag_changes_nothing():
    stats = PlayerStats(player_id=1, unforced_errors=2)
    assert calculation_service.apply_event(stats, None) == stats


def test_point_won_flags_are_independent():
    detail = build_event_detail(
        EventType.POINT_WON, {"serveType": "SECOND", "exit34": True, "returnPoint": True}
    )
    touched = calculation_service.counters_for_event(EventType.POINT_WON, detail)
    assert touched == ["points_won_second_serve", "points_won_exit34", "points_won_return"]


def test_point_won_without_detail_changes_nothing():
    assert calculation_service.counters_for_event(EventType.POINT_WON) == []


def test_point_lost_only_counts_exit():
    plain = build_event_detail(EventType.POINT_LOST, {"lossType": "UNFORCED_ERROR"})
    exit_loss = build_event_detail(EventType.POINT_LOST, {"exit34": True})
    assert calculation_service.counters_for_event(EventType.POINT_LOST, plain) == []
    assert calculation_service.counters_for_event(EventType.POINT_LOST, exit_loss) == ["points_lost_exit34"]


def test_recompute_scenario_serves():
    """Two first serves in and one out gives 66.7%."""
    events = [
        _event(1, 1, "FIRST_SERVE_IN"),
        _event(2, 1, "FIRST_SERVE_IN"),
        _event(3, 1, "FIRST_SERVE_OUT"),
    ]
    stats = calculation_service.recompute(events, [1, 2, 3, 4])[1]
    assert stats.first_serves_in == 2
    assert stats.first_serves_out == 1
    assert stats.first_serve_percentage == 66.7


def test_recompute_scenario_point_won_exit():
    events = [_event(1, 2, "POINT_WON", {"serveType": "FIRST", "exit34": True})]
    stats = calculation_service.recompute(events, [1, 2, 3, 4])[2]
    assert stats.points_won_first_serve == 1
    assert stats.points_won_exit34 == 1
    assert stats.points_won_second_serve == 0


def test_recompute_scenario_errors():
    events = [
        _event(1, 3, "UNFORCED_ERROR"),
        _event(2, 3, "UNFORCED_ERROR"),
        _event(3, 3, "NET_ERROR"),
        _event(4, 3, "SMASH_ERROR"),
    ]
    stats = calculation_service.recompute(events, [1, 2, 3, 4])[3]
    assert stats.unforced_errors == 2
    assert stats.net_errors == 1
    assert stats.smash_errors == 1
    assert stats.total_errors == 4


def test_recompute_returns_every_roster_player():
    totals = calculation_service.recompute([], [1, 2, 3, 4])
    assert sorted(totals) == [1, 2, 3, 4]
    assert all(stats == PlayerStats(player_id=pid) for pid, stats in totals.items())


def test_recompute_skips_players_off_roster():
    events = [_event(1, 99, "UNFORCED_ERROR"), _event(2, 1, "UNFORCED_ERROR")]
    totals = calculation_service.recompute(events, [1, 2, 3, 4])
    assert 99 not in totals
    assert totals[1].unforced_errors == 1


def test_recompute_counts_nothing_for_unknown_tags():
    events = [_event(1, 1, "TWEENER"), _event(2, 1, "FIRST_SERVE_IN")]
    stats = calculation_service.recompute(events, [1])[1]
    assert stats.first_serves_in == 1
    assert sum(stats.counters().values()) == 1


def test_recompute_tolerates_stale_payloads():
    """A stored payload that no longer validates counts as carrying no detail."""
    events = [_event(1, 1, "POINT_WON", {"serveType": "THIRD"}), _event(2, 1, "LOB_ERROR")]
    stats = calculation_service.recompute(events, [1])[1]
    assert stats.points_won_first_serve == 0
    assert stats.lob_errors == 1


def test_recompute_is_deterministic_regardless_of_input_order():
    events = [
        _event(1, 1, "FIRST_SERVE_IN"),
        _event(2, 2, "POINT_WON", {"serveType": "SECOND", "returnPoint": True}),
        _event(3, 1, "FIRST_SERVE_OUT"),
        _event(4, 3, "FORCED_ERROR"),
        _event(5, 4, "POINT_LOST", {"lossType": "EXIT_34"}),
    ]
    forward = calculation_service.recompute(events, [1, 2, 3, 4])
    backward = calculation_service.recompute(list(reversed(events)), [1, 2, 3, 4])
    assert forward == backward


def test_incremental_fold_matches_recompute():
    """Applying events one at a time ends where a full recompute does."""
    events = [
        _event(1, 1, "FIRST_SERVE_IN"),
        _event(2, 1, "POINT_WON", {"serveType": "FIRST", "winType": "EXIT_34"}),
        _event(3, 2, "RETURN_ERROR"),
        _event(4, 1, "FIRST_SERVE_OUT"),
        _event(5, 1, "SECOND_SERVE_IN"),
        _event(6, 1, "POINT_WON", {"serveType": "SECOND", "returnPoint": True}),
        _event(7, 3, "POINT_LOST", {"exit34": True}),
        _event(8, 4, "UNKNOWN_TAG"),
        _event(9, 1, "FIRST_SERVE_IN"),
    ]
    totals = calculation_service.recompute(events, [1, 2, 3, 4])
    for player_id in (1, 2, 3, 4):
        assert _fold(events, player_id) == totals[player_id]
    assert totals[1].first_serve_percentage == 66.7


def test_from_record_reads_counter_attributes():
    class Row:
        first_serves_in = 4
        first_serves_out = 1
        unforced_errors = None
        first_serve_percentage = 80.0

    stats = PlayerStats.from_record(5, Row())
    assert stats.player_id == 5
    assert stats.first_serves_in == 4
    assert stats.unforced_errors == 0
    assert stats.lob_errors == 0
    assert stats.first_serve_percentage == 80.0


def test_to_dict_includes_player_and_percentage():
    data = calculation_service.finalize(PlayerStats(player_id=2, first_serves_in=1)).to_dict()
    assert data["player_id"] == 2
    assert data["first_serve_percentage"] == 100.0
    assert data["total_errors"] == 0
