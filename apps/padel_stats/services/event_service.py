"""
Event service layer.

Records match events, keeps the cached player_stats rows in step with them,
and serves event logs and statistics for a match.
"""

import asyncio
import logging
import weakref
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from padel_stats.database.models import Match, MatchEvent, PlayerStats, User
from padel_stats.services import calculation_service, match_lifecycle, match_service
from padel_stats.utils.datetime_utils import ensure_utc, isoformat, utcnow
from padel_stats.utils.event_taxonomy import build_event_detail, parse_event_type
from padel_stats.utils.exceptions import NotFoundError

logger = logging.getLogger(__name__)

Notifier = Callable[[int, Dict[str, Any]], Awaitable[None]]

# One lock per (match_id, player_id); entries vanish once no request holds them
_stats_locks: "weakref.WeakValueDictionary[Tuple[int, int], asyncio.Lock]" = weakref.WeakValueDictionary()


def _stats_lock(match_id: int, player_id: int) -> asyncio.Lock:
    key = (match_id, player_id)
    lock = _stats_locks.get(key)
    if lock is None:
        lock = asyncio.Lock()
        _stats_locks[key] = lock
    return lock


def event_to_dict(event: MatchEvent, player: Optional[User] = None) -> Dict:
    """Convert a MatchEvent ORM instance to a dictionary."""
    data = {
        "id": event.id,
        "match_id": event.match_id,
        "player_id": event.player_id,
        "event_type": event.event_type,
        "observer_id": event.observer_id,
        "timestamp": isoformat(event.timestamp),
        "additional_data": event.additional_data,
    }
    if player is not None:
        data["player_name"] = player.display_name
    return data


def _stats_to_dict(stats: calculation_service.PlayerStats, player: Optional[Dict] = None) -> Dict:
    data = stats.to_dict()
    if player is not None:
        data["player_name"] = player.get("display_name")
        data["team"] = player.get("team")
        data["position"] = player.get("position")
    return data


async def _next_timestamp(session: AsyncSession, match_id: int):
    """Write-time timestamp that never goes backwards within a match."""
    now = utcnow()
    result = await session.execute(
        select(func.max(MatchEvent.timestamp)).where(MatchEvent.match_id == match_id)
    )
    latest = ensure_utc(result.scalar_one_or_none())
    if latest is not None and latest > now:
        return latest
    return now


async def _locked_match_status(session: AsyncSession, match_id: int):
    """Re-read the match status, holding a shared lock until commit."""
    result = await session.execute(
        select(Match.status).where(Match.id == match_id).with_for_update(read=True)
    )
    status = result.scalar_one_or_none()
    if status is None:
        raise NotFoundError("Match not found")
    return status


async def _load_stats_row(session: AsyncSession, match_id: int, player_id: int) -> Optional[PlayerStats]:
    result = await session.execute(
        select(PlayerStats)
        .where(PlayerStats.match_id == match_id, PlayerStats.user_id == player_id)
        .with_for_update()
    )
    return result.scalar_one_or_none()


def _write_stats(row: PlayerStats, stats: calculation_service.PlayerStats) -> None:
    for field, value in stats.counters().items():
        setattr(row, field, value)
    row.first_serve_percentage = stats.first_serve_percentage


async def record_event(
    session: AsyncSession,
    match_id: int,
    player_id: int,
    event_type: str,
    observer_id: int,
    additional_data: Optional[Dict[str, Any]] = None,
    notify: Optional[Notifier] = None,
) -> Dict:
    """
    Record a match event and update the player's cached statistics.

    Args:
        session: Database session
        match_id: Match the event belongs to
        player_id: Player the event is about
        event_type: Event tag; unknown tags are stored but not counted
        observer_id: User recording the event
        additional_data: Optional payload (serveType, exit34, returnPoint,
            winType, lossType, serveResult)
        notify: Optional coroutine called with (match_id, message) after the
            write commits; failures are logged and ignored

    Returns:
        Dict with "event" and the player's updated "stats". Players outside
        the match roster get their event stored and a zero aggregate back.

    Raises:
        ValidationFailure: Malformed payload
        NotFoundError: Match or player does not exist
        InvalidStateError: Match is completed
    """
    known_type = parse_event_type(event_type)
    detail = build_event_detail(known_type, additional_data)

    match = await match_service.get_match_orm(session, match_id)
    match_lifecycle.ensure_accepts_events(match.status)

    if await session.get(User, player_id) is None:
        raise NotFoundError("Player not found")

    on_roster = player_id in match.player_ids
    if not on_roster:
        logger.warning(f"Player {player_id} is not on the roster of match {match_id}; event will not be aggregated")

    if known_type is None:
        logger.info(f"Recording unrecognized event type {event_type!r} for match {match_id}")

    async with _stats_lock(match_id, player_id):
        # Completion may have committed since the first check
        match_lifecycle.ensure_accepts_events(await _locked_match_status(session, match_id))

        event = MatchEvent(
            match_id=match_id,
            player_id=player_id,
            event_type=event_type,
            observer_id=observer_id,
            timestamp=await _next_timestamp(session, match_id),
            additional_data=additional_data or None,
        )
        session.add(event)

        if on_roster:
            row = await _load_stats_row(session, match_id, player_id)
            if row is None:
                row = PlayerStats(user_id=player_id, match_id=match_id)
                session.add(row)
            current = calculation_service.PlayerStats.from_record(player_id, row)
            updated = calculation_service.finalize(
                calculation_service.apply_event(current, known_type, detail)
            )
            _write_stats(row, updated)
        else:
            updated = calculation_service.finalize(calculation_service.PlayerStats(player_id=player_id))

        await session.flush()
        event_data = event_to_dict(event)
        await session.commit()

    logger.info(f"Recorded {event_type} for player {player_id} in match {match_id}")

    if notify is not None:
        try:
            await notify(
                match_id,
                {"type": "event-recorded", "event": event_data, "stats": updated.to_dict()},
            )
        except Exception as e:
            logger.warning(f"Failed to notify viewers of match {match_id}: {e}")

    return {"event": event_data, "stats": updated.to_dict()}


async def get_match_events(session: AsyncSession, match_id: int) -> List[Dict]:
    """
    Get a match's events in recording order.

    Raises:
        NotFoundError: If the match does not exist
    """
    await match_service.get_match_orm(session, match_id)
    result = await session.execute(
        select(MatchEvent, User)
        .join(User, User.id == MatchEvent.player_id)
        .where(MatchEvent.match_id == match_id)
        .order_by(MatchEvent.timestamp.asc(), MatchEvent.id.asc())
    )
    return [event_to_dict(event, player) for event, player in result.all()]


def _roster(match) -> List[Dict]:
    return [
        {
            "user_id": mp.user_id,
            "team": mp.team,
            "position": mp.position,
            "display_name": mp.user.display_name if mp.user else None,
        }
        for mp in match.players
    ]


async def get_player_stats(session: AsyncSession, match_id: int) -> List[Dict]:
    """
    Get the cached statistics for every player on the match roster.

    Players with no recorded events get a zero aggregate.

    Raises:
        NotFoundError: If the match does not exist
    """
    match = await match_service.get_match_orm(session, match_id)
    result = await session.execute(select(PlayerStats).where(PlayerStats.match_id == match_id))
    rows = {row.user_id: row for row in result.scalars().all()}

    return [
        _stats_to_dict(
            calculation_service.PlayerStats.from_record(player["user_id"], rows.get(player["user_id"])),
            player,
        )
        for player in _roster(match)
    ]


async def _recompute(session: AsyncSession, match_id: int):
    match = await match_service.get_match_orm(session, match_id)
    result = await session.execute(
        select(MatchEvent)
        .where(MatchEvent.match_id == match_id)
        .order_by(MatchEvent.timestamp.asc(), MatchEvent.id.asc())
    )
    roster = _roster(match)
    totals = calculation_service.recompute(
        result.scalars().all(), [player["user_id"] for player in roster]
    )
    return roster, totals


async def calculate_match_stats(session: AsyncSession, match_id: int) -> List[Dict]:
    """
    Recompute statistics from the full event log without touching the cache.

    Raises:
        NotFoundError: If the match does not exist
    """
    roster, totals = await _recompute(session, match_id)
    return [_stats_to_dict(totals[player["user_id"]], player) for player in roster]


async def rebuild_player_stats(session: AsyncSession, match_id: int) -> List[Dict]:
    """
    Recompute statistics from the event log and replace the cached rows.

    Raises:
        NotFoundError: If the match does not exist
    """
    roster, totals = await _recompute(session, match_id)

    await session.execute(delete(PlayerStats).where(PlayerStats.match_id == match_id))
    for player in roster:
        stats = totals[player["user_id"]]
        if not any(stats.counters().values()):
            continue
        row = PlayerStats(user_id=player["user_id"], match_id=match_id)
        _write_stats(row, stats)
        session.add(row)
    await session.commit()

    logger.info(f"Rebuilt player stats for match {match_id}")
    return [_stats_to_dict(totals[player["user_id"]], player) for player in roster]
