"""
Match service layer: match CRUD, roster validation, tournaments and the
completion transition.
"""

import logging
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from padel_stats.database.models import (
    Match,
    MatchPlayer,
    MatchStatus,
    MatchType,
    Tournament,
    TournamentPhase,
    TournamentStatus,
)
from padel_stats.services import match_lifecycle, user_service
from padel_stats.utils.constants import PLAYERS_PER_MATCH, PLAYERS_PER_TEAM
from padel_stats.utils.datetime_utils import isoformat, utcnow
from padel_stats.utils.exceptions import NotFoundError, ValidationFailure

logger = logging.getLogger(__name__)


def _coerce_enum(enum_cls, value, field: str, errors: List[str]):
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).upper())
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        errors.append(f"{field} must be one of: {allowed}")
        return None


def roster_slots(player_ids: List[int]) -> List[Dict]:
    """
    Map the four player IDs to team/position slots.

    ids[0..1] play for team 1 and ids[2..3] for team 2, positions 1 and 2.
    """
    return [
        {"user_id": player_id, "team": index // PLAYERS_PER_TEAM + 1, "position": index % PLAYERS_PER_TEAM + 1}
        for index, player_id in enumerate(player_ids)
    ]


def _match_query():
    return (
        select(Match)
        .options(
            selectinload(Match.players).selectinload(MatchPlayer.user),
            selectinload(Match.tournament),
        )
        .execution_options(populate_existing=True)
    )


async def _load_match(session: AsyncSession, match_id: int) -> Match:
    result = await session.execute(_match_query().where(Match.id == match_id))
    match = result.scalar_one_or_none()
    if match is None:
        raise NotFoundError("Match not found")
    return match


async def _lock_match(session: AsyncSession, match_id: int) -> Match:
    result = await session.execute(
        select(Match)
        .where(Match.id == match_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    match = result.scalar_one_or_none()
    if match is None:
        raise NotFoundError("Match not found")
    return match


def match_to_dict(match: Match) -> Dict:
    """Convert a Match ORM instance (with players loaded) to a dictionary."""
    return {
        "id": match.id,
        "type": match.type.value if match.type else None,
        "phase": match.phase.value if match.phase else None,
        "status": match.status.value if match.status else None,
        "tournament_id": match.tournament_id,
        "tournament_name": match.tournament.name if match.tournament else None,
        "created_at": isoformat(match.created_at),
        "completed_at": isoformat(match.completed_at),
        "players": [
            {
                "user_id": mp.user_id,
                "team": mp.team,
                "position": mp.position,
                "username": mp.user.username if mp.user else None,
                "display_name": mp.user.display_name if mp.user else None,
            }
            for mp in match.players
        ],
    }


async def create_match(
    session: AsyncSession,
    match_type,
    player_ids: List[int],
    phase=None,
    tournament_id: Optional[int] = None,
) -> Dict:
    """
    Create a match with its four player assignments.

    Args:
        session: Database session
        match_type: MatchType (or its string value)
        player_ids: Exactly four user IDs; first two are team 1, last two team 2
        phase: Optional TournamentPhase
        tournament_id: Optional owning tournament

    Returns:
        Created match dictionary

    Raises:
        ValidationFailure: Wrong player count, duplicate or unknown players,
            bad enum values or unknown tournament. Nothing is written.
    """
    errors: List[str] = []
    match_type = _coerce_enum(MatchType, match_type, "type", errors)
    if match_type is None and not errors:
        errors.append("type is required")
    phase = _coerce_enum(TournamentPhase, phase, "phase", errors)

    player_ids = list(player_ids or [])
    if len(player_ids) != PLAYERS_PER_MATCH:
        errors.append(f"Must have exactly {PLAYERS_PER_MATCH} players")
    elif len(set(player_ids)) != PLAYERS_PER_MATCH:
        errors.append("All four players must be distinct")
    else:
        existing = await user_service.get_existing_user_ids(session, player_ids)
        if len(existing) != PLAYERS_PER_MATCH:
            missing = [pid for pid in player_ids if pid not in existing]
            errors.append(
                f"All 4 players must be valid users (unknown: {', '.join(str(pid) for pid in missing)})"
            )

    if tournament_id is not None:
        tournament = await session.get(Tournament, tournament_id)
        if tournament is None:
            errors.append(f"Tournament {tournament_id} not found")

    if errors:
        raise ValidationFailure("Validation failed", errors)

    match = Match(
        type=match_type,
        phase=phase,
        tournament_id=tournament_id,
        status=MatchStatus.IN_PROGRESS,
    )
    match.players = [MatchPlayer(**slot) for slot in roster_slots(player_ids)]
    session.add(match)
    await session.flush()
    match_id = match.id
    await session.commit()

    logger.info(f"Created {match_type.value} match {match_id} with players {player_ids}")
    return match_to_dict(await _load_match(session, match_id))


async def get_match(session: AsyncSession, match_id: int) -> Dict:
    """
    Get a match with its roster.

    Raises:
        NotFoundError: If the match does not exist
    """
    return match_to_dict(await _load_match(session, match_id))


async def get_match_orm(session: AsyncSession, match_id: int) -> Match:
    """Get the Match ORM instance with players loaded, raising NotFoundError."""
    return await _load_match(session, match_id)


async def list_matches(
    session: AsyncSession,
    status=None,
    match_type=None,
) -> List[Dict]:
    """
    List matches, newest first, optionally filtered by status and/or type.

    Raises:
        ValidationFailure: If status or type is not a known value
    """
    errors: List[str] = []
    status = _coerce_enum(MatchStatus, status, "status", errors)
    match_type = _coerce_enum(MatchType, match_type, "type", errors)
    if errors:
        raise ValidationFailure("Invalid filter", errors)

    query = _match_query()
    if status is not None:
        query = query.where(Match.status == status)
    if match_type is not None:
        query = query.where(Match.type == match_type)
    query = query.order_by(Match.created_at.desc(), Match.id.desc())

    result = await session.execute(query)
    return [match_to_dict(match) for match in result.scalars().all()]


async def update_match(session: AsyncSession, match_id: int, phase=None, status=None) -> Dict:
    """
    Update a match's phase.

    Status only moves to COMPLETED, with the same rule as complete_match.
    The transition is checked before anything changes, and phase and status
    are committed together.

    Raises:
        NotFoundError: If the match does not exist
        ValidationFailure: Bad phase or status value
        InvalidStateError: If completing an already completed match
    """
    errors: List[str] = []
    phase = _coerce_enum(TournamentPhase, phase, "phase", errors)
    status = _coerce_enum(MatchStatus, status, "status", errors)
    if status is not None and status != MatchStatus.COMPLETED:
        errors.append("status can only be changed to COMPLETED")
    if errors:
        raise ValidationFailure("Validation failed", errors)

    match = await _lock_match(session, match_id)
    if status == MatchStatus.COMPLETED:
        match.status = match_lifecycle.complete(match.status)
        match.completed_at = utcnow()
    if phase is not None:
        match.phase = phase
    await session.commit()

    if status == MatchStatus.COMPLETED:
        logger.info(f"Match {match_id} completed")
    return match_to_dict(await _load_match(session, match_id))


async def complete_match(session: AsyncSession, match_id: int) -> Dict:
    """
    Move a match from IN_PROGRESS to COMPLETED.

    Raises:
        NotFoundError: If the match does not exist
        InvalidStateError: If the match is already completed
    """
    match = await _lock_match(session, match_id)
    match.status = match_lifecycle.complete(match.status)
    match.completed_at = utcnow()
    await session.commit()

    logger.info(f"Match {match_id} completed")
    return match_to_dict(await _load_match(session, match_id))


async def delete_match(session: AsyncSession, match_id: int) -> None:
    """
    Delete a match together with its assignments, events and stats.

    Raises:
        NotFoundError: If the match does not exist
    """
    result = await session.execute(
        select(Match)
        .where(Match.id == match_id)
        .options(
            selectinload(Match.players),
            selectinload(Match.events),
            selectinload(Match.player_stats),
        )
        .execution_options(populate_existing=True)
    )
    match = result.scalar_one_or_none()
    if match is None:
        raise NotFoundError("Match not found")

    await session.delete(match)
    await session.commit()
    logger.info(f"Match {match_id} deleted")


# ============================================================================
# Tournaments
# ============================================================================

def tournament_to_dict(tournament: Tournament) -> Dict:
    return {
        "id": tournament.id,
        "name": tournament.name,
        "start_date": tournament.start_date.isoformat() if tournament.start_date else None,
        "end_date": tournament.end_date.isoformat() if tournament.end_date else None,
        "status": tournament.status.value if tournament.status else None,
        "created_at": isoformat(tournament.created_at),
    }


async def create_tournament(
    session: AsyncSession,
    name: str,
    start_date: date,
    end_date: Optional[date] = None,
    status=None,
) -> Dict:
    """
    Create a tournament.

    Raises:
        ValidationFailure: Empty name, end before start, or unknown status
    """
    errors: List[str] = []
    name = (name or "").strip()
    if not name:
        errors.append("name is required")
    if end_date is not None and start_date is not None and end_date < start_date:
        errors.append("end_date must not be before start_date")
    status = _coerce_enum(TournamentStatus, status, "status", errors) or TournamentStatus.UPCOMING
    if errors:
        raise ValidationFailure("Validation failed", errors)

    tournament = Tournament(name=name, start_date=start_date, end_date=end_date, status=status)
    session.add(tournament)
    await session.flush()
    await session.commit()
    await session.refresh(tournament)
    return tournament_to_dict(tournament)


async def list_tournaments(session: AsyncSession) -> List[Dict]:
    result = await session.execute(select(Tournament).order_by(Tournament.start_date.desc(), Tournament.id.desc()))
    return [tournament_to_dict(t) for t in result.scalars().all()]


async def get_tournament(session: AsyncSession, tournament_id: int) -> Dict:
    """
    Get a tournament with the IDs of its matches.

    Raises:
        NotFoundError: If the tournament does not exist
    """
    result = await session.execute(
        select(Tournament)
        .where(Tournament.id == tournament_id)
        .options(selectinload(Tournament.matches))
        .execution_options(populate_existing=True)
    )
    tournament = result.scalar_one_or_none()
    if tournament is None:
        raise NotFoundError("Tournament not found")
    data = tournament_to_dict(tournament)
    data["match_ids"] = sorted(m.id for m in tournament.matches)
    return data
