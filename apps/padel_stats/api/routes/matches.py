"""Match CRUD and completion route handlers."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from padel_stats.api.routes import to_http_exception
from padel_stats.database.db import get_db_session
from padel_stats.services import match_service
from padel_stats.api.auth_dependencies import require_user
from padel_stats.models.schemas import CreateMatchRequest, UpdateMatchRequest

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/matches", status_code=201)
async def create_match(
    match_request: CreateMatchRequest,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Create a new match.

    Request body:
        {
            "type": "FRIENDLY",           // FRIENDLY | TOURNAMENT
            "phase": "QUARTERFINAL",      // Optional
            "playerIds": [1, 2, 3, 4],    // team 1 first, then team 2
            "tournamentId": 1             // Optional
        }

    Returns:
        dict: Created match with its roster
    """
    try:
        match = await match_service.create_match(
            session,
            match_type=match_request.type,
            player_ids=match_request.player_ids,
            phase=match_request.phase,
            tournament_id=match_request.tournament_id,
        )
        logger.info(f"User {user['id']} created match {match['id']}")
        return match
    except Exception as e:
        raise to_http_exception(e, "creating match")


@router.get("/api/matches")
async def list_matches(
    status: Optional[str] = None,
    type: Optional[str] = None,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """List matches, newest first, optionally filtered by status and type."""
    try:
        return await match_service.list_matches(session, status=status, match_type=type)
    except Exception as e:
        raise to_http_exception(e, "listing matches")


@router.get("/api/matches/status/{status}")
async def list_matches_by_status(
    status: str,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """List matches with the given status."""
    try:
        return await match_service.list_matches(session, status=status)
    except Exception as e:
        raise to_http_exception(e, "listing matches by status")


@router.get("/api/matches/type/{match_type}")
async def list_matches_by_type(
    match_type: str,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """List matches of the given type."""
    try:
        return await match_service.list_matches(session, match_type=match_type)
    except Exception as e:
        raise to_http_exception(e, "listing matches by type")


@router.get("/api/matches/{match_id}")
async def get_match(
    match_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Get a match with its roster."""
    try:
        return await match_service.get_match(session, match_id)
    except Exception as e:
        raise to_http_exception(e, f"loading match {match_id}")


@router.put("/api/matches/{match_id}")
async def update_match(
    match_id: int,
    match_request: UpdateMatchRequest,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Update a match's phase; a COMPLETED status completes the match."""
    try:
        return await match_service.update_match(
            session, match_id, phase=match_request.phase, status=match_request.status
        )
    except Exception as e:
        raise to_http_exception(e, f"updating match {match_id}")


@router.patch("/api/matches/{match_id}/complete")
async def complete_match(
    match_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Close a match; no further events can be recorded."""
    try:
        match = await match_service.complete_match(session, match_id)
        logger.info(f"User {user['id']} completed match {match_id}")
        return match
    except Exception as e:
        raise to_http_exception(e, f"completing match {match_id}")


@router.delete("/api/matches/{match_id}")
async def delete_match(
    match_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Delete a match with its roster, events and stats."""
    try:
        await match_service.delete_match(session, match_id)
        return {"success": True, "message": "Match deleted successfully"}
    except Exception as e:
        raise to_http_exception(e, f"deleting match {match_id}")
