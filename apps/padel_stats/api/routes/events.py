"""Match event and statistics route handlers."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from padel_stats.api.routes import to_http_exception
from padel_stats.database.db import get_db_session
from padel_stats.services import event_service
from padel_stats.services.websocket_manager import get_websocket_manager
from padel_stats.api.auth_dependencies import require_user
from padel_stats.models.schemas import RecordEventRequest

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/events", status_code=201)
async def record_event(
    payload: RecordEventRequest,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Record an event for a player in an in-progress match.

    Request body:
        {
            "match_id": 1,
            "player_id": 2,
            "event_type": "POINT_WON",
            "additional_data": {"serveType": "FIRST", "winType": "EXIT_34"}  // Optional
        }

    Returns:
        dict: The stored event and the player's updated stats. Viewers of the
        match receive the same message over the match WebSocket.
    """
    try:
        return await event_service.record_event(
            session,
            match_id=payload.match_id,
            player_id=payload.player_id,
            event_type=payload.event_type,
            observer_id=user["id"],
            additional_data=payload.additional_data,
            notify=get_websocket_manager().notify,
        )
    except Exception as e:
        raise to_http_exception(e, f"recording event for match {payload.match_id}")


@router.get("/api/events/match/{match_id}")
async def get_match_events(
    match_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """List a match's events in recording order."""
    try:
        return await event_service.get_match_events(session, match_id)
    except Exception as e:
        raise to_http_exception(e, f"loading events for match {match_id}")


@router.get("/api/events/stats/{match_id}")
async def get_player_stats(
    match_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Get the cached per-player stats for a match."""
    try:
        return await event_service.get_player_stats(session, match_id)
    except Exception as e:
        raise to_http_exception(e, f"loading stats for match {match_id}")


@router.get("/api/events/calculate/{match_id}")
async def calculate_match_stats(
    match_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Recompute per-player stats from the event log without saving them."""
    try:
        return await event_service.calculate_match_stats(session, match_id)
    except Exception as e:
        raise to_http_exception(e, f"calculating stats for match {match_id}")


@router.post("/api/events/recalculate/{match_id}")
async def recalculate_match_stats(
    match_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Rebuild the cached per-player stats from the event log."""
    try:
        stats = await event_service.rebuild_player_stats(session, match_id)
        logger.info(f"User {user['id']} rebuilt stats for match {match_id}")
        return stats
    except Exception as e:
        raise to_http_exception(e, f"rebuilding stats for match {match_id}")
