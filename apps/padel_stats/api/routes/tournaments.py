"""Tournament route handlers."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from padel_stats.api.routes import to_http_exception
from padel_stats.database.db import get_db_session
from padel_stats.services import match_service
from padel_stats.api.auth_dependencies import require_user
from padel_stats.models.schemas import CreateTournamentRequest

router = APIRouter()


@router.post("/api/tournaments", status_code=201)
async def create_tournament(
    payload: CreateTournamentRequest,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Create a tournament that matches can belong to."""
    try:
        return await match_service.create_tournament(
            session,
            name=payload.name,
            start_date=payload.start_date,
            end_date=payload.end_date,
            status=payload.status,
        )
    except Exception as e:
        raise to_http_exception(e, "creating tournament")


@router.get("/api/tournaments")
async def list_tournaments(
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        return await match_service.list_tournaments(session)
    except Exception as e:
        raise to_http_exception(e, "listing tournaments")


@router.get("/api/tournaments/{tournament_id}")
async def get_tournament(
    tournament_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Get a tournament and the IDs of its matches."""
    try:
        return await match_service.get_tournament(session, tournament_id)
    except Exception as e:
        raise to_http_exception(e, f"loading tournament {tournament_id}")
