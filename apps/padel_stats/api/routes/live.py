"""Live match WebSocket route handler."""

import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from padel_stats.database import db
from padel_stats.services import auth_service, match_service
from padel_stats.services.websocket_manager import WEBSOCKET_TIMEOUT_SECONDS, get_websocket_manager
from padel_stats.utils.exceptions import NotFoundError

logger = logging.getLogger(__name__)
router = APIRouter()


@router.websocket("/api/ws/matches/{match_id}")
async def websocket_match(websocket: WebSocket, match_id: int):
    """
    WebSocket endpoint streaming recorded events for one match.

    Requires JWT token in query parameter: ?token=<jwt_token>
    """
    await websocket.accept()

    token = websocket.query_params.get("token")
    if not token:
        await websocket.close(code=1008, reason="Missing authentication token")
        return

    payload = auth_service.verify_token(token)
    if payload is None or payload.get("user_id") is None:
        await websocket.close(code=1008, reason="Invalid authentication token")
        return
    user_id = payload["user_id"]

    try:
        async with db.AsyncSessionLocal() as session:
            match = await match_service.get_match(session, match_id)
    except NotFoundError:
        await websocket.close(code=1008, reason="Match not found")
        return

    manager = get_websocket_manager()
    await manager.join(match_id, websocket)

    try:
        await websocket.send_json({"type": "joined", "match": match})

        while True:
            try:
                data = await asyncio.wait_for(
                    websocket.receive_text(), timeout=WEBSOCKET_TIMEOUT_SECONDS
                )

                # Client sends "ping", server responds "pong"
                if data == "ping":
                    await websocket.send_text("pong")
            except asyncio.TimeoutError:
                # Probe the connection; a failed send means the client is gone
                try:
                    await websocket.send_text("ping")
                except Exception:
                    break
    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected for user {user_id} in match {match_id}")
    except Exception as e:
        logger.error(f"WebSocket error for user {user_id} in match {match_id}: {e}")
    finally:
        await manager.leave(match_id, websocket)
