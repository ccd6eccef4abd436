"""
WebSocket connection manager for live match rooms.

Viewers of a match join that match's room; every recorded event is broadcast
to the room so open scoreboards refresh. Delivery is best effort: a failed
send drops the connection and is never retried.
"""

import asyncio
import json
import logging
from typing import Dict, Set, Optional
from fastapi import WebSocket

logger = logging.getLogger(__name__)

# Seconds without client traffic before the server probes the connection
WEBSOCKET_TIMEOUT_SECONDS = 30


class WebSocketManager:
    """Manages WebSocket connections grouped by match."""

    def __init__(self):
        """Initialize the WebSocket manager."""
        # Dictionary mapping match_id to set of viewer WebSocket connections
        self.rooms: Dict[int, Set[WebSocket]] = {}
        # Lock for safe access to the rooms dict
        self._lock = asyncio.Lock()

    async def join(self, match_id: int, websocket: WebSocket):
        """
        Add a WebSocket connection to a match room.

        Args:
            match_id: ID of the match
            websocket: WebSocket connection object
        """
        async with self._lock:
            self.rooms.setdefault(match_id, set()).add(websocket)
            logger.info(f"WebSocket joined match {match_id} (viewers: {len(self.rooms[match_id])})")

    async def leave(self, match_id: int, websocket: WebSocket):
        """
        Remove a WebSocket connection from a match room.

        Args:
            match_id: ID of the match
            websocket: WebSocket connection object
        """
        async with self._lock:
            self._discard(match_id, websocket)
            logger.info(f"WebSocket left match {match_id}")

    def _discard(self, match_id: int, websocket: WebSocket):
        """Remove a connection from a room; caller holds the lock."""
        if match_id in self.rooms:
            self.rooms[match_id].discard(websocket)
            if not self.rooms[match_id]:
                del self.rooms[match_id]

    async def broadcast(self, match_id: int, message: dict) -> int:
        """
        Send a message to every connection in a match room.

        Args:
            match_id: ID of the match
            message: Message dict to send (serialized to JSON)

        Returns:
            Number of connections the message reached
        """
        async with self._lock:
            connections = self.rooms.get(match_id, set()).copy()

        if not connections:
            return 0

        message_json = json.dumps(message, default=str)
        delivered = 0
        dead_connections = []

        # Send outside the lock so a slow client can't block joins
        for websocket in connections:
            try:
                await websocket.send_text(message_json)
                delivered += 1
            except Exception as e:
                logger.warning(f"Dropping WebSocket in match {match_id} after failed send: {e}")
                dead_connections.append(websocket)

        if dead_connections:
            async with self._lock:
                for websocket in dead_connections:
                    self._discard(match_id, websocket)

        return delivered

    async def notify(self, match_id: int, payload: dict) -> None:
        """Publish callback handed to the event service."""
        delivered = await self.broadcast(match_id, payload)
        logger.debug(f"Match {match_id} update delivered to {delivered} viewer(s)")

    async def get_viewer_count(self, match_id: int) -> int:
        """
        Get the number of connections watching a match.

        Args:
            match_id: ID of the match

        Returns:
            Number of active connections
        """
        async with self._lock:
            return len(self.rooms.get(match_id, ()))


# Global WebSocket manager instance
_websocket_manager: Optional[WebSocketManager] = None


def get_websocket_manager() -> WebSocketManager:
    """
    Get the global WebSocket manager instance.

    Returns:
        WebSocketManager instance
    """
    global _websocket_manager
    if _websocket_manager is None:
        _websocket_manager = WebSocketManager()
    return _websocket_manager
