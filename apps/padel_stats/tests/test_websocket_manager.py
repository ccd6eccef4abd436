"""
Unit tests for WebSocket manager.
Tests match rooms and broadcasting.
"""

import pytest
import pytest_asyncio
import json
from unittest.mock import AsyncMock
from padel_stats.services.websocket_manager import WebSocketManager, get_websocket_manager


@pytest_asyncio.fixture
async def ws_manager():
    """Create a fresh WebSocket manager for each test."""
    return WebSocketManager()


def _mock_websocket(**send_kwargs):
    ws = AsyncMock()
    ws.send_text = AsyncMock(**send_kwargs)
    ws.close = AsyncMock()
    return ws


@pytest_asyncio.fixture
def mock_websocket():
    """Create a mock WebSocket connection."""
    return _mock_websocket()


@pytest.mark.asyncio
async def test_join(ws_manager, mock_websocket):
    """Test joining a match room."""
    await ws_manager.join(1, mock_websocket)

    assert await ws_manager.get_viewer_count(1) == 1
    assert mock_websocket in ws_manager.rooms[1]


@pytest.mark.asyncio
async def test_rooms_are_separate(ws_manager):
    """Viewers of one match do not count toward another."""
    await ws_manager.join(1, _mock_websocket())
    await ws_manager.join(1, _mock_websocket())
    await ws_manager.join(2, _mock_websocket())

    assert await ws_manager.get_viewer_count(1) == 2
    assert await ws_manager.get_viewer_count(2) == 1
    assert await ws_manager.get_viewer_count(3) == 0


@pytest.mark.asyncio
async def test_leave(ws_manager, mock_websocket):
    """Test leaving a match room."""
    await ws_manager.join(1, mock_websocket)
    await ws_manager.leave(1, mock_websocket)

    assert await ws_manager.get_viewer_count(1) == 0
    # Empty rooms are dropped
    assert 1 not in ws_manager.rooms


@pytest.mark.asyncio
async def test_leave_unknown_room(ws_manager, mock_websocket):
    """Leaving a room that was never joined is harmless."""
    await ws_manager.leave(5, mock_websocket)
    assert await ws_manager.get_viewer_count(5) == 0


@pytest.mark.asyncio
async def test_broadcast(ws_manager):
    """Every viewer of the match receives the message as JSON."""
    ws1, ws2, other = _mock_websocket(), _mock_websocket(), _mock_websocket()
    await ws_manager.join(1, ws1)
    await ws_manager.join(1, ws2)
    await ws_manager.join(2, other)

    delivered = await ws_manager.broadcast(1, {"type": "event-recorded", "event": {"id": 3}})

    assert delivered == 2
    ws1.send_text.assert_called_once()
    ws2.send_text.assert_called_once()
    other.send_text.assert_not_called()
    sent = json.loads(ws1.send_text.call_args[0][0])
    assert sent == {"type": "event-recorded", "event": {"id": 3}}


@pytest.mark.asyncio
async def test_broadcast_empty_room(ws_manager):
    assert await ws_manager.broadcast(9, {"type": "event-recorded"}) == 0


@pytest.mark.asyncio
async def test_broadcast_drops_dead_connections(ws_manager):
    """A failed send removes that viewer and does not stop the others."""
    alive = _mock_websocket()
    dead = _mock_websocket(side_effect=Exception("Connection error"))
    await ws_manager.join(1, alive)
    await ws_manager.join(1, dead)

    delivered = await ws_manager.broadcast(1, {"type": "event-recorded"})

    assert delivered == 1
    alive.send_text.assert_called_once()
    assert await ws_manager.get_viewer_count(1) == 1
    assert dead not in ws_manager.rooms[1]

    # The viewer loop still calls leave for the dropped socket
    await ws_manager.leave(1, dead)
    assert await ws_manager.get_viewer_count(1) == 1


@pytest.mark.asyncio
async def test_notify_broadcasts(ws_manager, mock_websocket):
    await ws_manager.join(4, mock_websocket)
    await ws_manager.notify(4, {"type": "event-recorded"})
    mock_websocket.send_text.assert_called_once()


@pytest.mark.asyncio
async def test_get_websocket_manager_singleton():
    """Test that get_websocket_manager returns a singleton."""
    assert get_websocket_manager() is get_websocket_manager()
