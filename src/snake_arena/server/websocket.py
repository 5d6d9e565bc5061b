"""Spectator WebSocket: a receive-only stream of arena snapshots."""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from snake_arena.net.host import HostSession, SessionStatus

logger = logging.getLogger(__name__)

ws_router = APIRouter()


def _get_session(ws: WebSocket) -> HostSession:
    return ws.app.state.session


@ws_router.websocket("/session/spectate")
async def spectate(websocket: WebSocket) -> None:
    """Send the current snapshot, then one per tick until the game ends."""
    session = _get_session(websocket)
    if session.status == SessionStatus.FINISHED:
        await websocket.close(code=4010, reason="Game finished.")
        return

    await websocket.accept()
    session.spectators.append(websocket)
    logger.info("Spectator connected.")

    await websocket.send_text(
        json.dumps(session.state(), separators=(",", ":")),
    )

    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info("Spectator disconnected.")
    finally:
        if websocket in session.spectators:
            session.spectators.remove(websocket)
