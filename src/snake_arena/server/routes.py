"""REST handlers for the operator: inspect the lobby, close it, start."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from snake_arena.net.host import HostSession
from snake_arena.server.models import (
    ActionResponse,
    ErrorResponse,
    SessionSummary,
)

router = APIRouter(prefix="/session", tags=["session"])

_CONFLICT = {409: {"model": ErrorResponse}}


def _get_session(request: Request) -> HostSession:
    return request.app.state.session


def summarize(session: HostSession) -> SessionSummary:
    cfg = session.config
    arena = session.arena
    return SessionSummary(
        status=session.status,
        peers=session.peer_count,
        max_players=cfg.max_players,
        width=cfg.width,
        height=cfg.height,
        timestep_ms=cfg.timestep_ms,
        tick=arena.tick if arena is not None else None,
        alive=arena.alive_ids if arena is not None else [],
    )


@router.get("")
async def get_session(request: Request) -> SessionSummary:
    """Lobby and game summary."""
    return summarize(_get_session(request))


@router.post("/lobby/close", responses=_CONFLICT)
async def close_lobby(request: Request) -> ActionResponse:
    """Stop accepting players and send the handshakes."""
    session = _get_session(request)
    try:
        await session.close_lobby()
    except ValueError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return ActionResponse(status=session.status, peers=session.peer_count)


@router.post("/start", responses=_CONFLICT)
async def start(request: Request) -> ActionResponse:
    """Send the go signal."""
    session = _get_session(request)
    try:
        await session.start()
    except ValueError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return ActionResponse(status=session.status, peers=session.peer_count)


@router.get("/state")
async def get_state(request: Request) -> dict:
    """Full arena snapshot."""
    session = _get_session(request)
    if session.arena is None:
        raise HTTPException(status_code=404, detail="No game yet.")
    return session.state()
