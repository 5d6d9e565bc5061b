"""Pydantic models for the operator API."""

from __future__ import annotations

from pydantic import BaseModel

from snake_arena.net.host import SessionStatus


class SessionSummary(BaseModel):
    """Compact view of the hosted session."""

    status: SessionStatus
    peers: int
    max_players: int
    width: int
    height: int
    timestep_ms: int
    tick: int | None = None
    alive: list[int] = []


class ActionResponse(BaseModel):
    """Result of an operator action."""

    status: SessionStatus
    peers: int


class ErrorResponse(BaseModel):
    """Standard error envelope."""

    detail: str
