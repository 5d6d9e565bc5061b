"""Lock-step host/peer networking."""

from snake_arena.net.host import (
    DirectionTable,
    HostSession,
    SessionStatus,
    start_listener,
)
from snake_arena.net.peer import PeerSession
from snake_arena.net.protocol import Handshake, ProtocolError

__all__ = [
    "DirectionTable",
    "Handshake",
    "HostSession",
    "PeerSession",
    "ProtocolError",
    "SessionStatus",
    "start_listener",
]
