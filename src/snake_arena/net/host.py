"""Authoritative host: lobby, handshake, and the lock-step tick loop."""

from __future__ import annotations

import asyncio
import enum
import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from starlette.websockets import WebSocket, WebSocketState

from snake_arena.config import ArenaConfig
from snake_arena.engine import Arena
from snake_arena.net.protocol import (
    DEAD,
    START_SIGNAL,
    Handshake,
    decode_slot,
    encode_item,
    encode_vector,
    pack_ints,
    parse_direction,
    read_int,
)
from snake_arena.snake import Direction

logger = logging.getLogger(__name__)


class SessionStatus(str, enum.Enum):
    """Lifecycle states of a hosted session."""

    LOBBY = "lobby"
    READY = "ready"
    ACTIVE = "active"
    FINISHED = "finished"


class DirectionTable:
    """Latest requested direction per agent, shared by the receive tasks
    and the tick loop.

    Every access goes through one lock. A slot set to the dead sentinel is
    never overwritten again.
    """

    def __init__(self, initial: Sequence[Direction]) -> None:
        self._slots = [int(d) for d in initial]
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._slots)

    async def submit(self, slot: int, value: int) -> bool:
        """Record a peer's direction. Returns False if it was discarded."""
        direction = parse_direction(value)
        async with self._lock:
            if direction is None or self._slots[slot] == DEAD:
                return False
            self._slots[slot] = int(direction)
            return True

    async def mark_dead(self, slot: int) -> None:
        async with self._lock:
            self._slots[slot] = DEAD

    async def snapshot(self) -> list[int]:
        async with self._lock:
            return list(self._slots)


@dataclass
class PeerConnection:
    """One connected peer and the task reading its input."""

    peer_id: int
    reader: asyncio.StreamReader
    writer: asyncio.StreamWriter
    connected: bool = True
    task: asyncio.Task | None = field(default=None, repr=False)

    @property
    def address(self) -> str:
        peername = self.writer.get_extra_info("peername")
        return f"{peername[0]}:{peername[1]}" if peername else "unknown"


class HostSession:
    """Owns every connection, the arena, and the direction table of a game.

    Lifecycle: peers join while the session is in ``LOBBY``;
    :meth:`close_lobby` sends the handshake (``READY``); :meth:`start` sends
    the go signal and launches the tick loop (``ACTIVE``), which runs until
    at most one snake is left (``FINISHED``).
    """

    def __init__(self, config: ArenaConfig | None = None) -> None:
        self.config = config or ArenaConfig()
        self.status = SessionStatus.LOBBY
        self.peers: list[PeerConnection] = []
        self.arena: Arena | None = None
        self.table: DirectionTable | None = None
        self.spectators: list[WebSocket] = []
        self.finished = asyncio.Event()
        self._task: asyncio.Task | None = None

    @property
    def peer_count(self) -> int:
        return len(self.peers)

    # --- connection phase ---

    async def add_peer(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter,
    ) -> None:
        """Accept a connection while the lobby is open (server callback)."""
        if (
            self.status != SessionStatus.LOBBY
            or self.peer_count >= self.config.max_players
        ):
            logger.info("Refused a connection: lobby closed or full.")
            writer.close()
            return
        peer = PeerConnection(self.peer_count, reader, writer)
        self.peers.append(peer)
        logger.info(
            "A new player joined from %s. Connected players: %d.",
            peer.address, self.peer_count,
        )

    async def close_lobby(self) -> None:
        """Stop accepting players and send every peer its handshake."""
        if self.status != SessionStatus.LOBBY:
            raise ValueError("Lobby is already closed.")
        if self.peer_count < 2:
            raise ValueError("Not enough players to start a game.")

        cfg = self.config
        self.arena = Arena(
            cfg.width,
            cfg.height,
            self.peer_count,
            cfg.snake_length,
            seed=cfg.seed,
            synced_walls=True,
        )
        self.table = DirectionTable([s.direction for s in self.arena.snakes])
        self.status = SessionStatus.READY

        for peer in self.peers:
            hs = Handshake(
                cfg.snake_length, self.peer_count, peer.peer_id,
                cfg.width, cfg.height,
            )
            await self._send(peer, hs.encode())
        for peer in self.peers:
            if peer.connected:
                peer.task = asyncio.create_task(self._receive(peer))
        logger.info("Lobby closed with %d players.", self.peer_count)

    async def start(self) -> None:
        """Send the go signal and launch the tick loop."""
        if self.status != SessionStatus.READY:
            raise ValueError("Session is not ready to start.")
        await self._send_all(pack_ints(START_SIGNAL))
        self.status = SessionStatus.ACTIVE
        self._task = asyncio.create_task(self._tick_loop())
        logger.info("Session started.")

    # --- steady state ---

    async def _receive(self, peer: PeerConnection) -> None:
        """Copy a peer's directions into the table until it disconnects."""
        assert self.table is not None  # noqa: S101
        try:
            while True:
                value = await read_int(peer.reader)
                if not await self.table.submit(peer.peer_id, value):
                    logger.debug(
                        "Discarded direction %d from peer %d.",
                        value, peer.peer_id,
                    )
        except (asyncio.IncompleteReadError, ConnectionError):
            if self.status != SessionStatus.FINISHED:
                logger.warning("Peer %d closed its connection.", peer.peer_id)
            await self._drop(peer)

    async def play_tick(self) -> bool:
        """Run one host tick. Returns True once the game is over."""
        assert self.arena is not None and self.table is not None  # noqa: S101
        slots = await self.table.snapshot()
        await self._send_all(encode_vector(slots))

        for agent_id, slot in enumerate(slots):
            if slot == DEAD:
                self.arena.kill(agent_id)
        died = self.arena.apply_moves([decode_slot(s) for s in slots])
        for agent_id in died:
            await self.table.mark_dead(agent_id)

        if self.arena.game_over:
            self.status = SessionStatus.FINISHED
            logger.info(
                "Game has ended at tick %d, winner: %s.",
                self.arena.tick, self.arena.winner(),
            )
            return True

        item = None
        if self.arena.rng.random() < self.config.network_item_odds:
            item = self.arena.spawn_item(allow_freeze=False)
        await self._send_all(encode_item(item))
        return False

    async def _tick_loop(self) -> None:
        loop = asyncio.get_running_loop()
        period = (self.config.timestep_ms - self.config.host_margin_ms) / 1000.0
        last_tick = loop.time()
        try:
            while self.status == SessionStatus.ACTIVE:
                delay = last_tick + period - loop.time()
                if delay > 0:
                    await asyncio.sleep(delay)
                last_tick = loop.time()
                done = await self.play_tick()
                await self._broadcast_state()
                if done:
                    break
        except asyncio.CancelledError:
            logger.info("Tick loop cancelled.")
        except Exception:
            logger.exception("Tick loop error.")
        finally:
            self.status = SessionStatus.FINISHED
            await self._close_connections()
            self.finished.set()

    async def wait_finished(self) -> None:
        await self.finished.wait()

    # --- I/O helpers ---

    async def _send(self, peer: PeerConnection, payload: bytes) -> None:
        if not peer.connected:
            return
        try:
            peer.writer.write(payload)
            await peer.writer.drain()
        except (ConnectionError, OSError):
            logger.warning("Lost connection to peer %d.", peer.peer_id)
            await self._drop(peer)

    async def _send_all(self, payload: bytes) -> None:
        for peer in self.peers:
            await self._send(peer, payload)

    async def _drop(self, peer: PeerConnection) -> None:
        """Forget a broken connection; its snake is dead from the next tick."""
        if not peer.connected:
            return
        peer.connected = False
        if peer.task is not None and peer.task is not asyncio.current_task():
            peer.task.cancel()
        peer.writer.close()
        if self.table is not None:
            await self.table.mark_dead(peer.peer_id)

    async def _close_connections(self) -> None:
        for peer in self.peers:
            if peer.task is not None and peer.task is not asyncio.current_task():
                peer.task.cancel()
            if peer.connected:
                peer.connected = False
                try:
                    peer.writer.close()
                    await peer.writer.wait_closed()
                except (ConnectionError, OSError):
                    logger.warning(
                        "Failed closing connection to peer %d.", peer.peer_id,
                    )

        for ws in list(self.spectators):
            try:
                if ws.client_state == WebSocketState.CONNECTED:
                    await ws.close(code=1000, reason="Game finished.")
            except Exception:
                logger.warning("Failed closing spectator socket.")
        self.spectators.clear()

    async def _broadcast_state(self) -> None:
        """Push the arena snapshot to every spectator."""
        if not self.spectators:
            return
        payload = json.dumps(self.state(), separators=(",", ":"))
        dead_spectators: list[WebSocket] = []
        # Iterate over a snapshot; disconnect handlers mutate the list.
        for ws in list(self.spectators):
            try:
                if ws.client_state == WebSocketState.CONNECTED:
                    await ws.send_text(payload)
            except Exception:
                dead_spectators.append(ws)
        for ws in dead_spectators:
            if ws in self.spectators:
                self.spectators.remove(ws)

    def state(self) -> dict:
        """Return session status plus the arena snapshot."""
        result: dict = {"status": self.status.value}
        if self.arena is not None:
            result.update(self.arena.to_dict())
        return result

    async def cleanup(self) -> None:
        """Cancel running tasks and close every connection."""
        tasks = [p.task for p in self.peers if p.task and not p.task.done()]
        if self._task is not None and not self._task.done():
            tasks.append(self._task)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        if self.status != SessionStatus.FINISHED:
            self.status = SessionStatus.FINISHED
            await self._close_connections()
            self.finished.set()
        logger.info("Host session cleanup complete.")


async def start_listener(
    session: HostSession, host: str, port: int,
) -> asyncio.Server:
    """Listen for peers, handing each connection to *session*."""
    server = await asyncio.start_server(session.add_peer, host, port)
    addrs = ", ".join(str(s.getsockname()) for s in server.sockets)
    logger.info("The server is now open to connections on %s.", addrs)
    return server
