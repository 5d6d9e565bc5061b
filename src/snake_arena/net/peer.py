"""Remote peer: replays the host's authoritative direction vector each tick."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from snake_arena.ai.strategies import Strategy, choose_direction, nearest_rival
from snake_arena.config import ArenaConfig
from snake_arena.controls import P1_KEYS, DirectionQueue, drain_keys, next_direction
from snake_arena.display import ScriptedKeys
from snake_arena.engine import Arena, MatchResult
from snake_arena.net.protocol import (
    Handshake,
    decode_slot,
    pack_ints,
    read_handshake,
    read_ints,
    read_item,
    read_start,
)

if TYPE_CHECKING:
    from snake_arena.display import KeySource, Renderer
    from snake_arena.snake import Direction, Snake

logger = logging.getLogger(__name__)


class PeerSession:
    """One player's view of a hosted game.

    The peer owns its connection, input queue, and local arena replica. It
    never decides anything on its own: every tick it sends one direction,
    blocks until the host's vector arrives, and replays it. Slots carrying
    the dead sentinel kill the matching snake locally even if the local
    replica still thinks it is alive.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        config: ArenaConfig | None = None,
        *,
        keys: KeySource | None = None,
        strategy: Strategy | None = None,
        renderer: Renderer | None = None,
    ) -> None:
        self.reader = reader
        self.writer = writer
        self.config = config or ArenaConfig()
        self.keys = keys if keys is not None else ScriptedKeys()
        self.strategy = strategy
        self.renderer = renderer
        self.queue = DirectionQueue(self.config.max_input_stack)
        self.handshake: Handshake | None = None
        self.arena: Arena | None = None

    @property
    def snake(self) -> Snake:
        assert self.arena is not None and self.handshake is not None  # noqa: S101
        return self.arena.snakes[self.handshake.peer_id]

    async def join(self) -> Handshake:
        """Read the handshake and build the local arena replica."""
        hs = await read_handshake(self.reader)
        self.handshake = hs
        logger.info(
            "Joined as player %d of %d on a %dx%d arena (snake size %d).",
            hs.peer_id, hs.peer_count, hs.width, hs.height, hs.size,
        )
        self.arena = Arena(
            hs.width,
            hs.height,
            hs.peer_count,
            hs.size,
            seed=self.config.seed,
            renderer=self.renderer,
            synced_walls=True,
        )
        return hs

    async def wait_start(self) -> None:
        """Block until the host's go signal arrives."""
        await read_start(self.reader)
        logger.info("Signal received. Starting now.")

    def choose(self) -> Direction:
        """Pick the direction to send this tick."""
        snake = self.snake
        arena = self.arena
        if not arena.alive[snake.agent_id]:
            return snake.direction
        if self.strategy is None:
            return next_direction(snake, self.queue)
        rivals = [arena.snakes[i] for i in arena.alive_ids]
        rival = nearest_rival(snake, rivals)
        return choose_direction(self.strategy, snake, arena.grid, arena.rng, rival)

    async def play_tick(self) -> bool:
        """Run one peer tick. Returns True once the game is over."""
        arena = self.arena
        assert arena is not None and self.handshake is not None  # noqa: S101

        direction = self.choose()
        self.writer.write(pack_ints(int(direction)))
        await self.writer.drain()

        slots = await read_ints(self.reader, self.handshake.peer_count)
        directions = [decode_slot(s) for s in slots]
        for agent_id, slot_direction in enumerate(directions):
            if slot_direction is None:
                arena.kill(agent_id)
        arena.apply_moves(directions)
        if arena.game_over:
            return True

        item = await read_item(self.reader)
        if item is not None:
            arena.grid.set(item.coord, item.kind)
        return False

    async def run(self) -> MatchResult:
        """Join, wait for the go signal, and play until the game ends.

        Connection failures propagate: a peer cannot continue without its
        host.
        """
        try:
            if self.handshake is None:
                await self.join()
            await self.wait_start()
            return await self._loop()
        finally:
            await self.close()

    async def _loop(self) -> MatchResult:
        arena = self.arena
        assert arena is not None  # noqa: S101
        loop = asyncio.get_running_loop()
        period = (self.config.timestep_ms - self.config.peer_margin_ms) / 1000.0
        last_tick = loop.time()
        while True:
            delay = last_tick + period - loop.time()
            if delay > 0:
                await asyncio.sleep(delay)
            last_tick = loop.time()

            if self.strategy is None and drain_keys(
                self.keys, [(P1_KEYS, self.queue)],
            ):
                self.queue.clear()
                logger.info("Quit at tick %d.", arena.tick)
                return MatchResult(ticks=arena.tick, quit=True)

            if await self.play_tick():
                dead = [i for i, alive in enumerate(arena.alive) if not alive]
                result = MatchResult(
                    ticks=arena.tick, dead=dead, winner=arena.winner(),
                )
                logger.info(result.summary())
                return result

    async def close(self) -> None:
        if self.writer.is_closing():
            return
        self.writer.close()
        try:
            await self.writer.wait_closed()
        except (ConnectionError, OSError):
            logger.debug("Connection already reset while closing.")
