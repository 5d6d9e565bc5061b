"""Step-based movement, collision resolution, and the local match loop."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np

from snake_arena.ai.strategies import Strategy, choose_direction, nearest_rival
from snake_arena.config import FREEZE_TICKS, SPEED_STEP_MS, ArenaConfig
from snake_arena.controls import (
    P1_KEYS,
    P2_KEYS,
    DirectionQueue,
    drain_keys,
    next_direction,
)
from snake_arena.grid import FATAL_KINDS, CellType, Grid
from snake_arena.items import ItemSpawner, SpawnedItem, random_cell
from snake_arena.snake import Direction, Snake, step_coord

if TYPE_CHECKING:
    from snake_arena.display import KeySource, Renderer

logger = logging.getLogger(__name__)


def pop_walls(grid: Grid, rng: np.random.Generator) -> int:
    """Scatter a batch of walls over random EMPTY cells.

    The batch size scales with the board area; picks that land on a
    non-empty cell are skipped. Returns the number of walls placed.
    """
    batch = grid.width * grid.height // (100 + int(rng.integers(50)))
    placed = 0
    for _ in range(batch):
        pos = random_cell(grid, rng)
        if grid.get(pos) == CellType.EMPTY:
            grid.set(pos, CellType.WALL)
            placed += 1
    return placed


def move(
    snake: Snake,
    direction: Direction,
    grid: Grid,
    rng: np.random.Generator,
) -> bool:
    """Advance *snake* one step in *direction*.

    Returns True if the move was fatal. A frozen snake only counts down its
    freeze and does not move. The new head is always pushed, even on a
    fatal move, so the grid shows where the snake died.
    """
    if grid.is_frozen(snake.agent_id):
        grid.freeze[snake.agent_id] -= 1
        return False

    new_head = step_coord(snake.head, direction)
    snake.direction = direction
    target = grid.get(new_head)

    collision = target in FATAL_KINDS
    if target == CellType.FOOD:
        snake.grow_pending = True
    elif target == CellType.POPWALL:
        placed = pop_walls(grid, rng)
        logger.debug("Snake %d popped %d walls.", snake.agent_id, placed)
    elif target == CellType.HIGHSPEED:
        grid.speed_bias += 1
    elif target == CellType.LOWSPEED:
        grid.speed_bias -= 1
    elif target == CellType.FREEZE:
        grid.freeze_others(snake.agent_id, FREEZE_TICKS)

    snake.push_head(grid, new_head)
    if not collision:
        if snake.grow_pending:
            snake.grow_pending = False
        else:
            snake.pop_tail(grid)
    return collision


def synced_rng(tick: int, coord: tuple[int, int]) -> np.random.Generator:
    """Derive a generator every replica of a session agrees on."""
    return np.random.default_rng([tick, abs(coord[0]), abs(coord[1])])


class Arena:
    """A grid and the snakes playing on it.

    Snakes are placed at start slots ``0..player_count-1`` and always move
    in ascending id order, so two snakes heading for the same cell in one
    tick are resolved in favour of the lower id.
    """

    def __init__(
        self,
        width: int,
        height: int,
        player_count: int,
        snake_length: int = 1,
        *,
        seed: int | None = None,
        renderer: Renderer | None = None,
        synced_walls: bool = False,
    ) -> None:
        if not 2 <= player_count <= 12:
            raise ValueError("player_count must be between 2 and 12.")
        self.grid = Grid(width, height, renderer=renderer)
        self.rng = np.random.default_rng(seed)
        self.synced_walls = synced_walls
        self.snakes = [
            Snake.at_slot(i, i, self.grid, length=snake_length)
            for i in range(player_count)
        ]
        self.alive = [True] * player_count
        self.spawner = ItemSpawner(self.grid, self.rng)
        self.tick = 0

    @property
    def alive_ids(self) -> list[int]:
        return [i for i, alive in enumerate(self.alive) if alive]

    @property
    def game_over(self) -> bool:
        return len(self.alive_ids) <= 1

    def winner(self) -> int | None:
        """Return the last snake standing, if there is exactly one."""
        alive = self.alive_ids
        return alive[0] if len(alive) == 1 else None

    def kill(self, agent_id: int) -> None:
        """Mark a snake as dead. Its body stays on the grid."""
        if self.alive[agent_id]:
            self.alive[agent_id] = False
            logger.info("Snake %d died at tick %d.", agent_id, self.tick)

    def _move_rng(self, snake: Snake, direction: Direction) -> np.random.Generator:
        if self.synced_walls:
            return synced_rng(self.tick, snake.next_head(direction))
        return self.rng

    def apply_moves(self, directions: Sequence[Direction | None]) -> list[int]:
        """Move every living snake that has a direction. Returns ids that died."""
        died: list[int] = []
        for agent_id, direction in enumerate(directions):
            if direction is None or not self.alive[agent_id]:
                continue
            snake = self.snakes[agent_id]
            if move(snake, direction, self.grid, self._move_rng(snake, direction)):
                self.kill(agent_id)
                died.append(agent_id)
        self.tick += 1
        return died

    def spawn_item(self, allow_freeze: bool) -> SpawnedItem | None:
        return self.spawner.spawn(allow_freeze)

    def to_dict(self) -> dict:
        """Return the full, serializable arena state."""
        return {
            "tick": self.tick,
            "game_over": self.game_over,
            "winner": self.winner(),
            "alive": list(self.alive),
            "grid": self.grid.to_dict(),
            "snakes": [s.to_dict() for s in self.snakes],
        }


@dataclass
class MatchResult:
    """Outcome of a local match."""

    ticks: int
    dead: list[int] = field(default_factory=list)
    winner: int | None = None
    quit: bool = False

    def summary(self) -> str:
        if self.quit:
            return f"Match abandoned after {self.ticks} ticks."
        if not self.dead:
            return f"Match stopped after {self.ticks} ticks."
        if self.winner is None:
            return f"Both snakes died after {self.ticks} ticks."
        return f"Snake {self.winner} won after {self.ticks} ticks."


class LocalMatch:
    """Two snakes on one terminal.

    Each snake is driven either by keys (``strategy`` of ``None``; snake 0
    uses w/a/s/d, snake 1 uses i/j/k/l) or by a decision-engine strategy.
    The match ends as soon as either snake dies or the quit key is read.
    """

    def __init__(
        self,
        config: ArenaConfig,
        keys: KeySource,
        strategies: tuple[Strategy | None, Strategy | None] = (None, Strategy.SPREAD),
        *,
        renderer: Renderer | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self.keys = keys
        self.strategies = strategies
        self.sleep = sleep
        self.arena = Arena(
            config.width,
            config.height,
            2,
            config.snake_length,
            seed=config.seed,
            renderer=renderer,
        )
        self.queues = [
            DirectionQueue(config.max_input_stack),
            DirectionQueue(config.max_input_stack),
        ]
        self.result: MatchResult | None = None

    @property
    def grid(self) -> Grid:
        return self.arena.grid

    def tick_period(self) -> float:
        """Seconds between ticks, shortened by the current speed bias."""
        ms = self.config.timestep_ms - self.grid.speed_bias * SPEED_STEP_MS
        return max(0, ms) / 1000.0

    def _resolve(self, agent_id: int) -> Direction:
        snake = self.arena.snakes[agent_id]
        if self.grid.is_frozen(agent_id):
            return snake.direction
        strategy = self.strategies[agent_id]
        if strategy is None:
            return next_direction(snake, self.queues[agent_id])
        rival = nearest_rival(snake, self.arena.snakes)
        return choose_direction(strategy, snake, self.grid, self.arena.rng, rival)

    def step(self) -> MatchResult | None:
        """Advance the match by one tick without sleeping.

        Returns the result once the match is over, otherwise ``None``.
        """
        if self.result is not None:
            return self.result

        keymaps = [P1_KEYS, P2_KEYS]
        bindings = [
            (keymaps[i], self.queues[i])
            for i in range(2) if self.strategies[i] is None
        ]
        if drain_keys(self.keys, bindings):
            for queue in self.queues:
                queue.clear()
            self.result = MatchResult(ticks=self.arena.tick, quit=True)
            logger.info("Match quit at tick %d.", self.arena.tick)
            return self.result

        directions = [self._resolve(i) for i in range(2)]
        dead = self.arena.apply_moves(directions)
        if dead:
            self.result = MatchResult(
                ticks=self.arena.tick, dead=dead, winner=self.arena.winner(),
            )
            return self.result

        if self.arena.rng.random() < self.config.local_item_odds:
            self.arena.spawn_item(allow_freeze=True)
        return None

    def run(self, max_ticks: int | None = None) -> MatchResult:
        """Play until the match ends, sleeping between ticks."""
        while True:
            self.sleep(self.tick_period())
            result = self.step()
            if result is not None:
                return result
            if max_ticks is not None and self.arena.tick >= max_ticks:
                self.result = MatchResult(ticks=self.arena.tick)
                return self.result
