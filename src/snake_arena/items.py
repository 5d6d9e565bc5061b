"""Item spawning logic."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from snake_arena.config import MAX_SPEED_STEPS
from snake_arena.grid import CellType

if TYPE_CHECKING:
    from snake_arena.grid import Grid

logger = logging.getLogger(__name__)

# FOOD appears four times so it is four times as likely as any other item.
_ITEM_TABLE: list[CellType] = [
    CellType.FREEZE,
    CellType.HIGHSPEED,
    CellType.LOWSPEED,
    CellType.POPWALL,
    CellType.FOOD,
    CellType.FOOD,
    CellType.FOOD,
    CellType.FOOD,
]


@dataclass(frozen=True)
class SpawnedItem:
    """An item written to the grid."""

    kind: CellType
    coord: tuple[int, int]

    def to_dict(self) -> dict:
        return {"kind": self.kind.name, "coord": list(self.coord)}


def random_cell(grid: Grid, rng: np.random.Generator) -> tuple[int, int]:
    """Pick a uniformly random cell between the top-left walls and the far edge."""
    return (
        1 + int(rng.integers(grid.height - 1)),
        1 + int(rng.integers(grid.width - 1)),
    )


class ItemSpawner:
    """Drops effect-bearing cells onto empty grid space.

    Every draw comes from one generator, so a seeded spawner repeats itself.
    """

    def __init__(
        self,
        grid: Grid,
        rng: np.random.Generator | None = None,
        max_attempts: int | None = None,
    ) -> None:
        self.grid = grid
        self.rng = rng if rng is not None else np.random.default_rng()
        self.max_attempts = (
            max_attempts if max_attempts is not None
            else 4 * grid.width * grid.height
        )

    def pick_empty_cell(self) -> tuple[int, int] | None:
        """Return a random EMPTY interior cell, or ``None`` if the board is full.

        Random probing is bounded; when it runs out the remaining empty cells
        are scanned and one of them is drawn directly.
        """
        for _ in range(self.max_attempts):
            pos = random_cell(self.grid, self.rng)
            if self.grid.get(pos) == CellType.EMPTY:
                return pos

        empty = self.grid.empty_cells()
        if not empty:
            return None
        return empty[int(self.rng.integers(len(empty)))]

    def draw_kind(self, allow_freeze: bool) -> CellType | None:
        """Draw an item category, or ``None`` when a speed item is vetoed."""
        table = _ITEM_TABLE if allow_freeze else _ITEM_TABLE[1:]
        kind = table[int(self.rng.integers(len(table)))]
        if kind == CellType.HIGHSPEED and self.grid.speed_bias >= MAX_SPEED_STEPS:
            return None
        if kind == CellType.LOWSPEED and self.grid.speed_bias <= -MAX_SPEED_STEPS:
            return None
        return kind

    def spawn(self, allow_freeze: bool = True) -> SpawnedItem | None:
        """Spawn one random item.

        Returns the spawned item, or ``None`` if the draw was vetoed or no
        empty cell was left.
        """
        pos = self.pick_empty_cell()
        if pos is None:
            logger.warning("No empty cells available for item spawning.")
            return None

        kind = self.draw_kind(allow_freeze)
        if kind is None:
            logger.debug("Speed item vetoed at bias %d.", self.grid.speed_bias)
            return None

        self.grid.set(pos, kind)
        return SpawnedItem(kind, pos)
