"""Grid representation for the arena."""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from snake_arena.display import Renderer

Coord = tuple[int, int]

# Writes to this coordinate are silently dropped.
OFF_GRID: Coord = (-1, -1)


class CellType(enum.IntEnum):
    """Integer codes stored in the grid array."""

    EMPTY = 0
    WALL = 1
    AGENT_A = 2
    AGENT_B = 3
    FOOD = 4
    POPWALL = 5
    HIGHSPEED = 6
    LOWSPEED = 7
    FREEZE = 8


AGENT_KINDS: frozenset[CellType] = frozenset({CellType.AGENT_A, CellType.AGENT_B})

# Cells that kill whatever moves into them.
FATAL_KINDS: frozenset[CellType] = AGENT_KINDS | {CellType.WALL}

ITEM_KINDS: frozenset[CellType] = frozenset({
    CellType.FOOD,
    CellType.POPWALL,
    CellType.HIGHSPEED,
    CellType.LOWSPEED,
    CellType.FREEZE,
})

# (glyph, color) pairs handed to the renderer.
CELL_GLYPHS: dict[CellType, tuple[str, str | None]] = {
    CellType.EMPTY: (" ", None),
    CellType.WALL: ("#", "red"),
    CellType.AGENT_A: ("s", "blue"),
    CellType.AGENT_B: ("$", "yellow"),
    CellType.FOOD: ("x", None),
    CellType.POPWALL: ("W", None),
    CellType.HIGHSPEED: (">", None),
    CellType.LOWSPEED: ("<", None),
    CellType.FREEZE: ("*", None),
}


class Grid:
    """NumPy-backed arena grid, walled one cell in from each edge.

    Walls sit on rows ``1`` and ``height - 1`` and columns ``1`` and
    ``width - 1``; row 0 and column 0 lie outside the arena. Besides the
    cells the grid carries the global speed bias (in increments) and one
    freeze countdown per registered agent.
    """

    def __init__(
        self,
        width: int,
        height: int,
        renderer: Renderer | None = None,
    ) -> None:
        if width < 4 or height < 4:
            raise ValueError("Grid dimensions must be at least 4×4.")
        self.width = width
        self.height = height
        self.renderer = renderer
        self.cells = np.zeros((height, width), dtype=np.int8)
        self.speed_bias = 0
        self.freeze: dict[int, int] = {}
        self._build_walls()

    def _build_walls(self) -> None:
        for r in range(self.height):
            for c in range(self.width):
                border = (
                    r == 1 or r == self.height - 1
                    or c == 1 or c == self.width - 1
                )
                self.set((r, c), CellType.WALL if border else CellType.EMPTY)

    def in_bounds(self, coord: Coord) -> bool:
        """Check whether a coordinate lies within the grid array."""
        r, c = coord
        return 0 <= r < self.height and 0 <= c < self.width

    def in_interior(self, coord: Coord) -> bool:
        """Check whether a coordinate lies strictly inside the border walls."""
        r, c = coord
        return 1 < r < self.height - 1 and 1 < c < self.width - 1

    def get(self, coord: Coord) -> CellType:
        """Return the cell type at the given coordinate."""
        return CellType(self.cells[coord[0], coord[1]])

    def set(self, coord: Coord, kind: CellType) -> None:
        """Set the cell type at the given coordinate."""
        if coord == OFF_GRID:
            return
        self.cells[coord[0], coord[1]] = kind
        if self.renderer is not None:
            glyph, color = CELL_GLYPHS[CellType(kind)]
            self.renderer.draw(coord, glyph, color)

    def empty_cells(self, interior: bool = True) -> list[Coord]:
        """Return all empty cell coordinates, inside the walls by default."""
        mask = self.cells == CellType.EMPTY
        if interior:
            inside = np.zeros_like(mask)
            inside[2:self.height - 1, 2:self.width - 1] = True
            mask &= inside
        rows, cols = np.where(mask)
        return list(zip(rows.tolist(), cols.tolist(), strict=True))

    # --- freeze countdowns ---

    def register_agent(self, agent_id: int) -> None:
        """Give an agent a freeze countdown slot."""
        self.freeze.setdefault(agent_id, 0)

    def is_frozen(self, agent_id: int) -> bool:
        return self.freeze.get(agent_id, 0) > 0

    def freeze_others(self, agent_id: int, ticks: int) -> None:
        """Freeze every registered agent except *agent_id*."""
        for other in self.freeze:
            if other != agent_id:
                self.freeze[other] = ticks

    def to_dict(self) -> dict:
        """Serialize grid state to a dictionary."""
        return {
            "width": self.width,
            "height": self.height,
            "speed_bias": self.speed_bias,
            "freeze": {str(k): v for k, v in self.freeze.items()},
            "cells": self.cells.tolist(),
        }
