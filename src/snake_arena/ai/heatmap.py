"""Potential field built by diffusing per-cell weights."""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from snake_arena.grid import CellType

if TYPE_CHECKING:
    from snake_arena.grid import Grid

DIFFUSION_ITERATIONS = 5

# Rival agent bodies take the WALL weight; own body is handled separately.
BASE_WEIGHTS: dict[CellType, float] = {
    CellType.EMPTY: 0.0,
    CellType.WALL: -3.0,
    CellType.FOOD: 2.0,
    CellType.POPWALL: 3.0,
    CellType.HIGHSPEED: 4.0,
    CellType.LOWSPEED: -1.0,
    CellType.FREEZE: 1.0,
}
RIVAL_BODY_WEIGHT = -3.0
OWN_BODY_WEIGHT = -5.0


def weight_map(grid: Grid, own_kind: CellType) -> np.ndarray:
    """Return the initial float weight of every cell, seen by *own_kind*."""
    cells = grid.cells
    weights = np.zeros(cells.shape, dtype=np.float64)
    for kind, value in BASE_WEIGHTS.items():
        weights[cells == kind] = value
    for kind in (CellType.AGENT_A, CellType.AGENT_B):
        weights[cells == kind] = (
            OWN_BODY_WEIGHT if kind == own_kind else RIVAL_BODY_WEIGHT
        )
    return weights


def diffuse(
    weights: np.ndarray,
    cells: np.ndarray,
    iterations: int = DIFFUSION_ITERATIONS,
) -> np.ndarray:
    """Blur *weights* with a 3×3 mean over interior EMPTY cells.

    Each iteration reads only the previous iteration's values. Border
    cells and non-EMPTY cells keep their original weight throughout.
    """
    heat = weights.astype(np.float64, copy=True)
    h, w = heat.shape
    if h < 3 or w < 3:
        return heat

    mask = np.zeros(heat.shape, dtype=bool)
    mask[1:-1, 1:-1] = cells[1:-1, 1:-1] == CellType.EMPTY

    for _ in range(iterations):
        box = np.zeros((h - 2, w - 2), dtype=np.float64)
        for dr in (0, 1, 2):
            for dc in (0, 1, 2):
                box += heat[dr:dr + h - 2, dc:dc + w - 2]
        blurred = heat.copy()
        blurred[1:-1, 1:-1] = box / 9.0
        heat = np.where(mask, blurred, heat)
    return heat


def heat_field(grid: Grid, own_kind: CellType) -> np.ndarray:
    """Weight the grid for *own_kind* and diffuse it."""
    return diffuse(weight_map(grid, own_kind), grid.cells)
