"""Bounded reachability flood fill over empty cells."""

from __future__ import annotations

from typing import TYPE_CHECKING

from snake_arena.grid import CellType

if TYPE_CHECKING:
    from snake_arena.grid import Grid

Coord = tuple[int, int]

# Visiting stops once this many cells have been counted.
FLOOD_CAP = 21

# Neighbour expansion order: up, left, right, down.
_NEIGHBOURS: tuple[Coord, ...] = ((-1, 0), (0, -1), (0, 1), (1, 0))


def reachable_area(
    grid: Grid,
    start: Coord,
    cap: int = FLOOD_CAP,
) -> tuple[set[Coord], int]:
    """Count EMPTY cells reachable from *start*, stopping at *cap* cells.

    Depth-first over an explicit stack. Returns the visited set and its
    size; a non-empty *start* yields ``(set(), 0)``. The count is a size
    probe, not a true component size once the cap is hit.
    """
    visited: set[Coord] = set()
    stack: list[Coord] = [start]
    while stack and len(visited) < cap:
        cell = stack.pop()
        if cell in visited or not grid.in_bounds(cell):
            continue
        if grid.get(cell) != CellType.EMPTY:
            continue
        visited.add(cell)
        r, c = cell
        # Reversed so the first neighbour is popped first.
        for dr, dc in reversed(_NEIGHBOURS):
            nxt = (r + dr, c + dc)
            if nxt not in visited:
                stack.append(nxt)
    return visited, len(visited)
