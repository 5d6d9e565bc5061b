"""Snake representation, directions, and start slots."""

from __future__ import annotations

import enum
from collections import deque
from typing import TYPE_CHECKING

from snake_arena.grid import CellType

if TYPE_CHECKING:
    from snake_arena.grid import Grid

Coord = tuple[int, int]


class Direction(enum.IntEnum):
    """Cardinal movement directions. Values double as wire codes."""

    UP = 0
    DOWN = 1
    LEFT = 2
    RIGHT = 3

    @property
    def delta(self) -> Coord:
        """Return the (row_delta, col_delta) of one step."""
        return _DELTAS[self]

    def opposite(self) -> Direction:
        return _OPPOSITES[self]

    def turn_left(self) -> Direction:
        return _LEFT_TURNS[self]

    def turn_right(self) -> Direction:
        return _RIGHT_TURNS[self]


_DELTAS: dict[Direction, Coord] = {
    Direction.UP: (-1, 0),
    Direction.DOWN: (1, 0),
    Direction.LEFT: (0, -1),
    Direction.RIGHT: (0, 1),
}

# Pairs that would cause an instant 180° reversal.
_OPPOSITES: dict[Direction, Direction] = {
    Direction.UP: Direction.DOWN,
    Direction.DOWN: Direction.UP,
    Direction.LEFT: Direction.RIGHT,
    Direction.RIGHT: Direction.LEFT,
}

_LEFT_TURNS: dict[Direction, Direction] = {
    Direction.UP: Direction.LEFT,
    Direction.LEFT: Direction.DOWN,
    Direction.DOWN: Direction.RIGHT,
    Direction.RIGHT: Direction.UP,
}

_RIGHT_TURNS: dict[Direction, Direction] = {
    Direction.UP: Direction.RIGHT,
    Direction.RIGHT: Direction.DOWN,
    Direction.DOWN: Direction.LEFT,
    Direction.LEFT: Direction.UP,
}


def step_coord(coord: Coord, direction: Direction) -> Coord:
    """Return the coordinate one step from *coord* in *direction*.

    No bounds checking: the border walls stop legal play before the edge.
    """
    if not isinstance(direction, Direction):
        raise ValueError(f"{direction!r} is not a direction.")
    dr, dc = direction.delta
    return coord[0] + dr, coord[1] + dc


def are_adjacent(a: Coord, b: Coord) -> bool:
    """Check whether two coordinates differ by one step on exactly one axis."""
    return abs(a[0] - b[0]) + abs(a[1] - b[1]) == 1


# Start slots: (row_fraction, row_offset, col_fraction, col_offset, facing).
_START_SLOTS: list[tuple[float, int, float, int, Direction]] = [
    (0.5, 0, 0.2, 0, Direction.RIGHT),
    (0.5, 0, 0.8, 0, Direction.LEFT),
    (0.2, 0, 0.5, 0, Direction.DOWN),
    (0.8, 0, 0.5, 0, Direction.UP),
    (0.5, 2, 0.2, -2, Direction.RIGHT),
    (0.5, -2, 0.8, 2, Direction.LEFT),
    (0.2, -2, 0.5, -2, Direction.DOWN),
    (0.8, 2, 0.5, 2, Direction.UP),
    (0.5, -2, 0.2, -2, Direction.RIGHT),
    (0.5, 2, 0.8, 2, Direction.LEFT),
    (0.2, -2, 0.5, 2, Direction.DOWN),
    (0.8, 2, 0.5, -2, Direction.UP),
]

START_SLOT_COUNT = len(_START_SLOTS)


def start_position(slot: int, width: int, height: int) -> tuple[Coord, Direction]:
    """Return the head coordinate and facing for a start slot."""
    if not 0 <= slot < START_SLOT_COUNT:
        raise ValueError(
            f"start slot {slot} out of range [0, {START_SLOT_COUNT})."
        )
    row_frac, row_off, col_frac, col_off, facing = _START_SLOTS[slot]
    row = int(row_frac * height + row_off)
    col = int(col_frac * width + col_off)
    return (row, col), facing


def kind_for_agent(agent_id: int) -> CellType:
    """Agent 1 is drawn as AGENT_B, every other agent as AGENT_A."""
    return CellType.AGENT_B if agent_id == 1 else CellType.AGENT_A


class Snake:
    """A snake represented as an ordered deque of (row, col) body segments.

    The head is ``body[0]``; the tail is ``body[-1]``. The snake itself does
    not touch the grid except through :meth:`push_head` and
    :meth:`pop_tail`, which mirror every body change onto it.
    """

    def __init__(
        self,
        agent_id: int,
        kind: CellType,
        direction: Direction = Direction.RIGHT,
    ) -> None:
        if kind not in (CellType.AGENT_A, CellType.AGENT_B):
            raise ValueError(f"{kind!r} is not an agent cell kind.")
        self.agent_id = agent_id
        self.kind = kind
        self.direction = direction
        self.body: deque[Coord] = deque()
        self.grow_pending = False

    @classmethod
    def at_slot(
        cls,
        agent_id: int,
        slot: int,
        grid: Grid,
        length: int = 1,
    ) -> Snake:
        """Create a snake at a start slot and paint it onto *grid*.

        Extra segments beyond the head are laid out behind it, opposite to
        the facing direction.
        """
        if length < 1:
            raise ValueError("Snake length must be at least 1.")
        head, facing = start_position(slot, grid.width, grid.height)
        back = facing.opposite()
        segments = [head]
        for _ in range(length - 1):
            segments.append(step_coord(segments[-1], back))
        for seg in segments:
            if not grid.in_interior(seg) or grid.get(seg) != CellType.EMPTY:
                raise ValueError(
                    f"start slot {slot} does not fit a snake of length "
                    f"{length} on a {grid.width}x{grid.height} grid."
                )

        snake = cls(agent_id, kind_for_agent(agent_id), facing)
        for seg in reversed(segments):
            snake.push_head(grid, seg)
        grid.register_agent(agent_id)
        return snake

    @property
    def head(self) -> Coord:
        """Return the head coordinate."""
        return self.body[0]

    @property
    def tail(self) -> Coord:
        """Return the tail coordinate."""
        return self.body[-1]

    def __len__(self) -> int:
        return len(self.body)

    def push_head(self, grid: Grid, coord: Coord) -> None:
        """Add a new head segment and paint it onto the grid."""
        self.body.appendleft(coord)
        grid.set(coord, self.kind)

    def pop_tail(self, grid: Grid) -> Coord:
        """Remove the tail segment, clearing its grid cell."""
        if len(self.body) <= 1:
            raise ValueError("Cannot shrink a snake below length 1.")
        tail = self.body.pop()
        grid.set(tail, CellType.EMPTY)
        return tail

    def next_head(self, direction: Direction | None = None) -> Coord:
        """Compute the head position after one step without moving."""
        if direction is None:
            direction = self.direction
        return step_coord(self.head, direction)

    def occupies(self, coord: Coord) -> bool:
        """Check whether the snake occupies a given cell."""
        return coord in self.body

    def to_dict(self) -> dict:
        """Serialize snake state to a dictionary."""
        return {
            "agent_id": self.agent_id,
            "kind": self.kind.name,
            "body": [list(seg) for seg in self.body],
            "direction": self.direction.name,
            "grow_pending": self.grow_pending,
        }
