"""Keyboard mapping and the bounded per-player input queue."""

from __future__ import annotations

from typing import TYPE_CHECKING

from snake_arena.snake import Direction

if TYPE_CHECKING:
    from snake_arena.display import KeySource
    from snake_arena.snake import Snake

QUIT_KEY = "\x1b"

P1_KEYS: dict[str, Direction] = {
    "w": Direction.UP,
    "s": Direction.DOWN,
    "a": Direction.LEFT,
    "d": Direction.RIGHT,
}

P2_KEYS: dict[str, Direction] = {
    "i": Direction.UP,
    "k": Direction.DOWN,
    "j": Direction.LEFT,
    "l": Direction.RIGHT,
}


class DirectionQueue:
    """Fixed-capacity FIFO ring buffer of directions.

    ``start == end`` is ambiguous between empty and full, so fullness is
    tracked with an explicit flag.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1.")
        self._data: list[Direction | None] = [None] * capacity
        self._start = 0
        self._end = 0
        self._full = False

    @property
    def capacity(self) -> int:
        return len(self._data)

    def __len__(self) -> int:
        if self._full:
            return self.capacity
        return (self._end - self._start) % self.capacity

    def is_empty(self) -> bool:
        return not self._full and self._start == self._end

    def is_full(self) -> bool:
        return self._full

    def push(self, direction: Direction) -> bool:
        """Append a direction. Returns False (and drops it) when full."""
        if self._full:
            return False
        self._data[self._end] = direction
        self._end = (self._end + 1) % self.capacity
        self._full = self._start == self._end
        return True

    def pop(self) -> Direction:
        """Remove and return the oldest direction."""
        if self.is_empty():
            raise IndexError("pop from an empty DirectionQueue.")
        direction = self._data[self._start]
        self._data[self._start] = None
        self._start = (self._start + 1) % self.capacity
        self._full = False
        return direction

    def clear(self) -> None:
        self._data = [None] * self.capacity
        self._start = self._end = 0
        self._full = False


def drain_keys(
    keys: KeySource,
    queues: list[tuple[dict[str, Direction], DirectionQueue]],
) -> bool:
    """Move every pending key into the matching player's queue.

    Returns True if the quit key was seen. Keys after quit stay pending;
    keys no player owns are discarded.
    """
    while (key := keys.read_key()) is not None:
        if key == QUIT_KEY:
            return True
        for keymap, queue in queues:
            direction = keymap.get(key)
            if direction is not None:
                queue.push(direction)
                break
    return False


def next_direction(snake: Snake, queue: DirectionQueue) -> Direction:
    """Take the oldest queued direction, refusing a reversal.

    With nothing queued, or when the queued direction would reverse the
    snake, the snake keeps its current direction.
    """
    wanted = queue.pop() if not queue.is_empty() else snake.direction
    if wanted == snake.direction.opposite():
        return snake.direction
    return wanted
