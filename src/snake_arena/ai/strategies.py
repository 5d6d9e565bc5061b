"""Direction-selection heuristics for unattended snakes.

Every strategy is a pure function of the current grid and snakes: it keeps
no state between ticks and returns one :class:`Direction`. Strategies that
cannot decide fall back to :func:`spread`, which in turn falls back to
:func:`wall_aware_random`.
"""

from __future__ import annotations

import enum
import logging
import math
from typing import TYPE_CHECKING

import numpy as np

from snake_arena.ai.flood import reachable_area
from snake_arena.ai.heatmap import heat_field
from snake_arena.grid import FATAL_KINDS
from snake_arena.snake import Direction, step_coord

if TYPE_CHECKING:
    from collections.abc import Iterable

    from snake_arena.grid import Grid
    from snake_arena.snake import Snake

logger = logging.getLogger(__name__)

ALL_DIRECTIONS: tuple[Direction, ...] = tuple(Direction)

# Resampling budget for wall_aware_random.
MAX_PICKS = 20

# Pursuit stops closing in below this head-to-head distance.
PURSUIT_MIN_DISTANCE = 6.0

# Tie-break order for the distance strategies.
TIE_BREAK_ORDER: tuple[Direction, ...] = (
    Direction.LEFT,
    Direction.DOWN,
    Direction.UP,
    Direction.RIGHT,
)


class Strategy(enum.IntEnum):
    """Available heuristics, numbered as in the game menu."""

    NAIVE_RANDOM = 1
    WALL_AWARE_RANDOM = 2
    SPREAD = 3
    PURSUIT = 4
    EVASION = 5
    HEAT_MAP = 6

    @classmethod
    def parse(cls, value: str | int) -> Strategy:
        """Accept either the menu number or the (case-insensitive) name."""
        if isinstance(value, int) or str(value).isdigit():
            return cls(int(value))
        try:
            return cls[str(value).upper().replace("-", "_")]
        except KeyError:
            raise ValueError(f"Unknown strategy {value!r}.") from None


def distance(a: tuple[int, int], b: tuple[int, int]) -> float:
    """Euclidean distance between two coordinates."""
    return math.hypot(a[0] - b[0], a[1] - b[1])


def is_safe(snake: Snake, direction: Direction, grid: Grid) -> bool:
    """Check whether the cell next to the head in *direction* is survivable."""
    return grid.get(step_coord(snake.head, direction)) not in FATAL_KINDS


def _random_direction(rng: np.random.Generator) -> Direction:
    return ALL_DIRECTIONS[int(rng.integers(len(ALL_DIRECTIONS)))]


def naive_random(
    snake: Snake, grid: Grid, rng: np.random.Generator,
) -> Direction:
    """Pick any direction except a reversal. Obstacles are ignored."""
    reverse = snake.direction.opposite()
    direction = _random_direction(rng)
    while direction == reverse:
        direction = _random_direction(rng)
    return direction


def wall_aware_random(
    snake: Snake, grid: Grid, rng: np.random.Generator,
) -> Direction:
    """Pick a random safe, non-reversing direction.

    After :data:`MAX_PICKS` failed draws the last draw is returned even
    though it is unsafe.
    """
    reverse = snake.direction.opposite()
    direction = _random_direction(rng)
    picks = 1
    while (
        (direction == reverse or not is_safe(snake, direction, grid))
        and picks < MAX_PICKS
    ):
        direction = _random_direction(rng)
        picks += 1
    return direction


def spread(snake: Snake, grid: Grid, rng: np.random.Generator) -> Direction:
    """Head towards the direction with the most free space around it.

    Only safe directions compete. Without a unique strict maximum the
    choice is left to :func:`wall_aware_random`.
    """
    areas: dict[Direction, int] = {}
    for direction in ALL_DIRECTIONS:
        if is_safe(snake, direction, grid):
            _, areas[direction] = reachable_area(
                grid, step_coord(snake.head, direction),
            )

    if areas:
        best = max(areas.values())
        leaders = [d for d, area in areas.items() if area == best]
        if len(leaders) == 1:
            return leaders[0]
    return wall_aware_random(snake, grid, rng)


def _best_by_distance(
    snake: Snake,
    grid: Grid,
    target: tuple[int, int],
    *,
    closer: bool,
) -> Direction | None:
    """Return the safe direction whose next head is nearest/farthest to *target*."""
    best: Direction | None = None
    best_dist = 0.0
    for direction in TIE_BREAK_ORDER:
        if not is_safe(snake, direction, grid):
            continue
        d = distance(step_coord(snake.head, direction), target)
        if best is None or (d < best_dist if closer else d > best_dist):
            best, best_dist = direction, d
    return best


def pursuit(
    snake: Snake,
    grid: Grid,
    rng: np.random.Generator,
    rival: Snake | None,
) -> Direction:
    """Close in on the rival's head while it is far enough away."""
    if rival is None or not rival.body:
        return spread(snake, grid, rng)
    if distance(snake.head, rival.head) < PURSUIT_MIN_DISTANCE:
        return spread(snake, grid, rng)
    choice = _best_by_distance(snake, grid, rival.head, closer=True)
    return choice if choice is not None else spread(snake, grid, rng)


def evasion(
    snake: Snake,
    grid: Grid,
    rng: np.random.Generator,
    rival: Snake | None,
) -> Direction:
    """Back away from the rival's head while it is within half the grid height."""
    if rival is None or not rival.body:
        return spread(snake, grid, rng)
    if distance(snake.head, rival.head) > 0.5 * grid.height:
        return spread(snake, grid, rng)
    choice = _best_by_distance(snake, grid, rival.head, closer=False)
    return choice if choice is not None else spread(snake, grid, rng)


def heat_map(snake: Snake, grid: Grid, rng: np.random.Generator) -> Direction:
    """Follow the diffused potential field towards attractive cells."""
    heat = heat_field(grid, snake.kind)
    values: dict[Direction, float] = {}
    for direction in ALL_DIRECTIONS:
        r, c = step_coord(snake.head, direction)
        values[direction] = float(heat[r, c])

    best = max(values, key=values.__getitem__)
    dominant = all(
        values[best] > v for d, v in values.items() if d != best
    )
    if dominant and is_safe(snake, best, grid):
        return best
    return spread(snake, grid, rng)


def nearest_rival(snake: Snake, others: Iterable[Snake]) -> Snake | None:
    """Return the other snake whose head is closest to *snake*'s head."""
    candidates = [s for s in others if s is not snake and s.body]
    if not candidates:
        return None
    return min(candidates, key=lambda s: distance(snake.head, s.head))


def choose_direction(
    strategy: Strategy,
    snake: Snake,
    grid: Grid,
    rng: np.random.Generator,
    rival: Snake | None = None,
) -> Direction:
    """Dispatch to the heuristic selected by *strategy*."""
    if strategy == Strategy.NAIVE_RANDOM:
        return naive_random(snake, grid, rng)
    if strategy == Strategy.WALL_AWARE_RANDOM:
        return wall_aware_random(snake, grid, rng)
    if strategy == Strategy.SPREAD:
        return spread(snake, grid, rng)
    if strategy == Strategy.PURSUIT:
        return pursuit(snake, grid, rng, rival)
    if strategy == Strategy.EVASION:
        return evasion(snake, grid, rng, rival)
    if strategy == Strategy.HEAT_MAP:
        return heat_map(snake, grid, rng)
    raise ValueError(f"Unknown strategy {strategy!r}.")
