"""Snake Arena: multiplayer snake simulation with heuristic agents."""

from snake_arena.config import ArenaConfig
from snake_arena.engine import Arena, LocalMatch, MatchResult
from snake_arena.grid import CellType, Grid
from snake_arena.items import ItemSpawner, SpawnedItem
from snake_arena.snake import Direction, Snake

__all__ = [
    "Arena",
    "ArenaConfig",
    "CellType",
    "Direction",
    "Grid",
    "ItemSpawner",
    "LocalMatch",
    "MatchResult",
    "Snake",
    "SpawnedItem",
]
