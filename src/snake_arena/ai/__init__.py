"""Heuristic decision engine for unattended snakes."""

from snake_arena.ai.flood import FLOOD_CAP, reachable_area
from snake_arena.ai.heatmap import diffuse, heat_field, weight_map
from snake_arena.ai.strategies import (
    Strategy,
    choose_direction,
    evasion,
    heat_map,
    is_safe,
    naive_random,
    nearest_rival,
    pursuit,
    spread,
    wall_aware_random,
)

__all__ = [
    "FLOOD_CAP",
    "Strategy",
    "choose_direction",
    "diffuse",
    "evasion",
    "heat_field",
    "heat_map",
    "is_safe",
    "naive_random",
    "nearest_rival",
    "pursuit",
    "reachable_area",
    "spread",
    "wall_aware_random",
    "weight_map",
]
