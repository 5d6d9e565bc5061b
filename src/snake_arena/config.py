"""Session configuration and fixed game rules."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

# Ticks an agent stays frozen after a rival collects FREEZE.
FREEZE_TICKS = 10

# One speed increment shortens the local tick by this many milliseconds.
SPEED_STEP_MS = 25

# Spawner refuses speed items once the bias reaches this many increments.
MAX_SPEED_STEPS = 5

# Keys queued per player before further presses are dropped.
MAX_INPUT_STACK = 5

# Recommended lower bound for the tick period.
REC_TIMESTEP_MS = 150

# Smallest board on which the start slots and the play area stay usable.
MIN_ARENA_WIDTH = 15
MIN_ARENA_HEIGHT = 15


@dataclass(frozen=True)
class ArenaConfig:
    """Everything a session needs to build its arena and run its loop.

    Supports JSON serialization so a host and its peers can share a file.
    """

    # Arena
    width: int = 60
    height: int = 25
    snake_length: int = 1

    # Timing
    timestep_ms: int = REC_TIMESTEP_MS
    host_margin_ms: int = 5
    peer_margin_ms: int = 10

    # Items
    local_item_odds: float = 0.1
    network_item_odds: float = 0.25

    # Input
    max_input_stack: int = MAX_INPUT_STACK

    # Network
    host: str = "127.0.0.1"
    port: int = 3490
    max_players: int = 10

    seed: int | None = None

    def __post_init__(self) -> None:
        if self.width < MIN_ARENA_WIDTH or self.height < MIN_ARENA_HEIGHT:
            raise ValueError(
                f"Arena must be at least {MIN_ARENA_WIDTH}x{MIN_ARENA_HEIGHT}.",
            )
        if self.snake_length < 1:
            raise ValueError("snake_length must be at least 1.")
        if self.timestep_ms <= 0:
            raise ValueError("timestep_ms must be positive.")
        for name in ("local_item_odds", "network_item_odds"):
            if not 0.0 <= getattr(self, name) <= 1.0:
                raise ValueError(f"{name} must be within [0, 1].")
        if self.max_input_stack < 1:
            raise ValueError("max_input_stack must be at least 1.")
        if not 2 <= self.max_players <= 12:
            raise ValueError("max_players must be between 2 and 12.")

    @property
    def timestep(self) -> float:
        """Tick period in seconds."""
        return self.timestep_ms / 1000.0

    def to_dict(self) -> dict:
        return asdict(self)

    def save(self, path: str | Path) -> None:
        """Write config to a JSON file."""
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(json.dumps(self.to_dict(), indent=2))
        logger.info("Config saved to %s", p)

    @classmethod
    def load(cls, path: str | Path) -> ArenaConfig:
        """Load config from a JSON file."""
        return cls(**json.loads(Path(path).read_text()))

    def replace(self, **overrides) -> ArenaConfig:
        """Return a copy with the given fields changed."""
        d = self.to_dict()
        d.update({k: v for k, v in overrides.items() if v is not None})
        return ArenaConfig(**d)
