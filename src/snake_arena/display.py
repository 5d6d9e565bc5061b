"""Interfaces to the terminal collaborators, plus headless stand-ins."""

from __future__ import annotations

from collections import deque
from typing import Protocol

Coord = tuple[int, int]


class Renderer(Protocol):
    """Draws one glyph at a grid coordinate."""

    def draw(self, coord: Coord, glyph: str, color: str | None) -> None: ...


class KeySource(Protocol):
    """Non-blocking source of single control characters."""

    def read_key(self) -> str | None:
        """Return the next pending key, or ``None`` if nothing is pending."""
        ...


class RecordingRenderer:
    """Keeps the last glyph drawn at every coordinate."""

    def __init__(self) -> None:
        self.screen: dict[Coord, tuple[str, str | None]] = {}
        self.draw_count = 0

    def draw(self, coord: Coord, glyph: str, color: str | None) -> None:
        self.screen[coord] = (glyph, color)
        self.draw_count += 1

    def glyph_at(self, coord: Coord) -> str | None:
        entry = self.screen.get(coord)
        return entry[0] if entry else None


class ScriptedKeys:
    """Key source fed programmatically; used for headless play and tests."""

    def __init__(self, keys: str = "") -> None:
        self._pending: deque[str] = deque(keys)

    def feed(self, keys: str) -> None:
        self._pending.extend(keys)

    def read_key(self) -> str | None:
        if not self._pending:
            return None
        return self._pending.popleft()
