"""Shared test doubles for stream-based networking."""

from __future__ import annotations

import pytest


class FakeWriter:
    """In-memory stand-in for ``asyncio.StreamWriter``."""

    def __init__(self, peername=("127.0.0.1", 40000)) -> None:
        self.data = bytearray()
        self.closed = False
        self._peername = peername

    def write(self, payload: bytes) -> None:
        self.data.extend(payload)

    async def drain(self) -> None:
        return None

    def close(self) -> None:
        self.closed = True

    def is_closing(self) -> bool:
        return self.closed

    async def wait_closed(self) -> None:
        return None

    def get_extra_info(self, name, default=None):
        if name == "peername":
            return self._peername
        return default


class ScriptedRng:
    """Generator stand-in that replays fixed draws."""

    def __init__(self, integers=(), randoms=()) -> None:
        self._integers = list(integers)
        self._randoms = list(randoms)

    def integers(self, high):
        value = self._integers.pop(0)
        assert 0 <= value < high
        return value

    def random(self):
        return self._randoms.pop(0)

    @property
    def exhausted(self) -> bool:
        return not self._integers and not self._randoms


@pytest.fixture()
def fake_writer():
    return FakeWriter


@pytest.fixture()
def scripted_rng():
    return ScriptedRng
