"""Wire format for the lock-step host/peer protocol.

Every field is a signed 32-bit big-endian integer; messages carry no
length prefix and no padding:

* handshake (host → peer, once): ``size, peer_count, peer_id, width, height``
* start signal (host → peer, once): ``1``
* direction (peer → host, every tick): ``0..3``
* direction vector (host → peer, every tick): one slot per agent, ``4`` for
  dead agents
* item record (host → peer, every tick the game goes on): ``kind`` followed
  by ``row, col``, or ``-1`` alone when nothing spawned
"""

from __future__ import annotations

import asyncio
import struct
from collections.abc import Sequence
from dataclasses import dataclass

from snake_arena.grid import ITEM_KINDS, CellType
from snake_arena.items import SpawnedItem
from snake_arena.snake import Direction

INT = struct.Struct("!i")
HANDSHAKE = struct.Struct("!5i")

START_SIGNAL = 1
DEAD = 4
NO_ITEM = -1


class ProtocolError(Exception):
    """The remote side sent something the protocol does not allow."""


@dataclass(frozen=True)
class Handshake:
    """Session parameters sent to each peer once the lobby closes."""

    size: int
    peer_count: int
    peer_id: int
    width: int
    height: int

    def encode(self) -> bytes:
        return HANDSHAKE.pack(
            self.size, self.peer_count, self.peer_id, self.width, self.height,
        )

    @classmethod
    def decode(cls, data: bytes) -> Handshake:
        hs = cls(*HANDSHAKE.unpack(data))
        if hs.peer_count < 2 or not 0 <= hs.peer_id < hs.peer_count:
            raise ProtocolError(f"Inconsistent handshake {hs}.")
        if hs.size < 1 or hs.width < 4 or hs.height < 4:
            raise ProtocolError(f"Unusable arena in handshake {hs}.")
        return hs


def pack_ints(*values: int) -> bytes:
    return b"".join(INT.pack(v) for v in values)


async def read_int(reader: asyncio.StreamReader) -> int:
    """Read one integer. Raises ``IncompleteReadError`` on a closed stream."""
    data = await reader.readexactly(INT.size)
    return INT.unpack(data)[0]


async def read_ints(reader: asyncio.StreamReader, count: int) -> list[int]:
    data = await reader.readexactly(INT.size * count)
    return list(struct.unpack(f"!{count}i", data))


async def read_handshake(reader: asyncio.StreamReader) -> Handshake:
    return Handshake.decode(await reader.readexactly(HANDSHAKE.size))


async def read_start(reader: asyncio.StreamReader) -> None:
    value = await read_int(reader)
    if value != START_SIGNAL:
        raise ProtocolError(f"Wrong start signal received: {value}.")


def encode_vector(slots: Sequence[int]) -> bytes:
    return pack_ints(*slots)


def decode_slot(value: int) -> Direction | None:
    """Map a vector slot to a direction, ``None`` meaning a dead agent."""
    if value == DEAD:
        return None
    try:
        return Direction(value)
    except ValueError:
        raise ProtocolError(f"Invalid direction slot {value}.") from None


def parse_direction(value: int) -> Direction | None:
    """Map a peer's direction to a Direction, ``None`` if out of range."""
    if 0 <= value <= 3:
        return Direction(value)
    return None


def encode_item(item: SpawnedItem | None) -> bytes:
    if item is None:
        return pack_ints(NO_ITEM)
    return pack_ints(int(item.kind), item.coord[0], item.coord[1])


async def read_item(reader: asyncio.StreamReader) -> SpawnedItem | None:
    kind = await read_int(reader)
    if kind == NO_ITEM:
        return None
    try:
        cell = CellType(kind)
    except ValueError:
        raise ProtocolError(f"Unknown item kind {kind}.") from None
    if cell not in ITEM_KINDS:
        raise ProtocolError(f"{cell.name} is not an item.")
    row, col = await read_ints(reader, 2)
    return SpawnedItem(cell, (row, col))
