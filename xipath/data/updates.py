"""
xipath — Entity Update Model

Typed updates produced by the packet parser, one list per entity per zone.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import ClassVar, Union

ZONE_MASK = 0x1FF
UNKNOWN_ZONE = 0


@dataclass
class Position:
    """A point in the world. Rotation is a byte angle (256 = full turn)."""
    x: float
    y: float
    z: float
    rotation: int | None = None


class EntityUpdateKind(IntEnum):
    POSITION = 0
    WIDESCAN = 1
    OUT_OF_RANGE = 2
    DESPAWN = 3


@dataclass
class PositionUpdate:
    """Entity observed at a location."""
    kind: ClassVar[EntityUpdateKind] = EntityUpdateKind.POSITION
    time: float
    pos: Position
    name: str | None = None


@dataclass
class WidescanUpdate:
    """Entity located by widescan, relative to the client's last position."""
    kind: ClassVar[EntityUpdateKind] = EntityUpdateKind.WIDESCAN
    time: float
    pos: Position
    name: str | None = None


@dataclass
class OutOfRangeUpdate:
    """Entity left observable range; ends a tracked segment."""
    kind: ClassVar[EntityUpdateKind] = EntityUpdateKind.OUT_OF_RANGE
    time: float


@dataclass
class DespawnUpdate:
    """Entity removed from the world."""
    kind: ClassVar[EntityUpdateKind] = EntityUpdateKind.DESPAWN
    time: float


EntityUpdate = Union[PositionUpdate, WidescanUpdate, OutOfRangeUpdate, DespawnUpdate]

# zone_id -> entity_key -> chronological updates
ZoneEntityUpdates = dict[int, dict[str, list[EntityUpdate]]]


def zone_of(entity_id: int) -> int:
    """Zone ID packed into bits 12-20 of an entity ID."""
    return (entity_id >> 12) & ZONE_MASK


def entity_key(index: int, entity_id: int) -> str:
    """Key like '0x0B5-1193046': slot index in hex, full ID in decimal."""
    return f"0x{index:03X}-{entity_id}"


def split_entity_key(key: str) -> tuple[int, int]:
    """Inverse of entity_key: (index, entity_id)."""
    index_hex, entity_id = key.split("-", 1)
    return int(index_hex, 16), int(entity_id)
