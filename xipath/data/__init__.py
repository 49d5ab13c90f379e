from .updates import (
    Position, PositionUpdate, WidescanUpdate, OutOfRangeUpdate, DespawnUpdate,
    EntityUpdate, EntityUpdateKind, ZoneEntityUpdates,
)
from .state import PacketParser, ParserConfig, ParseResult, parse_packets
from .path import PathConfig, PathPart, PathPartKind, parse_path, calc_rot_diff

__all__ = [
    "Position", "PositionUpdate", "WidescanUpdate", "OutOfRangeUpdate", "DespawnUpdate",
    "EntityUpdate", "EntityUpdateKind", "ZoneEntityUpdates",
    "PacketParser", "ParserConfig", "ParseResult", "parse_packets",
    "PathConfig", "PathPart", "PathPartKind", "parse_path", "calc_rot_diff",
]
