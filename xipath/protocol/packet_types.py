"""
Protocol Packet Types — registry of the packet layouts xipath understands.

Offsets are payload byte offsets into the logged hex dump (see hexdump.py).
Only the fields the parser relies on are listed; everything else in these
packets is left undecoded.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from xipath.capture.capture import INCOMING, OUTGOING, PacketBlock
from xipath.protocol.hexdump import (
    MalformedFieldError,
    extract_bytes,
    extract_f32,
    extract_i16,
    extract_string,
    extract_u8,
    extract_u16,
    extract_u32,
)


class Direction:
    INCOMING = INCOMING  # server → client
    OUTGOING = OUTGOING  # client → server


# Entity update mask bits (byte @0x0A of 0x00E)
UPDATE_POSITION = 0x01
UPDATE_NAME = 0x08
UPDATE_DESPAWN = 0x20


@dataclass
class FieldDef:
    """A field within a packet."""
    name: str
    offset: int
    size: int
    type: str  # "u8", "u16le", "i16le", "u32le", "f32", "str", "bytes"
    description: str = ""
    required: bool = False  # packet is unusable without it


@dataclass
class PacketDef:
    """Definition of a known packet kind."""
    kind: int
    name: str
    direction: str
    description: str = ""
    fields: list[FieldDef] = field(default_factory=list)


# Keyed by (direction, kind): the same kind number means different things
# in each direction.
KNOWN_PACKETS: dict[tuple[str, int], PacketDef] = {

    (Direction.INCOMING, 0x00E): PacketDef(
        kind=0x00E,
        name="ENTITY_UPDATE",
        direction=Direction.INCOMING,
        description="Entity position / name / despawn update",
        fields=[
            FieldDef("entity_id", 0x04, 4, "u32le", "Entity ID, zone in bits 12-20", required=True),
            FieldDef("entity_index", 0x08, 2, "u16le", "Entity slot index", required=True),
            FieldDef("update_mask", 0x0A, 1, "u8", "0x01 position, 0x08 name, 0x20 despawn", required=True),
            FieldDef("rotation", 0x0B, 1, "u8", "Heading, 256 = full turn"),
            FieldDef("x", 0x0C, 4, "f32", "X coordinate"),
            FieldDef("y", 0x10, 4, "f32", "Y coordinate (height)"),
            FieldDef("z", 0x14, 4, "f32", "Z coordinate"),
            FieldDef("entity_name", 0x34, 16, "str", "Entity name, only when mask & 0x08"),
        ],
    ),

    (Direction.INCOMING, 0x0F4): PacketDef(
        kind=0x0F4,
        name="WIDESCAN_RESULT",
        direction=Direction.INCOMING,
        description="Widescan hit, offset relative to the client",
        fields=[
            FieldDef("entity_index", 0x04, 2, "u16le", "Entity slot index", required=True),
            FieldDef("x_offset", 0x08, 2, "i16le", "X offset from client"),
            FieldDef("z_offset", 0x0A, 2, "i16le", "Z offset from client"),
            FieldDef("entity_name", 0x0C, 16, "str", "Entity name"),
        ],
    ),

    (Direction.OUTGOING, 0x015): PacketDef(
        kind=0x015,
        name="CLIENT_POSITION",
        direction=Direction.OUTGOING,
        description="Client's own position report",
        fields=[
            FieldDef("x", 0x04, 4, "f32", "X coordinate"),
            FieldDef("y", 0x08, 4, "f32", "Y coordinate (height)"),
            FieldDef("z", 0x0C, 4, "f32", "Z coordinate"),
            FieldDef("target_index", 0x16, 2, "u16le", "Targeted entity index"),
        ],
    ),
}


def decode_field(
    lines: list[str], field_def: FieldDef, str_len: int | None = None,
) -> int | float | str | bytes:
    """Decode a single field from a logged packet's lines.

    `str_len` overrides the byte limit of string fields.
    """
    offset = field_def.offset
    match field_def.type:
        case "u8":
            return extract_u8(lines, offset)
        case "u16le":
            return extract_u16(lines, offset)
        case "i16le":
            return extract_i16(lines, offset)
        case "u32le":
            return extract_u32(lines, offset)
        case "f32":
            return extract_f32(lines, offset)
        case "str":
            return extract_string(lines, offset, str_len or field_def.size)
        case _:
            return extract_bytes(lines, offset, field_def.size)


def get_packet_def(direction: str, kind: int) -> PacketDef | None:
    return KNOWN_PACKETS.get((direction, kind))


def decode_packet(block: PacketBlock, str_len: int | None = None) -> dict | None:
    """Decode every known field of a block.

    Integer fields whose bytes are missing or not hex are omitted; float
    fields decode to NaN instead.
    """
    pdef = get_packet_def(block.direction, block.kind)
    if pdef is None:
        return None

    result = {
        "kind": block.kind,
        "kind_hex": block.kind_hex,
        "name": pdef.name,
        "direction": pdef.direction,
        "timestamp": block.timestamp,
        "size": block.size,
    }
    for f in pdef.fields:
        try:
            result[f.name] = decode_field(block.lines, f, str_len)
        except MalformedFieldError:
            continue
    return result


def register_packet(pdef: PacketDef) -> None:
    """Register an additional packet layout."""
    KNOWN_PACKETS[(pdef.direction, pdef.kind)] = pdef


def missing_fields(decoded: dict) -> list[str]:
    """Required fields of a decoded packet that could not be decoded."""
    pdef = get_packet_def(decoded["direction"], decoded["kind"])
    if pdef is None:
        return []
    return [f.name for f in pdef.fields if f.required and f.name not in decoded]
