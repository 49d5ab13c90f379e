"""Shared fixtures for xipath tests."""

import struct
from datetime import datetime, timedelta

import pytest

from xipath.protocol.hexdump import BYTE_STRIDE, BYTES_PER_LINE, DATA_COLUMN, HEADER_LINES, dump_lines

BASE_TIME = datetime(2023, 3, 11, 20, 0, 0)

# entity_id 0x00123456 → zone (0x123456 >> 12) & 0x1FF = 0x123 = 291
ZONE_ID = 291
ENTITY_ID = 0x00123456


def header_line(ms: float, direction: str, kind: int) -> str:
    """Header for a packet logged `ms` milliseconds after BASE_TIME."""
    ts = (BASE_TIME + timedelta(milliseconds=ms)).isoformat(sep=" ", timespec="milliseconds")
    return f"[{ts}] {direction} packet 0x{kind:03X}"


def entity_payload(
    entity_id: int = ENTITY_ID,
    index: int = 0x0B5,
    mask: int = 0x01,
    rotation: int = 0,
    pos: tuple[float, float, float] = (0.0, 0.0, 0.0),
    name: str | None = None,
) -> bytes:
    """Build an entity update (Incoming 0x00E) payload, 72 bytes."""
    buf = bytearray(0x48)
    buf[0] = 0x0E
    buf[1] = 0x24
    struct.pack_into("<I", buf, 0x04, entity_id)
    struct.pack_into("<H", buf, 0x08, index)
    buf[0x0A] = mask
    buf[0x0B] = rotation
    struct.pack_into("<fff", buf, 0x0C, *pos)
    if name:
        raw = name.encode("utf-8")[:16]
        buf[0x34:0x34 + len(raw)] = raw
    return bytes(buf)


def widescan_payload(index: int = 0x10, x_offset: int = 0, z_offset: int = 0, name: str = "") -> bytes:
    """Build a widescan result (Incoming 0x0F4) payload, 32 bytes."""
    buf = bytearray(0x20)
    buf[0] = 0xF4
    buf[1] = 0x10
    struct.pack_into("<H", buf, 0x04, index)
    struct.pack_into("<h", buf, 0x08, x_offset)
    struct.pack_into("<h", buf, 0x0A, z_offset)
    raw = name.encode("utf-8")[:16]
    buf[0x0C:0x0C + len(raw)] = raw
    return bytes(buf)


def client_payload(pos: tuple[float, float, float] = (0.0, 0.0, 0.0), target_index: int = 0) -> bytes:
    """Build a client position (Outgoing 0x015) payload, 32 bytes."""
    buf = bytearray(0x20)
    buf[0] = 0x15
    buf[1] = 0x10
    struct.pack_into("<fff", buf, 0x04, *pos)
    struct.pack_into("<H", buf, 0x16, target_index)
    return bytes(buf)


class LogBuilder:
    """Accumulates logged packets and renders them as log text."""

    def __init__(self):
        self.blocks: list[list[str]] = []

    def packet(self, ms: float, direction: str, kind: int, payload: bytes) -> "LogBuilder":
        self.blocks.append([header_line(ms, direction, kind)] + dump_lines(payload))
        return self

    def entity(self, ms: float, **kwargs) -> "LogBuilder":
        return self.packet(ms, "Incoming", 0x00E, entity_payload(**kwargs))

    def widescan(self, ms: float, **kwargs) -> "LogBuilder":
        return self.packet(ms, "Incoming", 0x0F4, widescan_payload(**kwargs))

    def client(self, ms: float, **kwargs) -> "LogBuilder":
        return self.packet(ms, "Outgoing", 0x015, client_payload(**kwargs))

    def corrupt(self, packet: int, offset: int, text: str) -> "LogBuilder":
        """Overwrite the two hex digits of payload byte `offset` in the n-th packet."""
        block = self.blocks[packet]
        line_no = HEADER_LINES + offset // BYTES_PER_LINE
        col = DATA_COLUMN + (offset % BYTES_PER_LINE) * BYTE_STRIDE
        block[line_no] = block[line_no][:col] + text + block[line_no][col + 2:]
        return self

    def lines(self) -> list[str]:
        return [line for block in self.blocks for line in block]

    def text(self) -> str:
        return "\n".join(self.lines())


@pytest.fixture
def log_builder() -> LogBuilder:
    return LogBuilder()


@pytest.fixture
def entity_lines() -> list[str]:
    """A single logged entity update at (100, 0, 200), rotation 64."""
    return [header_line(0, "Incoming", 0x00E)] + dump_lines(
        entity_payload(mask=0x01, rotation=0x40, pos=(100.0, 0.0, 200.0))
    )


@pytest.fixture
def sample_log(log_builder) -> str:
    """Client in the middle, one named mob walking, one widescan hit."""
    log_builder.client(0, pos=(0.0, 0.0, 0.0))
    log_builder.entity(100, mask=0x09, rotation=10, pos=(5.0, 0.0, 5.0), name="Goblin Smithy")
    log_builder.entity(600, mask=0x01, rotation=10, pos=(6.0, 0.0, 6.0))
    log_builder.entity(1100, mask=0x01, rotation=20, pos=(7.0, 0.0, 7.0))
    log_builder.widescan(1500, index=0x22, x_offset=30, z_offset=-40, name="Bat")
    log_builder.packet(1600, "Incoming", 0x067, b"\x67\x06" + b"\x00" * 14)
    return log_builder.text()
