"""
Hex Dump Fields — read fixed-width binary fields out of a logged packet.

A logged packet is a header line, two descriptive lines and then the payload
as a 16-bytes-per-line hex dump:

    [2023-03-11 20:32:14] Incoming packet 0x00E
            |  0  1  2  3  4  5  6  7  8  9  A  B  C  D  E  F    | 0123456789ABCDEF
        ----------------------------------------------------------------------------
          0 | 0E 1C 63 00 56 34 12 00 B5 00 01 40 00 00 C8 42    | ..c.V4.....@...B

Payload byte `k` lives on line 3 + k // 16, column 10 + (k % 16) * 3.
"""

from __future__ import annotations

import math
import string
import struct

HEADER_LINES = 3      # timestamp/kind line + two descriptive lines
BYTES_PER_LINE = 16
DATA_COLUMN = 10      # column of the first hex digit on a dump line
BYTE_STRIDE = 3       # two hex digits + one separator

HEX_DIGITS = frozenset(string.hexdigits)


class MalformedFieldError(ValueError):
    """A field's bytes are missing from the dump or are not hex."""

    def __init__(self, offset: int, message: str):
        super().__init__(f"offset 0x{offset:02X}: {message}")
        self.offset = offset


def _byte_at(lines: list[str], offset: int) -> int:
    line_no = HEADER_LINES + offset // BYTES_PER_LINE
    if line_no >= len(lines):
        raise MalformedFieldError(offset, f"dump has no line {line_no}")
    col = DATA_COLUMN + (offset % BYTES_PER_LINE) * BYTE_STRIDE
    text = lines[line_no][col:col + 2]
    if len(text) != 2:
        raise MalformedFieldError(offset, f"line {line_no} too short")
    if not HEX_DIGITS.issuperset(text):
        raise MalformedFieldError(offset, f"bad hex {text!r}")
    return int(text, 16)


def extract_bytes(lines: list[str], offset: int, count: int) -> bytes:
    """Extract `count` raw payload bytes starting at `offset`."""
    return bytes(_byte_at(lines, offset + i) for i in range(count))


def extract_u8(lines: list[str], offset: int) -> int:
    return _byte_at(lines, offset)


def extract_u16(lines: list[str], offset: int) -> int:
    return int.from_bytes(extract_bytes(lines, offset, 2), "little", signed=False)


def extract_i16(lines: list[str], offset: int) -> int:
    return int.from_bytes(extract_bytes(lines, offset, 2), "little", signed=True)


def extract_u32(lines: list[str], offset: int) -> int:
    return int.from_bytes(extract_bytes(lines, offset, 4), "little", signed=False)


def extract_f32(lines: list[str], offset: int) -> float:
    """Little-endian f32. Malformed bytes decode to NaN rather than raising."""
    try:
        raw = extract_bytes(lines, offset, 4)
    except MalformedFieldError:
        return math.nan
    return struct.unpack("<f", raw)[0]


def extract_vector(lines: list[str], offset: int) -> tuple[float, float, float]:
    """Three consecutive f32s: x, y, z."""
    return (
        extract_f32(lines, offset),
        extract_f32(lines, offset + 4),
        extract_f32(lines, offset + 8),
    )


def extract_string(lines: list[str], offset: int, max_len: int = 16) -> str:
    """Nul-terminated UTF-8 string of at most `max_len` bytes.

    Stops early at the first byte that is missing or not valid hex, so a
    short dump yields the readable prefix.
    """
    raw = bytearray()
    for i in range(max_len):
        try:
            b = _byte_at(lines, offset + i)
        except MalformedFieldError:
            break
        if b == 0:
            break
        raw.append(b)
    return raw.decode("utf-8", errors="replace")


def dump_lines(payload: bytes) -> list[str]:
    """Render a payload as the two descriptive lines plus hex dump lines.

    The inverse of the extractors above; prepend a header line to get a
    complete logged packet.
    """
    lines = [
        "        |  " + "  ".join(f"{i:X}" for i in range(BYTES_PER_LINE))
        + "    | 0123456789ABCDEF",
        "    " + "-" * 76,
    ]
    for row in range(0, len(payload), BYTES_PER_LINE):
        chunk = payload[row:row + BYTES_PER_LINE]
        hex_part = " ".join(f"{b:02X}" for b in chunk)
        ascii_part = "".join(chr(b) if 32 <= b < 127 else "." for b in chunk)
        lines.append(f"{row // BYTES_PER_LINE:>7X} | {hex_part:<47s}    | {ascii_part}")
    return lines
