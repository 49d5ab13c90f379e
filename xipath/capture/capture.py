"""
xipath — Packet Log Segmenter

Splits a captured packet log into one block of lines per packet.

Every packet starts with a header line like

    [2023-03-11 20:32:14] Incoming packet 0x00E ...

followed by descriptive lines and the hex dump, up to the next line that
starts with '['.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator

log = logging.getLogger(__name__)

PACKET_KIND = re.compile(r"(Incoming|Outgoing) packet\s(0x[0-9A-Fa-f]+)")
PACKET_TIMESTAMP = re.compile(r"^\[([^\]]+)\]")
# Date part of a timestamp, with - or / separators and unpadded month/day
TIMESTAMP_DATE = re.compile(r"^(\d{4})[-/](\d{1,2})[-/](\d{1,2})(.*)$")

# Header direction words
INCOMING = "Incoming"  # server → client
OUTGOING = "Outgoing"  # client → server


def is_packet_start(line: str) -> bool:
    return line.startswith("[")


def segment_packets(text: str) -> Iterator[list[str]]:
    """Yield the lines of each packet in log order.

    Lines before the first header belong to no packet and are skipped.
    """
    block: list[str] | None = None
    for line in text.split("\n"):
        if is_packet_start(line):
            if block is not None:
                yield block
            block = [line]
        elif block is not None:
            block.append(line)
    if block is not None:
        yield block


def parse_timestamp(line: str) -> float:
    """Milliseconds since the epoch for a header line, NaN if unparseable.

    Accepts ISO-like dates ('2023-03-11 20:32:14', '2023-03-11T20:32:14.250Z',
    '2023/3/11 20:32:14'). Naive times are taken as local time.
    """
    match = PACKET_TIMESTAMP.match(line)
    if not match:
        log.debug("No timestamp in header: %r", line)
        return math.nan
    text = match.group(1).strip()
    date = TIMESTAMP_DATE.match(text)
    if date:
        year, month, day, rest = date.groups()
        text = f"{year}-{int(month):02d}-{int(day):02d}{rest}"
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text).timestamp() * 1000
    except ValueError:
        log.debug("Unparseable timestamp: %r", match.group(1))
        return math.nan


@dataclass
class PacketBlock:
    """One logged packet: header fields plus the raw lines for field extraction."""
    timestamp: float        # ms since epoch, NaN if the header time was bad
    direction: str          # "Incoming" or "Outgoing"
    kind: int               # packet kind, e.g. 0x00E
    lines: list[str]

    @property
    def kind_hex(self) -> str:
        return f"0x{self.kind:03X}"

    @property
    def size(self) -> int:
        """Number of payload bytes present in the hex dump."""
        total = 0
        for line in self.lines[3:]:
            cells = line[10:10 + 16 * 3].split()
            total += sum(1 for c in cells if len(c) == 2)
        return total

    @classmethod
    def from_lines(cls, lines: list[str]) -> PacketBlock | None:
        """Build a block from segmented lines. None if the header has no kind."""
        match = PACKET_KIND.search(lines[0])
        if not match:
            log.debug("Header without packet kind: %r", lines[0])
            return None
        return cls(
            timestamp=parse_timestamp(lines[0]),
            direction=match.group(1),
            kind=int(match.group(2), 16),
            lines=lines,
        )

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "direction": self.direction,
            "kind": self.kind_hex,
            "size": self.size,
        }

    def __repr__(self) -> str:
        arrow = "←" if self.direction == INCOMING else "→"
        return f"[{self.direction}] {arrow} {self.kind_hex} ({self.size} bytes)"


def iter_blocks(text: str) -> Iterator[PacketBlock]:
    """Segment `text` and yield every block whose header is recognisable."""
    for lines in segment_packets(text):
        block = PacketBlock.from_lines(lines)
        if block is not None:
            yield block
