"""
Protocol Analyzer — overview of what a packet log contains.

Answers the first questions asked of a new log:
1. Which packet kinds appear, and how often, per direction
2. How large each kind is (consistent sizes suggest a fixed layout)
3. What time range the log covers
4. Which kinds the parser actually understands
"""

from __future__ import annotations

import math
from collections import Counter, defaultdict
from datetime import datetime

from xipath.capture.capture import PacketBlock
from xipath.protocol.packet_types import get_packet_def


class PacketAnalyzer:
    """Statistics over segmented packet blocks."""

    def __init__(self, blocks: list[PacketBlock]):
        self.blocks = blocks

    def by_direction(self, direction: str) -> list[PacketBlock]:
        return [b for b in self.blocks if b.direction == direction]

    def by_kind(self, kind: int, direction: str | None = None) -> list[PacketBlock]:
        return [
            b for b in self.blocks
            if b.kind == kind and (direction is None or b.direction == direction)
        ]

    def kind_distribution(self, direction: str | None = None) -> dict[str, int]:
        """Count packets by 'Direction 0xKIND', most frequent first."""
        blocks = self.by_direction(direction) if direction else self.blocks
        counter = Counter(f"{b.direction} {b.kind_hex}" for b in blocks)
        return dict(counter.most_common())

    def size_distribution(self, kind: int, direction: str | None = None) -> dict[int, int]:
        """Payload sizes seen for one packet kind."""
        counter = Counter(b.size for b in self.by_kind(kind, direction))
        return dict(sorted(counter.items()))

    def time_span(self) -> tuple[float, float] | None:
        """(first, last) valid timestamp in ms, None if there are none."""
        times = [b.timestamp for b in self.blocks if not math.isnan(b.timestamp)]
        if not times:
            return None
        return min(times), max(times)

    def bad_timestamps(self) -> int:
        return sum(1 for b in self.blocks if math.isnan(b.timestamp))

    def known_fraction(self) -> float:
        """Share of packets whose kind has a registered layout."""
        if not self.blocks:
            return 0.0
        known = sum(1 for b in self.blocks if get_packet_def(b.direction, b.kind))
        return known / len(self.blocks)

    def report(self, direction: str | None = None) -> str:
        """Generate a human-readable analysis report."""
        blocks = self.by_direction(direction) if direction else self.blocks
        if not blocks:
            return "No packets to analyze."

        lines = []
        lines.append("=== Packet Log Report ===")
        lines.append(f"Packets: {len(blocks)} ({'all' if not direction else direction})")

        span = self.time_span()
        if span:
            start = datetime.fromtimestamp(span[0] / 1000)
            end = datetime.fromtimestamp(span[1] / 1000)
            lines.append(f"Time span: {start:%Y-%m-%d %H:%M:%S} → {end:%H:%M:%S} "
                         f"({(span[1] - span[0]) / 1000:.0f}s)")
        bad = self.bad_timestamps()
        if bad:
            lines.append(f"Unparseable timestamps: {bad}")
        lines.append(f"Known kinds: {self.known_fraction():.0%} of packets")
        lines.append("")

        # Group sizes per kind for the distribution table
        sizes: dict[str, Counter] = defaultdict(Counter)
        for b in blocks:
            sizes[f"{b.direction} {b.kind_hex}"][b.size] += 1

        lines.append("Kind Distribution (top 15):")
        for label, count in list(self.kind_distribution(direction).items())[:15]:
            direction_word, kind_hex = label.split(" ")
            pdef = get_packet_def(direction_word, int(kind_hex, 16))
            name = pdef.name if pdef else "?"
            common_size = sizes[label].most_common(1)[0][0]
            bar = "#" * min(count, 40)
            lines.append(f"  {label:<16} {name:<16} {common_size:>4}b {count:>6}x {bar}")

        return "\n".join(lines)
