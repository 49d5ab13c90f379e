"""
Capture Log — a packet log file loaded for parsing and inspection.

    log = CaptureLog.load("captures/jugner.log")
    print(log.summary())
    result = log.parse()
"""

from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path

from xipath.data.state import ParserConfig, ParseResult, parse_packets

from .capture import INCOMING, OUTGOING, PacketBlock, iter_blocks

log = logging.getLogger(__name__)


class CaptureLog:
    """The full text of one packet log plus its segmented packets."""

    def __init__(self, text: str, name: str = ""):
        self.text = text
        self.name = name
        self._blocks: list[PacketBlock] | None = None

    @property
    def blocks(self) -> list[PacketBlock]:
        """Segmented packets, computed on first access."""
        if self._blocks is None:
            self._blocks = list(iter_blocks(self.text))
        return self._blocks

    @classmethod
    def load(cls, path: str | Path) -> CaptureLog:
        """Read a log file. Undecodable bytes are replaced, not fatal."""
        path = Path(path)
        text = path.read_text(encoding="utf-8", errors="replace")
        log.debug("Loaded %s (%d chars)", path, len(text))
        return cls(text, name=path.stem)

    def parse(self, config: ParserConfig | None = None) -> ParseResult:
        """Run the packet parser over this log."""
        return parse_packets(self.text, config)

    def summary(self) -> str:
        counts = Counter(b.direction for b in self.blocks)
        lines = [
            f"Log: {self.name or '(unnamed)'}",
            f"  Packets: {len(self.blocks)} total "
            f"({counts[INCOMING]} incoming, {counts[OUTGOING]} outgoing)",
        ]
        kinds = Counter(f"{b.direction} {b.kind_hex}" for b in self.blocks)
        if kinds:
            lines.append("  Top kinds:")
            for kind, count in kinds.most_common(5):
                lines.append(f"    {kind}: {count}")
        return "\n".join(lines)
