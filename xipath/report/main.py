"""
xipath — Command-line Report

Parses a packet log and prints what was found: the entities per zone, or the
reconstructed path of one entity.

Usage:
    python -m xipath.report.main capture.log                    # entity list
    python -m xipath.report.main capture.log --packets          # packet kinds
    python -m xipath.report.main capture.log --entity Goblin    # one entity's path
    python -m xipath.report.main capture.log --entity 0x0B5-1193046 --raw --stats
"""

from __future__ import annotations

import argparse
import logging
import sys

from rich.console import Console
from rich.table import Table
from rich.text import Text

from xipath.capture.session import CaptureLog
from xipath.data.path import PathConfig, PathPart, PathPartKind, parse_path
from xipath.data.path_stats import (
    distance_histogram,
    format_path,
    histogram,
    pause_times,
    rot_diff_histogram,
    turns_per_leg,
    fmt_time,
)
from xipath.data.state import ParserConfig, ParseResult
from xipath.data.summary import EntityInfo, find_entity, list_entities, zone_time_spans
from xipath.protocol.analyzer import PacketAnalyzer

log = logging.getLogger("xipath")

_PART_COLORS: dict[PathPartKind, str] = {
    PathPartKind.START: "green",
    PathPartKind.END: "red",
    PathPartKind.NEW_DIRECTION: "cyan",
}


def entity_table(result: ParseResult, limit: int = 50) -> Table:
    """Zones and their entities, most observed first."""
    table = Table(title=f"Entities ({result.entity_count})")
    table.add_column("Zone", justify="right")
    table.add_column("Key")
    table.add_column("ID", justify="right")
    table.add_column("Name")
    table.add_column("Positions", justify="right")
    table.add_column("Updates", justify="right")
    table.add_column("Seen", style="bright_black")

    for info in list_entities(result.zone_entity_updates)[:limit]:
        table.add_row(
            str(info.zone_id),
            info.entity_key,
            str(info.entity_id),
            Text(info.name or "-"),
            str(info.pos_count),
            str(len(info.updates)),
            f"{fmt_time(info.updates[0].time)}-{fmt_time(info.updates[-1].time)}",
        )
    return table


def path_table(info: EntityInfo, path: list[PathPart]) -> Table:
    """One row per path part, colored by kind."""
    table = Table(title=f"Path of {info.label}")
    table.add_column("Time")
    table.add_column("Event")
    table.add_column("Detail")

    for part in path:
        color = _PART_COLORS[part.kind]
        match part.kind:
            case PathPartKind.START:
                detail = f"paused {part.pause_time / 1000:.1f}s, heading {part.rot} ({part.rot_diff:+d})"
            case PathPartKind.END:
                detail = f"moved {part.move_time / 1000:.1f}s, leg {part.leg_dist:.1f}, path {part.path_dist:.1f}"
            case _:
                detail = (f"after {part.walk_time / 1000:.1f}s / {part.walk_dist:.1f} yalms, "
                          f"heading {part.rot} ({part.rot_diff:+d})")
        table.add_row(fmt_time(part.time), Text(part.kind.name, style=f"bold {color}"), detail)
    return table


def _print_histogram(console: Console, title: str, buckets: list[tuple[float, int]]) -> None:
    console.print(Text(title, style="bold"))
    if not buckets:
        console.print("  (no data)")
        return
    for start, count in buckets:
        console.print(f"  {start:>8.1f} {count:>5} {'#' * min(count, 40)}")


def print_stats(console: Console, path: list[PathPart]) -> None:
    _print_histogram(console, "Pause times (seconds)", histogram(pause_times(path), 1))
    _print_histogram(console, "Turns per movement", histogram(turns_per_leg(path), 1))
    _print_histogram(console, "Distance per turn", distance_histogram(path))
    _print_histogram(console, "Rotation diff per turn", rot_diff_histogram(path))


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="xipath packet log report",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("log", help="Packet log file")
    parser.add_argument("--entity", type=str, default=None,
                        help="Entity key, ID or name to reconstruct the path of")
    parser.add_argument("--packets", action="store_true",
                        help="Print the packet kind overview")
    parser.add_argument("--raw", action="store_true",
                        help="Print the path as plain text lines")
    parser.add_argument("--stats", action="store_true",
                        help="Print pause / turn / distance distributions")
    parser.add_argument("--range", type=float, default=50.0,
                        help="Out-of-range distance in yalms (default: 50)")
    parser.add_argument("--pause-ms", type=float, default=3000.0,
                        help="Time without movement that counts as a stop (default: 3000)")
    parser.add_argument("--limit", type=int, default=50,
                        help="Max entities listed (default: 50)")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable debug logging")
    args = parser.parse_args(argv)

    # Logging
    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        capture = CaptureLog.load(args.log)
    except OSError as e:
        log.error("Cannot read %s: %s", args.log, e)
        return 1

    console = Console()

    if args.packets:
        console.print(PacketAnalyzer(capture.blocks).report(), markup=False)
        console.print()

    result = capture.parse(ParserConfig(out_of_range_distance=args.range))

    if args.entity is None:
        console.print(entity_table(result, limit=args.limit))
        for zone_id, (first, last) in sorted(zone_time_spans(result.zone_entity_updates).items()):
            console.print(f"Zone {zone_id}: {fmt_time(first)}-{fmt_time(last)}")
        console.print(f"Client updates: {len(result.client_updates)}")
        return 0

    info = find_entity(list_entities(result.zone_entity_updates), args.entity)
    if info is None:
        log.error("No entity matches %r", args.entity)
        return 1

    path = parse_path(info.updates, PathConfig(pause_threshold_ms=args.pause_ms))
    if args.raw:
        print(format_path(path))
    else:
        console.print(path_table(info, path))
    if args.stats:
        print_stats(console, path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
