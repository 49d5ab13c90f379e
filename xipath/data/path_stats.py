"""
xipath — Path Statistics

Distributions over a reconstructed path: how long the entity pauses, how
often it turns per leg, how far it walks between turns and how sharply it
turns. Plus plain-text rendering of path parts.
"""

from __future__ import annotations

import math
from datetime import datetime

from xipath.data.path import PathPart, PathPartKind
from xipath.data.updates import Position


def pause_times(path: list[PathPart]) -> list[float]:
    """Pause before each Start, in seconds."""
    return [p.pause_time / 1000 for p in path if p.kind == PathPartKind.START]


def turns_per_leg(path: list[PathPart]) -> list[int]:
    """Number of direction changes between consecutive End parts."""
    counts = []
    turns = 0
    for part in path:
        match part.kind:
            case PathPartKind.START:
                turns = 0
            case PathPartKind.END:
                counts.append(turns)
                turns = 0
            case PathPartKind.NEW_DIRECTION:
                turns += 1
    return counts


def leg_distances(path: list[PathPart]) -> list[float]:
    """Distance covered per straight stretch (End legs and direction changes)."""
    dists = []
    for part in path:
        if part.kind == PathPartKind.END:
            dists.append(part.leg_dist)
        elif part.kind == PathPartKind.NEW_DIRECTION:
            dists.append(part.walk_dist)
    return dists


def rot_diffs(path: list[PathPart]) -> list[int]:
    return [p.rot_diff for p in path if p.kind in (PathPartKind.START, PathPartKind.NEW_DIRECTION)]


def histogram(
    values: list[float],
    bucket_size: float,
    minimum: float | None = None,
    bucket_count: int | None = None,
) -> list[tuple[float, int]]:
    """Bucket `values` into (bucket_start, count) pairs.

    Without `minimum` / `bucket_count` the buckets span the data. Values
    outside the range are clamped into the first or last bucket.
    """
    if not bucket_size > 0:
        raise ValueError("bucket_size must be positive")
    values = [v for v in values if not math.isnan(v)]
    if not values and (minimum is None or bucket_count is None):
        return []
    if minimum is None:
        minimum = min(values)
    if bucket_count is None:
        bucket_count = int((max(values) - minimum) // bucket_size) + 1

    bars = [0] * bucket_count
    for value in values:
        idx = math.floor((value - minimum) / bucket_size)
        bars[min(max(idx, 0), bucket_count - 1)] += 1
    return [(minimum + i * bucket_size, count) for i, count in enumerate(bars)]


def rot_diff_histogram(path: list[PathPart], bucket_size: int = 8) -> list[tuple[float, int]]:
    """Turn sharpness over the full [-128, 128) byte-angle range."""
    return histogram(rot_diffs(path), bucket_size, minimum=-128, bucket_count=256 // bucket_size)


def distance_histogram(path: list[PathPart], bucket_count: int = 20) -> list[tuple[float, int]]:
    dists = [d for d in leg_distances(path) if not math.isnan(d)]
    if not dists:
        return []
    spread = max(dists) - min(dists)
    if spread == 0:
        return [(min(dists), len(dists))]
    return histogram(dists, spread / bucket_count, minimum=min(dists), bucket_count=bucket_count)


# ---- Text rendering ----

def fmt_time(ms: float) -> str:
    if math.isnan(ms):
        return "??:??:??"
    return datetime.fromtimestamp(ms / 1000).strftime("%H:%M:%S")


def _fmt_pos(pos: Position) -> str:
    return f"({pos.x:.1f}, {pos.y:.1f}, {pos.z:.1f})"


def format_path_part(part: PathPart) -> str:
    match part.kind:
        case PathPartKind.START:
            return (
                f"{fmt_time(part.time)} - Waited {part.pause_time / 1000}s and now moving "
                f"towards {part.rot} (diff: {part.rot_diff})"
            )
        case PathPartKind.END:
            return (
                f"{fmt_time(part.time)} - Moved for {part.move_time / 1000}s before stopping. "
                f"Travelled {part.leg_dist:.1f} yalms since last. "
                f"[{_fmt_pos(part.start_pos)} -> {_fmt_pos(part.end_pos)}]"
            )
        case PathPartKind.NEW_DIRECTION:
            return (
                f"{fmt_time(part.time)} - Changed direction after {part.walk_time / 1000}s and "
                f"{part.walk_dist:.1f} yalms towards {part.rot} (diff: {part.rot_diff})"
            )
    raise ValueError(f"unknown path part {part!r}")


def format_path(path: list[PathPart]) -> str:
    return "\n".join(format_path_part(p) for p in path)
