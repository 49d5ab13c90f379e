"""
xipath — Path Reconstruction

Turns one entity's update list into discrete movement events:

- PathEnd: the entity came to rest, closing a leg
- PathStart: it set off again after a pause (always right after its PathEnd)
- PathDirection: its heading changed while moving

Jitter below the movement threshold is ignored, and tracking gaps
(out of range, despawn) reset all movement context.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import IntEnum
from typing import ClassVar, Iterable, Union

from xipath.data.updates import EntityUpdate, EntityUpdateKind, Position, PositionUpdate


@dataclass
class PathConfig:
    """Movement detection thresholds."""
    # Planar distance (yalms) between samples that counts as movement
    move_threshold: float = 0.1
    # Time without movement (ms) that counts as a stop
    pause_threshold_ms: float = 3000.0


class PathPartKind(IntEnum):
    START = 0
    END = 1
    NEW_DIRECTION = 2


@dataclass
class PathStart:
    kind: ClassVar[PathPartKind] = PathPartKind.START
    time: float
    pause_time: float
    rot: int
    rot_diff: int


@dataclass
class PathEnd:
    kind: ClassVar[PathPartKind] = PathPartKind.END
    time: float
    move_time: float
    path_dist: float
    leg_dist: float
    start_pos: Position
    end_pos: Position


@dataclass
class PathDirection:
    kind: ClassVar[PathPartKind] = PathPartKind.NEW_DIRECTION
    time: float
    walk_time: float
    walk_dist: float
    rot: int
    rot_diff: int


PathPart = Union[PathStart, PathEnd, PathDirection]


def calc_rot_diff(start_rot: int, end_rot: int) -> int:
    """Signed byte-angle change along the shorter way round, in [-128, 128]."""
    diff = end_rot - start_rot
    if diff > 128:
        return diff - 256
    if diff < -128:
        return diff + 256
    return diff


def calc_distance(pos1: Position, pos2: Position) -> float:
    """Planar (x, z) distance; height is ignored."""
    return math.hypot(pos1.x - pos2.x, pos1.z - pos2.z)


def _rot(update: PositionUpdate) -> int:
    return update.pos.rotation or 0


def parse_path(updates: Iterable[EntityUpdate], config: PathConfig | None = None) -> list[PathPart]:
    """Reconstruct the movement of one entity from its chronological updates."""
    config = config or PathConfig()

    prev: PositionUpdate | None = None        # last sample
    prev_move: PositionUpdate | None = None   # last sample that moved
    prev_stop: PositionUpdate | None = None   # where the current leg started
    prev_rot: PositionUpdate | None = None    # where the current heading started

    path: list[PathPart] = []
    for update in updates:
        if update.kind in (EntityUpdateKind.OUT_OF_RANGE, EntityUpdateKind.DESPAWN):
            prev = prev_move = prev_stop = prev_rot = None
            continue
        if update.kind != EntityUpdateKind.POSITION:
            continue

        if prev is None:
            prev = prev_move = prev_stop = prev_rot = update
            continue

        if calc_distance(update.pos, prev.pos) > config.move_threshold:
            time_since_move = update.time - prev_move.time

            if time_since_move > config.pause_threshold_ms:
                if prev_stop is not None:
                    path.append(PathEnd(
                        time=prev_move.time,
                        move_time=prev_move.time - prev_stop.time,
                        path_dist=calc_distance(prev_move.pos, prev_stop.pos),
                        leg_dist=calc_distance(prev_rot.pos, prev_move.pos),
                        start_pos=prev_stop.pos,
                        end_pos=prev_move.pos,
                    ))
                    path.append(PathStart(
                        time=prev_move.time,
                        pause_time=time_since_move,
                        rot=_rot(update),
                        rot_diff=calc_rot_diff(_rot(prev_move), _rot(update)),
                    ))
                prev_stop = update
                prev_rot = update

            prev_move = update

        if update.pos.rotation != prev_rot.pos.rotation:
            path.append(PathDirection(
                time=update.time,
                walk_time=update.time - prev_rot.time,
                walk_dist=calc_distance(prev_rot.pos, update.pos),
                rot=_rot(update),
                rot_diff=calc_rot_diff(_rot(prev_rot), _rot(update)),
            ))
            prev_rot = update

        prev = update

    return path
