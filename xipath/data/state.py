"""
xipath — Packet Parser

Single pass over a packet log that turns entity, widescan and client position
packets into per-zone, per-entity update lists:

- Entity update (Incoming 0x00E): position / name / despawn of one entity
- Widescan result (Incoming 0x0F4): position relative to the client
- Client position (Outgoing 0x015): the observer's own position, which also
  retires tracked entities that are now out of range

Session state (last client position, current zone, entities in view) lives in
a ParseSession created per parse() call, so one parser can be reused across logs.
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Callable

from xipath.capture.capture import PacketBlock, segment_packets
from xipath.protocol.packet_types import (
    UPDATE_DESPAWN,
    UPDATE_NAME,
    UPDATE_POSITION,
    decode_packet,
    missing_fields,
)
from xipath.data.updates import (
    UNKNOWN_ZONE,
    DespawnUpdate,
    EntityUpdate,
    OutOfRangeUpdate,
    Position,
    PositionUpdate,
    WidescanUpdate,
    ZoneEntityUpdates,
    entity_key,
    zone_of,
)

log = logging.getLogger(__name__)

# Widescan hits carry only an index; IDs are synthesised in this band
WIDESCAN_ID_BASE = 0x1000


# ---- Configuration ----

@dataclass
class ParserConfig:
    """Thresholds for range tracking."""
    # Entities further than this from the client are out of range (yalms)
    out_of_range_distance: float = 50.0
    # Delay between an entity's last sighting and its retirement on client move (ms)
    out_of_range_lag_ms: float = 1000.0
    # Longest name read from entity and widescan packets (bytes)
    name_max_len: int = 16


# ---- Results and session state ----

@dataclass
class TrackedEntity:
    """An entity currently considered in view."""
    time: float
    pos: Position
    zone_id: int


@dataclass
class ParseResult:
    """Everything a parse produces."""
    zone_entity_updates: ZoneEntityUpdates = field(default_factory=dict)
    client_updates: list[PositionUpdate] = field(default_factory=list)
    packet_counts: defaultdict[str, int] = field(default_factory=lambda: defaultdict(int))
    total_packets: int = 0
    skipped_packets: int = 0  # known kinds whose fields could not be decoded

    def updates_for(self, zone_id: int, key: str) -> list[EntityUpdate]:
        """The update list of one entity, created on first use."""
        return self.zone_entity_updates.setdefault(zone_id, {}).setdefault(key, [])

    @property
    def entity_count(self) -> int:
        return sum(len(entities) for entities in self.zone_entity_updates.values())


@dataclass
class ParseSession:
    """Mutable state of one parse. Never shared between parses."""
    result: ParseResult = field(default_factory=ParseResult)
    last_client_position: Position | None = None
    current_zone_id: int = UNKNOWN_ZONE
    shown_entities: dict[str, TrackedEntity] = field(default_factory=dict)


# Callback type: called with (event_type, data_dict)
# event_type: "packet", "position", "widescan", "out_of_range", "despawn", "client"
UpdateCallback = Callable[[str, dict], None]


# ---- Parser ----

class PacketParser:
    """Turns packet log text into per-entity update streams."""

    def __init__(self, config: ParserConfig | None = None):
        self.config = config or ParserConfig()
        self._callbacks: list[UpdateCallback] = []

    def on_update(self, callback: UpdateCallback) -> None:
        """Subscribe to every update the parser emits."""
        self._callbacks.append(callback)

    def _notify(self, event_type: str, data: dict) -> None:
        for cb in self._callbacks:
            try:
                cb(event_type, data)
            except Exception:
                log.exception("Update callback failed on %s", event_type)

    def parse(self, text: str) -> ParseResult:
        """Parse a whole log. Packets are processed strictly in log order."""
        if not isinstance(text, str):
            raise TypeError(f"packet log must be text, got {type(text).__name__}")

        session = ParseSession()
        for lines in segment_packets(text):
            block = PacketBlock.from_lines(lines)
            if block is not None:
                self.process_packet(session, block)

        result = session.result
        log.info(
            "Parsed %d packets: %d zones, %d entities, %d client updates, %d skipped",
            result.total_packets, len(result.zone_entity_updates),
            result.entity_count, len(result.client_updates), result.skipped_packets,
        )
        return result

    def process_packet(self, session: ParseSession, block: PacketBlock) -> dict | None:
        """Apply one packet to the session. Returns the decoded dict or None.

        Packets missing an identifying field are skipped and counted.
        """
        result = session.result
        result.total_packets += 1
        result.packet_counts[f"{block.direction} {block.kind_hex}"] += 1

        decoded = decode_packet(block, str_len=self.config.name_max_len)
        if not decoded:
            return None

        missing = missing_fields(decoded)
        if missing:
            result.skipped_packets += 1
            log.warning("Skipping malformed packet %r: cannot decode %s", block, ", ".join(missing))
            return None

        match decoded["name"]:
            case "ENTITY_UPDATE":
                self._handle_entity_update(session, decoded)
            case "WIDESCAN_RESULT":
                self._handle_widescan(session, decoded)
            case "CLIENT_POSITION":
                self._handle_client_update(session, decoded)

        self._notify("packet", decoded)
        return decoded

    # ---- Range helpers ----

    def _is_out_of_range(self, session: ParseSession, pos: Position) -> bool:
        client = session.last_client_position
        if client is None:
            return False
        dx = client.x - pos.x
        dy = client.y - pos.y
        dz = client.z - pos.z
        limit = self.config.out_of_range_distance
        return dx * dx + dy * dy + dz * dz > limit * limit

    # ---- Handlers ----

    def _handle_entity_update(self, session: ParseSession, d: dict) -> None:
        entity_id = d["entity_id"]
        zone_id = zone_of(entity_id)
        if zone_id == UNKNOWN_ZONE:
            log.debug("Dropping entity 0x%08X with unknown zone", entity_id)
            return
        session.current_zone_id = zone_id

        key = entity_key(d["entity_index"], entity_id)
        ts = d["timestamp"]
        update_mask = d["update_mask"]

        if update_mask & UPDATE_DESPAWN:
            session.shown_entities.pop(key, None)
            update = DespawnUpdate(time=ts)
            session.result.updates_for(zone_id, key).append(update)
            self._notify("despawn", {"zone_id": zone_id, "entity_key": key, "update": update})
            return

        if not update_mask & UPDATE_POSITION:
            # Liveness only: keep the tracked entity fresh, no event
            tracked = session.shown_entities.get(key)
            if tracked is not None:
                tracked.time = ts
            return

        name = None
        if update_mask & UPDATE_NAME:
            name = d.get("entity_name") or None

        # An unreadable rotation byte leaves the heading unknown
        pos = Position(d["x"], d["y"], d["z"], rotation=d.get("rotation"))

        updates = session.result.updates_for(zone_id, key)
        update = PositionUpdate(time=ts, pos=pos, name=name)
        updates.append(update)
        self._notify("position", {"zone_id": zone_id, "entity_key": key, "update": update})

        if self._is_out_of_range(session, pos):
            gone = OutOfRangeUpdate(time=ts)
            updates.append(gone)
            session.shown_entities.pop(key, None)
            self._notify("out_of_range", {"zone_id": zone_id, "entity_key": key, "update": gone})
        else:
            session.shown_entities[key] = TrackedEntity(time=ts, pos=pos, zone_id=zone_id)

    def _handle_widescan(self, session: ParseSession, d: dict) -> None:
        zone_id = session.current_zone_id
        client = session.last_client_position
        if zone_id == UNKNOWN_ZONE or client is None:
            # Offsets are relative to the client: nothing to anchor them to yet
            return

        entity_index = d["entity_index"]
        entity_id = ((WIDESCAN_ID_BASE + zone_id) << 12) + entity_index
        key = entity_key(entity_index, entity_id)

        x_offset = d.get("x_offset", math.nan)
        z_offset = d.get("z_offset", math.nan)
        name = d.get("entity_name") or None

        pos = Position(client.x + x_offset, client.y, client.z + z_offset)
        update = WidescanUpdate(time=d["timestamp"], pos=pos, name=name)
        session.result.updates_for(zone_id, key).append(update)
        self._notify("widescan", {"zone_id": zone_id, "entity_key": key, "update": update})

    def _handle_client_update(self, session: ParseSession, d: dict) -> None:
        pos = Position(d["x"], d["y"], d["z"])
        session.last_client_position = pos

        update = PositionUpdate(time=d["timestamp"], pos=pos)
        session.result.client_updates.append(update)
        self._notify("client", {"update": update})

        # Client movement can push tracked entities out of range
        for key, tracked in list(session.shown_entities.items()):
            if not self._is_out_of_range(session, tracked.pos):
                continue
            gone = OutOfRangeUpdate(time=tracked.time + self.config.out_of_range_lag_ms)
            session.result.updates_for(tracked.zone_id, key).append(gone)
            del session.shown_entities[key]
            self._notify("out_of_range", {
                "zone_id": tracked.zone_id, "entity_key": key, "update": gone,
            })


def parse_packets(text: str, config: ParserConfig | None = None) -> ParseResult:
    """Parse a packet log with a fresh parser."""
    return PacketParser(config).parse(text)
