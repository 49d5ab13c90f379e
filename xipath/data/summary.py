"""
xipath — Entity Summaries

Per-entity overviews of a parse result, for picking an entity to analyse and
for slicing its updates by time.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from xipath.data.updates import (
    EntityUpdate,
    EntityUpdateKind,
    ZoneEntityUpdates,
    split_entity_key,
)

POSITIONAL_KINDS = (EntityUpdateKind.POSITION, EntityUpdateKind.WIDESCAN)


@dataclass
class EntityInfo:
    """One entity's identity and how much position data it has."""
    entity_id: int
    entity_key: str
    zone_id: int
    name: str = ""
    pos_count: int = 0
    updates: list[EntityUpdate] = field(default_factory=list, repr=False)

    @property
    def label(self) -> str:
        return f"{self.entity_id} {self.name} [{self.pos_count}]"


def list_entities(zone_entity_updates: ZoneEntityUpdates) -> list[EntityInfo]:
    """All entities, most directly observed positions first."""
    entities: list[EntityInfo] = []
    for zone_id, zone_updates in zone_entity_updates.items():
        for key, updates in zone_updates.items():
            _, entity_id = split_entity_key(key)
            info = EntityInfo(entity_id=entity_id, entity_key=key, zone_id=zone_id, updates=updates)
            for update in updates:
                if not info.name and getattr(update, "name", None):
                    info.name = update.name
                if update.kind == EntityUpdateKind.POSITION:
                    info.pos_count += 1
            entities.append(info)

    entities.sort(key=lambda e: e.pos_count, reverse=True)
    return entities


def find_entity(entities: list[EntityInfo], query: str) -> EntityInfo | None:
    """Look up by entity key, decimal entity ID, or name substring (case-insensitive)."""
    query = query.strip()
    for info in entities:
        if info.entity_key == query:
            return info
    if query.isdecimal():
        for info in entities:
            if info.entity_id == int(query):
                return info
    needle = query.lower()
    for info in entities:
        if needle and needle in info.name.lower():
            return info
    return None


def zone_time_spans(zone_entity_updates: ZoneEntityUpdates) -> dict[int, tuple[float, float]]:
    """(first, last) update time per zone. Zones without updates are omitted."""
    spans: dict[int, tuple[float, float]] = {}
    for zone_id, zone_updates in zone_entity_updates.items():
        times = [
            t for updates in zone_updates.values() if updates
            for t in (updates[0].time, updates[-1].time)
            if not math.isnan(t)
        ]
        if times:
            spans[zone_id] = (min(times), max(times))
    return spans


def updates_in_window(
    updates: list[EntityUpdate], min_time: float, max_time: float,
) -> list[EntityUpdate]:
    """Position and widescan updates with min_time <= time <= max_time."""
    return [
        u for u in updates
        if u.kind in POSITIONAL_KINDS and min_time <= u.time <= max_time
    ]
