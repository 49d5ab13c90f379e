"""Tests for entity summaries."""

import pytest

from conftest import BASE_TIME, ENTITY_ID, ZONE_ID
from xipath.data.state import parse_packets
from xipath.data.summary import (
    EntityInfo, find_entity, list_entities, updates_in_window, zone_time_spans,
)
from xipath.data.updates import (
    DespawnUpdate, EntityUpdateKind, OutOfRangeUpdate, Position, PositionUpdate, WidescanUpdate,
)

BASE_MS = BASE_TIME.timestamp() * 1000
GOBLIN_KEY = f"0x0B5-{ENTITY_ID}"


@pytest.fixture
def entities(sample_log) -> list[EntityInfo]:
    return list_entities(parse_packets(sample_log).zone_entity_updates)


class TestListEntities:

    def test_most_observed_first(self, entities):
        assert [e.name for e in entities] == ["Goblin Smithy", "Bat"]
        goblin = entities[0]
        assert goblin.entity_key == GOBLIN_KEY
        assert goblin.entity_id == ENTITY_ID
        assert goblin.zone_id == ZONE_ID
        assert goblin.pos_count == 3
        assert len(goblin.updates) == 3

    def test_widescan_hits_are_not_counted_as_positions(self, entities):
        bat = entities[1]
        assert bat.pos_count == 0
        assert bat.updates[0].kind == EntityUpdateKind.WIDESCAN

    def test_label(self, entities):
        assert entities[0].label == f"{ENTITY_ID} Goblin Smithy [3]"

    def test_empty(self):
        assert list_entities({}) == []


class TestFindEntity:

    def test_by_key(self, entities):
        assert find_entity(entities, GOBLIN_KEY).name == "Goblin Smithy"

    def test_by_decimal_id(self, entities):
        assert find_entity(entities, str(ENTITY_ID)).entity_key == GOBLIN_KEY

    def test_by_name_substring(self, entities):
        assert find_entity(entities, "smithy").entity_key == GOBLIN_KEY
        assert find_entity(entities, " BAT ").name == "Bat"

    def test_no_match(self, entities):
        assert find_entity(entities, "Dragon") is None
        assert find_entity(entities, "") is None


def test_zone_time_spans(sample_log):
    spans = zone_time_spans(parse_packets(sample_log).zone_entity_updates)
    assert list(spans) == [ZONE_ID]
    first, last = spans[ZONE_ID]
    assert first == pytest.approx(BASE_MS + 100)
    assert last == pytest.approx(BASE_MS + 1500)


def test_zone_time_spans_skip_empty_zones():
    assert zone_time_spans({5: {}}) == {}


def test_updates_in_window():
    updates = [
        PositionUpdate(time=100, pos=Position(0, 0, 0)),
        OutOfRangeUpdate(time=150),
        WidescanUpdate(time=200, pos=Position(1, 0, 1)),
        PositionUpdate(time=300, pos=Position(2, 0, 2)),
        DespawnUpdate(time=300),
        PositionUpdate(time=400, pos=Position(3, 0, 3)),
    ]
    window = updates_in_window(updates, 150, 300)
    assert [u.time for u in window] == [200, 300]
    assert all(u.kind != EntityUpdateKind.DESPAWN for u in window)


def test_find_entity_with_non_ascii_digits(entities):
    assert find_entity(entities, "²") is None
