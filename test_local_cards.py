#!/usr/bin/env python3
"""Tests for the signed-out card collection kept in local storage."""

import itertools
import json
import sys
from pathlib import Path

# Add the project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from bankvocab.engine.db import MemoryKeyValueStore
from bankvocab.engine.local import CARDS_KEY, LocalCardCollection
from bankvocab.engine.models import Card, decode_cards, encode_cards


def make_collection(stored=None):
    store = MemoryKeyValueStore({CARDS_KEY: stored} if stored is not None else None)
    return LocalCardCollection(store, clock=itertools.count(5000).__next__), store


def test_starts_with_seed_cards():
    cards, store = make_collection()

    assert [c.front for c in cards.cards] == ["Bonjour", "Merci", "Banque", "Compte courant"]
    assert [c.id for c in cards.cards] == [1, 2, 3, 4]
    assert cards.total_cards == 4
    assert len(decode_cards(store.get(CARDS_KEY))) == 4


def test_add_prepends_with_next_id():
    cards, store = make_collection()
    assert cards.add("  fromage ", "cheese") is True

    first = cards.cards[0]
    assert (first.id, first.front, first.back, first.flipped) == (5, "fromage", "cheese", False)
    assert cards.total_cards == 5
    assert decode_cards(store.get(CARDS_KEY))[0] == first


def test_blank_add_is_rejected():
    cards, _ = make_collection()
    assert cards.add("", "cheese") is False
    assert cards.add("fromage", "   ") is False
    assert cards.total_cards == 4


def test_toggle_and_delete():
    cards, store = make_collection()
    assert cards.toggle(2) is True
    assert cards.find(2).flipped is True
    assert cards.toggle(2) is True
    assert cards.find(2).flipped is False

    assert cards.delete(3) is True
    assert cards.find(3) is None
    assert [c.id for c in decode_cards(store.get(CARDS_KEY))] == [1, 2, 4]

    assert cards.toggle(99) is False
    assert cards.delete(99) is False


def test_saved_cards_are_restored_unflipped():
    saved = encode_cards([
        Card(id=12, front="fromage", back="cheese", flipped=True, created_at=2),
        Card(id=7, front="pain", back="bread", created_at=1),
    ])
    cards, _ = make_collection(saved)

    assert [c.id for c in cards.cards] == [12, 7]
    assert all(not c.flipped for c in cards.cards)

    cards.add("vin", "wine")
    assert cards.cards[0].id == 13


def test_invalid_saved_cards_fall_back_to_seed():
    broken = [
        "not-json",
        json.dumps({"cards": []}),
        json.dumps([{"id": "abc", "front": "a", "back": "b"}]),
        json.dumps([{"id": 1, "front": "", "back": "b"}]),
        json.dumps([{"id": 1, "front": "a"}]),
        '[{"id": 1, "front": "a", "back": "b", "createdAt": 1e400}]',
        '[{"id": 1, "front": "a", "back": "b", "createdAt": NaN}]',
        "[" * 200000 + "]" * 200000,
    ]
    for raw in broken:
        cards, _ = make_collection(raw)
        assert [c.front for c in cards.cards][0] == "Bonjour"
        assert cards.total_cards == 4


def test_changes_are_signalled():
    cards, _ = make_collection()
    seen = []
    cards.cards_changed.connect(lambda value: seen.append(len(value)))
    cards.add("vin", "wine")
    cards.delete(1)

    assert seen == [5, 4]


if __name__ == "__main__":
    import pytest
    sys.exit(pytest.main([__file__, "-v"]))
