"""Tests for the word-budgeted LRU short-term memory."""

import pytest

from cubicmem.memory import LRUShortTermMemory


def _words(n: int) -> str:
    return " ".join(f"w{i}" for i in range(n))


def test_put_and_get(item_factory):
    cache = LRUShortTermMemory(max_word_count=100)
    assert cache.put(item_factory("a", "user likes tea")) is None

    got = cache.get("a")
    assert got is not None
    assert got.sentence == "user likes tea"
    assert cache.get_current_word_count() == 3
    assert "a" in cache
    assert len(cache) == 1


def test_get_unknown_returns_none():
    cache = LRUShortTermMemory(max_word_count=10)
    assert cache.get("missing") is None
    assert cache.remove("missing") is None


def test_evicts_least_recently_used_when_over_budget(item_factory):
    """Capacity 10 with items of 4, 2 and 5 words: the third insert evicts the first."""
    cache = LRUShortTermMemory(max_word_count=10)
    cache.put(item_factory("a", _words(4)))
    cache.put(item_factory("b", _words(2)))
    evicted = cache.put(item_factory("c", _words(5)))

    assert evicted is not None and evicted.id == "a"
    assert cache.get("a") is None
    assert [m.id for m in cache.get_all()] == ["c", "b"]
    assert cache.get_current_word_count() == 7


def test_get_promotes_to_most_recent(item_factory):
    cache = LRUShortTermMemory(max_word_count=10)
    cache.put(item_factory("a", _words(4)))
    cache.put(item_factory("b", _words(2)))
    cache.get("a")

    evicted = cache.put(item_factory("c", _words(5)))

    assert evicted.id == "b"
    assert [m.id for m in cache.get_all()] == ["c", "a"]


def test_peek_does_not_promote(item_factory):
    cache = LRUShortTermMemory(max_word_count=10)
    cache.put(item_factory("a", _words(4)))
    cache.put(item_factory("b", _words(2)))
    assert cache.peek("a").id == "a"

    evicted = cache.put(item_factory("c", _words(5)))
    assert evicted.id == "a"


def test_reput_replaces_and_recounts(item_factory):
    cache = LRUShortTermMemory(max_word_count=100)
    cache.put(item_factory("a", _words(4)))
    cache.put(item_factory("b", _words(2)))
    cache.put(item_factory("a", _words(6)))

    assert len(cache) == 2
    assert cache.get_current_word_count() == 8
    assert [m.id for m in cache.get_all()] == ["a", "b"]


def test_word_count_matches_resident_items(item_factory):
    cache = LRUShortTermMemory(max_word_count=12)
    for i, size in enumerate([3, 5, 2, 7, 1, 4, 6]):
        cache.put(item_factory(f"m{i}", _words(size)))
        resident = cache.get_all()
        assert cache.get_current_word_count() == sum(len(m.sentence.split()) for m in resident)
        assert cache.get_current_word_count() <= cache.get_max_word_count()

    cache.remove(resident[0].id)
    assert cache.get_current_word_count() == sum(len(m.sentence.split()) for m in cache.get_all())


def test_oversized_item_is_not_retained(item_factory):
    cache = LRUShortTermMemory(max_word_count=3)
    cache.put(item_factory("small", _words(2)))
    cache.put(item_factory("huge", _words(5)))

    assert len(cache) == 0
    assert cache.get_current_word_count() == 0


def test_zero_capacity_holds_nothing(item_factory):
    cache = LRUShortTermMemory(max_word_count=0)
    evicted = cache.put(item_factory("a", "hello"))

    assert evicted.id == "a"
    assert cache.get_all() == []


def test_negative_capacity_rejected():
    with pytest.raises(ValueError):
        LRUShortTermMemory(max_word_count=-1)


def test_returned_items_are_copies(item_factory):
    cache = LRUShortTermMemory(max_word_count=100)
    cache.put(item_factory("a", "one two", tags=["x"]))

    got = cache.get("a")
    got.tags.append("mutated")

    assert cache.peek("a").tags == ["x"]


def test_clear(item_factory):
    cache = LRUShortTermMemory(max_word_count=100)
    cache.put(item_factory("a", "one two"))
    cache.put(item_factory("b", "three"))
    cache.clear()

    assert cache.get_all() == []
    assert cache.get_current_word_count() == 0
