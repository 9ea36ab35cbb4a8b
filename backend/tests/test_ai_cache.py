"""Tests for the in-process AI response cache."""

import threading

import pytest

from app.core.exceptions import ValidationError
from app.services.ai_cache import AICache, build_key, normalize_input

DAY = 24 * 60 * 60

INPUT = {"mood": "Happy ", "learning_goal": "Python", "age": 25}


# ---------------------------------------------------------------------------
# Key normalisation
# ---------------------------------------------------------------------------


def test_normalization_ignores_case_whitespace_and_key_order():
    a = build_key("daily-plan", {"mood": "Happy ", "learning_goal": "Python"})
    b = build_key("daily-plan", {"learning_goal": "python", "mood": "happy"})
    assert a == b


def test_category_prefixes_key():
    key = build_key("daily-plan", INPUT)
    assert key.startswith("daily-plan:")
    assert key != build_key("skill-tips", INPUT)


def test_non_string_values_are_kept_as_is():
    assert normalize_input({"age": 25, "flag": True, "x": None}) == '{"age":25,"flag":true,"x":null}'


@pytest.mark.parametrize("category", ["", "a:b", None])
def test_invalid_category_rejected(category):
    with pytest.raises(ValidationError):
        build_key(category, INPUT)


def test_nested_values_rejected():
    with pytest.raises(ValidationError):
        build_key("daily-plan", {"mood": {"nested": "value"}})


# ---------------------------------------------------------------------------
# get / set / expiry
# ---------------------------------------------------------------------------


def test_miss_returns_none(ai_cache: AICache):
    assert ai_cache.get("daily-plan", INPUT) is None


def test_set_then_get_with_reordered_and_recased_input(ai_cache: AICache):
    ai_cache.set("daily-plan", {"mood": "Happy", "daily_plans": "STUDY"}, ["x"])
    assert ai_cache.get("daily-plan", {"daily_plans": "study", "mood": "happy"}) == ["x"]


def test_hit_on_equivalent_input(ai_cache: AICache):
    ai_cache.set("daily-plan", {"mood": "Happy ", "learning_goal": "Python"}, ["step"])
    assert ai_cache.get("daily-plan", {"learning_goal": "python", "mood": "happy"}) == ["step"]


def test_entry_valid_just_before_ttl(ai_cache: AICache, clock):
    ai_cache.set("daily-plan", INPUT, ["a"])
    clock.advance(DAY - 0.001)
    assert ai_cache.get("daily-plan", INPUT) == ["a"]


def test_entry_expired_just_after_ttl(ai_cache: AICache, clock):
    ai_cache.set("daily-plan", INPUT, ["a"])
    clock.advance(DAY + 0.001)
    assert ai_cache.get("daily-plan", INPUT) is None
    assert len(ai_cache) == 0


def test_set_overwrites_and_resets_timestamp(ai_cache: AICache, clock):
    ai_cache.set("daily-plan", INPUT, ["old"])
    clock.advance(DAY - 10)
    ai_cache.set("daily-plan", INPUT, ["new"])
    clock.advance(20)
    assert ai_cache.get("daily-plan", INPUT) == ["new"]
    assert len(ai_cache) == 1


def test_hit_count_and_stats(ai_cache: AICache):
    ai_cache.set("daily-plan", INPUT, ["a"])
    ai_cache.set("skill-tips", {"skill": "guitar"}, ["b"])
    for _ in range(3):
        ai_cache.get("daily-plan", INPUT)

    stats = ai_cache.stats()
    assert stats["total_entries"] == 2
    assert stats["total_hits"] == 3
    assert stats["by_category"]["daily-plan"] == {"entries": 1, "hits": 3}
    assert stats["by_category"]["skill-tips"] == {"entries": 1, "hits": 0}


def test_per_category_ttl(clock):
    cache = AICache(ttl_seconds=DAY, category_ttls={"short": 60}, clock=clock)
    cache.set("short", INPUT, ["a"])
    cache.set("long", INPUT, ["b"])
    clock.advance(61)
    assert cache.get("short", INPUT) is None
    assert cache.get("long", INPUT) == ["b"]


# ---------------------------------------------------------------------------
# Eviction
# ---------------------------------------------------------------------------


def test_clear_expired(ai_cache: AICache, clock):
    ai_cache.set("daily-plan", {"n": 1}, ["old"])
    clock.advance(DAY / 2)
    ai_cache.set("daily-plan", {"n": 2}, ["fresh"])
    clock.advance(DAY / 2 + 1)

    assert ai_cache.clear_expired() == 1
    assert len(ai_cache) == 1
    assert ai_cache.get("daily-plan", {"n": 2}) == ["fresh"]


def test_clear_category(ai_cache: AICache):
    ai_cache.set("daily-plan", {"n": 1}, ["a"])
    ai_cache.set("daily-plan", {"n": 2}, ["b"])
    ai_cache.set("skill-tips", {"n": 1}, ["c"])

    assert ai_cache.clear_category("daily-plan") == 2
    assert ai_cache.stats()["by_category"] == {"skill-tips": {"entries": 1, "hits": 0}}


def test_clear_category_rejects_empty(ai_cache: AICache):
    with pytest.raises(ValidationError):
        ai_cache.clear_category("")


def test_clear_all(ai_cache: AICache):
    ai_cache.set("daily-plan", {"n": 1}, ["a"])
    ai_cache.set("skill-tips", {"n": 1}, ["b"])
    assert ai_cache.clear_all() == 2
    assert ai_cache.stats()["total_entries"] == 0


def test_over_capacity_purges_expired(clock):
    cache = AICache(ttl_seconds=60, max_entries=2, clock=clock)
    cache.set("c", {"n": 1}, ["a"])
    cache.set("c", {"n": 2}, ["b"])
    clock.advance(61)
    cache.set("c", {"n": 3}, ["c"])
    assert len(cache) == 1


def test_concurrent_access_keeps_counts_consistent(ai_cache: AICache):
    ai_cache.set("daily-plan", INPUT, ["a"])

    def reader():
        for _ in range(100):
            ai_cache.get("daily-plan", INPUT)

    def writer(n: int):
        for i in range(50):
            ai_cache.set("other", {"n": n, "i": i}, ["x"])
            ai_cache.clear_expired()

    threads = [threading.Thread(target=reader) for _ in range(4)]
    threads += [threading.Thread(target=writer, args=(n,)) for n in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    stats = ai_cache.stats()
    assert stats["by_category"]["daily-plan"]["hits"] == 400
    assert stats["by_category"]["other"]["entries"] == 100
