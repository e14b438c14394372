import pytest

from codetrack.models import PlatformAggregate, ProblemRecord
from codetrack.stats import StatsAggregator
from codetrack.storage import MemoryStorage
from tests.helpers import create_test_db, remove_test_db


@pytest.fixture(params=["memory", "sqlite"])
def storage(request):
    if request.param == "memory":
        yield MemoryStorage()
        return
    database = create_test_db()
    try:
        yield database
    finally:
        remove_test_db(database)


def _add(storage, user_id, name, platform, difficulty=None, category=None):
    return storage.create_record(
        user_id,
        ProblemRecord(name=name, platform=platform, difficulty=difficulty, category=category),
    )


def test_no_double_count_for_platform_with_aggregate(storage):
    storage.upsert_aggregate("u1", PlatformAggregate("leetcode", 74, 30, 34, 10))
    _add(storage, "u1", "Two Sum", "leetcode", "easy")
    _add(storage, "u1", "LRU Cache", "leetcode", "medium")
    _add(storage, "u1", "Median of Two Sorted Arrays", "leetcode", "hard")

    stats = StatsAggregator(storage).get_stats("u1")

    assert stats["platform_stats"] == [
        {"platform": "leetcode", "count": 74, "easy": 30, "medium": 34, "hard": 10}
    ]
    assert stats["total"] == 74
    assert (stats["easy"], stats["medium"], stats["hard"]) == (30, 34, 10)


def test_record_only_platform_counts_records(storage):
    storage.upsert_aggregate("u1", PlatformAggregate("gfg", 10, 4, 5, 1))
    _add(storage, "u1", "Custom A", "other", "easy")
    _add(storage, "u1", "Custom B", "other", "hard")
    _add(storage, "u1", "Custom C", "other")

    stats = StatsAggregator(storage).get_stats("u1")

    assert stats["platform_stats"] == [
        {"platform": "gfg", "count": 10, "easy": 4, "medium": 5, "hard": 1},
        {"platform": "other", "count": 3, "easy": 1, "medium": 0, "hard": 1},
    ]
    assert stats["total"] == 13
    # The unclassified record adds to the count but to no difficulty bucket.
    assert (stats["easy"], stats["medium"], stats["hard"]) == (5, 5, 2)


def test_platform_order_aggregates_first(storage):
    _add(storage, "u1", "Manual", "leetcode", "easy")
    storage.upsert_aggregate("u1", PlatformAggregate("tuf", 37, 13, 20, 4))
    storage.upsert_aggregate("u1", PlatformAggregate("gfg", 5, 5, 0, 0))
    _add(storage, "u1", "Side project", "other")

    stats = StatsAggregator(storage).get_stats("u1")
    assert [p["platform"] for p in stats["platform_stats"]] == ["gfg", "tuf", "leetcode", "other"]
    assert stats["total"] == 5 + 37 + 1 + 1


def test_category_stats_exclude_uncategorized(storage):
    storage.upsert_aggregate("u1", PlatformAggregate("leetcode", 74, 30, 34, 10))
    _add(storage, "u1", "Two Sum", "leetcode", "easy", "arrays")
    _add(storage, "u1", "3Sum", "leetcode", "medium", "arrays")
    _add(storage, "u1", "Climbing Stairs", "leetcode", "easy", "dynamic-programming")
    _add(storage, "u1", "Untagged 1", "leetcode")
    _add(storage, "u1", "Untagged 2", "other")

    stats = StatsAggregator(storage).get_stats("u1")

    assert stats["category_stats"] == [
        {"category": "arrays", "count": 2},
        {"category": "dynamic-programming", "count": 1},
    ]
    assert sum(c["count"] for c in stats["category_stats"]) == 3


def test_category_ties_sorted_by_name(storage):
    _add(storage, "u1", "A", "other", category="trees")
    _add(storage, "u1", "B", "other", category="graphs")

    stats = StatsAggregator(storage).get_stats("u1")
    assert [c["category"] for c in stats["category_stats"]] == ["graphs", "trees"]


def test_empty_user(storage):
    stats = StatsAggregator(storage).get_stats("nobody")
    assert stats == {
        "total": 0,
        "easy": 0,
        "medium": 0,
        "hard": 0,
        "platform_stats": [],
        "category_stats": [],
    }


def test_stats_are_per_user(storage):
    storage.upsert_aggregate("u1", PlatformAggregate("leetcode", 74, 30, 34, 10))
    _add(storage, "u2", "Two Sum", "leetcode", "easy")

    assert StatsAggregator(storage).get_stats("u2")["total"] == 1
