from __future__ import annotations

from discovery.feed.blender import diversify_trending, diversity_key, mix_businesses
from discovery.feed.models import BusinessCandidate


def _biz(id_: str, key: str | None = "cafes", category: str | None = None) -> BusinessCandidate:
    return BusinessCandidate(id=id_, name=f"Business {id_}", sub_interest_id=key, category=category)


def _ids(items):
    return [b.id for b in items]


# ── mix_businesses ───────────────────────────────────────────────────────


def test_overflow_fills_past_diversity_cap():
    personal = [_biz("1"), _biz("2"), _biz("3")]
    result = mix_businesses(personal, [], [], limit=3)
    assert _ids(result) == ["1", "2", "3"]


def test_round_pattern_two_personal_one_top_one_explore():
    personal = [_biz("p1", "a"), _biz("p2", "b"), _biz("p3", "c"), _biz("p4", "d")]
    top = [_biz("t1", "e"), _biz("t2", "f")]
    explore = [_biz("e1", "g"), _biz("e2", "h")]
    result = mix_businesses(personal, top, explore, limit=8)
    assert _ids(result) == ["p1", "p2", "t1", "e1", "p3", "p4", "t2", "e2"]


def test_result_never_exceeds_limit():
    personal = [_biz(f"p{i}", f"k{i}") for i in range(10)]
    top = [_biz(f"t{i}", f"t{i}") for i in range(10)]
    explore = [_biz(f"e{i}", f"e{i}") for i in range(10)]
    for limit in (1, 2, 3, 5, 13):
        assert len(mix_businesses(personal, top, explore, limit)) == limit


def test_zero_limit_returns_empty():
    assert mix_businesses([_biz("1")], [_biz("2")], [_biz("3")], limit=0) == []


def test_empty_buckets_return_empty():
    assert mix_businesses([], [], [], limit=10) == []


def test_ids_are_unique_across_buckets():
    shared = _biz("same", "x")
    result = mix_businesses([shared, _biz("p2", "y")], [shared, _biz("t2", "z")], [shared], limit=10)
    ids = _ids(result)
    assert len(ids) == len(set(ids))
    assert set(ids) == {"same", "p2", "t2"}


def test_primary_pass_respects_personal_cap():
    personal = [_biz("1"), _biz("2"), _biz("3"), _biz("4", "bars")]
    result = mix_businesses(personal, [], [], limit=3)
    # The third cafe is parked; the bar is the next eligible personal pick.
    assert _ids(result) == ["1", "2", "4"]


def test_explore_hits_shared_cap_before_top_rated():
    top = [_biz(f"t{i}", "museums") for i in range(5)]
    explore = [_biz(f"e{i}", "museums") for i in range(5)]
    result = mix_businesses([], top, explore, limit=4)
    # t0 e0 t1 fill the key to 3; explore (cap 2) parks everything, top (cap 3)
    # parks the rest, and the overflow pass tops up from top rated first.
    assert _ids(result) == ["t0", "e0", "t1", "t2"]
    result = mix_businesses([], top, explore, limit=7)
    assert _ids(result) == ["t0", "e0", "t1", "t2", "t3", "t4", "e1"]


def test_overflow_prefers_personal_then_top_then_explore():
    personal = [_biz("p1"), _biz("p2"), _biz("p3")]
    top = [_biz("t1"), _biz("t2")]
    explore = [_biz("e1")]
    result = mix_businesses(personal, top, explore, limit=6)
    assert _ids(result) == ["p1", "p2", "t1", "p3", "t2", "e1"]


def test_diversity_key_fallbacks():
    assert diversity_key(_biz("1", "cafes", "food")) == "cafes"
    assert diversity_key(_biz("2", None, "food")) == "food"
    assert diversity_key(_biz("3", None, None)) == "uncategorized"


# ── diversify_trending ───────────────────────────────────────────────────


def test_trending_takes_one_per_category_first():
    items = [
        {"id": "1", "category": "Cafes"},
        {"id": "2", "category": "cafes"},
        {"id": "3", "category": "bars"},
        {"id": "4", "category": "museums"},
    ]
    result = diversify_trending(items, 3, key=lambda i: i["category"])
    assert [i["id"] for i in result] == ["1", "3", "4"]


def test_trending_backfills_in_input_order():
    items = [_biz("1", "cafes"), _biz("2", "cafes"), _biz("3", "bars"), _biz("4", "cafes")]
    result = diversify_trending(items, 3)
    assert _ids(result) == ["1", "3", "2"]


def test_trending_short_input_returned_unchanged():
    items = [_biz("1"), _biz("2")]
    assert _ids(diversify_trending(items, 5)) == ["1", "2"]


def test_trending_zero_limit():
    assert diversify_trending([_biz("1")], 0) == []
