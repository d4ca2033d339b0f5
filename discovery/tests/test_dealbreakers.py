from __future__ import annotations

from unittest.mock import patch

import pytest

from discovery.feed.dealbreakers import DEAL_BREAKERS, DEALBREAKER_RULES, filter_by_dealbreakers
from discovery.feed.models import BusinessCandidate


def _biz(id_: str = "1", **fields) -> BusinessCandidate:
    return BusinessCandidate(id=id_, name="Test", **fields)


def _ids(items):
    return [b.id for b in items]


def test_no_dealbreakers_returns_input():
    items = [_biz("1", verified=False), _biz("2")]
    assert filter_by_dealbreakers(items, []) == items
    assert filter_by_dealbreakers(items, None) == items


def test_unverified_excluded_by_trustworthiness():
    items = [_biz("1", verified=False), _biz("2", verified=True)]
    assert _ids(filter_by_dealbreakers(items, ["trustworthiness"])) == ["2"]


def test_only_candidate_excluded_leaves_empty_bucket():
    assert filter_by_dealbreakers([_biz("1", verified=False)], ["trustworthiness"]) == []


def test_unknown_verified_passes_trustworthiness():
    assert _ids(filter_by_dealbreakers([_biz("1")], ["trustworthiness"])) == ["1"]


def test_punctuality_threshold():
    items = [
        _biz("low", percentiles={"punctuality": 69}),
        _biz("edge", percentiles={"punctuality": 70}),
        _biz("missing"),
    ]
    assert _ids(filter_by_dealbreakers(items, ["punctuality"])) == ["edge", "missing"]


def test_friendliness_threshold():
    items = [
        _biz("low", percentiles={"friendliness": 64}),
        _biz("edge", percentiles={"friendliness": 65}),
        _biz("other-metric", percentiles={"punctuality": 10}),
    ]
    assert _ids(filter_by_dealbreakers(items, ["friendliness"])) == ["edge", "other-metric"]


def test_value_for_money_uses_price_tier_first():
    items = [
        _biz("cheap", price_range="$", percentiles={"cost-effectiveness": 10}),
        _biz("mid", price_range="$$"),
        _biz("pricey", price_range="$$$", percentiles={"cost-effectiveness": 99}),
    ]
    assert _ids(filter_by_dealbreakers(items, ["value-for-money"])) == ["cheap", "mid"]


def test_value_for_money_falls_back_to_cost_effectiveness():
    items = [
        _biz("poor", percentiles={"cost-effectiveness": 74}),
        _biz("good", percentiles={"cost-effectiveness": 75}),
        _biz("missing"),
    ]
    assert _ids(filter_by_dealbreakers(items, ["value-for-money"])) == ["good", "missing"]


def test_expensive_and_slow_service_rules():
    items = [
        _biz("luxury", price_range="$$$$"),
        _biz("slow", price_range="$", percentiles={"punctuality": 59}),
        _biz("fine", price_range="$$", percentiles={"punctuality": 60}),
    ]
    assert _ids(filter_by_dealbreakers(items, ["expensive"])) == ["slow", "fine"]
    assert _ids(filter_by_dealbreakers(items, ["slow-service"])) == ["luxury", "fine"]


def test_all_rules_must_pass():
    items = [
        _biz("a", verified=True, percentiles={"punctuality": 90}),
        _biz("b", verified=True, percentiles={"punctuality": 50}),
        _biz("c", verified=False, percentiles={"punctuality": 90}),
    ]
    assert _ids(filter_by_dealbreakers(items, ["trustworthiness", "punctuality"])) == ["a"]


def test_unknown_ids_are_ignored():
    items = [_biz("1", verified=False)]
    assert _ids(filter_by_dealbreakers(items, ["no-such-rule"])) == ["1"]


def test_order_is_preserved():
    items = [_biz(str(i), verified=True) for i in range(5)]
    assert _ids(filter_by_dealbreakers(items, ["trustworthiness"])) == ["0", "1", "2", "3", "4"]


def test_rule_table_is_read_only():
    with pytest.raises(TypeError):
        DEALBREAKER_RULES["custom"] = lambda b: False  # type: ignore[index]
    assert "custom" not in DEALBREAKER_RULES


def test_raising_rule_lets_business_through():
    def _broken(business):
        raise KeyError("percentiles")

    items = [_biz("1"), _biz("2", verified=False)]
    with patch("discovery.feed.dealbreakers.DEALBREAKER_RULES", {"broken": _broken}):
        assert _ids(filter_by_dealbreakers(items, ["broken"])) == ["1", "2"]


def test_catalog_entries_have_rules():
    for entry in DEAL_BREAKERS:
        assert entry.id in DEALBREAKER_RULES
        assert entry.label
