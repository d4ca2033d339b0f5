from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone

import pytest

from discovery.feed.models import BusinessCandidate
from discovery.feed.scoring import (
    parse_timestamp,
    recency_boost,
    score_explore,
    score_personal,
    score_top_rated,
)

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


def _iso(days_ago: float) -> str:
    return (NOW - timedelta(days=days_ago)).isoformat()


# ── recency_boost ────────────────────────────────────────────────────────


def test_recency_boost_missing_timestamp_is_zero():
    assert recency_boost(None, 1.2) == 0


def test_recency_boost_floors_days_at_one():
    assert recency_boost(NOW.isoformat(), 1.2, now=NOW) == pytest.approx(1.2)
    assert recency_boost(_iso(0.25), 1.2, now=NOW) == pytest.approx(1.2)


def test_recency_boost_decays_with_age():
    assert recency_boost(_iso(4), 2.0, now=NOW) == pytest.approx(0.5)
    assert recency_boost(_iso(10), 1.0, now=NOW) < recency_boost(_iso(2), 1.0, now=NOW)


def test_recency_boost_unparseable_timestamp_is_zero():
    assert recency_boost("not-a-date", 1.0, now=NOW) == 0


def test_recency_boost_default_now():
    today = datetime.now(timezone.utc).isoformat()
    assert recency_boost(today, 1.2) == pytest.approx(1.2)


def test_parse_timestamp_accepts_z_suffix_and_naive():
    assert parse_timestamp("2025-06-15T12:00:00Z") == NOW
    assert parse_timestamp("2025-06-15T12:00:00") == NOW
    assert parse_timestamp(None) is None


# ── bucket scores ────────────────────────────────────────────────────────


def test_score_personal_formula():
    biz = BusinessCandidate(
        id="1",
        average_rating=4.0,
        total_reviews=9,
        created_at=_iso(3),
        verified=True,
        image_url="https://img/1.jpg",
    )
    expected = 4.0 * 2.2 + math.log(10) + 1.2 / 3 + 0.4 + 0.2
    assert score_personal(biz, NOW) == pytest.approx(expected)


def test_score_top_rated_formula_and_review_floor():
    biz = BusinessCandidate(id="1", average_rating=4.5, total_reviews=0, verified=False)
    expected = 4.5 * 2.5 + math.log(1 + 1.5)
    assert score_top_rated(biz, NOW) == pytest.approx(expected)


def test_score_explore_formula():
    biz = BusinessCandidate(
        id="1",
        average_rating=3.0,
        total_reviews=2,
        created_at=_iso(1),
        verified=True,
        uploaded_image="https://img/2.png",
    )
    expected = 2.5 + 1.2 + 3.0 * 0.8 + 0.4 + 0.3
    assert score_explore(biz, NOW) == pytest.approx(expected)


def test_explore_low_review_boost_stops_at_ten():
    few = BusinessCandidate(id="1", total_reviews=9)
    many = BusinessCandidate(id="2", total_reviews=10)
    assert score_explore(few, NOW) - score_explore(many, NOW) == pytest.approx(1.2)


def test_top_rated_prefers_higher_rating():
    great = BusinessCandidate(id="1", average_rating=4.9, total_reviews=5)
    busy = BusinessCandidate(id="2", average_rating=3.5, total_reviews=200)
    assert score_top_rated(great, NOW) > score_top_rated(busy, NOW)


def test_scoring_does_not_mutate_candidate():
    biz = BusinessCandidate(id="1", average_rating=4.0, total_reviews=3, created_at=_iso(2))
    before = biz.model_dump()
    score_personal(biz, NOW)
    score_top_rated(biz, NOW)
    score_explore(biz, NOW)
    assert biz.model_dump() == before
