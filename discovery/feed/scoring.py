"""
Per-bucket ranking functions.

All three are linear blends of rating, review volume, freshness and listing
completeness; only the weights differ:

* personal   ``2.2 x rating + ln(reviews + 1) + 1.2 x recency + verified 0.4 + photo 0.2``
* top rated  ``2.5 x rating + ln(reviews + 1.5) + verified 0.5``
* explore    ``2.5 x recency + 1.2 if under 10 reviews + 0.8 x rating + photo 0.4 + verified 0.3``

Review counts are floored at 1 before the log.
"""
from __future__ import annotations

import math
from datetime import datetime, timezone

from .models import BusinessCandidate

_SECONDS_PER_DAY = 60 * 60 * 24


def parse_timestamp(value: str | datetime | None) -> datetime | None:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed); naive values are taken as UTC."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def recency_boost(
    created_at: str | datetime | None,
    multiplier: float = 1.0,
    now: datetime | None = None,
) -> float:
    created = parse_timestamp(created_at)
    if created is None:
        return 0.0
    now = now or datetime.now(timezone.utc)
    days = max((now - created).total_seconds() / _SECONDS_PER_DAY, 1.0)
    return multiplier / days


def _review_count(business: BusinessCandidate) -> int:
    return max(business.total_reviews or 0, 1)


def score_personal(business: BusinessCandidate, now: datetime | None = None) -> float:
    rating = business.average_rating or 0.0
    reviews = math.log(_review_count(business) + 1)
    recency = recency_boost(business.created_at, 1.2, now)
    verified_bonus = 0.4 if business.verified else 0.0
    photo_bonus = 0.2 if business.has_photo else 0.0
    return rating * 2.2 + reviews + recency + verified_bonus + photo_bonus


def score_top_rated(business: BusinessCandidate, now: datetime | None = None) -> float:
    rating = business.average_rating or 0.0
    reviews = math.log(_review_count(business) + 1.5)
    verified_bonus = 0.5 if business.verified else 0.0
    return rating * 2.5 + reviews + verified_bonus


def score_explore(business: BusinessCandidate, now: datetime | None = None) -> float:
    recency = recency_boost(business.created_at, 2.5, now)
    low_review_boost = 1.2 if (business.total_reviews or 0) < 10 else 0.0
    rating_support = (business.average_rating or 0.0) * 0.8
    photo_bonus = 0.4 if business.has_photo else 0.0
    verified_bonus = 0.3 if business.verified else 0.0
    return recency + low_review_boost + rating_support + photo_bonus + verified_bonus
