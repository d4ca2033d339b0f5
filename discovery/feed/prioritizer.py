from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from .models import BusinessCandidate
from .scoring import parse_timestamp

logger = logging.getLogger(__name__)


def _latest_review_times(reviews: list[dict[str, Any]]) -> dict[str, datetime]:
    latest: dict[str, datetime] = {}
    for review in reviews:
        business_ref = review.get("business_id")
        created = parse_timestamp(review.get("created_at"))
        if business_ref is None or created is None:
            continue
        business_ref = str(business_ref)
        if business_ref not in latest or created > latest[business_ref]:
            latest[business_ref] = created
    return latest


def prioritize_recently_reviewed(
    client: Any,
    businesses: list[BusinessCandidate],
    user_id: str | None,
    window_hours: int = 24,
    now: datetime | None = None,
) -> list[BusinessCandidate]:
    """
    Move businesses the user reviewed inside the window to the front.

    Reviewed businesses (matched by id or slug) are ordered by their most
    recent review, newest first; everything else keeps its blended order.
    Returns the input untouched for anonymous users, an empty window, or a
    failed lookup.
    """
    if not businesses or not user_id:
        return businesses

    now = now or datetime.now(timezone.utc)
    since = (now - timedelta(hours=window_hours)).isoformat()

    try:
        response = (
            client.table("reviews")
            .select("business_id, created_at")
            .eq("user_id", user_id)
            .gte("created_at", since)
            .order("created_at", desc=True)
            .execute()
        )
        latest = _latest_review_times(response.data or [])
    except Exception:
        logger.warning("Recent review lookup failed for user %s, keeping blended order", user_id, exc_info=True)
        return businesses

    if not latest:
        return businesses

    def _reviewed_at(business: BusinessCandidate) -> datetime | None:
        times = [latest[ref] for ref in (business.id, business.slug) if ref and ref in latest]
        return max(times) if times else None

    reviewed: list[tuple[datetime, BusinessCandidate]] = []
    others: list[BusinessCandidate] = []
    for business in businesses:
        reviewed_at = _reviewed_at(business)
        if reviewed_at is None:
            others.append(business)
        else:
            reviewed.append((reviewed_at, business))

    reviewed.sort(key=lambda pair: pair[0], reverse=True)
    return [business for _, business in reviewed] + others
