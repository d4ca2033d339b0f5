"""
Candidate retrieval for the three mixed-feed buckets.

Every fetcher returns at most ``min(limit, bucket_cap)`` candidates, already
dealbreaker-filtered and sorted best-first by its bucket's score.  Fetchers
never raise: a failed query is logged and yields an empty bucket so one bad
source cannot sink the whole feed.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

from pydantic import ValidationError

from .dealbreakers import filter_by_dealbreakers
from .filters import CommonFilters, filter_by_min_rating
from .models import BusinessCandidate
from .scoring import score_explore, score_personal, score_top_rated

logger = logging.getLogger(__name__)

BUSINESS_SELECT = """
  id, name, description, category, interest_id, sub_interest_id, location, address,
  phone, email, website, image_url, uploaded_image,
  verified, price_range, badge, slug, latitude, longitude,
  created_at, updated_at,
  business_stats (
    total_reviews, average_rating, percentiles
  )
"""

PERSONALIZED_RPC = "recommend_personalized_businesses"

# Postgres "undefined_function": the RPC is not deployed on this database.
RPC_NOT_FOUND = "42883"

Scorer = Callable[[BusinessCandidate, datetime], float]


@dataclass(frozen=True)
class BucketOptions:
    limit: int
    filters: CommonFilters = field(default_factory=CommonFilters)
    min_rating: float | None = None
    interest_ids: tuple[str, ...] = ()
    subcategories: tuple[str, ...] = ()
    dealbreaker_ids: tuple[str, ...] = ()
    latitude: float | None = None
    longitude: float | None = None
    bucket_cap: int = 150

    @property
    def capped_limit(self) -> int:
        return min(self.limit, self.bucket_cap)


def _stats_of(row: dict[str, Any]) -> dict[str, Any]:
    if "business_stats" not in row:
        # RPC rows come back flat
        return row
    stats = row.get("business_stats")
    if isinstance(stats, list):
        stats = stats[0] if stats else None
    return stats or {}


def normalize_business_rows(rows: list[dict[str, Any]]) -> list[BusinessCandidate]:
    """Flatten joined/RPC rows into candidates, skipping rows that do not validate."""
    candidates: list[BusinessCandidate] = []
    for row in rows:
        try:
            stats = _stats_of(row)
            data = {k: v for k, v in row.items() if k != "business_stats"}
            data.update(
                id=str(row.get("id", "")),
                total_reviews=int(stats.get("total_reviews") or 0),
                average_rating=float(stats.get("average_rating") or 0),
                percentiles=stats.get("percentiles") or None,
                distance_km=None,
                cursor_id=str(row.get("id", "")),
                cursor_created_at=row.get("created_at"),
            )
            candidates.append(BusinessCandidate.model_validate(data))
        except (ValidationError, TypeError, ValueError):
            logger.warning("Skipping malformed business row %r", row.get("id"), exc_info=True)
    return candidates


def base_business_query(client: Any) -> Any:
    return client.table("businesses").select(BUSINESS_SELECT).eq("status", "active")


def _rank(candidates: list[BusinessCandidate], scorer: Scorer) -> list[BusinessCandidate]:
    now = datetime.now(timezone.utc)
    return sorted(candidates, key=lambda c: scorer(c, now), reverse=True)


def _personalized_rpc(client: Any, options: BucketOptions) -> list[BusinessCandidate] | None:
    payload = {
        "p_user_sub_interest_ids": list(options.subcategories),
        "p_user_interest_ids": list(options.interest_ids),
        "p_limit": options.capped_limit,
        "p_latitude": options.latitude,
        "p_longitude": options.longitude,
        "p_price_ranges": list(options.filters.price_ranges) if options.filters.price_ranges else None,
        "p_min_rating": options.min_rating,
    }
    try:
        response = client.rpc(PERSONALIZED_RPC, payload).execute()
        if response.data is None:
            return None
        # The procedure applies p_min_rating and its own ordering server-side.
        return normalize_business_rows(response.data)
    except Exception as exc:
        if getattr(exc, "code", None) == RPC_NOT_FOUND:
            logger.info("%s is not deployed, using fallback query", PERSONALIZED_RPC)
        else:
            logger.warning("%s failed, using fallback query", PERSONALIZED_RPC, exc_info=True)
        return None


def fetch_personal_matches(client: Any, options: BucketOptions) -> list[BusinessCandidate]:
    ranked = _personalized_rpc(client, options)
    if ranked is not None:
        return filter_by_dealbreakers(ranked, list(options.dealbreaker_ids))

    try:
        query = base_business_query(client)
        if options.filters.category:
            query = query.eq("category", options.filters.category)
        elif options.subcategories:
            query = query.in_("sub_interest_id", list(options.subcategories))
        elif options.interest_ids:
            query = query.in_("interest_id", list(options.interest_ids))
        query = options.filters.apply(query)
        response = query.limit(options.capped_limit).execute()
        candidates = filter_by_min_rating(normalize_business_rows(response.data or []), options.min_rating)
        ranked = _rank(candidates, score_personal)
    except Exception:
        logger.warning("Personal matches fallback query failed", exc_info=True)
        return []

    return filter_by_dealbreakers(ranked, list(options.dealbreaker_ids))


def _fetch_ranked(
    client: Any,
    options: BucketOptions,
    scorer: Scorer,
    bucket: str,
    newest_first: bool = False,
) -> list[BusinessCandidate]:
    try:
        query = base_business_query(client)
        if options.filters.category:
            query = query.eq("category", options.filters.category)
        query = options.filters.apply(query)
        if newest_first:
            query = query.order("created_at", desc=True)
        response = query.limit(options.capped_limit).execute()
        candidates = filter_by_min_rating(normalize_business_rows(response.data or []), options.min_rating)
        ranked = _rank(candidates, scorer)
    except Exception:
        logger.warning("%s query failed", bucket, exc_info=True)
        return []

    return filter_by_dealbreakers(ranked, list(options.dealbreaker_ids))


def fetch_top_rated(client: Any, options: BucketOptions) -> list[BusinessCandidate]:
    return _fetch_ranked(client, options, score_top_rated, "Top rated")


def fetch_explore(client: Any, options: BucketOptions) -> list[BusinessCandidate]:
    return _fetch_ranked(client, options, score_explore, "Explore", newest_first=True)
