"""
Non-personalised listings: the cursor-paginated standard feed and the
precomputed trending / top / new lists.
"""
from __future__ import annotations

import logging
import random
from typing import Any

from .blender import diversify_trending
from .cards import transform_business_for_card
from .fetchers import RPC_NOT_FOUND, base_business_query, normalize_business_rows
from .models import FeedCursor, FeedResponse, SpecialListMeta, StandardFeedMeta
from .params import FeedParams

logger = logging.getLogger(__name__)

LIST_RPC = "list_businesses_optimized"

SPECIAL_LIST_RPCS: dict[str, str] = {
    "trending": "get_trending_businesses",
    "top": "get_top_rated_businesses",
    "new": "get_new_businesses",
}


class FeedError(Exception):
    """A listing query failed and there is no degraded result to fall back on."""

    def __init__(self, message: str, details: str | None = None, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details
        self.code = code

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message}
        if self.details:
            body["details"] = self.details
        if self.code:
            body["code"] = self.code
        return body


def _error_details(exc: Exception) -> str:
    return getattr(exc, "message", None) or str(exc)


def _list_rpc_payload(params: FeedParams) -> dict[str, Any]:
    return {
        "p_limit": params.limit,
        "p_cursor_id": params.cursor_id,
        "p_cursor_created_at": params.cursor_created_at,
        "p_category": params.category,
        "p_location": params.location,
        "p_verified": params.verified,
        "p_price_range": params.price_range,
        "p_badge": params.badge,
        "p_min_rating": params.min_rating,
        "p_search": params.search,
        "p_latitude": params.latitude,
        "p_longitude": params.longitude,
        "p_radius_km": params.radius_km,
        "p_sort_by": params.sort_by,
        "p_sort_order": params.sort_order,
    }


def _build_fallback_query(client: Any, params: FeedParams) -> Any:
    query = base_business_query(client)
    if params.category:
        query = query.eq("category", params.category)
    elif params.sub_interest_ids:
        query = query.in_("category", list(params.sub_interest_ids))
    query = params.common_filters(include_preferred=False).apply(query)
    if params.search:
        query = query.text_search("search_vector", params.search, {"type": "websearch", "config": "english"})

    descending = params.sort_order != "asc"
    if params.cursor_id and params.cursor_created_at:
        if descending:
            query = query.lt("created_at", params.cursor_created_at)
        else:
            query = query.gt("created_at", params.cursor_created_at)

    if params.interest_ids:
        # Interest browsing is shuffled: over-fetch, shuffle, then trim.
        return query.limit(params.limit * 2)
    sort_column = "total_reviews" if params.sort_by == "total_rating" else "created_at"
    return query.order(sort_column, desc=descending).limit(params.limit)


def _fallback_rows(client: Any, params: FeedParams) -> list[dict[str, Any]]:
    try:
        rows = _build_fallback_query(client, params).execute().data or []
    except Exception as exc:
        logger.exception("Fallback listing query failed")
        raise FeedError(
            "Failed to fetch businesses", details=_error_details(exc), code=getattr(exc, "code", None),
        ) from exc

    if params.interest_ids and rows:
        rows = list(rows)
        random.shuffle(rows)
        rows = rows[: params.limit]
    return rows


def fetch_standard_feed(client: Any, params: FeedParams) -> FeedResponse:
    try:
        rows = client.rpc(LIST_RPC, _list_rpc_payload(params)).execute().data or []
    except Exception as exc:
        code = getattr(exc, "code", None)
        if code and code != RPC_NOT_FOUND:
            logger.error("%s failed: %s", LIST_RPC, _error_details(exc))
            raise FeedError("Failed to fetch businesses", details=_error_details(exc), code=code) from exc
        logger.info("%s unavailable, using fallback query", LIST_RPC)
        rows = _fallback_rows(client, params)

    candidates = normalize_business_rows(rows)
    cards = [transform_business_for_card(b) for b in candidates]
    next_cursor = None
    if candidates:
        last = candidates[-1]
        next_cursor = FeedCursor(cursor_id=last.cursor_id or last.id, cursor_created_at=last.cursor_created_at)

    logger.info("Standard feed: %d businesses (limit=%d, cursor=%s)", len(cards), params.limit, params.cursor_id)

    return FeedResponse(
        data=cards,
        meta=StandardFeedMeta(
            count=len(cards),
            limit=params.limit,
            has_more=len(candidates) == params.limit,
            next_cursor=next_cursor,
        ),
    )


def fetch_special_list(
    client: Any,
    list_type: str,
    category: str | None,
    limit: int,
    max_fetch: int = 150,
) -> FeedResponse:
    rpc_name = SPECIAL_LIST_RPCS[list_type]
    # Trending over-fetches so the category spread has candidates to choose from.
    fetch_limit = min(limit * 3, max_fetch) if list_type == "trending" else limit
    try:
        rows = client.rpc(rpc_name, {"p_limit": fetch_limit, "p_category": category}).execute().data or []
    except Exception as exc:
        logger.error("%s failed: %s", rpc_name, _error_details(exc))
        raise FeedError("Failed to fetch businesses", code=getattr(exc, "code", None)) from exc

    candidates = normalize_business_rows(rows)
    if list_type == "trending":
        candidates = diversify_trending(candidates, limit)
    cards = [transform_business_for_card(b) for b in candidates]

    return FeedResponse(
        data=cards,
        meta=SpecialListMeta(count=len(cards), type=list_type, category=category),
    )
