"""
The "for you" mixed feed.

Pipeline per request:

1. derive the shared filters from the query,
2. fetch the personal, top-rated and explore buckets concurrently,
3. blend them under the diversity caps,
4. float businesses the caller reviewed in the last day to the front,
5. map everything to card shape.

Each bucket fetch runs the blocking database call in a worker thread under a
timeout; a bucket that errors or times out contributes nothing instead of
failing the request.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from .blender import mix_businesses
from .cards import transform_business_for_card
from .config import DEFAULT_FEED_CONFIG, FeedConfig
from .fetchers import BucketOptions, fetch_explore, fetch_personal_matches, fetch_top_rated
from .models import BucketCounts, BusinessCandidate, FeedResponse, MixedFeedMeta
from .params import FeedParams
from .prioritizer import prioritize_recently_reviewed

logger = logging.getLogger(__name__)

Fetcher = Callable[[Any, BucketOptions], list[BusinessCandidate]]


def bucket_limit(limit: int, cap: int = 150) -> int:
    """Over-fetch each bucket so dedup and diversity caps still leave a full page."""
    return min(max(limit * 3, limit + 4), cap)


async def _fetch_bucket(
    name: str,
    fetcher: Fetcher,
    client: Any,
    options: BucketOptions,
    timeout: float,
) -> list[BusinessCandidate]:
    try:
        return await asyncio.wait_for(asyncio.to_thread(fetcher, client, options), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("%s bucket timed out after %.1fs", name, timeout)
    except Exception:
        logger.warning("%s bucket failed", name, exc_info=True)
    return []


async def handle_mixed_feed(
    client: Any,
    params: FeedParams,
    user_id: str | None = None,
    config: FeedConfig = DEFAULT_FEED_CONFIG,
) -> FeedResponse:
    per_bucket = bucket_limit(params.limit, config.bucket_cap)
    shared = BucketOptions(
        limit=per_bucket,
        filters=params.common_filters(),
        min_rating=params.min_rating,
        dealbreaker_ids=params.dealbreaker_ids,
        bucket_cap=config.bucket_cap,
    )
    personal_options = BucketOptions(
        limit=per_bucket,
        filters=shared.filters,
        min_rating=params.min_rating,
        interest_ids=params.interest_ids,
        subcategories=params.sub_interest_ids,
        dealbreaker_ids=params.dealbreaker_ids,
        latitude=params.latitude,
        longitude=params.longitude,
        bucket_cap=config.bucket_cap,
    )

    personal, top_rated, explore = await asyncio.gather(
        _fetch_bucket("Personal", fetch_personal_matches, client, personal_options, config.fetch_timeout),
        _fetch_bucket("Top rated", fetch_top_rated, client, shared, config.fetch_timeout),
        _fetch_bucket("Explore", fetch_explore, client, shared, config.fetch_timeout),
    )

    blended = mix_businesses(personal, top_rated, explore, params.limit)
    prioritized = await asyncio.to_thread(
        prioritize_recently_reviewed, client, blended, user_id, config.review_window_hours,
    )
    cards = [transform_business_for_card(b) for b in prioritized]

    logger.info(
        "Mixed feed: %d cards from buckets personal=%d top=%d explore=%d (dealbreakers=%s)",
        len(cards), len(personal), len(top_rated), len(explore), list(params.dealbreaker_ids),
    )

    return FeedResponse(
        data=cards,
        meta=MixedFeedMeta(
            count=len(cards),
            limit=params.limit,
            buckets=BucketCounts(
                personal_matches=len(personal),
                top_rated=len(top_rated),
                explore=len(explore),
            ),
        ),
    )
