from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Mapping

from .config import DEFAULT_FEED_CONFIG, FeedConfig
from .filters import CommonFilters, expand_interests, parse_csv_param


def _parse_float(value: str | None) -> float | None:
    """Finite float or ``None``; ``nan``/``inf`` count as unset."""
    if value is None or value == "":
        return None
    try:
        parsed = float(value)
    except ValueError:
        return None
    return parsed if math.isfinite(parsed) else None


def _parse_limit(value: str | None, config: FeedConfig) -> int:
    try:
        limit = int(value) if value else config.default_limit
    except ValueError:
        limit = config.default_limit
    return min(config.max_limit, max(1, limit))


def _merge_unique(*groups: list[str]) -> tuple[str, ...]:
    merged: list[str] = []
    for group in groups:
        for value in group:
            if value not in merged:
                merged.append(value)
    return tuple(merged)


@dataclass(frozen=True)
class FeedParams:
    """Query parameters of ``GET /businesses``, parsed leniently."""

    limit: int = 20
    feed_strategy: str = "standard"
    category: str | None = None
    badge: str | None = None
    verified: bool | None = None
    price_range: str | None = None
    preferred_price_ranges: tuple[str, ...] = ()
    location: str | None = None
    min_rating: float | None = None
    interest_ids: tuple[str, ...] = ()
    sub_interest_ids: tuple[str, ...] = ()
    dealbreaker_ids: tuple[str, ...] = ()
    search: str | None = None
    sort_by: str = "created_at"
    sort_order: str = "desc"
    cursor_id: str | None = None
    cursor_created_at: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    radius_km: float = 10.0

    @classmethod
    def from_query(cls, query: Mapping[str, str], config: FeedConfig = DEFAULT_FEED_CONFIG) -> FeedParams:
        interest_ids = parse_csv_param(query.get("interest_ids"))
        radius = _parse_float(query.get("radius"))
        return cls(
            limit=_parse_limit(query.get("limit"), config),
            feed_strategy=query.get("feed_strategy") or "standard",
            category=query.get("category") or None,
            badge=query.get("badge") or None,
            verified=True if query.get("verified") == "true" else None,
            price_range=query.get("price_range") or None,
            preferred_price_ranges=tuple(parse_csv_param(query.get("preferred_price_ranges"))),
            location=query.get("location") or None,
            min_rating=_parse_float(query.get("min_rating")),
            interest_ids=tuple(interest_ids),
            sub_interest_ids=_merge_unique(
                expand_interests(interest_ids),
                parse_csv_param(query.get("sub_interest_ids")),
            ),
            dealbreaker_ids=tuple(parse_csv_param(query.get("dealbreakers"))),
            search=query.get("search") or None,
            sort_by=query.get("sort_by") or "created_at",
            sort_order=query.get("sort_order") or "desc",
            cursor_id=query.get("cursor_id") or None,
            cursor_created_at=query.get("cursor_created_at") or None,
            latitude=_parse_float(query.get("lat")),
            longitude=_parse_float(query.get("lng")),
            radius_km=radius if radius is not None else config.default_radius_km,
        )

    @property
    def is_mixed(self) -> bool:
        return self.feed_strategy == "mixed"

    def common_filters(self, include_preferred: bool = True) -> CommonFilters:
        return CommonFilters.build(
            category=self.category,
            badge=self.badge,
            verified=self.verified,
            price_range=self.price_range,
            preferred_price_ranges=list(self.preferred_price_ranges) if include_preferred else None,
            location=self.location,
        )
