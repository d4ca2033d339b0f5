"""Request-derived filters shared by every candidate query."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from .models import BusinessCandidate

INTEREST_TO_SUBCATEGORIES: dict[str, list[str]] = {
    "food-drink": ["restaurants", "cafes", "bars", "fast-food", "fine-dining"],
    "beauty-wellness": ["gyms", "spas", "salons", "wellness", "nail-salons"],
    "professional-services": [
        "education-learning",
        "transport-travel",
        "finance-insurance",
        "plumbers",
        "electricians",
        "legal-services",
    ],
    "outdoors-adventure": ["hiking", "cycling", "water-sports", "camping"],
    "experiences-entertainment": ["events-festivals", "sports-recreation", "nightlife", "comedy-clubs"],
    "arts-culture": ["museums", "galleries", "theaters", "concerts"],
    "family-pets": ["family-activities", "pet-services", "childcare", "veterinarians"],
    "shopping-lifestyle": ["fashion", "electronics", "home-decor", "books"],
}


def parse_csv_param(value: str | None) -> list[str]:
    """Split a comma-separated query value, dropping blanks."""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def expand_interests(interest_ids: list[str]) -> list[str]:
    """Map top-level interest ids onto their subcategory ids (unknown ids map to nothing)."""
    subcategories: list[str] = []
    for interest_id in interest_ids:
        subcategories.extend(INTEREST_TO_SUBCATEGORIES.get(interest_id, []))
    return subcategories


def derive_price_filters(primary: str | None, preferred: list[str] | None = None) -> list[str] | None:
    """Union of the preferred price tiers and the primary tier, or ``None`` when unconstrained."""
    values: list[str] = []
    for value in [*(preferred or []), primary]:
        if value and value not in values:
            values.append(value)
    return values or None


@dataclass(frozen=True)
class CommonFilters:
    """Predicates every bucket query applies, independent of its ranking."""

    category: str | None = None
    badge: str | None = None
    verified: bool | None = None
    price_range: str | None = None
    price_ranges: tuple[str, ...] | None = None
    location: str | None = None

    @classmethod
    def build(
        cls,
        category: str | None = None,
        badge: str | None = None,
        verified: bool | None = None,
        price_range: str | None = None,
        preferred_price_ranges: list[str] | None = None,
        location: str | None = None,
    ) -> CommonFilters:
        derived = derive_price_filters(price_range, preferred_price_ranges)
        return cls(
            category=category,
            badge=badge,
            verified=verified,
            price_range=price_range,
            price_ranges=tuple(derived) if derived else None,
            location=location,
        )

    def apply(self, query: Any) -> Any:
        """Apply badge, verified, price and location predicates to a query builder."""
        if self.badge:
            query = query.eq("badge", self.badge)
        if self.verified is not None:
            query = query.eq("verified", self.verified)
        if self.price_ranges:
            query = query.in_("price_range", list(self.price_ranges))
        elif self.price_range:
            query = query.eq("price_range", self.price_range)
        if self.location:
            query = query.ilike("location", f"%{self.location}%")
        return query


def filter_by_min_rating(
    candidates: list[BusinessCandidate], min_rating: float | None
) -> list[BusinessCandidate]:
    if not min_rating or math.isnan(min_rating):
        return candidates
    return [c for c in candidates if (c.average_rating or 0) >= min_rating]
