from __future__ import annotations

import math
import re

from .models import BusinessCandidate, BusinessCard

PERCENTILE_METRICS = ("punctuality", "friendliness", "trustworthiness", "cost-effectiveness")
DEFAULT_PERCENTILE = 85
DEFAULT_PRICE_RANGE = "$$"


def format_sub_interest_label(sub_interest_id: str | None) -> str | None:
    """``"fine-dining"`` -> ``"Fine Dining"``."""
    if not sub_interest_id:
        return None
    parts = [p for p in re.split(r"[-_]", sub_interest_id) if p]
    return " ".join(p[0].upper() + p[1:] for p in parts)


def _round_to_half(value: float) -> float:
    return math.floor(value * 2 + 0.5) / 2


def transform_business_for_card(business: BusinessCandidate) -> BusinessCard:
    rating = business.average_rating or 0.0
    has_rating = rating > 0
    percentiles = None
    if business.percentiles is not None:
        percentiles = {
            metric: business.percentiles.get(metric) or DEFAULT_PERCENTILE
            for metric in PERCENTILE_METRICS
        }

    return BusinessCard(
        id=business.id,
        name=business.name,
        image=business.image_url or business.uploaded_image,
        category=business.category,
        sub_interest_id=business.sub_interest_id or None,
        sub_interest_label=format_sub_interest_label(business.sub_interest_id),
        interest_id=business.interest_id or None,
        location=business.location,
        rating=_round_to_half(rating) if has_rating else None,
        total_rating=rating if has_rating else None,
        reviews=business.total_reviews if business.total_reviews > 0 else 0,
        badge=business.badge if business.verified and business.badge else None,
        href=f"/business/{business.id}",
        verified=bool(business.verified),
        price_range=business.price_range or DEFAULT_PRICE_RANGE,
        distance=business.distance_km,
        has_rating=has_rating,
        percentiles=percentiles,
    )
