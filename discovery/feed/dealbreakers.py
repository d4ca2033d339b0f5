"""
Dealbreakers are user-declared hard exclusions.

Each rule is a predicate over a candidate; ``False`` removes the business
from every bucket.  Rules pass when the stats they read are missing, so a
business is never excluded just for having no reviews yet.  The price-based
rules are the exception since price tier is a listing attribute.
"""
from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Callable, Mapping

from .models import BusinessCandidate, DealBreaker

logger = logging.getLogger(__name__)

Rule = Callable[[BusinessCandidate], bool]


def _percentile(business: BusinessCandidate, metric: str, default: float) -> float:
    value = (business.percentiles or {}).get(metric)
    return default if value is None else value


def _trustworthiness(business: BusinessCandidate) -> bool:
    return business.verified is not False


def _punctuality(business: BusinessCandidate) -> bool:
    return _percentile(business, "punctuality", 80) >= 70


def _friendliness(business: BusinessCandidate) -> bool:
    return _percentile(business, "friendliness", 80) >= 65


def _value_for_money(business: BusinessCandidate) -> bool:
    if business.price_range:
        return business.price_range in ("$", "$$")
    return _percentile(business, "cost-effectiveness", 85) >= 75


def _expensive(business: BusinessCandidate) -> bool:
    return business.price_range not in ("$$$", "$$$$")


def _slow_service(business: BusinessCandidate) -> bool:
    return _percentile(business, "punctuality", 60) >= 60


DEALBREAKER_RULES: Mapping[str, Rule] = MappingProxyType({
    "trustworthiness": _trustworthiness,
    "punctuality": _punctuality,
    "friendliness": _friendliness,
    "value-for-money": _value_for_money,
    "expensive": _expensive,
    "slow-service": _slow_service,
})

# Labels match the review tags the stats job aggregates into percentiles.
DEAL_BREAKERS: tuple[DealBreaker, ...] = (
    DealBreaker(id="trustworthiness", label="Trustworthy", icon="shield-checkmark"),
    DealBreaker(id="punctuality", label="On Time", icon="time"),
    DealBreaker(id="friendliness", label="Friendly", icon="happy"),
    DealBreaker(id="value-for-money", label="Good Value", icon="cash-outline"),
)


def _passes(business: BusinessCandidate, dealbreaker_id: str) -> bool:
    rule = DEALBREAKER_RULES.get(dealbreaker_id)
    if rule is None:
        return True
    try:
        return bool(rule(business))
    except Exception:
        logger.debug("Dealbreaker %r failed on business %s, letting it through", dealbreaker_id, business.id, exc_info=True)
        return True


def filter_by_dealbreakers(
    candidates: list[BusinessCandidate],
    dealbreaker_ids: list[str] | None,
) -> list[BusinessCandidate]:
    """Drop every candidate that fails any requested rule. Unknown ids are ignored."""
    if not dealbreaker_ids:
        return candidates
    return [c for c in candidates if all(_passes(c, d) for d in dealbreaker_ids)]
