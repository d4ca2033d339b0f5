"""
Blends the three ranked buckets into one feed page.

The primary pass interleaves in rounds of two personal picks, one top-rated
pick and one explore pick, capping how many businesses share a diversity key
(sub-interest, else category).  Each bucket keeps its own forward-only read
cursor; a candidate passed over for hitting the cap is parked rather than
dropped.  Once the rounds run out, an overflow pass tops the page up from each
bucket in turn (parked candidates first, then the unread tail) ignoring the
caps.  Buckets are read in the fetcher's order and never re-sorted.
"""
from __future__ import annotations

from collections import deque
from typing import Callable, Sequence, TypeVar

from .models import BusinessCandidate

T = TypeVar("T")

PERSONAL = "personal"
TOP_RATED = "top"
EXPLORE = "explore"

# Max picks per diversity key during the primary pass.
DIVERSITY_CAPS: dict[str, int] = {PERSONAL: 2, TOP_RATED: 3, EXPLORE: 2}

PERSONAL_PICKS_PER_ROUND = 2


def diversity_key(business: BusinessCandidate) -> str:
    return business.sub_interest_id or business.category or "uncategorized"


class _Blend:
    def __init__(self, buckets: dict[str, Sequence[BusinessCandidate]], limit: int) -> None:
        self.buckets = buckets
        self.cursors = {name: 0 for name in buckets}
        # Candidates passed over for being at their diversity cap, in bucket order.
        self.deferred: dict[str, deque[BusinessCandidate]] = {name: deque() for name in buckets}
        self.limit = limit
        self.result: list[BusinessCandidate] = []
        self.seen: set[str] = set()
        self.key_counts: dict[str, int] = {}

    @property
    def full(self) -> bool:
        return len(self.result) >= self.limit

    def has_remaining(self) -> bool:
        return any(self.cursors[name] < len(data) for name, data in self.buckets.items())

    def _take(self, business: BusinessCandidate) -> None:
        key = diversity_key(business)
        self.seen.add(business.id)
        self.key_counts[key] = self.key_counts.get(key, 0) + 1
        self.result.append(business)

    def pull(self, bucket: str, allow_overflow: bool = False) -> bool:
        """Admit the next eligible candidate from ``bucket``; ``False`` once it runs dry."""
        if allow_overflow:
            deferred = self.deferred[bucket]
            while deferred:
                business = deferred.popleft()
                if business.id not in self.seen:
                    self._take(business)
                    return True

        data = self.buckets[bucket]
        while self.cursors[bucket] < len(data):
            business = data[self.cursors[bucket]]
            self.cursors[bucket] += 1
            if business.id in self.seen:
                continue
            if not allow_overflow and self.key_counts.get(diversity_key(business), 0) >= DIVERSITY_CAPS[bucket]:
                self.deferred[bucket].append(business)
                continue
            self._take(business)
            return True
        return False


def mix_businesses(
    personal: Sequence[BusinessCandidate],
    top_rated: Sequence[BusinessCandidate],
    explore: Sequence[BusinessCandidate],
    limit: int,
) -> list[BusinessCandidate]:
    if limit <= 0:
        return []

    blend = _Blend({PERSONAL: personal, TOP_RATED: top_rated, EXPLORE: explore}, limit)

    while not blend.full and blend.has_remaining():
        for _ in range(PERSONAL_PICKS_PER_ROUND):
            if blend.full or not blend.pull(PERSONAL):
                break
        if not blend.full:
            blend.pull(TOP_RATED)
        if not blend.full:
            blend.pull(EXPLORE)

    for bucket in (PERSONAL, TOP_RATED, EXPLORE):
        while not blend.full and blend.pull(bucket, allow_overflow=True):
            pass

    return blend.result[:limit]


def _default_category_key(item: object) -> str:
    for attr in ("sub_interest_id", "category"):
        value = item.get(attr) if isinstance(item, dict) else getattr(item, attr, None)
        if value:
            return str(value)
    return "miscellaneous"


def diversify_trending(
    items: Sequence[T],
    limit: int,
    key: Callable[[T], str | None] | None = None,
) -> list[T]:
    """Take the first item of each category in input order, then backfill in input order."""
    limit = max(0, int(limit))
    if limit == 0 or not items:
        return []
    if len(items) <= limit:
        return list(items)

    get_key = key or _default_category_key
    used_categories: set[str] = set()
    picked: set[int] = set()
    result: list[T] = []

    for index, item in enumerate(items):
        category = str(get_key(item) or "miscellaneous").strip().lower() or "miscellaneous"
        if category in used_categories:
            continue
        used_categories.add(category)
        picked.add(index)
        result.append(item)
        if len(result) >= limit:
            return result

    for index, item in enumerate(items):
        if index in picked:
            continue
        result.append(item)
        if len(result) >= limit:
            break

    return result
