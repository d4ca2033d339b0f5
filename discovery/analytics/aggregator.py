from __future__ import annotations

from collections import Counter
from typing import Any

BUCKET_NAMES = ("personalMatches", "topRated", "explore")


def compute_analytics(events: list[dict[str, Any]]) -> dict[str, Any]:
    feeds = [e for e in events if e["type"] == "feed"]
    total = len(feeds)

    # Average response time
    times = [f["response_time_ms"] for f in feeds if "response_time_ms" in f]
    avg_time = round(sum(times) / len(times), 1) if times else 0.0

    strategy_counter: Counter[str] = Counter(f.get("strategy", "standard") for f in feeds)

    # Bucket sizes only exist for mixed feeds
    mixed = [f for f in feeds if f.get("buckets")]
    avg_buckets = {
        name: round(sum(f["buckets"].get(name, 0) for f in mixed) / len(mixed), 1) if mixed else 0.0
        for name in BUCKET_NAMES
    }
    all_buckets_empty = sum(
        1 for f in mixed if not any(f["buckets"].get(name, 0) for name in BUCKET_NAMES)
    )

    category_counter: Counter[str] = Counter()
    for f in feeds:
        if f.get("category"):
            category_counter[f["category"]] += 1
    top_categories = [{"name": n, "count": c} for n, c in category_counter.most_common(10)]

    dealbreaker_counter: Counter[str] = Counter()
    for f in feeds:
        for d in f.get("dealbreakers", []) or []:
            dealbreaker_counter[d] += 1

    return {
        "total_feeds": total,
        "avg_response_time_ms": avg_time,
        "strategies": dict(strategy_counter),
        "empty_feeds": sum(1 for f in feeds if f.get("count", 0) == 0),
        "mixed_feed_buckets": {
            "avg_sizes": avg_buckets,
            "all_empty": all_buckets_empty,
        },
        "top_categories": top_categories,
        "dealbreaker_usage": dict(dealbreaker_counter),
        "authenticated_rate": round(
            sum(1 for f in feeds if f.get("authenticated")) / total * 100, 1
        ) if total else 0.0,
    }
