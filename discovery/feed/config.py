from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class FeedConfig:
    fetch_timeout: float = float(os.getenv("FEED_FETCH_TIMEOUT", "5.0"))
    bucket_cap: int = 150
    default_limit: int = 20
    max_limit: int = 50
    default_radius_km: float = 10.0
    review_window_hours: int = 24
    cache_control: str = "public, s-maxage=60, stale-while-revalidate=300"
    special_cache_control: str = "public, s-maxage=900, stale-while-revalidate=1800"


DEFAULT_FEED_CONFIG = FeedConfig()
