from __future__ import annotations

import logging
from typing import Any

from supabase import create_client

from .config import DEFAULT_DATABASE_CONFIG, DatabaseConfig
from .local_store import LocalStore

logger = logging.getLogger(__name__)

_client: Any | None = None


def _build_client(config: DatabaseConfig) -> Any:
    if config.backend == "supabase":
        logger.info("Using Supabase backend at %s", config.url)
        return create_client(config.url, config.key)
    logger.info("Supabase not configured, using local store from %s", config.local_data_dir)
    return LocalStore.from_dir(config.local_data_dir)


def get_client(config: DatabaseConfig = DEFAULT_DATABASE_CONFIG) -> Any:
    """Return the process-wide database client, creating it on first call."""
    global _client
    if _client is None:
        _client = _build_client(config)
    return _client


def reset_client() -> None:
    global _client
    _client = None
