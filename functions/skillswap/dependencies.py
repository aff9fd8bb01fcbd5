"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import logging

from skillswap.config import get_settings
from skillswap.db import DbClient, InMemoryDbClient, PostgresDbClient
from skillswap.seed import seed_demo_data

logger = logging.getLogger(__name__)

_db_client: DbClient | None = None


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so records persist across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        client: DbClient = InMemoryDbClient()
        logger.info("Using in-memory storage backend")
    else:
        client = PostgresDbClient(settings.database_url)
        logger.info("Using SQL storage backend")
    if settings.seed_demo_data:
        seed_demo_data(client)
    _db_client = client
    return _db_client


def reset_db_client() -> None:
    """Drop the process-wide client; the next call to get_db_client rebuilds it."""
    global _db_client
    _db_client = None
