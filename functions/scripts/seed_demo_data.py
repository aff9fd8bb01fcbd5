"""
Seed the demo users, skills, exchanges and messages into a database.

Uses DATABASE_URL from the environment unless --database-url is given.
Running it twice is harmless; existing demo data is detected and left alone.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from skillswap.config import get_settings
from skillswap.db import PostgresDbClient
from skillswap.seed import seed_demo_data


logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed SkillSwap demo data")
    parser.add_argument(
        "--database-url",
        default=None,
        help="SQLAlchemy URL (defaults to DATABASE_URL)",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")
    database_url = args.database_url or get_settings().database_url
    if not database_url:
        logger.error("No database configured; set DATABASE_URL or pass --database-url")
        return 1

    db = PostgresDbClient(database_url)
    if seed_demo_data(db):
        logger.info("Demo data written to %s", db.engine.url.render_as_string())
    else:
        logger.info("Demo data already present")
    return 0


if __name__ == "__main__":
    sys.exit(main())
