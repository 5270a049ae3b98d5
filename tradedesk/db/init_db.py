# File: tradedesk/db/init_db.py
"""
Database initialization script.

Creates the TradeDesk schema. Run with ``--reset`` to drop and recreate
every table:

    python -m tradedesk.db.init_db --reset
"""

import argparse
import logging
import sys

from tradedesk.core.config import settings
from tradedesk.db.session import init_db

logger = logging.getLogger(__name__)


def main(argv=None) -> int:
    """Run database initialization."""
    parser = argparse.ArgumentParser(description="Initialize the TradeDesk database")
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Drop all tables before creating them",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    logger.info("Initializing database")
    if not init_db(reset=args.reset):
        logger.error("Database initialization failed")
        return 1
    logger.info("Database initialized")
    return 0


if __name__ == "__main__":
    sys.exit(main())
