"""Script to create database tables and the default accounts."""

import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from docarchive.infrastructure.database.session import create_tables, local_session  # noqa: E402
from docarchive.infrastructure.logging import get_logger  # noqa: E402
from docarchive.modules.user.seed import seed_default_users  # noqa: E402

logger = get_logger(__name__)


async def main(seed: bool) -> None:
    """Create database tables, then optionally the default accounts."""
    logger.info("Creating database tables...")
    await create_tables()
    logger.info("Database tables created")

    if seed:
        async with local_session() as db:
            users = await seed_default_users(db)
        logger.info(f"Default accounts ensured: {', '.join(u.email for u in users)}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--no-seed", action="store_true", help="Skip creating the default accounts")
    args = parser.parse_args()

    try:
        asyncio.run(main(seed=not args.no_seed))
    except Exception as e:
        logger.error(f"Error creating database tables: {e}", exc_info=True)
        sys.exit(1)
