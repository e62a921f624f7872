"""Apply the queue/active_games schema.

Usage:
    rummyq-migrate          # Run all pending migrations
    rummyq-migrate --dry    # Show pending migrations without applying
    rummyq-migrate --print  # Print the schema SQL for manual setup
"""

import argparse
import asyncio
import logging
import sys

from rummyq.core.config import get_settings
from shared.database import DatabaseManager, PoolConfig
from shared.migrations import MigrationRunner, read_schema

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")


async def run(dry: bool) -> int:
    settings = get_settings()
    if not settings.is_remote_configured:
        print("ERROR: DATABASE_URL not set. Check rummyq/.env or environment variables.")
        return 1

    manager = DatabaseManager(
        settings.database_url, PoolConfig(max_size=2, ssl=settings.database_ssl or None)
    )
    await manager.connect()
    try:
        runner = MigrationRunner(manager.pool)
        if dry:
            pending = await runner.pending()
            print(f"Pending: {len(pending)}")
            for migration in pending:
                print(f"  -> {migration.version}")
        else:
            newly_applied = await runner.run_pending()
            print(f"Applied {len(newly_applied)} migration(s).")
    finally:
        await manager.disconnect()
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="RummyQ schema migrations")
    parser.add_argument("--dry", action="store_true", help="list pending migrations only")
    parser.add_argument("--print", dest="print_sql", action="store_true", help="print schema SQL")
    args = parser.parse_args()

    if args.print_sql:
        print(read_schema())
        return
    sys.exit(asyncio.run(run(args.dry)))


if __name__ == "__main__":
    main()
