"""Schema migrations for the queue and active_games tables."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import asyncpg

logger = logging.getLogger(__name__)

VERSIONS_DIR = Path(__file__).resolve().parent / "versions"

TRACKING_TABLE = "schema_migrations"


@dataclass(frozen=True)
class Migration:
    """One ``NNN_description.sql`` file; ``version`` is the file stem."""

    version: str
    path: Path

    @property
    def sql(self) -> str:
        return self.path.read_text(encoding="utf-8").strip()


def discover(migrations_dir: Path | None = None) -> list[Migration]:
    """Migration files in apply order (the NNN_ prefix sorts them)."""
    migrations_dir = migrations_dir or VERSIONS_DIR
    return [Migration(p.stem, p) for p in sorted(migrations_dir.glob("*.sql"))]


def read_schema(migrations_dir: Path | None = None) -> str:
    """Every migration concatenated into one script for manual setup."""
    return "\n".join(f"-- {m.path.name}\n{m.sql}\n" for m in discover(migrations_dir))


class MigrationRunner:
    """Applies each migration once, recording it in ``schema_migrations``."""

    def __init__(self, pool: asyncpg.Pool, migrations_dir: Path | None = None) -> None:
        self.pool = pool
        self.migrations_dir = migrations_dir

    async def applied_versions(self) -> set[str]:
        async with self.pool.acquire() as conn:
            await conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {TRACKING_TABLE} (
                    version    TEXT PRIMARY KEY,
                    applied_at TIMESTAMPTZ DEFAULT NOW()
                )
                """
            )
            rows = await conn.fetch(f"SELECT version FROM {TRACKING_TABLE}")  # noqa: S608
        return {row["version"] for row in rows}

    async def pending(self) -> list[Migration]:
        applied = await self.applied_versions()
        return [m for m in discover(self.migrations_dir) if m.version not in applied]

    async def run_pending(self) -> list[str]:
        """Apply what is pending, each in its own transaction; return the versions."""
        done: list[str] = []
        for migration in await self.pending():
            logger.info(f"Applying migration {migration.version}")
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    await conn.execute(migration.sql)
                    await conn.execute(
                        f"INSERT INTO {TRACKING_TABLE} (version) VALUES ($1)",
                        migration.version,
                    )
            done.append(migration.version)

        if done:
            logger.info(f"Applied {len(done)} migration(s): {', '.join(done)}")
        else:
            logger.info("Queue schema is up to date")
        return done
