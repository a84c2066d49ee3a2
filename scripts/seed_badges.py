"""Seed the default badge catalog into PostgreSQL.

Run with:
    DATABASE_URL=postgresql+asyncpg://... python scripts/seed_badges.py

Does nothing when the badges table already has rows.  Without
DATABASE_URL the service seeds its in-memory store at startup, so this
script is only for database deployments.
"""

from __future__ import annotations

import asyncio
import sys

from app.core.config import SETTINGS
from app.core.logging import setup_logging
from app.db.engine import async_session_factory, engine
from app.repos.pg_academy_repo import PgAcademyRepo
from app.services import badge_service


async def main() -> int:
    if async_session_factory is None or engine is None:
        print("DATABASE_URL is not set; nothing to seed")
        return 1

    async with async_session_factory() as session:
        added = await badge_service.seed_default_badges(PgAcademyRepo(session))
        await session.commit()
    await engine.dispose()

    print(f"Seeded {added} badges" if added else "Badge catalog already populated")
    return 0


if __name__ == "__main__":
    setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
    sys.exit(asyncio.run(main()))
