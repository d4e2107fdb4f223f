"""
create_tables.py
----------------
One-shot script to create the users, developers, chat_assignments and
whatsapp_sessions tables. For production migrations, use Alembic instead.

Usage:
    python create_tables.py           # create missing tables
    python create_tables.py --reset   # drop everything first (destroys data)
"""

import argparse
import asyncio

from wadesk.core.config import settings
from wadesk.db.session import engine
from wadesk.models import Base  # Imports all models so metadata is populated


async def create_all_tables(reset: bool = False) -> None:
    async with engine.begin() as conn:
        if reset:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()
    print(f"Tables ready on {settings.DATABASE_URL.split('@')[-1]}: "
          f"{', '.join(sorted(Base.metadata.tables))}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create the database schema")
    parser.add_argument("--reset", action="store_true", help="drop all tables first")
    args = parser.parse_args()
    asyncio.run(create_all_tables(reset=args.reset))
