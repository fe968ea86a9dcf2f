#!/usr/bin/env python3
"""
Database setup script for the content pipeline.

Creates the target database (if missing) and the articles and pages tables.
Reads the connection string from PSEO_DATABASE_URL or DATABASE_URL.

Usage:
    python scripts/setup_db.py
"""
import asyncio
import sys
from pathlib import Path

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import asyncpg
from sqlalchemy.engine import make_url

from pseo_shared.database import DATABASE_URL, engine, init_db


async def create_database():
    """Create the configured database if it doesn't exist."""
    url = make_url(DATABASE_URL)
    database = url.database

    # Connect to the default postgres database to issue CREATE DATABASE
    conn = await asyncpg.connect(
        user=url.username,
        password=url.password,
        host=url.host or "localhost",
        port=url.port or 5432,
        database="postgres",
    )

    try:
        exists = await conn.fetchval(
            "SELECT 1 FROM pg_database WHERE datname = $1",
            database,
        )

        if not exists:
            await conn.execute(f'CREATE DATABASE "{database}"')
            print(f"✓ Created database: {database}")
        else:
            print(f"✓ Database already exists: {database}")

    finally:
        await conn.close()


async def create_tables():
    """Create all tables using SQLAlchemy models."""
    from pseo_shared.models import Base

    await init_db()
    await engine.dispose()

    print("✓ Created tables:")
    for table_name in Base.metadata.tables.keys():
        print(f"  - {table_name}")


async def main():
    print("=" * 60)
    print("PSEO CONTENT DATABASE SETUP")
    print("=" * 60)
    print()

    print("1. Creating database...")
    await create_database()
    print()

    print("2. Creating tables...")
    await create_tables()
    print()

    print("=" * 60)
    print("✓ Setup complete!")
    print()
    print(f"Connection URL: {make_url(DATABASE_URL).render_as_string(hide_password=True)}")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
