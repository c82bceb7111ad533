# swipematch/scripts/init_db.py

import argparse
import asyncio

from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine

from swipematch.core.config import settings
from swipematch.log.logging import logger
from swipematch.models.tables import Base


def sqlalchemy_url(database_url: str) -> str:
    """Point a libpq-style URL at SQLAlchemy's psycopg async driver."""
    if database_url.startswith("postgresql+"):
        return database_url
    for prefix in ("postgresql://", "postgres://"):
        if database_url.startswith(prefix):
            return "postgresql+psycopg://" + database_url[len(prefix):]
    raise ValueError("DATABASE_URL must be a postgresql:// URL")


async def init_database(drop: bool = False) -> None:
    """
    Create all tables asynchronously.

    Args:
        drop: Drop existing tables first
    """
    engine = create_async_engine(sqlalchemy_url(settings.database_url), echo=False)
    try:
        logger.info("Starting database initialization...")
        async with engine.begin() as conn:
            if drop:
                logger.info("Dropping all existing tables...")
                await conn.run_sync(Base.metadata.drop_all)
            logger.info("Creating all tables...")
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database initialized successfully.")
    except Exception as e:
        logger.exception(
            f"An error occurred while initializing the database: {str(e)}", error=str(e)
        )
        raise
    finally:
        await engine.dispose()


async def verify_database() -> None:
    """Check that every engine table exists."""
    engine = create_async_engine(sqlalchemy_url(settings.database_url), echo=False)
    try:
        async with engine.connect() as conn:
            result = await conn.execute(
                text(
                    """
                    SELECT table_name
                    FROM information_schema.tables
                    WHERE table_schema = 'public'
                    """
                )
            )
            existing = {row[0] for row in result.fetchall()}

        missing = sorted(set(Base.metadata.tables) - existing)
        if missing:
            logger.error("Missing tables: {missing}", missing=missing)
            raise RuntimeError(f"Missing tables: {', '.join(missing)}")
        logger.info("Database verification completed successfully.", tables=sorted(existing))
    finally:
        await engine.dispose()


async def main(drop: bool = False):
    logger.info("=== Starting Database Setup ===")
    await init_database(drop=drop)
    await verify_database()
    logger.info("=== Database Setup Completed ===")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create the swipe match tables")
    parser.add_argument("--drop", action="store_true", help="drop existing tables first")
    args = parser.parse_args()
    asyncio.run(main(drop=args.drop))
