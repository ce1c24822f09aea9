"""Engine and session factory for the crm schema.

Settings come from the environment (a local .env is loaded first):
DATABASE_URL is required and must use postgresql+asyncpg; DB_POOL_SIZE,
DB_MAX_OVERFLOW, DB_POOL_TIMEOUT and DB_ECHO tune the pool.

Repositories never commit. A get_db() block is one transaction: every
repository call inside it commits together or not at all.
"""
import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from dotenv import load_dotenv
from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from db.errors import RepositoryError

logger = logging.getLogger(__name__)

load_dotenv()

DRIVER = "postgresql+asyncpg"


def parse_database_url(raw: Optional[str]) -> URL:
    """Return raw as a URL, refusing a missing value or a non-asyncpg driver."""
    if not raw:
        raise RuntimeError(
            "DATABASE_URL is not set. Copy .env.example to .env and point it at PostgreSQL."
        )
    url = make_url(raw)
    if url.drivername != DRIVER:
        raise RuntimeError(
            f"DATABASE_URL must use the {DRIVER!r} driver, got {url.drivername!r} "
            f"(e.g. {DRIVER}://parley:secret@localhost:5432/parley_crm)"
        )
    return url


def pool_settings(env=os.environ) -> dict:
    """Engine keyword arguments read from the DB_* variables."""
    try:
        return {
            "pool_size": int(env.get("DB_POOL_SIZE", "5")),
            "max_overflow": int(env.get("DB_MAX_OVERFLOW", "10")),
            "pool_timeout": int(env.get("DB_POOL_TIMEOUT", "30")),
            "echo": env.get("DB_ECHO", "false").strip().lower() in ("1", "true", "yes"),
        }
    except ValueError as exc:
        raise RuntimeError(f"Invalid database pool setting: {exc}") from exc


engine = create_async_engine(
    parse_database_url(os.environ.get("DATABASE_URL")),
    pool_pre_ping=True,
    **pool_settings(),
)

# expire_on_commit=False: rows handed back by repositories stay readable
# after the get_db() block has committed.
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@asynccontextmanager
async def get_db() -> AsyncIterator[AsyncSession]:
    """Yield a session; commit on a clean exit, roll back and re-raise otherwise.

        async with get_db() as session:
            await groups_repo.update_user_groups(session, user_id, group_ids, org_id)
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception as exc:
            await session.rollback()
            if isinstance(exc, RepositoryError):
                logger.info("Transaction rolled back: %s", exc)
            else:
                logger.exception("Transaction rolled back on unexpected error")
            raise


async def dispose_engine() -> None:
    """Close pooled connections; call once at shutdown."""
    await engine.dispose()
