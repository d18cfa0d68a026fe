"""Database engines and request-scoped sessions.

The billing writes run on the sync engine (one transaction per save); the
statement queries run on the async engine. Both point at DATABASE_URL.
"""

from typing import AsyncGenerator, Generator

from sqlalchemy import Engine, create_engine
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from leasebill.services.config import load_config

ASYNC_DRIVERS = {
    "sqlite:///": "sqlite+aiosqlite:///",
    "postgresql://": "postgresql+asyncpg://",
}


def async_url(database_url: str) -> str:
    """Same database, addressed through its async driver."""
    for prefix, async_prefix in ASYNC_DRIVERS.items():
        if database_url.startswith(prefix):
            return database_url.replace(prefix, async_prefix, 1)
    return database_url


def create_engines(database_url: str) -> tuple[Engine, AsyncEngine]:
    """Sync and async engine for database_url.

    SQLite shares a single connection per engine (StaticPool); other databases
    get a pre-pinged connection pool.
    """
    if database_url.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}
    else:
        options = {"pool_pre_ping": True}
    return (
        create_engine(database_url, **options),
        create_async_engine(async_url(database_url), **options),
    )


DATABASE_URL = load_config().database_url
engine, async_engine = create_engines(DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
AsyncSessionLocal = async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


def get_db() -> Generator[Session, None, None]:
    """Sync session for one request; closed afterwards."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Async session for one request."""
    async with AsyncSessionLocal() as session:
        yield session


__all__ = [
    "AsyncSessionLocal",
    "SessionLocal",
    "async_engine",
    "async_url",
    "create_engines",
    "engine",
    "get_async_session",
    "get_db",
]
