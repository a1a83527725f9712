"""
SQLAlchemy Engine Construction

Builds the connection string from configuration, turns it into an async
driver URL and creates the engine and session factory used by the API.
"""

import os
from typing import Any, Dict, Optional, Tuple
from urllib.parse import parse_qsl, quote, urlencode, urlsplit, urlunsplit

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
    AsyncEngine
)

from .models import Base
from .pool import InstrumentedAsyncPool


def build_connection_string(
    username: str,
    password: str,
    host: str,
    port: str,
    database: str,
    schema: str,
) -> str:
    """Build a libpq-style PostgreSQL connection string."""
    return (
        f"postgres://{quote(username, safe='')}:{quote(password, safe='')}"
        f"@{host}:{port}/{database}?sslmode=disable&search_path={schema}"
    )


def to_async_url(url: str, schema: Optional[str] = None) -> Tuple[str, Dict[str, Any]]:
    """
    Convert a postgres:// connection string to a postgresql+asyncpg:// URL.

    asyncpg rejects libpq query parameters, so ``sslmode`` and ``search_path``
    are removed from the URL and returned as asyncpg connect arguments.
    ``schema`` is only used when the URL carries no search_path.
    Non-PostgreSQL URLs are returned unchanged.

    Returns:
        (url, connect_args)
    """
    parts = urlsplit(url)
    if parts.scheme not in ("postgres", "postgresql", "postgresql+asyncpg"):
        return url, {}

    connect_args: Dict[str, Any] = {}
    params = []
    for key, value in parse_qsl(parts.query, keep_blank_values=True):
        if key == "sslmode":
            if value == "disable":
                connect_args["ssl"] = False
        elif key == "search_path":
            if value:
                connect_args["server_settings"] = {"search_path": value}
        else:
            params.append((key, value))

    if schema and "server_settings" not in connect_args:
        connect_args["server_settings"] = {"search_path": schema}

    url = urlunsplit(
        ("postgresql+asyncpg", parts.netloc, parts.path, urlencode(params), parts.fragment)
    )
    return url, connect_args


def create_engine_for_url(
    url: str,
    schema: Optional[str] = None,
    pool_size: int = 10,
    max_overflow: int = 20,
    pool_recycle: int = 3600,
) -> AsyncEngine:
    """
    Create the async engine for a database URL.

    PostgreSQL engines get the instrumented queue pool so pool statistics can
    be reported by the health check. Other backends (SQLite in tests) keep
    the dialect's default pool.

    Args:
        url: Connection string (postgres://, postgresql+asyncpg:// or any SQLAlchemy URL)
        schema: search_path used when the URL does not set one
        pool_size: Number of connections to keep in the pool
        max_overflow: Maximum connections above pool_size during bursts
        pool_recycle: Recycle connections after this many seconds
    """
    url, connect_args = to_async_url(url, schema=schema)
    echo = os.getenv("DATABASE_ECHO", "false").lower() == "true"

    if make_url(url).get_backend_name() != "postgresql":
        return create_async_engine(url, echo=echo)

    return create_async_engine(
        url,
        echo=echo,
        poolclass=InstrumentedAsyncPool,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=True,  # Verify connections before use
        pool_recycle=pool_recycle,
        connect_args=connect_args,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Create the session factory for an engine.

    Returns:
        async_sessionmaker for creating sessions
    """
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    """
    Create the tables of all models if they don't exist.

    This is schema synchronisation, not a migration tool: existing tables are
    left untouched.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
