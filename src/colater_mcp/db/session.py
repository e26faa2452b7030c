"""Async database engine and session factory.

The HTTP server uses one process-wide engine built from ``database`` settings
on first use. Tests build their own engine with ``create_engine`` and hand
the factory straight to ``create_app``.
"""

from __future__ import annotations

import structlog
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

# Registers the tables on SQLModel.metadata
import colater_mcp.models  # noqa: F401
from colater_mcp.config import get_settings

logger = structlog.get_logger()

_engine: AsyncEngine | None = None
_session_factory = None


def create_engine(url: str, *, echo: bool = False) -> AsyncEngine:
    return create_async_engine(url, echo=echo, future=True)


def make_session_factory(engine: AsyncEngine):
    """Session factory whose records stay readable after commit."""
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def _configured_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        database = get_settings().database
        _engine = create_engine(database.url, echo=database.echo)
    return _engine


def get_session_factory():
    """Session factory for the configured database, created on first call."""
    global _session_factory
    if _session_factory is None:
        _session_factory = make_session_factory(_configured_engine())
    return _session_factory


async def init_db(engine: AsyncEngine | None = None) -> None:
    """Create the api_keys and brand tables if they do not exist yet."""
    engine = engine or _configured_engine()
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info(
        "db.init",
        url=engine.url.render_as_string(hide_password=True),
        tables=sorted(SQLModel.metadata.tables),
    )


async def close_db() -> None:
    """Dispose of the configured engine. A later call recreates it."""
    global _engine, _session_factory
    if _engine is None:
        return
    await _engine.dispose()
    logger.info("db.close")
    _engine = None
    _session_factory = None
