"""Shared fixtures: a throwaway SQLite database per test."""

from __future__ import annotations

import pytest
from sqlmodel import SQLModel

from colater_mcp.db import create_engine, make_session_factory


@pytest.fixture
async def engine(tmp_path):
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'colater-test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)
