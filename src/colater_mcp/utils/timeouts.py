"""Deadlines for data-store calls."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from colater_mcp.errors import UpstreamUnavailableError


@asynccontextmanager
async def store_deadline(timeout: float | None, operation: str) -> AsyncIterator[None]:
    """Bound the enclosed block; overrunning raises UpstreamUnavailableError.

    ``timeout=None`` leaves the block unbounded.
    """
    if timeout is None:
        yield
        return
    try:
        async with asyncio.timeout(timeout):
            yield
    except TimeoutError as e:
        raise UpstreamUnavailableError(
            f"{operation} timed out after {timeout:g}s",
            details={"timeout": timeout},
        ) from e
