"""Statement execution on the caller's AsyncSession."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from sqlalchemy import Result, Select
    from sqlalchemy.ext.asyncio import AsyncSession


async def execute(
    session: AsyncSession, stmt: Select[Any], timeout: float | None = None
) -> Result[Any]:
    """
    Execute *stmt*, optionally bounded by *timeout* seconds.

    Cancellation and ``asyncio.TimeoutError`` propagate to the caller,
    as do storage errors.
    """
    if timeout is None:
        return await session.execute(stmt)
    return await asyncio.wait_for(session.execute(stmt), timeout)


async def fetch_dicts(
    session: AsyncSession, stmt: Select[Any], timeout: float | None = None
) -> list[dict[str, Any]]:
    result = await execute(session, stmt, timeout)
    return [dict(row) for row in result.mappings()]
