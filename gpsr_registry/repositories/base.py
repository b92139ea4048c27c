"""Shared helpers for registry repositories.

Repositories call add()/flush()/execute() only, never commit().
Services own the transaction boundary (one session per unit of work).
"""

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession


async def count_rows(session: AsyncSession, stmt: Select) -> int:
    """Total row count of ``stmt`` before limit/offset are applied."""
    result = await session.execute(
        select(func.count()).select_from(stmt.order_by(None).subquery())
    )
    return int(result.scalar_one())


async def fetch_page(session: AsyncSession, stmt: Select, *,
                     limit: int, offset: int = 0) -> tuple[list, int]:
    """Execute ``stmt`` as one page and return ``(rows, total)``."""
    total = await count_rows(session, stmt)
    result = await session.execute(stmt.limit(limit).offset(offset))
    return list(result.scalars().all()), total
