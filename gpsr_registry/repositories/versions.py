"""Aggregate and version repositories shared by Entity and Brand.

Both aggregates follow the same shape: a mutable head row carrying
``current_version_id`` and an append-only version table keyed by
``(<parent>_id, version_number)``. The row classes and key column names are
passed in so one implementation serves both.
"""

from collections.abc import Sequence
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from gpsr_registry.models.common import new_uuid7, utc_now
from gpsr_registry.repositories.base import fetch_page


class AggregateRepository:
    def __init__(self, session: AsyncSession, row_cls: type, id_column: str) -> None:
        self._session = session
        self._row_cls = row_cls
        self._id_column = id_column

    async def create(self, *, fields: dict[str, Any]) -> Any:
        now = utc_now()
        row = self._row_cls(
            **{self._id_column: new_uuid7()},
            **fields,
            is_active=True,
            created_at=now, updated_at=now,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get(self, aggregate_id: UUID) -> Any | None:
        return await self._session.get(self._row_cls, aggregate_id)

    async def list_page(self, *, search_column: str, search: str | None = None,
                        filters: dict[str, Any] | None = None,
                        conditions: Sequence[Any] = (),
                        limit: int, offset: int = 0) -> tuple[list[Any], int]:
        search_col = getattr(self._row_cls, search_column)
        stmt = select(self._row_cls).order_by(search_col.asc())
        if search:
            stmt = stmt.where(
                func.lower(search_col).contains(search.strip().lower(), autoescape=True)
            )
        for column, value in (filters or {}).items():
            if value is not None:
                stmt = stmt.where(getattr(self._row_cls, column) == value)
        if conditions:
            stmt = stmt.where(*conditions)
        return await fetch_page(self._session, stmt, limit=limit, offset=offset)


class VersionRepository:
    def __init__(self, session: AsyncSession, version_cls: type, parent_column: str) -> None:
        self._session = session
        self._version_cls = version_cls
        self._parent_column = parent_column

    @property
    def _parent(self):
        return getattr(self._version_cls, self._parent_column)

    async def max_version_number(self, parent_id: UUID) -> int:
        """Highest version number stored for ``parent_id`` (0 when none)."""
        result = await self._session.execute(
            select(func.max(self._version_cls.version_number)).where(
                self._parent == parent_id
            )
        )
        return result.scalar_one_or_none() or 0

    async def create(self, *, parent_id: UUID, source_id: UUID, version_number: int,
                     original_data: dict, normalized_data: dict,
                     change_note: str | None = None) -> Any:
        row = self._version_cls(
            version_id=new_uuid7(),
            **{self._parent_column: parent_id},
            source_id=source_id, version_number=version_number,
            original_data=original_data, normalized_data=normalized_data,
            change_note=change_note, captured_at=utc_now(),
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get(self, version_id: UUID) -> Any | None:
        return await self._session.get(self._version_cls, version_id)

    async def list_for_parent(self, parent_id: UUID) -> list[Any]:
        """All versions, newest first."""
        result = await self._session.execute(
            select(self._version_cls)
            .where(self._parent == parent_id)
            .order_by(self._version_cls.version_number.desc())
        )
        return list(result.scalars().all())
