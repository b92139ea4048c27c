"""Source (provenance) repository."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gpsr_registry.db.tables import SourceRow
from gpsr_registry.models.common import new_uuid7, utc_now
from gpsr_registry.repositories.base import fetch_page


class SourceRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, source_type: str, source_identifier: str | None = None,
                     source_name: str | None = None, description: str | None = None,
                     source_url: str | None = None,
                     trust_note: str | None = None) -> SourceRow:
        row = SourceRow(
            source_id=new_uuid7(), source_type=source_type,
            source_identifier=source_identifier, source_name=source_name,
            description=description, source_url=source_url,
            trust_note=trust_note, created_at=utc_now(),
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get(self, source_id: UUID) -> SourceRow | None:
        return await self._session.get(SourceRow, source_id)

    async def find_by_identifier(self, source_type: str,
                                 source_identifier: str) -> SourceRow | None:
        result = await self._session.execute(
            select(SourceRow).where(
                SourceRow.source_type == source_type,
                SourceRow.source_identifier == source_identifier,
            )
        )
        return result.scalar_one_or_none()

    async def list_page(self, *, source_type: str | None = None,
                        limit: int, offset: int = 0) -> tuple[list[SourceRow], int]:
        stmt = select(SourceRow).order_by(SourceRow.created_at.desc())
        if source_type is not None:
            stmt = stmt.where(SourceRow.source_type == source_type)
        return await fetch_page(self._session, stmt, limit=limit, offset=offset)
