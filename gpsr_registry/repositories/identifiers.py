"""Entity identifier repository: the global (type, value) index."""

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from gpsr_registry.db.tables import EntityIdentifierRow, EntityRow
from gpsr_registry.models.common import new_uuid7, utc_now


class IdentifierRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, entity_id: UUID, type: str, value: str,
                     source_id: UUID, country_code: str | None = None,
                     is_primary: bool = False) -> EntityIdentifierRow:
        now = utc_now()
        row = EntityIdentifierRow(
            identifier_id=new_uuid7(), entity_id=entity_id, type=type,
            value=value, country_code=country_code, source_id=source_id,
            is_primary=is_primary, created_at=now, updated_at=now,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get(self, identifier_id: UUID) -> EntityIdentifierRow | None:
        return await self._session.get(EntityIdentifierRow, identifier_id)

    async def find(self, type: str, value: str) -> EntityIdentifierRow | None:
        result = await self._session.execute(
            select(EntityIdentifierRow).where(
                EntityIdentifierRow.type == type,
                EntityIdentifierRow.value == value,
            )
        )
        return result.scalar_one_or_none()

    async def clear_primary(self, entity_id: UUID, type: str) -> None:
        await self._session.execute(
            update(EntityIdentifierRow)
            .where(
                EntityIdentifierRow.entity_id == entity_id,
                EntityIdentifierRow.type == type,
                EntityIdentifierRow.is_primary.is_(True),
            )
            .values(is_primary=False, updated_at=utc_now())
            .execution_options(synchronize_session="fetch")
        )

    async def get_for_entity(self, entity_id: UUID) -> list[EntityIdentifierRow]:
        result = await self._session.execute(
            select(EntityIdentifierRow)
            .where(EntityIdentifierRow.entity_id == entity_id)
            .order_by(EntityIdentifierRow.is_primary.desc(), EntityIdentifierRow.type.asc())
        )
        return list(result.scalars().all())

    async def search(self, pattern: str, *, type: str | None = None,
                     limit: int) -> list[EntityIdentifierRow]:
        stmt = select(EntityIdentifierRow).where(
            EntityIdentifierRow.value.contains(pattern, autoescape=True)
        )
        if type is not None:
            stmt = stmt.where(EntityIdentifierRow.type == type)
        result = await self._session.execute(
            stmt.order_by(EntityIdentifierRow.value.asc()).limit(limit)
        )
        return list(result.scalars().all())

    async def find_suffix_matches(
        self, *, type: str, suffix: str, exclude_entity_id: UUID,
    ) -> list[tuple[EntityIdentifierRow, EntityRow]]:
        """Identifiers of other entities whose value contains ``suffix``."""
        result = await self._session.execute(
            select(EntityIdentifierRow, EntityRow)
            .join(EntityRow, EntityRow.entity_id == EntityIdentifierRow.entity_id)
            .where(
                EntityIdentifierRow.type == type,
                EntityIdentifierRow.value.contains(suffix, autoescape=True),
                EntityIdentifierRow.entity_id != exclude_entity_id,
            )
            .order_by(EntityIdentifierRow.created_at.asc())
        )
        return [(ident, entity) for ident, entity in result.all()]

    async def delete(self, row: EntityIdentifierRow) -> None:
        await self._session.delete(row)
        await self._session.flush()
