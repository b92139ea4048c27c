"""Entity role repository."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gpsr_registry.db.tables import EntityRoleRow
from gpsr_registry.models.common import new_uuid7, utc_now


class EntityRoleRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, entity_id: UUID, role_type: str, market_context: str,
                     product_scope: str | None = None,
                     valid_from: datetime | None = None,
                     valid_to: datetime | None = None) -> EntityRoleRow:
        now = utc_now()
        row = EntityRoleRow(
            role_id=new_uuid7(), entity_id=entity_id, role_type=role_type,
            market_context=market_context, product_scope=product_scope,
            valid_from=valid_from or now, valid_to=valid_to,
            is_active=True, created_at=now,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get_for_entity(self, entity_id: UUID,
                             active_only: bool = True) -> list[EntityRoleRow]:
        stmt = select(EntityRoleRow).where(EntityRoleRow.entity_id == entity_id)
        if active_only:
            stmt = stmt.where(EntityRoleRow.is_active.is_(True))
        result = await self._session.execute(stmt.order_by(EntityRoleRow.created_at.asc()))
        return list(result.scalars().all())
