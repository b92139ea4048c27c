"""Entity relationship repository."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gpsr_registry.db.tables import EntityRelationshipRow, EntityRow
from gpsr_registry.models.common import new_uuid7, utc_now


class RelationshipRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, from_entity_id: UUID, to_entity_id: UUID,
                     relation_type: str, confidence: int,
                     valid_from: datetime | None = None,
                     valid_to: datetime | None = None,
                     source_id: UUID | None = None,
                     notes: str | None = None) -> EntityRelationshipRow:
        now = utc_now()
        row = EntityRelationshipRow(
            relationship_id=new_uuid7(), from_entity_id=from_entity_id,
            to_entity_id=to_entity_id, relation_type=relation_type,
            valid_from=valid_from or now, valid_to=valid_to,
            source_id=source_id, confidence=confidence, notes=notes,
            is_active=True, created_at=now,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get(self, relationship_id: UUID) -> EntityRelationshipRow | None:
        return await self._session.get(EntityRelationshipRow, relationship_id)

    async def get_from(self, entity_id: UUID, relation_type: str | None = None,
                       ) -> list[tuple[EntityRelationshipRow, EntityRow]]:
        """Active outgoing relations joined with the target entity."""
        stmt = (
            select(EntityRelationshipRow, EntityRow)
            .join(EntityRow, EntityRow.entity_id == EntityRelationshipRow.to_entity_id)
            .where(
                EntityRelationshipRow.from_entity_id == entity_id,
                EntityRelationshipRow.is_active.is_(True),
            )
        )
        if relation_type is not None:
            stmt = stmt.where(EntityRelationshipRow.relation_type == relation_type)
        result = await self._session.execute(
            stmt.order_by(EntityRelationshipRow.relation_type.asc(),
                          EntityRelationshipRow.created_at.asc())
        )
        return [(rel, ent) for rel, ent in result.all()]

    async def get_to(self, entity_id: UUID, relation_type: str | None = None,
                     ) -> list[tuple[EntityRelationshipRow, EntityRow]]:
        """Active incoming relations joined with the source entity."""
        stmt = (
            select(EntityRelationshipRow, EntityRow)
            .join(EntityRow, EntityRow.entity_id == EntityRelationshipRow.from_entity_id)
            .where(
                EntityRelationshipRow.to_entity_id == entity_id,
                EntityRelationshipRow.is_active.is_(True),
            )
        )
        if relation_type is not None:
            stmt = stmt.where(EntityRelationshipRow.relation_type == relation_type)
        result = await self._session.execute(
            stmt.order_by(EntityRelationshipRow.relation_type.asc(),
                          EntityRelationshipRow.created_at.asc())
        )
        return [(rel, ent) for rel, ent in result.all()]
