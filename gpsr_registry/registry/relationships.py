"""Corporate structure: parent/subsidiary, M&A and representation links."""

from datetime import datetime
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gpsr_registry.audit.log import AuditLog
from gpsr_registry.config.settings import Settings, get_settings
from gpsr_registry.db.tables import EntityRow, SourceRow
from gpsr_registry.errors import NotFoundError, ValidationError
from gpsr_registry.models.common import AuditAction, RelationType, utc_now
from gpsr_registry.models.relationship import (
    EntityRelationship,
    GraphEdge,
    ParentLink,
    RelationshipInput,
)
from gpsr_registry.repositories.relationships import RelationshipRepository
from gpsr_registry.versioning.retry import raise_integrity_error

DEFAULT_MAX_PARENT_DEPTH = 10


class RelationshipService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession],
                 settings: Settings | None = None) -> None:
        self._session_factory = session_factory
        self._settings = settings or get_settings()

    async def create(self, relationship_input: RelationshipInput, *,
                     performed_by: str | None = None) -> EntityRelationship:
        """Link two existing, distinct entities.

        Raises:
            NotFoundError: Either end or the source does not exist.
            ValidationError: Both ends are the same entity.
        """
        if relationship_input.from_entity_id == relationship_input.to_entity_id:
            raise ValidationError(
                "Cannot create relationship to self",
                errors={"to_entity_id": ["must differ from from_entity_id"]},
            )
        confidence = relationship_input.confidence
        if confidence is None:
            confidence = self._settings.DEFAULT_CLAIM_CONFIDENCE
        try:
            async with self._session_factory() as session, session.begin():
                for label, entity_id in (("From entity", relationship_input.from_entity_id),
                                         ("To entity", relationship_input.to_entity_id)):
                    if await session.get(EntityRow, entity_id) is None:
                        raise NotFoundError(label, entity_id)
                source_id = relationship_input.source_id
                if source_id is not None and await session.get(SourceRow, source_id) is None:
                    raise NotFoundError("Source", source_id)
                row = await RelationshipRepository(session).create(
                    from_entity_id=relationship_input.from_entity_id,
                    to_entity_id=relationship_input.to_entity_id,
                    relation_type=relationship_input.relation_type,
                    confidence=confidence,
                    valid_from=relationship_input.valid_from,
                    valid_to=relationship_input.valid_to,
                    source_id=relationship_input.source_id,
                    notes=relationship_input.notes,
                )
                relationship = EntityRelationship.model_validate(row)
                await AuditLog.append(
                    session, action=AuditAction.RELATIONSHIP_CREATED,
                    entity_type="EntityRelationship",
                    entity_id=relationship.relationship_id, new=relationship,
                    performed_by=performed_by,
                )
        except IntegrityError as exc:
            raise_integrity_error(exc, resource="Entity")
        return relationship

    async def get_relations_from(self, entity_id: UUID,
                                 relation_type: RelationType | None = None,
                                 ) -> list[EntityRelationship]:
        async with self._session_factory() as session:
            pairs = await RelationshipRepository(session).get_from(entity_id, relation_type)
        return [EntityRelationship.model_validate(rel) for rel, _ in pairs]

    async def get_relations_to(self, entity_id: UUID,
                               relation_type: RelationType | None = None,
                               ) -> list[EntityRelationship]:
        async with self._session_factory() as session:
            pairs = await RelationshipRepository(session).get_to(entity_id, relation_type)
        return [EntityRelationship.model_validate(rel) for rel, _ in pairs]

    async def get_corporate_graph(self, entity_id: UUID) -> dict[RelationType, list[GraphEdge]]:
        """Active relations around an entity, grouped by relation type.

        ``direction`` is ``"to"`` for edges this entity points at and
        ``"from"`` for edges pointing at it.
        """
        graph: dict[RelationType, list[GraphEdge]] = {}
        async with self._session_factory() as session:
            repo = RelationshipRepository(session)
            outgoing = await repo.get_from(entity_id)
            incoming = await repo.get_to(entity_id)
        for rel, other in outgoing:
            graph.setdefault(RelationType(rel.relation_type), []).append(GraphEdge(
                entity_id=other.entity_id, entity_name=other.normalized_name,
                direction="to", confidence=rel.confidence,
            ))
        for rel, other in incoming:
            graph.setdefault(RelationType(rel.relation_type), []).append(GraphEdge(
                entity_id=other.entity_id, entity_name=other.normalized_name,
                direction="from", confidence=rel.confidence,
            ))
        return graph

    async def end(self, relationship_id: UUID, end_date: datetime | None = None, *,
                  performed_by: str | None = None) -> EntityRelationship:
        async with self._session_factory() as session, session.begin():
            row = await RelationshipRepository(session).get(relationship_id)
            if row is None:
                raise NotFoundError("Relationship", relationship_id)
            before = EntityRelationship.model_validate(row)
            row.valid_to = end_date or utc_now()
            row.is_active = False
            await session.flush()
            after = EntityRelationship.model_validate(row)
            await AuditLog.append(
                session, action=AuditAction.RELATIONSHIP_ENDED,
                entity_type="EntityRelationship", entity_id=relationship_id,
                previous=before, new=after, performed_by=performed_by,
            )
        return after

    async def get_parent_chain(self, entity_id: UUID,
                               max_depth: int = DEFAULT_MAX_PARENT_DEPTH) -> list[ParentLink]:
        """Walk active SUBSIDIARY_OF links upwards, nearest parent first."""
        chain: list[ParentLink] = []
        seen = {entity_id}
        current = entity_id
        async with self._session_factory() as session:
            repo = RelationshipRepository(session)
            while len(chain) < max_depth:
                parents = await repo.get_from(current, RelationType.SUBSIDIARY_OF)
                if not parents:
                    break
                _, parent = parents[0]
                if parent.entity_id in seen:
                    # cycle in the data; stop rather than loop
                    break
                seen.add(parent.entity_id)
                chain.append(ParentLink(
                    entity_id=parent.entity_id, entity_name=parent.normalized_name,
                    level=len(chain) + 1,
                ))
                current = parent.entity_id
        return chain
