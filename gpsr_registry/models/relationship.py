"""Corporate-structure relationships between entities."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from gpsr_registry.models.common import Confidence, RegistryBase, RelationType, UTCTimestamp


class RelationshipInput(RegistryBase):
    from_entity_id: UUID
    to_entity_id: UUID
    relation_type: RelationType
    valid_from: datetime | None = None
    valid_to: datetime | None = None
    source_id: UUID | None = None
    confidence: Confidence | None = None
    notes: str | None = None


class EntityRelationship(RegistryBase):
    relationship_id: UUID
    from_entity_id: UUID
    to_entity_id: UUID
    relation_type: RelationType
    valid_from: UTCTimestamp
    valid_to: UTCTimestamp | None = None
    source_id: UUID | None = None
    confidence: int
    notes: str | None = None
    is_active: bool = True
    created_at: UTCTimestamp


class GraphEdge(RegistryBase):
    entity_id: UUID
    entity_name: str
    direction: Literal["from", "to"]
    confidence: int


class ParentLink(RegistryBase):
    entity_id: UUID
    entity_name: str
    level: int
