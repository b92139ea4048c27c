"""Entity service: economic operators with versioned history and roles."""

from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gpsr_registry.audit.log import AuditLog
from gpsr_registry.config.settings import Settings, get_settings
from gpsr_registry.db.tables import EntityRoleRow, EntityRow, EntityVersionRow
from gpsr_registry.errors import NotFoundError
from gpsr_registry.models.common import AuditAction, MarketContext, RoleType
from gpsr_registry.models.entity import (
    Entity,
    EntityInput,
    EntityPatch,
    EntityRole,
    EntityRoleInput,
    EntityVersion,
)
from gpsr_registry.models.source import SourceInput
from gpsr_registry.models.versioning import VersionHistory
from gpsr_registry.normalization import (
    normalize_address,
    normalize_country,
    normalize_name,
    normalize_phone,
    normalize_vat_id,
    normalize_website,
)
from gpsr_registry.provenance.source_registry import SourceRegistry
from gpsr_registry.repositories.entities import EntityRoleRepository
from gpsr_registry.versioning.store import AggregateMapping, VersionedAggregateStore

ENTITY_MAPPING = AggregateMapping(
    name="Entity",
    row_cls=EntityRow,
    version_cls=EntityVersionRow,
    id_column="entity_id",
    model=Entity,
    version_model=EntityVersion,
    versioned_columns=(
        "normalized_name", "normalized_address", "normalized_city",
        "normalized_country", "normalized_vat_id", "normalized_phone",
        "normalized_website",
    ),
    search_column="normalized_name",
    filter_columns={"country": "normalized_country"},
)

# patch field -> (head column, normalizer for non-empty values)
_PATCHABLE = {
    "name": ("normalized_name", normalize_name),
    "country": ("normalized_country", normalize_country),
    "address": ("normalized_address", normalize_address),
    "city": ("normalized_city", str.strip),
    "vat_id": ("normalized_vat_id", normalize_vat_id),
    "phone": ("normalized_phone", normalize_phone),
    "website": ("normalized_website", normalize_website),
}
# Required columns; an empty string in a patch leaves them unchanged.
_REQUIRED = frozenset({"normalized_name", "normalized_country"})


def normalized_entity_fields(entity_input: EntityInput) -> dict[str, Any]:
    return {
        "normalized_name": normalize_name(entity_input.name),
        "normalized_country": normalize_country(entity_input.country),
        "normalized_address": normalize_address(entity_input.address),
        "normalized_city": entity_input.city.strip() if entity_input.city else None,
        "normalized_vat_id": normalize_vat_id(entity_input.vat_id),
        "normalized_phone": normalize_phone(entity_input.phone),
        "normalized_website": normalize_website(entity_input.website),
    }


def entity_patch_changes(patch: EntityPatch) -> dict[str, Any]:
    """Column updates for a patch: ``None`` skips a field, ``""`` clears it."""
    changes: dict[str, Any] = {}
    for name, (column, normalize) in _PATCHABLE.items():
        value = getattr(patch, name)
        if value is None:
            continue
        if value == "":
            if column not in _REQUIRED:
                changes[column] = None
            continue
        changes[column] = normalize(value)
    if patch.is_active is not None:
        changes["is_active"] = patch.is_active
    return changes


class EntityService:
    """Entities (manufacturers, importers, responsible persons, ...)."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession],
                 sources: SourceRegistry, settings: Settings | None = None) -> None:
        self._session_factory = session_factory
        self._settings = settings or get_settings()
        self._store = VersionedAggregateStore(
            session_factory, ENTITY_MAPPING, sources, self._settings,
        )

    async def create(self, entity_input: EntityInput, source: SourceInput, *,
                     performed_by: str | None = None) -> Entity:
        """Create the entity with version 1 and, if given, its initial role."""
        async def attach_role(session: AsyncSession, row: EntityRow) -> None:
            if entity_input.role is not None:
                await EntityRoleRepository(session).create(
                    entity_id=row.entity_id, role_type=entity_input.role,
                    market_context=entity_input.market_context,
                )

        return await self._store.create_with_version(
            fields=normalized_entity_fields(entity_input),
            original_data=entity_input.model_dump(exclude_none=True),
            source=source, performed_by=performed_by, after_create=attach_role,
        )

    async def update(self, entity_id: UUID, patch: EntityPatch, source: SourceInput, *,
                     performed_by: str | None = None) -> Entity:
        changes = entity_patch_changes(patch)
        return await self._store.update_with_new_version(
            entity_id,
            changes=lambda _row: changes,
            original_data=patch.model_dump(exclude_none=True),
            source=source, change_note=patch.change_note, performed_by=performed_by,
        )

    async def deactivate(self, entity_id: UUID, *, performed_by: str | None = None) -> Entity:
        return await self._store.deactivate(entity_id, performed_by=performed_by)

    async def get(self, entity_id: UUID) -> Entity:
        return await self._store.get(entity_id)

    async def get_with_history(self, entity_id: UUID) -> VersionHistory[Entity, EntityVersion]:
        return await self._store.get_with_history(entity_id)

    async def get_version(self, version_id: UUID) -> EntityVersion:
        return await self._store.get_version(version_id)

    async def add_role(self, entity_id: UUID, role_input: EntityRoleInput, *,
                       performed_by: str | None = None) -> EntityRole:
        async with self._session_factory() as session, session.begin():
            if await session.get(EntityRow, entity_id) is None:
                raise NotFoundError("Entity", entity_id)
            row = await EntityRoleRepository(session).create(
                entity_id=entity_id, role_type=role_input.role_type,
                market_context=role_input.market_context or MarketContext.GLOBAL,
                product_scope=role_input.product_scope,
                valid_from=role_input.valid_from, valid_to=role_input.valid_to,
            )
            role = EntityRole.model_validate(row)
            await AuditLog.append(
                session, action=AuditAction.ADD_ROLE, entity_type="EntityRole",
                entity_id=role.role_id, new=role, performed_by=performed_by,
            )
        return role

    async def get_roles(self, entity_id: UUID) -> list[EntityRole]:
        """Active roles of an entity, oldest first."""
        async with self._session_factory() as session:
            if await session.get(EntityRow, entity_id) is None:
                raise NotFoundError("Entity", entity_id)
            rows = await EntityRoleRepository(session).get_for_entity(entity_id)
        return [EntityRole.model_validate(r) for r in rows]

    async def list(self, *, search: str | None = None, country: str | None = None,
                   role: RoleType | None = None, is_active: bool | None = True,
                   limit: int | None = None, offset: int = 0) -> tuple[list[Entity], int]:
        conditions = []
        if role is not None:
            conditions.append(EntityRow.entity_id.in_(
                select(EntityRoleRow.entity_id).where(
                    EntityRoleRow.role_type == role, EntityRoleRow.is_active.is_(True),
                )
            ))
        return await self._store.list(
            search=search, is_active=is_active, limit=limit, offset=offset,
            conditions=conditions,
            country=normalize_country(country) if country else None,
        )
