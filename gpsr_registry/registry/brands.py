"""Brand service: trade names and trademarks with versioned history, plus
the entities linked to each brand."""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gpsr_registry.audit.log import AuditLog
from gpsr_registry.config.settings import Settings, get_settings
from gpsr_registry.db.tables import BrandRow, BrandVersionRow, EntityRow
from gpsr_registry.errors import NotFoundError
from gpsr_registry.models.brand import (
    Brand,
    BrandInput,
    BrandLink,
    BrandLinkInput,
    BrandPatch,
    BrandVersion,
    LinkedEntity,
)
from gpsr_registry.models.common import AuditAction, BrandLinkType, MarketContext
from gpsr_registry.models.contact import ElectronicContact
from gpsr_registry.models.entity import Entity
from gpsr_registry.models.source import SourceInput
from gpsr_registry.models.versioning import VersionHistory
from gpsr_registry.provenance.source_registry import SourceRegistry
from gpsr_registry.repositories.brands import BrandLinkRepository
from gpsr_registry.repositories.contacts import ContactRepository
from gpsr_registry.versioning.retry import raise_integrity_error
from gpsr_registry.versioning.store import AggregateMapping, VersionedAggregateStore

logger = logging.getLogger(__name__)

BRAND_MAPPING = AggregateMapping(
    name="Brand",
    row_cls=BrandRow,
    version_cls=BrandVersionRow,
    id_column="brand_id",
    model=Brand,
    version_model=BrandVersion,
    versioned_columns=(
        "trade_name", "trade_mark_number", "trade_mark_office",
        "logo_url", "description", "is_verified",
    ),
    search_column="trade_name",
    filter_columns={"is_verified": "is_verified"},
)

_TEXT_FIELDS = ("trade_mark_number", "trade_mark_office", "logo_url", "description")


def brand_fields(brand_input: BrandInput) -> dict[str, Any]:
    fields = {name: getattr(brand_input, name) or None for name in _TEXT_FIELDS}
    fields["trade_name"] = brand_input.trade_name.strip()
    fields["is_verified"] = False
    return fields


def brand_patch_changes(patch: BrandPatch) -> dict[str, Any]:
    changes: dict[str, Any] = {}
    if patch.trade_name:
        changes["trade_name"] = patch.trade_name.strip()
    for name in _TEXT_FIELDS:
        value = getattr(patch, name)
        if value is not None:
            changes[name] = value or None
    if patch.is_verified is not None:
        changes["is_verified"] = patch.is_verified
    if patch.is_active is not None:
        changes["is_active"] = patch.is_active
    return changes


class BrandService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession],
                 sources: SourceRegistry, settings: Settings | None = None) -> None:
        self._session_factory = session_factory
        self._store = VersionedAggregateStore(
            session_factory, BRAND_MAPPING, sources, settings or get_settings(),
        )

    async def create(self, brand_input: BrandInput, source: SourceInput, *,
                     performed_by: str | None = None) -> Brand:
        return await self._store.create_with_version(
            fields=brand_fields(brand_input),
            original_data=brand_input.model_dump(exclude_none=True),
            source=source, performed_by=performed_by,
        )

    async def update(self, brand_id: UUID, patch: BrandPatch, source: SourceInput, *,
                     performed_by: str | None = None) -> Brand:
        changes = brand_patch_changes(patch)
        return await self._store.update_with_new_version(
            brand_id,
            changes=lambda _row: changes,
            original_data=patch.model_dump(exclude_none=True),
            source=source, change_note=patch.change_note, performed_by=performed_by,
        )

    async def deactivate(self, brand_id: UUID, *, performed_by: str | None = None) -> Brand:
        return await self._store.deactivate(brand_id, performed_by=performed_by)

    async def get(self, brand_id: UUID) -> Brand:
        return await self._store.get(brand_id)

    async def get_with_history(self, brand_id: UUID) -> VersionHistory[Brand, BrandVersion]:
        return await self._store.get_with_history(brand_id)

    async def get_version(self, version_id: UUID) -> BrandVersion:
        return await self._store.get_version(version_id)

    async def add_entity_link(self, brand_id: UUID, link_input: BrandLinkInput, *,
                              performed_by: str | None = None) -> BrandLink:
        """Record that an entity stands behind the brand.

        Raises:
            NotFoundError: The brand or the entity does not exist.
        """
        try:
            async with self._session_factory() as session, session.begin():
                if await session.get(BrandRow, brand_id) is None:
                    raise NotFoundError("Brand", brand_id)
                if await session.get(EntityRow, link_input.entity_id) is None:
                    raise NotFoundError("Entity", link_input.entity_id)
                row = await BrandLinkRepository(session).create(
                    brand_id=brand_id, **link_input.model_dump(),
                )
                link = BrandLink.model_validate(row)
                await AuditLog.append(
                    session, action=AuditAction.LINK_BRAND, entity_type="BrandLink",
                    entity_id=link.link_id, new=link, performed_by=performed_by,
                )
        except IntegrityError as exc:
            raise_integrity_error(exc, resource="Entity")
        logger.info("Linked entity %s to brand %s as %s",
                    link.entity_id, brand_id, link.link_type)
        return link

    async def get_linked_entities(self, brand_id: UUID,
                                  link_type: BrandLinkType | None = None,
                                  market_context: MarketContext | None = None,
                                  ) -> list[LinkedEntity]:
        """Active links with the entity and its active public contacts."""
        async with self._session_factory() as session:
            pairs = await BrandLinkRepository(session).get_linked(
                brand_id,
                link_types=[link_type] if link_type is not None else None,
                market_context=market_context,
            )
            contacts = ContactRepository(session)
            linked = []
            for link, entity in pairs:
                rows = await contacts.get_for_entity(entity.entity_id, public_only=True)
                linked.append(LinkedEntity(
                    link=BrandLink.model_validate(link),
                    entity=Entity.model_validate(entity),
                    contacts=[ElectronicContact.model_validate(r) for r in rows],
                ))
        return linked

    async def list(self, *, search: str | None = None, is_verified: bool | None = None,
                   is_active: bool | None = True, limit: int | None = None,
                   offset: int = 0) -> tuple[list[Brand], int]:
        return await self._store.list(
            search=search, is_active=is_active, limit=limit, offset=offset,
            is_verified=is_verified,
        )
