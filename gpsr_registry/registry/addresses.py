"""Postal addresses of entities (registered, operating, return, safety)."""

from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gpsr_registry.audit.log import AuditLog
from gpsr_registry.config.settings import Settings, get_settings
from gpsr_registry.db.tables import AddressRow, EntityRow, SourceRow
from gpsr_registry.errors import NotFoundError
from gpsr_registry.models.common import AddressType, AuditAction, utc_now
from gpsr_registry.models.contact import Address, AddressInput, AddressPatch
from gpsr_registry.normalization import full_address_text, normalize_country
from gpsr_registry.repositories.contacts import AddressRepository
from gpsr_registry.versioning.retry import raise_integrity_error

_REQUIRED = frozenset({"street_line1", "city", "country_code"})
_PATCHABLE = ("street_line1", "street_line2", "city", "postal_code", "region", "country_code")


def _full_text(row: AddressRow) -> str:
    return full_address_text(
        street_line1=row.street_line1, street_line2=row.street_line2,
        postal_code=row.postal_code, city=row.city, region=row.region,
        country_code=row.country_code,
    )


class AddressService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession],
                 settings: Settings | None = None) -> None:
        self._session_factory = session_factory
        self._settings = settings or get_settings()

    async def create(self, address_input: AddressInput, *,
                     performed_by: str | None = None) -> Address:
        country = normalize_country(address_input.country_code)
        try:
            async with self._session_factory() as session, session.begin():
                if await session.get(EntityRow, address_input.entity_id) is None:
                    raise NotFoundError("Entity", address_input.entity_id)
                source_id = address_input.source_id
                if source_id is not None and await session.get(SourceRow, source_id) is None:
                    raise NotFoundError("Source", source_id)
                row = await AddressRepository(session).create(
                    entity_id=address_input.entity_id,
                    street_line1=address_input.street_line1,
                    street_line2=address_input.street_line2,
                    city=address_input.city, postal_code=address_input.postal_code,
                    region=address_input.region, country_code=country,
                    normalized_full=full_address_text(
                        street_line1=address_input.street_line1,
                        street_line2=address_input.street_line2,
                        postal_code=address_input.postal_code, city=address_input.city,
                        region=address_input.region, country_code=country,
                    ),
                    address_type=address_input.address_type,
                    source_id=address_input.source_id,
                )
                address = Address.model_validate(row)
                await AuditLog.append(
                    session, action=AuditAction.ADDRESS_CREATED, entity_type="Address",
                    entity_id=address.address_id, new=address, performed_by=performed_by,
                )
        except IntegrityError as exc:
            raise_integrity_error(exc, resource="Entity")
        return address

    async def get_for_entity(self, entity_id: UUID,
                             address_type: AddressType | None = None) -> list[Address]:
        async with self._session_factory() as session:
            rows = await AddressRepository(session).get_for_entity(entity_id, address_type)
        return [Address.model_validate(r) for r in rows]

    async def search(self, query: str, country_code: str | None = None, *,
                     limit: int | None = None) -> list[Address]:
        """Substring match on the lowercased one-line address."""
        async with self._session_factory() as session:
            rows = await AddressRepository(session).search(
                query.strip().lower(),
                country_code=normalize_country(country_code) if country_code else None,
                limit=self._settings.clamp_limit(limit),
            )
        return [Address.model_validate(r) for r in rows]

    async def update(self, address_id: UUID, patch: AddressPatch, *,
                     performed_by: str | None = None) -> Address:
        async with self._session_factory() as session, session.begin():
            row = await AddressRepository(session).get(address_id)
            if row is None:
                raise NotFoundError("Address", address_id)
            before = Address.model_validate(row)
            for name in _PATCHABLE:
                value = getattr(patch, name)
                if value is None or (value == "" and name in _REQUIRED):
                    continue
                if name == "country_code":
                    value = normalize_country(value)
                setattr(row, name, value or None)
            if patch.address_type is not None:
                row.address_type = patch.address_type
            row.normalized_full = _full_text(row)
            row.updated_at = utc_now()
            await session.flush()
            after = Address.model_validate(row)
            await AuditLog.append(
                session, action=AuditAction.ADDRESS_UPDATED, entity_type="Address",
                entity_id=address_id, previous=before, new=after, performed_by=performed_by,
            )
        return after

    async def deactivate(self, address_id: UUID, *,
                         performed_by: str | None = None) -> Address:
        async with self._session_factory() as session, session.begin():
            row = await AddressRepository(session).get(address_id)
            if row is None:
                raise NotFoundError("Address", address_id)
            before = Address.model_validate(row)
            row.is_active = False
            row.updated_at = utc_now()
            await session.flush()
            after = Address.model_validate(row)
            await AuditLog.append(
                session, action=AuditAction.ADDRESS_DEACTIVATED, entity_type="Address",
                entity_id=address_id, previous=before, new=after, performed_by=performed_by,
            )
        return after

    async def remove(self, address_id: UUID, *, performed_by: str | None = None) -> Address:
        async with self._session_factory() as session, session.begin():
            repo = AddressRepository(session)
            row = await repo.get(address_id)
            if row is None:
                raise NotFoundError("Address", address_id)
            removed = Address.model_validate(row)
            await repo.delete(row)
            await AuditLog.append(
                session, action=AuditAction.ADDRESS_REMOVED, entity_type="Address",
                entity_id=address_id, previous=removed, performed_by=performed_by,
            )
        return removed
