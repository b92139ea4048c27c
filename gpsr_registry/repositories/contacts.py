"""Electronic contact and address repositories."""

from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gpsr_registry.db.tables import AddressRow, ElectronicContactRow
from gpsr_registry.models.common import new_uuid7, utc_now


class ContactRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, contact_type: str, value: str,
                     entity_id: UUID | None = None, brand_id: UUID | None = None,
                     label: str | None = None, language_code: str | None = None,
                     is_for_safety_issues: bool = False,
                     is_for_consumer_complaints: bool = False,
                     is_public: bool = True) -> ElectronicContactRow:
        row = ElectronicContactRow(
            contact_id=new_uuid7(), entity_id=entity_id, brand_id=brand_id,
            contact_type=contact_type, value=value, label=label,
            language_code=language_code,
            is_for_safety_issues=is_for_safety_issues,
            is_for_consumer_complaints=is_for_consumer_complaints,
            is_public=is_public, direct_communication_confirmed=False,
            is_active=True, created_at=utc_now(),
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get(self, contact_id: UUID) -> ElectronicContactRow | None:
        return await self._session.get(ElectronicContactRow, contact_id)

    async def get_for_entity(self, entity_id: UUID, *, for_safety_issues: bool = False,
                             public_only: bool = False) -> list[ElectronicContactRow]:
        return await self._active(
            ElectronicContactRow.entity_id == entity_id,
            for_safety_issues=for_safety_issues, public_only=public_only,
        )

    async def get_for_brand(self, brand_id: UUID, *, for_safety_issues: bool = False,
                            public_only: bool = False) -> list[ElectronicContactRow]:
        return await self._active(
            ElectronicContactRow.brand_id == brand_id,
            for_safety_issues=for_safety_issues, public_only=public_only,
        )

    async def delete(self, row: ElectronicContactRow) -> None:
        await self._session.delete(row)
        await self._session.flush()

    async def _active(self, owner_clause: Any, *, for_safety_issues: bool,
                      public_only: bool) -> list[ElectronicContactRow]:
        stmt = select(ElectronicContactRow).where(
            owner_clause, ElectronicContactRow.is_active.is_(True),
        )
        if for_safety_issues:
            stmt = stmt.where(ElectronicContactRow.is_for_safety_issues.is_(True))
        if public_only:
            stmt = stmt.where(ElectronicContactRow.is_public.is_(True))
        result = await self._session.execute(
            stmt.order_by(ElectronicContactRow.created_at.desc(),
                          ElectronicContactRow.contact_id.desc())
        )
        return list(result.scalars().all())


class AddressRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, entity_id: UUID, street_line1: str, city: str,
                     country_code: str, normalized_full: str, address_type: str,
                     street_line2: str | None = None,
                     postal_code: str | None = None, region: str | None = None,
                     source_id: UUID | None = None) -> AddressRow:
        now = utc_now()
        row = AddressRow(
            address_id=new_uuid7(), entity_id=entity_id,
            street_line1=street_line1, street_line2=street_line2, city=city,
            postal_code=postal_code, region=region, country_code=country_code,
            normalized_full=normalized_full, address_type=address_type,
            source_id=source_id, is_active=True,
            created_at=now, updated_at=now,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get(self, address_id: UUID) -> AddressRow | None:
        return await self._session.get(AddressRow, address_id)

    async def get_for_entity(self, entity_id: UUID,
                             address_type: str | None = None) -> list[AddressRow]:
        stmt = select(AddressRow).where(
            AddressRow.entity_id == entity_id, AddressRow.is_active.is_(True),
        )
        if address_type is not None:
            stmt = stmt.where(AddressRow.address_type == address_type)
        result = await self._session.execute(stmt.order_by(AddressRow.address_type.asc()))
        return list(result.scalars().all())

    async def search(self, query: str, *, country_code: str | None = None,
                     limit: int) -> list[AddressRow]:
        stmt = select(AddressRow).where(
            AddressRow.normalized_full.contains(query, autoescape=True),
            AddressRow.is_active.is_(True),
        )
        if country_code is not None:
            stmt = stmt.where(AddressRow.country_code == country_code)
        result = await self._session.execute(
            stmt.order_by(AddressRow.normalized_full.asc()).limit(limit)
        )
        return list(result.scalars().all())

    async def delete(self, row: AddressRow) -> None:
        await self._session.delete(row)
        await self._session.flush()
