"""Electronic contact points of entities and brands (emails, phones, forms)."""

import re
from uuid import UUID

from pydantic import AnyUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gpsr_registry.audit.log import AuditLog
from gpsr_registry.db.tables import BrandRow, ElectronicContactRow, EntityRow
from gpsr_registry.errors import NotFoundError, ValidationError
from gpsr_registry.models.common import AuditAction, BrandLinkType, ContactType, utc_now
from gpsr_registry.models.contact import (
    BrandSafetyContacts,
    ContactConfirmation,
    ContactInput,
    ElectronicContact,
    EntitySafetyContacts,
)
from gpsr_registry.normalization import normalize_email, normalize_phone
from gpsr_registry.repositories.brands import BrandLinkRepository
from gpsr_registry.repositories.contacts import ContactRepository

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_URL = TypeAdapter(AnyUrl)
_URL_TYPES = frozenset({ContactType.CONTACT_FORM, ContactType.WEBSITE_SECTION})


def validate_contact_value(contact_type: ContactType, value: str) -> str:
    """Check ``value`` against its type and return the stored form.

    Raises:
        ValidationError: Malformed email address or URL.
    """
    value = value.strip()
    if contact_type == ContactType.EMAIL:
        if not _EMAIL_RE.match(value):
            raise ValidationError(
                "Invalid email format", errors={"value": ["Must be a valid email address"]},
            )
        return normalize_email(value)
    if contact_type in _URL_TYPES:
        try:
            _URL.validate_python(value)
        except PydanticValidationError as exc:
            raise ValidationError(
                "Invalid URL format", errors={"value": ["Must be a valid URL"]},
            ) from exc
        return value
    if contact_type == ContactType.PHONE:
        return normalize_phone(value) or value
    return value


_SAFETY_LINK_TYPES = (
    BrandLinkType.MANUFACTURER, BrandLinkType.RESPONSIBLE_PERSON, BrandLinkType.IMPORTER,
)


def _audit_type(row: ElectronicContactRow) -> str:
    return "BrandElectronicContact" if row.brand_id is not None else "EntityElectronicContact"


class ContactService:
    """Contact points of entities and brands.

    Every contact belongs to exactly one owner. The ``*_entity_contact`` and
    ``*_brand_contact`` variants only find contacts of that owner kind.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def create_for_entity(self, entity_id: UUID, contact_input: ContactInput, *,
                                performed_by: str | None = None) -> ElectronicContact:
        return await self._create(contact_input, entity_id=entity_id,
                                  performed_by=performed_by)

    async def create_for_brand(self, brand_id: UUID, contact_input: ContactInput, *,
                               performed_by: str | None = None) -> ElectronicContact:
        return await self._create(contact_input, brand_id=brand_id,
                                  performed_by=performed_by)

    async def get_for_entity(self, entity_id: UUID, *, for_safety_issues: bool = False,
                             public_only: bool = False) -> list[ElectronicContact]:
        """Active contacts, newest first."""
        async with self._session_factory() as session:
            rows = await ContactRepository(session).get_for_entity(
                entity_id, for_safety_issues=for_safety_issues, public_only=public_only,
            )
        return [ElectronicContact.model_validate(r) for r in rows]

    async def get_for_brand(self, brand_id: UUID, *, for_safety_issues: bool = False,
                            public_only: bool = False) -> list[ElectronicContact]:
        async with self._session_factory() as session:
            rows = await ContactRepository(session).get_for_brand(
                brand_id, for_safety_issues=for_safety_issues, public_only=public_only,
            )
        return [ElectronicContact.model_validate(r) for r in rows]

    async def get_safety_contacts_for_brand(self, brand_id: UUID) -> BrandSafetyContacts:
        """Public safety contacts of the brand and of the entities standing behind it.

        Linked entities count when they are the brand's manufacturer,
        responsible person or importer through an active link.
        """
        async with self._session_factory() as session:
            if await session.get(BrandRow, brand_id) is None:
                raise NotFoundError("Brand", brand_id)
            contacts = ContactRepository(session)
            brand_rows = await contacts.get_for_brand(
                brand_id, for_safety_issues=True, public_only=True,
            )
            links = await BrandLinkRepository(session).get_linked(
                brand_id, link_types=_SAFETY_LINK_TYPES,
            )
            entity_contacts = []
            seen: set[UUID] = set()
            for _link, entity in links:
                if entity.entity_id in seen:
                    continue
                seen.add(entity.entity_id)
                rows = await contacts.get_for_entity(
                    entity.entity_id, for_safety_issues=True, public_only=True,
                )
                entity_contacts.append(EntitySafetyContacts(
                    entity_id=entity.entity_id,
                    normalized_name=entity.normalized_name,
                    normalized_country=entity.normalized_country,
                    contacts=[ElectronicContact.model_validate(r) for r in rows],
                ))
        return BrandSafetyContacts(
            brand_contacts=[ElectronicContact.model_validate(r) for r in brand_rows],
            entity_contacts=entity_contacts,
        )

    async def confirm_entity_contact(self, contact_id: UUID,
                                     confirmation: ContactConfirmation) -> ElectronicContact:
        """Record that the entity behind the contact answers direct messages."""
        return await self._confirm(contact_id, confirmation, brand=False)

    async def confirm_brand_contact(self, contact_id: UUID,
                                    confirmation: ContactConfirmation) -> ElectronicContact:
        return await self._confirm(contact_id, confirmation, brand=True)

    async def deactivate_entity_contact(self, contact_id: UUID, *,
                                        performed_by: str | None = None) -> ElectronicContact:
        return await self._deactivate(contact_id, brand=False, performed_by=performed_by)

    async def deactivate_brand_contact(self, contact_id: UUID, *,
                                       performed_by: str | None = None) -> ElectronicContact:
        return await self._deactivate(contact_id, brand=True, performed_by=performed_by)

    async def remove(self, contact_id: UUID, *,
                     performed_by: str | None = None) -> ElectronicContact:
        async with self._session_factory() as session, session.begin():
            repo = ContactRepository(session)
            row = await repo.get(contact_id)
            if row is None:
                raise NotFoundError("Electronic contact", contact_id)
            removed = ElectronicContact.model_validate(row)
            entity_type = _audit_type(row)
            await repo.delete(row)
            await AuditLog.append(
                session, action=AuditAction.CONTACT_REMOVED,
                entity_type=entity_type, entity_id=contact_id,
                previous=removed, performed_by=performed_by,
            )
        return removed

    async def _create(self, contact_input: ContactInput, *, entity_id: UUID | None = None,
                      brand_id: UUID | None = None,
                      performed_by: str | None) -> ElectronicContact:
        value = validate_contact_value(contact_input.contact_type, contact_input.value)
        async with self._session_factory() as session, session.begin():
            if entity_id is not None and await session.get(EntityRow, entity_id) is None:
                raise NotFoundError("Entity", entity_id)
            if brand_id is not None and await session.get(BrandRow, brand_id) is None:
                raise NotFoundError("Brand", brand_id)
            row = await ContactRepository(session).create(
                entity_id=entity_id, brand_id=brand_id,
                **contact_input.model_dump(exclude={"value"}), value=value,
            )
            contact = ElectronicContact.model_validate(row)
            await AuditLog.append(
                session, action=AuditAction.CREATE, entity_type=_audit_type(row),
                entity_id=contact.contact_id, new=contact, performed_by=performed_by,
            )
        return contact

    async def _get_owned(self, session: AsyncSession, contact_id: UUID, *,
                         brand: bool) -> ElectronicContactRow:
        row = await ContactRepository(session).get(contact_id)
        if row is None or (row.brand_id is not None) != brand:
            raise NotFoundError("Electronic contact", contact_id)
        return row

    async def _confirm(self, contact_id: UUID, confirmation: ContactConfirmation, *,
                       brand: bool) -> ElectronicContact:
        async with self._session_factory() as session, session.begin():
            row = await self._get_owned(session, contact_id, brand=brand)
            before = ElectronicContact.model_validate(row)
            row.direct_communication_confirmed = True
            row.confirmation_method = confirmation.confirmation_method
            row.confirmed_by = confirmation.confirmed_by
            row.confirmed_at = utc_now()
            await session.flush()
            contact = ElectronicContact.model_validate(row)
            await AuditLog.append(
                session, action=AuditAction.CONTACT_CONFIRMED, entity_type=_audit_type(row),
                entity_id=contact_id, previous=before, new=contact,
                performed_by=confirmation.confirmed_by,
            )
        return contact

    async def _deactivate(self, contact_id: UUID, *, brand: bool,
                          performed_by: str | None) -> ElectronicContact:
        async with self._session_factory() as session, session.begin():
            row = await self._get_owned(session, contact_id, brand=brand)
            before = ElectronicContact.model_validate(row)
            row.is_active = False
            await session.flush()
            contact = ElectronicContact.model_validate(row)
            await AuditLog.append(
                session, action=AuditAction.CONTACT_DEACTIVATED, entity_type=_audit_type(row),
                entity_id=contact_id, previous=before, new=contact,
                performed_by=performed_by,
            )
        return contact
