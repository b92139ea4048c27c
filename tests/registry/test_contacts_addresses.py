"""Tests for electronic contacts of entities and brands, and postal addresses."""

import pytest
from uuid_extensions import uuid7

from gpsr_registry.errors import NotFoundError, ValidationError
from gpsr_registry.models.brand import BrandLinkInput
from gpsr_registry.models.common import AddressType, AuditAction, BrandLinkType, ContactType
from gpsr_registry.models.contact import (
    AddressInput,
    AddressPatch,
    ContactConfirmation,
    ContactInput,
)
from gpsr_registry.models.entity import EntityInput
from gpsr_registry.registry.contacts import validate_contact_value


class TestValidateContactValue:
    def test_email_normalized(self) -> None:
        assert validate_contact_value(ContactType.EMAIL, " Safety@Acme.PL ") == "safety@acme.pl"

    def test_bad_email(self) -> None:
        with pytest.raises(ValidationError, match="Invalid email") as exc_info:
            validate_contact_value(ContactType.EMAIL, "not-an-email")
        assert exc_info.value.errors == {"value": ["Must be a valid email address"]}

    def test_contact_form_must_be_url(self) -> None:
        assert validate_contact_value(ContactType.CONTACT_FORM, "https://acme.pl/kontakt")
        with pytest.raises(ValidationError, match="Invalid URL"):
            validate_contact_value(ContactType.WEBSITE_SECTION, "acme kontakt")

    def test_phone_normalized(self) -> None:
        assert validate_contact_value(ContactType.PHONE, "+48 22 123 45 67") == "+48221234567"


class TestContactService:
    @pytest.mark.anyio
    async def test_create_and_filter(self, registry, entity) -> None:
        safety = await registry.contacts.create_for_entity(
            entity.entity_id,
            ContactInput(contact_type=ContactType.EMAIL, value="SAFETY@acme.pl",
                         is_for_safety_issues=True),
        )
        await registry.contacts.create_for_entity(
            entity.entity_id,
            ContactInput(contact_type=ContactType.PHONE, value="22 123 45 67", is_public=False),
        )
        assert safety.value == "safety@acme.pl"

        everything = await registry.contacts.get_for_entity(entity.entity_id)
        assert len(everything) == 2
        assert everything[0].contact_type == ContactType.PHONE  # newest first

        only_safety = await registry.contacts.get_for_entity(entity.entity_id,
                                                             for_safety_issues=True)
        assert [c.contact_id for c in only_safety] == [safety.contact_id]
        public = await registry.contacts.get_for_entity(entity.entity_id, public_only=True)
        assert [c.contact_id for c in public] == [safety.contact_id]

    @pytest.mark.anyio
    async def test_invalid_email_not_stored(self, registry, entity) -> None:
        with pytest.raises(ValidationError):
            await registry.contacts.create_for_entity(
                entity.entity_id, ContactInput(contact_type=ContactType.EMAIL, value="x@y"),
            )
        assert await registry.contacts.get_for_entity(entity.entity_id) == []

    @pytest.mark.anyio
    async def test_missing_entity(self, registry) -> None:
        with pytest.raises(NotFoundError):
            await registry.contacts.create_for_entity(
                uuid7(), ContactInput(contact_type=ContactType.PHONE, value="123"),
            )

    @pytest.mark.anyio
    async def test_remove(self, registry, entity) -> None:
        contact = await registry.contacts.create_for_entity(
            entity.entity_id, ContactInput(contact_type=ContactType.PHONE, value="123"),
        )
        await registry.contacts.remove(contact.contact_id)
        assert await registry.contacts.get_for_entity(entity.entity_id) == []
        entries, total = await registry.audit.get_for_entity("EntityElectronicContact",
                                                             contact.contact_id)
        assert total == 2
        assert entries[0].action == AuditAction.CONTACT_REMOVED


class TestContactConfirmation:
    @pytest.mark.anyio
    async def test_confirm_entity_contact(self, registry, entity) -> None:
        contact = await registry.contacts.create_for_entity(
            entity.entity_id, ContactInput(contact_type=ContactType.EMAIL, value="info@acme.pl"),
        )
        assert contact.direct_communication_confirmed is False

        confirmed = await registry.contacts.confirm_entity_contact(
            contact.contact_id,
            ContactConfirmation(confirmation_method="email reply", confirmed_by="curator"),
        )
        assert confirmed.direct_communication_confirmed is True
        assert confirmed.confirmation_method == "email reply"
        assert confirmed.confirmed_by == "curator"
        assert confirmed.confirmed_at is not None

        entries, _ = await registry.audit.get_for_entity("EntityElectronicContact",
                                                         contact.contact_id)
        assert entries[0].action == AuditAction.CONTACT_CONFIRMED
        assert entries[0].performed_by == "curator"
        assert entries[0].previous_data["direct_communication_confirmed"] is False

    @pytest.mark.anyio
    async def test_owner_kind_must_match(self, registry, entity, brand) -> None:
        entity_contact = await registry.contacts.create_for_entity(
            entity.entity_id, ContactInput(contact_type=ContactType.PHONE, value="123"),
        )
        brand_contact = await registry.contacts.create_for_brand(
            brand.brand_id, ContactInput(contact_type=ContactType.PHONE, value="456"),
        )
        confirmation = ContactConfirmation(confirmation_method="phone call")
        with pytest.raises(NotFoundError, match="Electronic contact"):
            await registry.contacts.confirm_brand_contact(entity_contact.contact_id,
                                                          confirmation)
        with pytest.raises(NotFoundError, match="Electronic contact"):
            await registry.contacts.deactivate_entity_contact(brand_contact.contact_id)

        confirmed = await registry.contacts.confirm_brand_contact(brand_contact.contact_id,
                                                                  confirmation)
        assert confirmed.direct_communication_confirmed is True
        assert confirmed.confirmed_by is None

    @pytest.mark.anyio
    async def test_deactivate_hides_contact(self, registry, entity, brand) -> None:
        entity_contact = await registry.contacts.create_for_entity(
            entity.entity_id, ContactInput(contact_type=ContactType.PHONE, value="123"),
        )
        brand_contact = await registry.contacts.create_for_brand(
            brand.brand_id, ContactInput(contact_type=ContactType.PHONE, value="456"),
        )
        hidden = await registry.contacts.deactivate_entity_contact(
            entity_contact.contact_id, performed_by="curator",
        )
        assert hidden.is_active is False
        await registry.contacts.deactivate_brand_contact(brand_contact.contact_id)

        assert await registry.contacts.get_for_entity(entity.entity_id) == []
        assert await registry.contacts.get_for_brand(brand.brand_id) == []
        entries, _ = await registry.audit.get_for_entity("BrandElectronicContact",
                                                         brand_contact.contact_id)
        assert entries[0].action == AuditAction.CONTACT_DEACTIVATED


class TestBrandContacts:
    @pytest.mark.anyio
    async def test_create_for_brand(self, registry, brand) -> None:
        contact = await registry.contacts.create_for_brand(
            brand.brand_id,
            ContactInput(contact_type=ContactType.EMAIL, value="Safety@AcmeTools.eu",
                         is_for_safety_issues=True),
        )
        assert contact.brand_id == brand.brand_id
        assert contact.entity_id is None
        assert contact.value == "safety@acmetools.eu"

        listed = await registry.contacts.get_for_brand(brand.brand_id, for_safety_issues=True)
        assert [c.contact_id for c in listed] == [contact.contact_id]
        entries, total = await registry.audit.get_for_entity("BrandElectronicContact",
                                                             contact.contact_id)
        assert total == 1
        assert entries[0].action == AuditAction.CREATE

    @pytest.mark.anyio
    async def test_missing_brand(self, registry) -> None:
        with pytest.raises(NotFoundError, match="Brand"):
            await registry.contacts.create_for_brand(
                uuid7(), ContactInput(contact_type=ContactType.PHONE, value="123"),
            )

    @pytest.mark.anyio
    async def test_safety_contacts_for_brand(self, registry, brand, entity,
                                             source_input) -> None:
        distributor = await registry.entities.create(
            EntityInput(name="Globex", country="DE"), source_input,
        )
        brand_safety = await registry.contacts.create_for_brand(
            brand.brand_id,
            ContactInput(contact_type=ContactType.EMAIL, value="recall@acmetools.eu",
                         is_for_safety_issues=True),
        )
        await registry.contacts.create_for_brand(
            brand.brand_id, ContactInput(contact_type=ContactType.PHONE, value="999"),
        )
        maker_safety = await registry.contacts.create_for_entity(
            entity.entity_id,
            ContactInput(contact_type=ContactType.EMAIL, value="safety@acme.pl",
                         is_for_safety_issues=True),
        )
        await registry.contacts.create_for_entity(
            entity.entity_id,
            ContactInput(contact_type=ContactType.EMAIL, value="internal@acme.pl",
                         is_for_safety_issues=True, is_public=False),
        )
        await registry.contacts.create_for_entity(
            distributor.entity_id,
            ContactInput(contact_type=ContactType.EMAIL, value="safety@globex.de",
                         is_for_safety_issues=True),
        )
        for entity_id, link_type in [(entity.entity_id, BrandLinkType.MANUFACTURER),
                                     (entity.entity_id, BrandLinkType.IMPORTER),
                                     (distributor.entity_id, BrandLinkType.DISTRIBUTOR)]:
            await registry.brands.add_entity_link(
                brand.brand_id, BrandLinkInput(entity_id=entity_id, link_type=link_type),
            )

        result = await registry.contacts.get_safety_contacts_for_brand(brand.brand_id)
        assert [c.contact_id for c in result.brand_contacts] == [brand_safety.contact_id]
        assert len(result.entity_contacts) == 1
        maker = result.entity_contacts[0]
        assert maker.entity_id == entity.entity_id
        assert maker.normalized_name == "Acme"
        assert [c.contact_id for c in maker.contacts] == [maker_safety.contact_id]

    @pytest.mark.anyio
    async def test_safety_contacts_missing_brand(self, registry) -> None:
        with pytest.raises(NotFoundError, match="Brand"):
            await registry.contacts.get_safety_contacts_for_brand(uuid7())


def _address(entity_id, **overrides) -> AddressInput:
    defaults = {
        "entity_id": entity_id,
        "street_line1": "ul. Prosta 1",
        "city": "Warszawa",
        "postal_code": "00-850",
        "country_code": "pl",
    }
    defaults.update(overrides)
    return AddressInput(**defaults)


class TestAddressService:
    @pytest.mark.anyio
    async def test_create_builds_search_text(self, registry, entity) -> None:
        address = await registry.addresses.create(_address(entity.entity_id))
        assert address.country_code == "PL"
        assert address.normalized_full == "ul. prosta 1 00-850 warszawa pl"
        assert address.address_type == AddressType.REGISTERED

    @pytest.mark.anyio
    async def test_create_with_missing_source(self, registry, entity) -> None:
        with pytest.raises(NotFoundError, match="Source"):
            await registry.addresses.create(_address(entity.entity_id, source_id=uuid7()))
        assert await registry.addresses.get_for_entity(entity.entity_id) == []

    @pytest.mark.anyio
    async def test_get_for_entity_by_type(self, registry, entity) -> None:
        await registry.addresses.create(_address(entity.entity_id))
        ret = await registry.addresses.create(
            _address(entity.entity_id, street_line1="Magazynowa 5",
                     address_type=AddressType.RETURN),
        )
        assert len(await registry.addresses.get_for_entity(entity.entity_id)) == 2
        returns = await registry.addresses.get_for_entity(entity.entity_id, AddressType.RETURN)
        assert [a.address_id for a in returns] == [ret.address_id]

    @pytest.mark.anyio
    async def test_search(self, registry, entity) -> None:
        await registry.addresses.create(_address(entity.entity_id))
        await registry.addresses.create(
            _address(entity.entity_id, street_line1="Hauptstr. 3", city="Berlin",
                     postal_code="10115", country_code="DE"),
        )
        assert len(await registry.addresses.search("WARSZAWA")) == 1
        assert await registry.addresses.search("warszawa", "de") == []
        assert await registry.addresses.search("%") == []

    @pytest.mark.anyio
    async def test_update_recomputes_search_text(self, registry, entity) -> None:
        address = await registry.addresses.create(_address(entity.entity_id))
        updated = await registry.addresses.update(
            address.address_id, AddressPatch(city="Kraków", postal_code="", street_line1=""),
        )
        assert updated.city == "Kraków"
        assert updated.postal_code is None
        assert updated.street_line1 == "ul. Prosta 1"
        assert updated.normalized_full == "ul. prosta 1 kraków pl"

    @pytest.mark.anyio
    async def test_deactivate_hides_address(self, registry, entity) -> None:
        address = await registry.addresses.create(_address(entity.entity_id))
        deactivated = await registry.addresses.deactivate(address.address_id)
        assert deactivated.is_active is False
        assert await registry.addresses.get_for_entity(entity.entity_id) == []

    @pytest.mark.anyio
    async def test_remove_audited(self, registry, entity) -> None:
        address = await registry.addresses.create(_address(entity.entity_id))
        await registry.addresses.remove(address.address_id)
        entries, _ = await registry.audit.get_for_entity("Address", address.address_id)
        assert [e.action for e in entries] == [AuditAction.ADDRESS_REMOVED,
                                               AuditAction.ADDRESS_CREATED]
        with pytest.raises(NotFoundError):
            await registry.addresses.update(address.address_id, AddressPatch(city="X"))
