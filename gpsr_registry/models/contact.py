"""Electronic contact points of entities and brands, and postal addresses."""

from uuid import UUID

from pydantic import Field

from gpsr_registry.models.common import AddressType, ContactType, RegistryBase, UTCTimestamp


class ContactInput(RegistryBase):
    contact_type: ContactType
    value: str = Field(..., min_length=1, max_length=500)
    label: str | None = None
    language_code: str | None = None
    is_for_safety_issues: bool = False
    is_for_consumer_complaints: bool = False
    is_public: bool = True


class ElectronicContact(RegistryBase):
    """Contact point of an entity or of a brand (exactly one owner is set)."""

    contact_id: UUID
    entity_id: UUID | None = None
    brand_id: UUID | None = None
    contact_type: ContactType
    value: str
    label: str | None = None
    language_code: str | None = None
    is_for_safety_issues: bool = False
    is_for_consumer_complaints: bool = False
    is_public: bool = True
    direct_communication_confirmed: bool = False
    confirmation_method: str | None = None
    confirmed_by: str | None = None
    confirmed_at: UTCTimestamp | None = None
    is_active: bool = True
    created_at: UTCTimestamp


class ContactConfirmation(RegistryBase):
    confirmation_method: str = Field(..., min_length=1, max_length=200)
    confirmed_by: str | None = Field(None, max_length=200)


class EntitySafetyContacts(RegistryBase):
    entity_id: UUID
    normalized_name: str
    normalized_country: str
    contacts: list[ElectronicContact] = Field(default_factory=list)


class BrandSafetyContacts(RegistryBase):
    """Where to report a safety issue about a brand's products."""

    brand_contacts: list[ElectronicContact] = Field(default_factory=list)
    entity_contacts: list[EntitySafetyContacts] = Field(default_factory=list)


class AddressInput(RegistryBase):
    entity_id: UUID
    street_line1: str = Field(..., min_length=1)
    street_line2: str | None = None
    city: str = Field(..., min_length=1)
    postal_code: str | None = None
    region: str | None = None
    country_code: str = Field(..., min_length=2, max_length=2)
    address_type: AddressType = AddressType.REGISTERED
    source_id: UUID | None = None


class AddressPatch(RegistryBase):
    street_line1: str | None = None
    street_line2: str | None = None
    city: str | None = None
    postal_code: str | None = None
    region: str | None = None
    country_code: str | None = None
    address_type: AddressType | None = None


class Address(RegistryBase):
    address_id: UUID
    entity_id: UUID
    street_line1: str
    street_line2: str | None = None
    city: str
    postal_code: str | None = None
    region: str | None = None
    country_code: str
    normalized_full: str
    address_type: AddressType
    source_id: UUID | None = None
    is_active: bool = True
    created_at: UTCTimestamp
    updated_at: UTCTimestamp
