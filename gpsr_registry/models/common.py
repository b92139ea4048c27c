"""Shared types, enums, and base models used across GPSR registry domain models."""

from datetime import datetime, timezone
from enum import StrEnum
from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, Field
from uuid_extensions import uuid7


def utc_now() -> datetime:
    """Return the current UTC timestamp (timezone-aware)."""
    return datetime.now(tz=timezone.utc)


def new_uuid7() -> UUID:
    """Generate a new time-sortable UUID v7."""
    return uuid7()


# --- Reusable annotated types ---

UUIDv7 = Annotated[UUID, Field(description="Time-sortable UUID v7.")]
UTCTimestamp = Annotated[
    datetime, Field(description="UTC timezone-aware timestamp.")
]
Confidence = Annotated[int, Field(ge=0, le=100, description="Confidence 0-100.")]


# --- Provenance ---


class SourceType(StrEnum):
    """Where a piece of registry data originated."""

    COMMUNITY = "COMMUNITY"
    PRIMARY_SOURCE = "PRIMARY_SOURCE"
    OFFICIAL_REGISTRY = "OFFICIAL_REGISTRY"
    PRODUCT_LABEL = "PRODUCT_LABEL"
    WEBSITE = "WEBSITE"
    API_IMPORT = "API_IMPORT"
    MANUAL_ENTRY = "MANUAL_ENTRY"
    SAFETY_GATE = "SAFETY_GATE"


# --- Roles and markets ---


class RoleType(StrEnum):
    """Economic operator roles under GPSR."""

    MANUFACTURER = "MANUFACTURER"
    IMPORTER = "IMPORTER"
    RESPONSIBLE_PERSON = "RESPONSIBLE_PERSON"
    AUTHORIZED_REP = "AUTHORIZED_REP"
    DISTRIBUTOR = "DISTRIBUTOR"
    FULFILLMENT_PROVIDER = "FULFILLMENT_PROVIDER"


class MarketContext(StrEnum):
    """Market a role assignment applies to."""

    GLOBAL = "GLOBAL"
    EU = "EU"
    PL = "PL"
    DE = "DE"
    UK = "UK"
    US = "US"


class ResponsibilityStatus(StrEnum):
    """Lifecycle of a product responsibility assignment."""

    ACTIVE = "ACTIVE"
    HISTORICAL = "HISTORICAL"
    DISPUTED = "DISPUTED"


class ResolutionMode(StrEnum):
    CURRENT = "CURRENT"
    HISTORICAL = "HISTORICAL"


# --- Claims ---


class ClaimSubject(StrEnum):
    """Kinds of record a claim can be made about."""

    ENTITY = "ENTITY"
    BRAND = "BRAND"
    PRODUCT = "PRODUCT"
    RESPONSIBILITY = "RESPONSIBILITY"
    CONTACT = "CONTACT"
    ADDRESS = "ADDRESS"


class ClaimStatus(StrEnum):
    """Claim lifecycle states."""

    PROPOSED = "PROPOSED"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    DISPUTED = "DISPUTED"
    SUPERSEDED = "SUPERSEDED"


class EvidenceType(StrEnum):
    URL = "URL"
    FILE = "FILE"
    IMAGE = "IMAGE"
    PDF = "PDF"
    TEXT_SNAPSHOT = "TEXT_SNAPSHOT"
    LABEL_PHOTO = "LABEL_PHOTO"
    REGISTRY_EXTRACT = "REGISTRY_EXTRACT"


class VerificationStatus(StrEnum):
    """Informational confirmation level of an entity snapshot."""

    UNVERIFIED = "UNVERIFIED"
    COMMUNITY_CONFIRMED = "COMMUNITY_CONFIRMED"
    PRIMARY_CONFIRMED = "PRIMARY_CONFIRMED"
    HISTORICAL = "HISTORICAL"
    DISPUTED = "DISPUTED"
    OUTDATED = "OUTDATED"


# --- Entity details ---


class IdentifierType(StrEnum):
    """Registry identifiers used for lookup and deduplication."""

    VAT_EU = "VAT_EU"
    EORI = "EORI"
    LEI = "LEI"
    DUNS = "DUNS"
    KRS = "KRS"
    NIP = "NIP"
    REGON = "REGON"
    GLN = "GLN"
    COMPANY_REGISTER = "COMPANY_REGISTER"


class ContactType(StrEnum):
    EMAIL = "EMAIL"
    PHONE = "PHONE"
    CONTACT_FORM = "CONTACT_FORM"
    WEBSITE_SECTION = "WEBSITE_SECTION"


class AddressType(StrEnum):
    REGISTERED = "REGISTERED"
    OPERATING = "OPERATING"
    RETURN = "RETURN"
    SAFETY_CONTACT = "SAFETY_CONTACT"


class RelationType(StrEnum):
    """Corporate-structure relationships between entities."""

    PARENT_OF = "PARENT_OF"
    SUBSIDIARY_OF = "SUBSIDIARY_OF"
    ACQUIRED_BY = "ACQUIRED_BY"
    MERGED_INTO = "MERGED_INTO"
    SUCCEEDED_BY = "SUCCEEDED_BY"
    AUTHORIZED_REP_FOR = "AUTHORIZED_REP_FOR"
    DISTRIBUTION_PARTNER = "DISTRIBUTION_PARTNER"


class BrandLinkType(StrEnum):
    """How an entity stands behind a brand."""

    OWNER = "OWNER"
    LICENSEE = "LICENSEE"
    MANUFACTURER = "MANUFACTURER"
    IMPORTER = "IMPORTER"
    RESPONSIBLE_PERSON = "RESPONSIBLE_PERSON"
    AUTHORIZED_REP = "AUTHORIZED_REP"
    DISTRIBUTOR = "DISTRIBUTOR"


class DocumentType(StrEnum):
    MANUAL = "MANUAL"
    SAFETY_SHEET = "SAFETY_SHEET"
    DECLARATION_OF_CONFORMITY = "DECLARATION_OF_CONFORMITY"
    LABEL = "LABEL"
    OTHER = "OTHER"


# --- Audit ---


class AuditAction(StrEnum):
    """Actions written to the append-only audit log."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DEACTIVATE = "DEACTIVATE"
    ADD_ROLE = "ADD_ROLE"
    IDENTIFIER_ADDED = "IDENTIFIER_ADDED"
    IDENTIFIER_UPDATED = "IDENTIFIER_UPDATED"
    IDENTIFIER_REMOVED = "IDENTIFIER_REMOVED"
    CONTACT_CONFIRMED = "CONTACT_CONFIRMED"
    CONTACT_DEACTIVATED = "CONTACT_DEACTIVATED"
    CONTACT_REMOVED = "CONTACT_REMOVED"
    ADDRESS_CREATED = "ADDRESS_CREATED"
    ADDRESS_UPDATED = "ADDRESS_UPDATED"
    ADDRESS_DEACTIVATED = "ADDRESS_DEACTIVATED"
    ADDRESS_REMOVED = "ADDRESS_REMOVED"
    RELATIONSHIP_CREATED = "RELATIONSHIP_CREATED"
    RELATIONSHIP_ENDED = "RELATIONSHIP_ENDED"
    LINK_BRAND = "LINK_BRAND"
    VERIFICATION_ADDED = "VERIFICATION_ADDED"
    CLAIM_SUBMITTED = "CLAIM_SUBMITTED"
    CLAIM_ACCEPTED = "CLAIM_ACCEPTED"
    CLAIM_REJECTED = "CLAIM_REJECTED"
    CLAIM_DISPUTED = "CLAIM_DISPUTED"
    CLAIM_SUPERSEDED = "CLAIM_SUPERSEDED"
    EVIDENCE_ADDED = "EVIDENCE_ADDED"
    RESPONSIBILITY_ASSIGNED = "RESPONSIBILITY_ASSIGNED"
    RESPONSIBILITY_DEMOTED = "RESPONSIBILITY_DEMOTED"
    RESPONSIBILITY_DISPUTED = "RESPONSIBILITY_DISPUTED"


# --- Base model ---


class RegistryBase(BaseModel):
    """Base model with common configuration for all registry Pydantic models."""

    model_config = {
        "populate_by_name": True,
        "from_attributes": True,
        "protected_namespaces": (),
    }
