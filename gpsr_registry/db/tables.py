"""SQLAlchemy ORM table models for the GPSR registry.

All tables defined in a single file. Uses FlexJSON (JSONB on Postgres,
JSON on SQLite) for snapshots and UTCDateTime so timestamps read back
timezone-aware on every backend.

Categories:
- IMMUTABLE: EntityVersion, BrandVersion, VerificationRecord, Evidence, AuditLog
- VERSIONED: Entity, Brand (current_version_id pointer), SafetyInfo (is_current flag)
- OPERATIONAL: Source, Product, EntityRole, ProductResponsibility, Claim,
               EntityIdentifier, ElectronicContact, Address, EntityRelationship,
               BrandLink
"""

from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON, TypeDecorator

from gpsr_registry.db.session import Base

# JSONB on PostgreSQL, plain JSON on SQLite (for tests)
FlexJSON = JSONB().with_variant(JSON(), "sqlite")


class UTCDateTime(TypeDecorator[datetime]):
    """Timezone-aware UTC datetimes, also on backends that drop tzinfo."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):  # noqa: ARG002
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):  # noqa: ARG002
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Provenance
# ---------------------------------------------------------------------------


class SourceRow(Base):
    """Deduplicated provenance record. Never deleted."""

    __tablename__ = "sources"
    __table_args__ = (
        UniqueConstraint("source_type", "source_identifier", name="uq_source_type_identifier"),
    )

    source_id: Mapped[UUID] = mapped_column(primary_key=True)
    source_type: Mapped[str] = mapped_column(String(50), nullable=False)
    source_identifier: Mapped[str | None] = mapped_column(String(500), nullable=True)
    source_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    source_url: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    trust_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)


# ---------------------------------------------------------------------------
# Entities: VERSIONED (pointer)
# ---------------------------------------------------------------------------


class EntityRow(Base):
    __tablename__ = "entities"

    entity_id: Mapped[UUID] = mapped_column(primary_key=True)
    normalized_name: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    normalized_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    normalized_city: Mapped[str | None] = mapped_column(String(255), nullable=True)
    normalized_country: Mapped[str] = mapped_column(String(2), nullable=False, index=True)
    normalized_vat_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    normalized_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    normalized_website: Mapped[str | None] = mapped_column(String(500), nullable=True)
    # No FK: the version row references the entity, this closes the cycle.
    current_version_id: Mapped[UUID | None] = mapped_column(nullable=True, unique=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)


class EntityVersionRow(Base):
    """Immutable entity snapshot."""

    __tablename__ = "entity_versions"
    __table_args__ = (
        UniqueConstraint("entity_id", "version_number", name="uq_entity_version_number"),
    )

    version_id: Mapped[UUID] = mapped_column(primary_key=True)
    entity_id: Mapped[UUID] = mapped_column(
        ForeignKey("entities.entity_id"), nullable=False, index=True,
    )
    source_id: Mapped[UUID] = mapped_column(ForeignKey("sources.source_id"), nullable=False)
    version_number: Mapped[int] = mapped_column(Integer, nullable=False)
    original_data = mapped_column(FlexJSON, nullable=False)
    normalized_data = mapped_column(FlexJSON, nullable=False)
    change_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    captured_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)


class VerificationRecordRow(Base):
    """Informational confirmation of one entity snapshot. Never updated."""

    __tablename__ = "verification_records"

    verification_id: Mapped[UUID] = mapped_column(primary_key=True)
    version_id: Mapped[UUID] = mapped_column(
        ForeignKey("entity_versions.version_id"), nullable=False, index=True,
    )
    status: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    verified_by: Mapped[str | None] = mapped_column(String(200), nullable=True)
    verification_method: Mapped[str | None] = mapped_column(String(500), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    evidence_url: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    verified_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)
    expires_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)


class EntityRoleRow(Base):
    __tablename__ = "entity_roles"

    role_id: Mapped[UUID] = mapped_column(primary_key=True)
    entity_id: Mapped[UUID] = mapped_column(
        ForeignKey("entities.entity_id"), nullable=False, index=True,
    )
    role_type: Mapped[str] = mapped_column(String(50), nullable=False)
    market_context: Mapped[str] = mapped_column(String(20), nullable=False)
    product_scope: Mapped[str | None] = mapped_column(Text, nullable=True)
    valid_from: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    valid_to: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)


class EntityIdentifierRow(Base):
    """Global dedup index: (type, value) is unique across all entities."""

    __tablename__ = "entity_identifiers"
    __table_args__ = (
        UniqueConstraint("type", "value", name="uq_identifier_type_value"),
    )

    identifier_id: Mapped[UUID] = mapped_column(primary_key=True)
    entity_id: Mapped[UUID] = mapped_column(
        ForeignKey("entities.entity_id"), nullable=False, index=True,
    )
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    value: Mapped[str] = mapped_column(String(100), nullable=False)
    country_code: Mapped[str | None] = mapped_column(String(2), nullable=True)
    source_id: Mapped[UUID] = mapped_column(ForeignKey("sources.source_id"), nullable=False)
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)


class ElectronicContactRow(Base):
    """Contact point owned by exactly one entity or one brand."""

    __tablename__ = "electronic_contacts"
    __table_args__ = (
        CheckConstraint(
            "(entity_id IS NULL) <> (brand_id IS NULL)", name="ck_contact_single_owner",
        ),
    )

    contact_id: Mapped[UUID] = mapped_column(primary_key=True)
    entity_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("entities.entity_id"), nullable=True, index=True,
    )
    brand_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("brands.brand_id"), nullable=True, index=True,
    )
    contact_type: Mapped[str] = mapped_column(String(50), nullable=False)
    value: Mapped[str] = mapped_column(String(500), nullable=False)
    label: Mapped[str | None] = mapped_column(String(255), nullable=True)
    language_code: Mapped[str | None] = mapped_column(String(8), nullable=True)
    is_for_safety_issues: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_for_consumer_complaints: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_public: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    direct_communication_confirmed: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False,
    )
    confirmation_method: Mapped[str | None] = mapped_column(String(200), nullable=True)
    confirmed_by: Mapped[str | None] = mapped_column(String(200), nullable=True)
    confirmed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)


class AddressRow(Base):
    __tablename__ = "addresses"

    address_id: Mapped[UUID] = mapped_column(primary_key=True)
    entity_id: Mapped[UUID] = mapped_column(
        ForeignKey("entities.entity_id"), nullable=False, index=True,
    )
    street_line1: Mapped[str] = mapped_column(String(500), nullable=False)
    street_line2: Mapped[str | None] = mapped_column(String(500), nullable=True)
    city: Mapped[str] = mapped_column(String(255), nullable=False)
    postal_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    region: Mapped[str | None] = mapped_column(String(255), nullable=True)
    country_code: Mapped[str] = mapped_column(String(2), nullable=False)
    normalized_full: Mapped[str] = mapped_column(Text, nullable=False)
    address_type: Mapped[str] = mapped_column(String(50), nullable=False)
    source_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("sources.source_id"), nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)


class EntityRelationshipRow(Base):
    __tablename__ = "entity_relationships"

    relationship_id: Mapped[UUID] = mapped_column(primary_key=True)
    from_entity_id: Mapped[UUID] = mapped_column(
        ForeignKey("entities.entity_id"), nullable=False, index=True,
    )
    to_entity_id: Mapped[UUID] = mapped_column(
        ForeignKey("entities.entity_id"), nullable=False, index=True,
    )
    relation_type: Mapped[str] = mapped_column(String(50), nullable=False)
    valid_from: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    valid_to: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    source_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("sources.source_id"), nullable=True,
    )
    confidence: Mapped[int] = mapped_column(Integer, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)


# ---------------------------------------------------------------------------
# Brands: VERSIONED (pointer)
# ---------------------------------------------------------------------------


class BrandRow(Base):
    __tablename__ = "brands"

    brand_id: Mapped[UUID] = mapped_column(primary_key=True)
    trade_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    trade_mark_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    trade_mark_office: Mapped[str | None] = mapped_column(String(100), nullable=True)
    logo_url: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    current_version_id: Mapped[UUID | None] = mapped_column(nullable=True, unique=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)


class BrandVersionRow(Base):
    """Immutable brand snapshot."""

    __tablename__ = "brand_versions"
    __table_args__ = (
        UniqueConstraint("brand_id", "version_number", name="uq_brand_version_number"),
    )

    version_id: Mapped[UUID] = mapped_column(primary_key=True)
    brand_id: Mapped[UUID] = mapped_column(
        ForeignKey("brands.brand_id"), nullable=False, index=True,
    )
    source_id: Mapped[UUID] = mapped_column(ForeignKey("sources.source_id"), nullable=False)
    version_number: Mapped[int] = mapped_column(Integer, nullable=False)
    original_data = mapped_column(FlexJSON, nullable=False)
    normalized_data = mapped_column(FlexJSON, nullable=False)
    change_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    captured_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)


class BrandLinkRow(Base):
    """Entity standing behind a brand in some capacity and market."""

    __tablename__ = "brand_links"

    link_id: Mapped[UUID] = mapped_column(primary_key=True)
    brand_id: Mapped[UUID] = mapped_column(
        ForeignKey("brands.brand_id"), nullable=False, index=True,
    )
    entity_id: Mapped[UUID] = mapped_column(
        ForeignKey("entities.entity_id"), nullable=False, index=True,
    )
    link_type: Mapped[str] = mapped_column(String(50), nullable=False)
    market_context: Mapped[str] = mapped_column(String(20), nullable=False)
    product_scope: Mapped[str | None] = mapped_column(Text, nullable=True)
    valid_from: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    valid_to: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)


# ---------------------------------------------------------------------------
# Products & safety information: VERSIONED (is_current flag)
# ---------------------------------------------------------------------------


class ProductRow(Base):
    __tablename__ = "products"

    product_id: Mapped[UUID] = mapped_column(primary_key=True)
    brand_id: Mapped[UUID] = mapped_column(
        ForeignKey("brands.brand_id"), nullable=False, index=True,
    )
    product_name: Mapped[str] = mapped_column(String(500), nullable=False)
    ean: Mapped[str | None] = mapped_column(String(20), nullable=True, index=True)
    gtin: Mapped[str | None] = mapped_column(String(20), nullable=True, index=True)
    mpn: Mapped[str | None] = mapped_column(String(100), nullable=True)
    model_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    sku: Mapped[str | None] = mapped_column(String(100), nullable=True)
    product_category: Mapped[str | None] = mapped_column(String(255), nullable=True)
    image_url: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    product_url: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)


class SafetyInfoRow(Base):
    """Safety content versions; at most one current row per product/country/language."""

    __tablename__ = "safety_info"
    __table_args__ = (
        UniqueConstraint(
            "product_id", "country_code", "language_code", "version_number",
            name="uq_safety_info_version_number",
        ),
        Index(
            "uq_safety_info_current",
            "product_id", "country_code", "language_code",
            unique=True,
            postgresql_where=text("is_current"),
            sqlite_where=text("is_current = 1"),
        ),
    )

    safety_info_id: Mapped[UUID] = mapped_column(primary_key=True)
    product_id: Mapped[UUID] = mapped_column(
        ForeignKey("products.product_id"), nullable=False, index=True,
    )
    country_code: Mapped[str] = mapped_column(String(2), nullable=False)
    language_code: Mapped[str] = mapped_column(String(8), nullable=False)
    version_number: Mapped[int] = mapped_column(Integer, nullable=False)
    is_current: Mapped[bool] = mapped_column(Boolean, nullable=False)
    superseded_by: Mapped[UUID | None] = mapped_column(nullable=True)
    warning_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    safety_instructions: Mapped[str | None] = mapped_column(Text, nullable=True)
    age_restriction: Mapped[str | None] = mapped_column(String(100), nullable=True)
    hazard_symbols = mapped_column(FlexJSON, nullable=False)
    document_url: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    document_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    source_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("sources.source_id"), nullable=True,
    )
    valid_from: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    valid_to: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)


class ProductResponsibilityRow(Base):
    """Who is responsible for a product in a country; one ACTIVE row per role."""

    __tablename__ = "product_responsibilities"
    __table_args__ = (
        Index(
            "uq_responsibility_active",
            "product_id", "country_code", "role",
            unique=True,
            postgresql_where=text("status = 'ACTIVE'"),
            sqlite_where=text("status = 'ACTIVE'"),
        ),
        Index("ix_responsibility_key", "product_id", "country_code"),
    )

    responsibility_id: Mapped[UUID] = mapped_column(primary_key=True)
    product_id: Mapped[UUID] = mapped_column(
        ForeignKey("products.product_id"), nullable=False,
    )
    country_code: Mapped[str] = mapped_column(String(2), nullable=False)
    entity_id: Mapped[UUID] = mapped_column(
        ForeignKey("entities.entity_id"), nullable=False, index=True,
    )
    role: Mapped[str] = mapped_column(String(50), nullable=False)
    source_id: Mapped[UUID] = mapped_column(ForeignKey("sources.source_id"), nullable=False)
    confidence: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    valid_from: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    valid_to: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)


# ---------------------------------------------------------------------------
# Claims & evidence
# ---------------------------------------------------------------------------


class ClaimRow(Base):
    """Attribute-level assertion; at most one live claim per subject attribute.

    subject_id is polymorphic and checked in code.
    """

    __tablename__ = "claims"
    __table_args__ = (
        Index("ix_claim_subject_attribute", "subject", "subject_id", "attribute"),
        Index("ix_claim_status_confidence", "status", "confidence"),
        Index(
            "uq_claim_live",
            "subject", "subject_id", "attribute",
            unique=True,
            postgresql_where=text("status IN ('PROPOSED', 'DISPUTED')"),
            sqlite_where=text("status IN ('PROPOSED', 'DISPUTED')"),
        ),
    )

    claim_id: Mapped[UUID] = mapped_column(primary_key=True)
    subject: Mapped[str] = mapped_column(String(50), nullable=False)
    subject_id: Mapped[UUID] = mapped_column(nullable=False)
    attribute: Mapped[str] = mapped_column(String(100), nullable=False)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    source_id: Mapped[UUID] = mapped_column(ForeignKey("sources.source_id"), nullable=False)
    confidence: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    superseded_by_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("claims.claim_id"), nullable=True, index=True,
    )
    reviewed_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    review_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)


class EvidenceRow(Base):
    """Immutable evidence attached to a claim."""

    __tablename__ = "evidence"

    evidence_id: Mapped[UUID] = mapped_column(primary_key=True)
    claim_id: Mapped[UUID] = mapped_column(
        ForeignKey("claims.claim_id"), nullable=False, index=True,
    )
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    url: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    content_hash: Mapped[str | None] = mapped_column(String(128), nullable=True)
    captured_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)


# ---------------------------------------------------------------------------
# Audit: IMMUTABLE
# ---------------------------------------------------------------------------


class AuditLogRow(Base):
    """Append-only before/after snapshots keyed by (entity_type, entity_id)."""

    __tablename__ = "audit_log"
    __table_args__ = (
        Index("ix_audit_subject", "entity_type", "entity_id"),
    )

    audit_id: Mapped[UUID] = mapped_column(primary_key=True)
    action: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[UUID] = mapped_column(nullable=False)
    previous_data = mapped_column(FlexJSON, nullable=True)
    new_data = mapped_column(FlexJSON, nullable=True)
    performed_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
