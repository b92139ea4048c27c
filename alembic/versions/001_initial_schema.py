"""Initial schema: the 16 core registry tables.

Revision ID: 001
Revises:
Create Date: 2026-10-16
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _source_fk(nullable: bool = False) -> sa.Column:
    return sa.Column("source_id", UUID(as_uuid=True),
                     sa.ForeignKey("sources.source_id"), nullable=nullable)


def _entity_fk(name: str = "entity_id") -> sa.Column:
    return sa.Column(name, UUID(as_uuid=True),
                     sa.ForeignKey("entities.entity_id"), nullable=False)


def upgrade() -> None:
    # -- Provenance --
    op.create_table(
        "sources",
        sa.Column("source_id", UUID(as_uuid=True), primary_key=True),
        sa.Column("source_type", sa.String(50), nullable=False),
        sa.Column("source_identifier", sa.String(500), nullable=True),
        sa.Column("source_name", sa.String(255), nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("source_url", sa.String(2000), nullable=True),
        sa.Column("trust_note", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("source_type", "source_identifier", name="uq_source_type_identifier"),
    )

    # -- Entities (VERSIONED, pointer) --
    op.create_table(
        "entities",
        sa.Column("entity_id", UUID(as_uuid=True), primary_key=True),
        sa.Column("normalized_name", sa.String(500), nullable=False),
        sa.Column("normalized_address", sa.Text, nullable=True),
        sa.Column("normalized_city", sa.String(255), nullable=True),
        sa.Column("normalized_country", sa.String(2), nullable=False),
        sa.Column("normalized_vat_id", sa.String(50), nullable=True),
        sa.Column("normalized_phone", sa.String(50), nullable=True),
        sa.Column("normalized_website", sa.String(500), nullable=True),
        sa.Column("current_version_id", UUID(as_uuid=True), nullable=True, unique=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_entities_normalized_name", "entities", ["normalized_name"])
    op.create_index("ix_entities_normalized_country", "entities", ["normalized_country"])

    op.create_table(
        "entity_versions",
        sa.Column("version_id", UUID(as_uuid=True), primary_key=True),
        _entity_fk(),
        _source_fk(),
        sa.Column("version_number", sa.Integer, nullable=False),
        sa.Column("original_data", JSONB, nullable=False),
        sa.Column("normalized_data", JSONB, nullable=False),
        sa.Column("change_note", sa.Text, nullable=True),
        sa.Column("captured_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("entity_id", "version_number", name="uq_entity_version_number"),
    )
    op.create_index("ix_entity_versions_entity_id", "entity_versions", ["entity_id"])

    op.create_table(
        "entity_roles",
        sa.Column("role_id", UUID(as_uuid=True), primary_key=True),
        _entity_fk(),
        sa.Column("role_type", sa.String(50), nullable=False),
        sa.Column("market_context", sa.String(20), nullable=False),
        sa.Column("product_scope", sa.Text, nullable=True),
        sa.Column("valid_from", sa.DateTime(timezone=True), nullable=False),
        sa.Column("valid_to", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_entity_roles_entity_id", "entity_roles", ["entity_id"])

    op.create_table(
        "entity_identifiers",
        sa.Column("identifier_id", UUID(as_uuid=True), primary_key=True),
        _entity_fk(),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("value", sa.String(100), nullable=False),
        sa.Column("country_code", sa.String(2), nullable=True),
        _source_fk(),
        sa.Column("is_primary", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("type", "value", name="uq_identifier_type_value"),
    )
    op.create_index("ix_entity_identifiers_entity_id", "entity_identifiers", ["entity_id"])

    op.create_table(
        "electronic_contacts",
        sa.Column("contact_id", UUID(as_uuid=True), primary_key=True),
        _entity_fk(),
        sa.Column("contact_type", sa.String(50), nullable=False),
        sa.Column("value", sa.String(500), nullable=False),
        sa.Column("label", sa.String(255), nullable=True),
        sa.Column("language_code", sa.String(8), nullable=True),
        sa.Column("is_for_safety_issues", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_for_consumer_complaints", sa.Boolean, nullable=False,
                  server_default=sa.false()),
        sa.Column("is_public", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_electronic_contacts_entity_id", "electronic_contacts", ["entity_id"])

    op.create_table(
        "addresses",
        sa.Column("address_id", UUID(as_uuid=True), primary_key=True),
        _entity_fk(),
        sa.Column("street_line1", sa.String(500), nullable=False),
        sa.Column("street_line2", sa.String(500), nullable=True),
        sa.Column("city", sa.String(255), nullable=False),
        sa.Column("postal_code", sa.String(20), nullable=True),
        sa.Column("region", sa.String(255), nullable=True),
        sa.Column("country_code", sa.String(2), nullable=False),
        sa.Column("normalized_full", sa.Text, nullable=False),
        sa.Column("address_type", sa.String(50), nullable=False),
        _source_fk(nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_addresses_entity_id", "addresses", ["entity_id"])

    op.create_table(
        "entity_relationships",
        sa.Column("relationship_id", UUID(as_uuid=True), primary_key=True),
        _entity_fk("from_entity_id"),
        _entity_fk("to_entity_id"),
        sa.Column("relation_type", sa.String(50), nullable=False),
        sa.Column("valid_from", sa.DateTime(timezone=True), nullable=False),
        sa.Column("valid_to", sa.DateTime(timezone=True), nullable=True),
        _source_fk(nullable=True),
        sa.Column("confidence", sa.Integer, nullable=False),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_entity_relationships_from_entity_id", "entity_relationships",
                    ["from_entity_id"])
    op.create_index("ix_entity_relationships_to_entity_id", "entity_relationships",
                    ["to_entity_id"])

    # -- Brands (VERSIONED, pointer) --
    op.create_table(
        "brands",
        sa.Column("brand_id", UUID(as_uuid=True), primary_key=True),
        sa.Column("trade_name", sa.String(255), nullable=False),
        sa.Column("trade_mark_number", sa.String(100), nullable=True),
        sa.Column("trade_mark_office", sa.String(100), nullable=True),
        sa.Column("logo_url", sa.String(2000), nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("is_verified", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("current_version_id", UUID(as_uuid=True), nullable=True, unique=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_brands_trade_name", "brands", ["trade_name"])

    op.create_table(
        "brand_versions",
        sa.Column("version_id", UUID(as_uuid=True), primary_key=True),
        sa.Column("brand_id", UUID(as_uuid=True), sa.ForeignKey("brands.brand_id"),
                  nullable=False),
        _source_fk(),
        sa.Column("version_number", sa.Integer, nullable=False),
        sa.Column("original_data", JSONB, nullable=False),
        sa.Column("normalized_data", JSONB, nullable=False),
        sa.Column("change_note", sa.Text, nullable=True),
        sa.Column("captured_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("brand_id", "version_number", name="uq_brand_version_number"),
    )
    op.create_index("ix_brand_versions_brand_id", "brand_versions", ["brand_id"])

    # -- Products & safety information (VERSIONED, flag) --
    op.create_table(
        "products",
        sa.Column("product_id", UUID(as_uuid=True), primary_key=True),
        sa.Column("brand_id", UUID(as_uuid=True), sa.ForeignKey("brands.brand_id"),
                  nullable=False),
        sa.Column("product_name", sa.String(500), nullable=False),
        sa.Column("ean", sa.String(20), nullable=True),
        sa.Column("gtin", sa.String(20), nullable=True),
        sa.Column("mpn", sa.String(100), nullable=True),
        sa.Column("model_number", sa.String(100), nullable=True),
        sa.Column("sku", sa.String(100), nullable=True),
        sa.Column("product_category", sa.String(255), nullable=True),
        sa.Column("image_url", sa.String(2000), nullable=True),
        sa.Column("product_url", sa.String(2000), nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_products_brand_id", "products", ["brand_id"])
    op.create_index("ix_products_ean", "products", ["ean"])
    op.create_index("ix_products_gtin", "products", ["gtin"])

    op.create_table(
        "safety_info",
        sa.Column("safety_info_id", UUID(as_uuid=True), primary_key=True),
        sa.Column("product_id", UUID(as_uuid=True), sa.ForeignKey("products.product_id"),
                  nullable=False),
        sa.Column("country_code", sa.String(2), nullable=False),
        sa.Column("language_code", sa.String(8), nullable=False),
        sa.Column("version_number", sa.Integer, nullable=False),
        sa.Column("is_current", sa.Boolean, nullable=False),
        sa.Column("superseded_by", UUID(as_uuid=True), nullable=True),
        sa.Column("warning_text", sa.Text, nullable=True),
        sa.Column("safety_instructions", sa.Text, nullable=True),
        sa.Column("age_restriction", sa.String(100), nullable=True),
        sa.Column("hazard_symbols", JSONB, nullable=False),
        sa.Column("document_url", sa.String(2000), nullable=True),
        sa.Column("document_type", sa.String(50), nullable=True),
        _source_fk(nullable=True),
        sa.Column("valid_from", sa.DateTime(timezone=True), nullable=False),
        sa.Column("valid_to", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint(
            "product_id", "country_code", "language_code", "version_number",
            name="uq_safety_info_version_number",
        ),
    )
    op.create_index("ix_safety_info_product_id", "safety_info", ["product_id"])
    op.create_index(
        "uq_safety_info_current", "safety_info",
        ["product_id", "country_code", "language_code"],
        unique=True, postgresql_where=sa.text("is_current"),
    )

    op.create_table(
        "product_responsibilities",
        sa.Column("responsibility_id", UUID(as_uuid=True), primary_key=True),
        sa.Column("product_id", UUID(as_uuid=True), sa.ForeignKey("products.product_id"),
                  nullable=False),
        sa.Column("country_code", sa.String(2), nullable=False),
        _entity_fk(),
        sa.Column("role", sa.String(50), nullable=False),
        _source_fk(),
        sa.Column("confidence", sa.Integer, nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("valid_from", sa.DateTime(timezone=True), nullable=False),
        sa.Column("valid_to", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_product_responsibilities_entity_id", "product_responsibilities",
                    ["entity_id"])
    op.create_index("ix_responsibility_key", "product_responsibilities",
                    ["product_id", "country_code"])
    op.create_index(
        "uq_responsibility_active", "product_responsibilities",
        ["product_id", "country_code", "role"],
        unique=True, postgresql_where=sa.text("status = 'ACTIVE'"),
    )

    # -- Claims & evidence --
    op.create_table(
        "claims",
        sa.Column("claim_id", UUID(as_uuid=True), primary_key=True),
        sa.Column("subject", sa.String(50), nullable=False),
        sa.Column("subject_id", UUID(as_uuid=True), nullable=False),
        sa.Column("attribute", sa.String(100), nullable=False),
        sa.Column("value", sa.Text, nullable=False),
        _source_fk(),
        sa.Column("confidence", sa.Integer, nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("superseded_by_id", UUID(as_uuid=True), sa.ForeignKey("claims.claim_id"),
                  nullable=True),
        sa.Column("reviewed_by", sa.String(255), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("review_notes", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_claim_subject_attribute", "claims",
                    ["subject", "subject_id", "attribute"])
    op.create_index("ix_claim_status_confidence", "claims", ["status", "confidence"])
    op.create_index("ix_claims_superseded_by_id", "claims", ["superseded_by_id"])

    op.create_table(
        "evidence",
        sa.Column("evidence_id", UUID(as_uuid=True), primary_key=True),
        sa.Column("claim_id", UUID(as_uuid=True), sa.ForeignKey("claims.claim_id"),
                  nullable=False),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("url", sa.String(2000), nullable=True),
        sa.Column("content", sa.Text, nullable=True),
        sa.Column("content_hash", sa.String(128), nullable=True),
        sa.Column("captured_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_evidence_claim_id", "evidence", ["claim_id"])

    # -- Audit (IMMUTABLE) --
    op.create_table(
        "audit_log",
        sa.Column("audit_id", UUID(as_uuid=True), primary_key=True),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("entity_type", sa.String(50), nullable=False),
        sa.Column("entity_id", UUID(as_uuid=True), nullable=False),
        sa.Column("previous_data", JSONB, nullable=True),
        sa.Column("new_data", JSONB, nullable=True),
        sa.Column("performed_by", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_audit_log_action", "audit_log", ["action"])
    op.create_index("ix_audit_subject", "audit_log", ["entity_type", "entity_id"])


def downgrade() -> None:
    op.drop_table("audit_log")
    op.drop_table("evidence")
    op.drop_table("claims")
    op.drop_table("product_responsibilities")
    op.drop_table("safety_info")
    op.drop_table("products")
    op.drop_table("brand_versions")
    op.drop_table("brands")
    op.drop_table("entity_relationships")
    op.drop_table("addresses")
    op.drop_table("electronic_contacts")
    op.drop_table("entity_identifiers")
    op.drop_table("entity_roles")
    op.drop_table("entity_versions")
    op.drop_table("entities")
    op.drop_table("sources")
