"""Brand links, verification records, brand contacts and the live-claim index.

Adds brand_links and verification_records. electronic_contacts may now
belong to a brand instead of an entity and records direct-communication
confirmation. claims gets a partial unique index so only one PROPOSED or
DISPUTED claim exists per subject attribute.

Revision ID: 002
Revises: 001
Create Date: 2026-10-16
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "verification_records",
        sa.Column("verification_id", UUID(as_uuid=True), primary_key=True),
        sa.Column("version_id", UUID(as_uuid=True),
                  sa.ForeignKey("entity_versions.version_id"), nullable=False),
        sa.Column("status", sa.String(30), nullable=False),
        sa.Column("verified_by", sa.String(200), nullable=True),
        sa.Column("verification_method", sa.String(500), nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("evidence_url", sa.String(2000), nullable=True),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_verification_records_version_id", "verification_records",
                    ["version_id"])
    op.create_index("ix_verification_records_status", "verification_records", ["status"])
    op.create_index("ix_verification_records_verified_at", "verification_records",
                    ["verified_at"])

    op.create_table(
        "brand_links",
        sa.Column("link_id", UUID(as_uuid=True), primary_key=True),
        sa.Column("brand_id", UUID(as_uuid=True), sa.ForeignKey("brands.brand_id"),
                  nullable=False),
        sa.Column("entity_id", UUID(as_uuid=True), sa.ForeignKey("entities.entity_id"),
                  nullable=False),
        sa.Column("link_type", sa.String(50), nullable=False),
        sa.Column("market_context", sa.String(20), nullable=False),
        sa.Column("product_scope", sa.Text, nullable=True),
        sa.Column("valid_from", sa.DateTime(timezone=True), nullable=False),
        sa.Column("valid_to", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_brand_links_brand_id", "brand_links", ["brand_id"])
    op.create_index("ix_brand_links_entity_id", "brand_links", ["entity_id"])

    # batch mode so SQLite can relax entity_id and add the check constraint
    with op.batch_alter_table("electronic_contacts") as batch:
        batch.alter_column("entity_id", existing_type=UUID(as_uuid=True), nullable=True)
        batch.add_column(sa.Column("brand_id", UUID(as_uuid=True),
                                   sa.ForeignKey("brands.brand_id"), nullable=True))
        batch.add_column(sa.Column("direct_communication_confirmed", sa.Boolean,
                                   nullable=False, server_default=sa.false()))
        batch.add_column(sa.Column("confirmation_method", sa.String(200), nullable=True))
        batch.add_column(sa.Column("confirmed_by", sa.String(200), nullable=True))
        batch.add_column(sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True))
        batch.create_check_constraint(
            "ck_contact_single_owner", "(entity_id IS NULL) <> (brand_id IS NULL)",
        )
        batch.create_index("ix_electronic_contacts_brand_id", ["brand_id"])

    op.create_index(
        "uq_claim_live", "claims",
        ["subject", "subject_id", "attribute"],
        unique=True, postgresql_where=sa.text("status IN ('PROPOSED', 'DISPUTED')"),
    )


def downgrade() -> None:
    op.drop_index("uq_claim_live", table_name="claims")
    op.execute("DELETE FROM electronic_contacts WHERE brand_id IS NOT NULL")
    with op.batch_alter_table("electronic_contacts") as batch:
        batch.drop_index("ix_electronic_contacts_brand_id")
        batch.drop_constraint("ck_contact_single_owner", type_="check")
        batch.drop_column("confirmed_at")
        batch.drop_column("confirmed_by")
        batch.drop_column("confirmation_method")
        batch.drop_column("direct_communication_confirmed")
        batch.drop_column("brand_id")
        batch.alter_column("entity_id", existing_type=UUID(as_uuid=True), nullable=False)
    op.drop_table("brand_links")
    op.drop_table("verification_records")
