"""Product references and their per-market safety information."""

from uuid import UUID

from pydantic import Field

from gpsr_registry.models.common import DocumentType, RegistryBase, UTCTimestamp
from gpsr_registry.models.source import SourceInput


class ProductInput(RegistryBase):
    brand_id: UUID
    product_name: str = Field(..., min_length=1, max_length=500)
    ean: str | None = None
    gtin: str | None = None
    mpn: str | None = None
    model_number: str | None = None
    sku: str | None = None
    product_category: str | None = None
    image_url: str | None = None
    product_url: str | None = None


class ProductPatch(RegistryBase):
    product_name: str | None = None
    ean: str | None = None
    gtin: str | None = None
    mpn: str | None = None
    model_number: str | None = None
    sku: str | None = None
    product_category: str | None = None
    image_url: str | None = None
    product_url: str | None = None
    is_active: bool | None = None


class Product(RegistryBase):
    product_id: UUID
    brand_id: UUID
    product_name: str
    ean: str | None = None
    gtin: str | None = None
    mpn: str | None = None
    model_number: str | None = None
    sku: str | None = None
    product_category: str | None = None
    image_url: str | None = None
    product_url: str | None = None
    is_active: bool = True
    created_at: UTCTimestamp
    updated_at: UTCTimestamp


class SafetyInfoInput(RegistryBase):
    """Safety content for one product in one country and language."""

    product_id: UUID
    country_code: str = Field(..., min_length=2, max_length=2)
    language_code: str = Field(..., min_length=2, max_length=8)
    warning_text: str | None = None
    safety_instructions: str | None = None
    age_restriction: str | None = None
    hazard_symbols: list[str] = Field(default_factory=list)
    document_url: str | None = None
    document_type: DocumentType | None = None
    source: SourceInput | None = None


class SafetyInfoPatch(RegistryBase):
    warning_text: str | None = None
    safety_instructions: str | None = None
    age_restriction: str | None = None
    hazard_symbols: list[str] | None = None
    document_url: str | None = None
    document_type: DocumentType | None = None
    is_active: bool | None = None
    source: SourceInput | None = None


class SafetyInfo(RegistryBase):
    """One version of safety content; ``is_current`` marks the live row."""

    safety_info_id: UUID
    product_id: UUID
    country_code: str
    language_code: str
    version_number: int
    is_current: bool
    superseded_by: UUID | None = None
    warning_text: str | None = None
    safety_instructions: str | None = None
    age_restriction: str | None = None
    hazard_symbols: list[str] = Field(default_factory=list)
    document_url: str | None = None
    document_type: DocumentType | None = None
    source_id: UUID | None = None
    valid_from: UTCTimestamp
    valid_to: UTCTimestamp | None = None
    is_active: bool = True
    created_at: UTCTimestamp
