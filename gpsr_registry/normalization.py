"""Normalization of searchable registry fields.

Applied before every write that touches a searchable column so that lookups,
deduplication and display see one canonical form. Every function is pure;
optional inputs map empty values to ``None``.
"""

import re

# Legal-form suffixes stripped from entity names (matched on lowercased text).
_LEGAL_SUFFIX_RE = re.compile(
    r"\b(sp\.?\s*z\.?\s*o\.?\s*o\.?|s\.?\s*a\.?|ltd\.?|gmbh|inc\.?|corp\.?|llc\.?"
    r"|co\.?|plc\.?|ag|bv|nv|sarl|srl|oy|ab)\.?(?:\s|$)",
    re.IGNORECASE,
)
_STRAY_PERIOD_RE = re.compile(r"\s*\.\s*")
_WHITESPACE_RE = re.compile(r"\s+")
_VAT_FORMATTING_RE = re.compile(r"[\s.\-]")
_NON_DIGIT_RE = re.compile(r"\D")
_WORD_START_RE = re.compile(r"\b\w")


def normalize_name(name: str) -> str:
    """Canonical entity name: legal suffixes removed, each word capitalized.

    >>> normalize_name("  ACME Corp.  ")
    'Acme'
    >>> normalize_name("Firma Sp. z o.o.")
    'Firma'
    """
    text = name.strip().lower()
    text = _LEGAL_SUFFIX_RE.sub(" ", text)
    text = _STRAY_PERIOD_RE.sub(" ", text)
    text = _WHITESPACE_RE.sub(" ", text).strip()
    return " ".join(word[:1].upper() + word[1:] for word in text.split(" "))


def normalize_vat_id(vat_id: str | None) -> str | None:
    """'PL 123-456-78-90' -> 'PL1234567890'."""
    if not vat_id:
        return None
    return _VAT_FORMATTING_RE.sub("", vat_id.strip().upper())


def normalize_email(email: str | None) -> str | None:
    if not email:
        return None
    return email.strip().lower()


def normalize_phone(phone: str | None) -> str | None:
    """Keep digits only, preserving a leading international ``+``."""
    if not phone:
        return None
    cleaned = phone.strip()
    if cleaned.startswith("+"):
        return "+" + _NON_DIGIT_RE.sub("", cleaned[1:])
    return _NON_DIGIT_RE.sub("", cleaned)


def normalize_website(website: str | None) -> str | None:
    """Lowercase, default to https, no trailing slash."""
    if not website:
        return None
    url = website.strip().lower()
    if not url.startswith(("http://", "https://")):
        url = "https://" + url
    return url.removesuffix("/")


def normalize_country(country: str) -> str:
    """ISO 3166-1 alpha-2, upper case."""
    return country.strip().upper()


def normalize_address(address: str | None) -> str | None:
    if not address:
        return None
    collapsed = _WHITESPACE_RE.sub(" ", address.strip())
    return _WORD_START_RE.sub(lambda m: m.group(0).upper(), collapsed)


def normalize_identifier_value(value: str) -> str:
    """Identifier values are compared trimmed and upper-cased."""
    return value.strip().upper()


def full_address_text(
    *,
    street_line1: str,
    city: str,
    country_code: str,
    street_line2: str | None = None,
    postal_code: str | None = None,
    region: str | None = None,
) -> str:
    """Lowercased one-line address used for substring search."""
    parts = [street_line1, street_line2, postal_code, city, region, country_code]
    return " ".join(p for p in parts if p).lower().strip()
