"""Tests for field normalization (gpsr_registry/normalization.py)."""

import pytest

from gpsr_registry.normalization import (
    full_address_text,
    normalize_address,
    normalize_country,
    normalize_email,
    normalize_identifier_value,
    normalize_name,
    normalize_phone,
    normalize_vat_id,
    normalize_website,
)


class TestNormalizeName:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("  ACME Corp.  ", "Acme"),
            ("Firma Sp. z o.o.", "Firma"),
            ("Bosch GmbH", "Bosch"),
            ("ACME   Tools  S.A.", "Acme Tools"),
            ("Globex Inc", "Globex"),
            ("coca cola", "Coca Cola"),
        ],
    )
    def test_strips_legal_suffix_and_capitalizes(self, raw: str, expected: str) -> None:
        assert normalize_name(raw) == expected

    def test_idempotent(self) -> None:
        once = normalize_name("Firma Handlowa Sp. z o.o.")
        assert normalize_name(once) == once


class TestNormalizeContactFields:
    def test_vat_id_removes_formatting(self) -> None:
        assert normalize_vat_id("pl 123-456-78.90") == "PL1234567890"

    def test_vat_id_empty_is_none(self) -> None:
        assert normalize_vat_id("") is None
        assert normalize_vat_id(None) is None

    def test_email_lowercased(self) -> None:
        assert normalize_email("  Safety@ACME.pl ") == "safety@acme.pl"

    def test_phone_keeps_leading_plus(self) -> None:
        assert normalize_phone("+48 (22) 123-45-67") == "+48221234567"

    def test_phone_without_plus(self) -> None:
        assert normalize_phone("022 123 45 67") == "0221234567"

    def test_website_defaults_to_https(self) -> None:
        assert normalize_website("WWW.Acme.PL/") == "https://www.acme.pl"

    def test_website_keeps_http(self) -> None:
        assert normalize_website("http://acme.pl") == "http://acme.pl"


class TestNormalizeLocation:
    def test_country_upper(self) -> None:
        assert normalize_country(" pl ") == "PL"

    def test_address_collapses_whitespace(self) -> None:
        assert normalize_address("  ul.   nowa 1 ") == "Ul. Nowa 1"

    def test_full_address_text_skips_missing_parts(self) -> None:
        text = full_address_text(
            street_line1="Nowa 1", city="Warszawa", country_code="PL",
            postal_code="00-001",
        )
        assert text == "nowa 1 00-001 warszawa pl"

    def test_identifier_value_trimmed_upper(self) -> None:
        assert normalize_identifier_value("  pl1234567890 ") == "PL1234567890"
