"""Tests for the registry error taxonomy."""

import logging

import pytest

from gpsr_registry.errors import (
    ConflictError,
    InternalError,
    NotFoundError,
    RegistryError,
    ValidationError,
    as_registry_error,
)


class TestErrors:
    @pytest.mark.parametrize(("error", "status"), [
        (NotFoundError("Entity"), 404),
        (ValidationError("bad"), 400),
        (ConflictError(), 409),
        (InternalError(), 500),
    ])
    def test_status_codes(self, error: RegistryError, status: int) -> None:
        assert error.status_code == status

    def test_not_found_message(self) -> None:
        assert str(NotFoundError("Brand", 7)) == "Brand 7 not found"
        assert NotFoundError("Brand").message == "Brand not found"

    def test_builtin_bases(self) -> None:
        assert isinstance(ValidationError("x"), ValueError)
        assert isinstance(NotFoundError(), LookupError)

    def test_validation_public_dict_includes_field_errors(self) -> None:
        error = ValidationError("Invalid email format", errors={"value": ["bad"]})
        assert error.to_public_dict() == {
            "error": "ValidationError",
            "message": "Invalid email format",
            "errors": {"value": ["bad"]},
        }
        assert "errors" not in ValidationError("x").to_public_dict()

    def test_internal_error_hides_detail(self) -> None:
        public = InternalError("password=hunter2").to_public_dict()
        assert "hunter2" not in public["message"]


class TestAsRegistryError:
    def test_registry_errors_pass_through(self) -> None:
        error = ConflictError("taken")
        assert as_registry_error(error) is error

    def test_unexpected_errors_are_wrapped_and_logged(self, caplog) -> None:
        with caplog.at_level(logging.ERROR, logger="gpsr_registry.errors"):
            wrapped = as_registry_error(KeyError("secret-column"))
        assert isinstance(wrapped, InternalError)
        assert "secret-column" not in wrapped.to_public_dict()["message"]
        assert any("secret-column" in r.getMessage() for r in caplog.records)
