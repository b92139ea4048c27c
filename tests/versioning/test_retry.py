"""Tests for the unique-violation retry wrapper (gpsr_registry/versioning/retry.py)."""

import logging

import pytest
from sqlalchemy.exc import IntegrityError

from gpsr_registry.errors import ConflictError, NotFoundError
from gpsr_registry.versioning.retry import (
    is_foreign_key_violation,
    is_unique_violation,
    raise_integrity_error,
    retry_on_unique_violation,
)


class _PgError(Exception):
    def __init__(self, message: str, sqlstate: str) -> None:
        super().__init__(message)
        self.sqlstate = sqlstate


def _unique() -> IntegrityError:
    return IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: entity_versions.x"))


def _foreign_key() -> IntegrityError:
    return IntegrityError("INSERT", {}, Exception("FOREIGN KEY constraint failed"))


def _not_null() -> IntegrityError:
    return IntegrityError("INSERT", {}, Exception("NOT NULL constraint failed: sources.x"))


class TestClassification:
    def test_sqlite_unique(self) -> None:
        assert is_unique_violation(_unique())
        assert not is_foreign_key_violation(_unique())

    def test_sqlite_foreign_key(self) -> None:
        assert is_foreign_key_violation(_foreign_key())
        assert not is_unique_violation(_foreign_key())

    def test_postgres_sqlstate(self) -> None:
        exc = IntegrityError("INSERT", {}, _PgError("duplicate key value", "23505"))
        assert is_unique_violation(exc)
        fk = IntegrityError("INSERT", {}, _PgError("violates foreign key", "23503"))
        assert is_foreign_key_violation(fk)

    def test_other_exceptions_are_not_violations(self) -> None:
        assert not is_unique_violation(ValueError("UNIQUE constraint failed"))


class TestRaiseIntegrityError:
    def test_foreign_key_becomes_not_found(self) -> None:
        with pytest.raises(NotFoundError, match="Source not found"):
            raise_integrity_error(_foreign_key(), resource="Source")

    def test_unique_becomes_conflict(self) -> None:
        with pytest.raises(ConflictError, match="taken"):
            raise_integrity_error(_unique(), conflict_message="taken")

    def test_other_integrity_error_reraised(self) -> None:
        with pytest.raises(IntegrityError):
            raise_integrity_error(_not_null())


class TestRetryOnUniqueViolation:
    @pytest.mark.anyio
    async def test_returns_first_success(self) -> None:
        calls = []

        async def op() -> str:
            calls.append(1)
            return "ok"

        assert await retry_on_unique_violation(op, base_delay=0) == "ok"
        assert len(calls) == 1

    @pytest.mark.anyio
    async def test_retries_unique_then_succeeds(self, caplog) -> None:
        calls = []

        async def op() -> int:
            calls.append(1)
            if len(calls) < 3:
                raise _unique()
            return len(calls)

        with caplog.at_level(logging.WARNING, logger="gpsr_registry.versioning.retry"):
            assert await retry_on_unique_violation(op, max_attempts=3, base_delay=0) == 3
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 2

    @pytest.mark.anyio
    async def test_exhausted_raises_conflict(self, caplog) -> None:
        calls = []

        async def op() -> None:
            calls.append(1)
            raise _unique()

        with caplog.at_level(logging.ERROR, logger="gpsr_registry.versioning.retry"):
            with pytest.raises(ConflictError, match="after 3 attempts"):
                await retry_on_unique_violation(op, max_attempts=3, base_delay=0,
                                                description="Entity x version")
        assert len(calls) == 3
        assert any(r.levelno == logging.ERROR for r in caplog.records)

    @pytest.mark.anyio
    async def test_foreign_key_not_retried(self) -> None:
        calls = []

        async def op() -> None:
            calls.append(1)
            raise _foreign_key()

        with pytest.raises(NotFoundError):
            await retry_on_unique_violation(op, base_delay=0)
        assert len(calls) == 1

    @pytest.mark.anyio
    async def test_other_errors_propagate_immediately(self) -> None:
        calls = []

        async def op() -> None:
            calls.append(1)
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await retry_on_unique_violation(op, base_delay=0)
        assert len(calls) == 1

    @pytest.mark.anyio
    async def test_backoff_doubles(self, monkeypatch) -> None:
        delays: list[float] = []

        async def fake_sleep(delay: float) -> None:
            delays.append(delay)

        monkeypatch.setattr("gpsr_registry.versioning.retry.asyncio.sleep", fake_sleep)

        async def op() -> None:
            raise _unique()

        with pytest.raises(ConflictError):
            await retry_on_unique_violation(op, max_attempts=3, base_delay=0.02)
        assert delays == pytest.approx([0.02, 0.04])
