"""Retry-on-conflict wrapper for optimistic writes.

Two races are resolved by retrying the whole unit of work: the next
version number for an aggregate, and the find-or-create of a Source. Both
surface as a unique-constraint violation at flush time; every other error
propagates on the first attempt.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import NoReturn, TypeVar

from sqlalchemy.exc import IntegrityError

from gpsr_registry.errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_UNIQUE_VIOLATION = "23505"
_FOREIGN_KEY_VIOLATION = "23503"


def _sqlstate(exc: IntegrityError) -> str | None:
    orig = exc.orig
    for candidate in (orig, getattr(orig, "__cause__", None)):
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if code:
            return str(code)
    return None


def is_unique_violation(exc: BaseException) -> bool:
    """True for a unique/primary-key violation on Postgres or SQLite."""
    if not isinstance(exc, IntegrityError):
        return False
    if _sqlstate(exc) == _UNIQUE_VIOLATION:
        return True
    return "UNIQUE constraint failed" in str(exc.orig)


def is_foreign_key_violation(exc: BaseException) -> bool:
    if not isinstance(exc, IntegrityError):
        return False
    if _sqlstate(exc) == _FOREIGN_KEY_VIOLATION:
        return True
    return "FOREIGN KEY constraint failed" in str(exc.orig)


def raise_integrity_error(exc: IntegrityError, *, resource: str = "Referenced record",
                          conflict_message: str | None = None) -> NoReturn:
    """Translate an integrity failure of a non-retried write.

    A dangling reference becomes ``NotFoundError``, a lost unique race
    ``ConflictError``; anything else is re-raised unchanged.
    """
    if is_foreign_key_violation(exc):
        raise NotFoundError(resource) from exc
    if is_unique_violation(exc):
        raise ConflictError(conflict_message or "Resource already exists") from exc
    raise exc


async def retry_on_unique_violation(
    operation: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = 3,
    base_delay: float = 0.02,
    description: str = "write",
) -> T:
    """Run ``operation`` until it stops losing unique-constraint races.

    ``operation`` must open and commit its own transaction so each attempt
    re-reads fresh state. Attempt ``n`` that fails on a unique violation
    sleeps ``base_delay * 2 ** (n - 1)`` before the next one.

    Raises:
        ConflictError: All attempts lost the race.
        NotFoundError: A foreign key pointed at a missing row.
    """
    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except IntegrityError as exc:
            if is_foreign_key_violation(exc):
                raise NotFoundError("Referenced record") from exc
            if not is_unique_violation(exc):
                raise
            if attempt == max_attempts:
                logger.error(
                    "%s: unique constraint still violated after %d attempts",
                    description, max_attempts,
                )
                msg = f"Concurrent modification: {description} failed after {max_attempts} attempts"
                raise ConflictError(msg) from exc
            delay = base_delay * 2 ** (attempt - 1)
            logger.warning(
                "%s: unique constraint violated (attempt %d/%d), retrying in %.0f ms",
                description, attempt, max_attempts, delay * 1000,
            )
            await asyncio.sleep(delay)
    # max_attempts < 1
    msg = f"{description}: max_attempts must be at least 1"
    raise ValueError(msg)
