"""Typed failures raised by the registry core.

Each error carries the HTTP-equivalent status a controller should surface.
Business-rule violations subclass ``ValueError`` so callers that only catch
``ValueError`` keep working.
"""

import logging

logger = logging.getLogger(__name__)


class RegistryError(Exception):
    """Base class for all registry errors."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_public_dict(self) -> dict:
        return {"error": type(self).__name__, "message": self.message}


class NotFoundError(RegistryError, LookupError):
    """A referenced aggregate, version, source or row does not exist."""

    status_code = 404

    def __init__(self, resource: str = "Resource", resource_id: object | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} {resource_id} not found"
        super().__init__(message)


class ValidationError(RegistryError, ValueError):
    """Business-rule violation with optional field-level detail."""

    status_code = 400

    def __init__(self, message: str, errors: dict[str, list[str]] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or {}

    def to_public_dict(self) -> dict:
        payload = super().to_public_dict()
        if self.errors:
            payload["errors"] = self.errors
        return payload


class ConflictError(RegistryError):
    """A unique-constraint race that could not be resolved by retrying."""

    status_code = 409

    def __init__(self, message: str = "Resource already exists") -> None:
        super().__init__(message)


class InternalError(RegistryError):
    """Anything unexpected. Only a generic message is exposed publicly."""

    status_code = 500

    def __init__(self, message: str = "Internal error") -> None:
        super().__init__(message)

    def to_public_dict(self) -> dict:
        return {"error": "InternalError", "message": "An unexpected error occurred."}


def as_registry_error(exc: Exception) -> RegistryError:
    """Map any exception onto the registry taxonomy for callers at the edge.

    Registry errors pass through untouched; everything else becomes an
    ``InternalError`` and the original detail is logged, never exposed.
    """
    if isinstance(exc, RegistryError):
        return exc
    logger.error("Unexpected error: %r", exc, exc_info=exc)
    return InternalError(str(exc))
