"""
Typed failures raised by the dependency core.

Every error carries a machine-readable code and the HTTP status the API layer
renders it with. Services raise these and let them propagate; the handler in
``taskdeps.main`` turns them into the ``{"error": {...}}`` envelope.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError

from taskdeps_shared.schemas.common import ErrorBody, ErrorResponse

log = structlog.get_logger()


class DependencyError(Exception):
    """Base class for caller-facing dependency graph failures."""

    error_code = "DEPENDENCY_ERROR"
    status_code = 400
    default_message = "Dependency request failed"

    def __init__(self, message: Optional[str] = None, **details: Any) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        body = ErrorResponse(
            error=ErrorBody(code=self.error_code, message=self.message, status=self.status_code),
            details={k: str(v) for k, v in self.details.items()} or None,
        )
        return body.model_dump(exclude_none=True)


class InvalidEdge(DependencyError):
    error_code = "INVALID_EDGE"
    status_code = 400
    default_message = "A task cannot depend on itself"


class CrossProjectEdge(DependencyError):
    error_code = "CROSS_PROJECT_EDGE"
    status_code = 400
    default_message = "Tasks must be in the same project"


class CycleDetected(DependencyError):
    error_code = "CYCLE_DETECTED"
    status_code = 409
    default_message = "Circular dependency detected"


class DuplicateEdge(DependencyError):
    error_code = "DUPLICATE_EDGE"
    status_code = 409
    default_message = "Dependency already exists"


class InvalidStatusTransition(DependencyError):
    error_code = "INVALID_STATUS_TRANSITION"
    status_code = 409
    default_message = "Resolved dependencies cannot be re-blocked"


class NotFound(DependencyError):
    error_code = "NOT_FOUND"
    status_code = 404
    default_message = "Not found"


class StorageError(DependencyError):
    """Opaque database failure. The write it interrupted did not happen."""

    error_code = "STORAGE_ERROR"
    status_code = 503
    default_message = "Dependency store unavailable"


@contextmanager
def storage_errors(operation: str) -> Iterator[None]:
    """Surface raw database failures as an opaque ``StorageError``."""
    try:
        yield
    except SQLAlchemyError as exc:
        log.error("dependency.storage_error", operation=operation, error=str(exc))
        raise StorageError(operation=operation) from exc
