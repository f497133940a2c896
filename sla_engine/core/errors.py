"""SLA engine error taxonomy.

A closed set of error kinds shared by every component. Each kind carries
retryability metadata and maps to one fixed, non-technical message for end
users; the raw message and detail are for logs only.
"""

import enum
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class ErrorKind(str, enum.Enum):
    """Kinds of failure the engine and its collaborators can report."""

    NOT_FOUND = "NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    TEMPLATE_ERROR = "TEMPLATE_ERROR"
    GENERATION_ERROR = "GENERATION_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    RATE_LIMIT_ERROR = "RATE_LIMIT_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"


# Suggested delay in seconds before a retryable error may be retried.
RETRY_DELAYS: dict[ErrorKind, float] = {
    ErrorKind.DATABASE_ERROR: 1.0,
    ErrorKind.NETWORK_ERROR: 2.0,
    ErrorKind.RATE_LIMIT_ERROR: 5.0,
}

USER_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.NOT_FOUND: (
        "The requested SLA resource could not be found. "
        "Please check your selection and try again."
    ),
    ErrorKind.VALIDATION_ERROR: "Please check your input: {detail}",
    ErrorKind.TEMPLATE_ERROR: (
        "There was an issue with the SLA template. "
        "Please try again or contact support."
    ),
    ErrorKind.GENERATION_ERROR: (
        "Failed to generate the SLA document. Please try again or contact support."
    ),
    ErrorKind.DATABASE_ERROR: "A database error occurred. Please try again in a few moments.",
    ErrorKind.NETWORK_ERROR: (
        "Network connection failed. Please check your internet connection and try again."
    ),
    ErrorKind.RATE_LIMIT_ERROR: "Too many requests. Please wait a moment and try again.",
    ErrorKind.CONFIGURATION_ERROR: (
        "The service is not configured correctly. Please contact support."
    ),
}


class ErrorContext(BaseModel):
    """Where an error happened, attached for logging."""

    operation: str
    user_id: str | None = None
    client_id: str | None = None
    template_id: str | None = None
    agreement_id: str | None = None
    extra: dict[str, Any] = Field(default_factory=dict)


class SLAError(Exception):
    """Base class for every error raised by the engine."""

    kind: ErrorKind = ErrorKind.GENERATION_ERROR

    def __init__(
        self,
        message: str,
        detail: str | None = None,
        code: str | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail
        self.code = code or self.kind.value
        self.context = context
        self.timestamp = datetime.now(timezone.utc)

    @property
    def retryable(self) -> bool:
        return self.kind in RETRY_DELAYS

    @property
    def retry_delay(self) -> float:
        """Suggested delay in seconds, 0 when the error is not retryable."""
        return RETRY_DELAYS.get(self.kind, 0.0)

    @property
    def user_message(self) -> str:
        return USER_MESSAGES[self.kind].format(detail=self.detail or self.message)

    def with_context(self, context: ErrorContext) -> "SLAError":
        self.context = context
        return self

    def to_dict(self) -> dict[str, Any]:
        """Serialize for structured logs."""
        return {
            "kind": self.kind.value,
            "code": self.code,
            "message": self.message,
            "detail": self.detail,
            "retryable": self.retryable,
            "retry_delay": self.retry_delay,
            "context": self.context.model_dump() if self.context else None,
            "timestamp": self.timestamp.isoformat(),
        }


class NotFoundError(SLAError):
    kind = ErrorKind.NOT_FOUND

    def __init__(self, resource: str, identifier: str | None = None, **kwargs: Any) -> None:
        message = (
            f"{resource} with identifier '{identifier}' not found"
            if identifier
            else f"{resource} not found"
        )
        super().__init__(message, **kwargs)
        self.resource = resource
        self.identifier = identifier


class DataValidationError(SLAError):
    """Caller-supplied data failed a declared rule. Always carries a detail."""

    kind = ErrorKind.VALIDATION_ERROR

    def __init__(self, detail: str, message: str | None = None, **kwargs: Any) -> None:
        super().__init__(message or detail, detail=detail, **kwargs)


class DuplicateRecordError(DataValidationError):
    """A write violated a uniqueness constraint."""

    def __init__(
        self,
        detail: str = "Resource already exists or violates unique constraint",
        **kwargs: Any,
    ) -> None:
        kwargs.setdefault("code", "DUPLICATE_RECORD")
        super().__init__(detail, **kwargs)


class NumberingConflictError(DuplicateRecordError):
    """A document number could not be committed after the single retry."""

    def __init__(self, number: str, **kwargs: Any) -> None:
        kwargs.setdefault("code", "NUMBERING_CONFLICT")
        super().__init__(f"Document number '{number}' is already taken", **kwargs)
        self.number = number

    @property
    def user_message(self) -> str:
        return "Numbering conflict, please retry."


class TemplateError(SLAError):
    """Structural defect in a template; fixed by authoring, never by retrying."""

    kind = ErrorKind.TEMPLATE_ERROR


class GenerationError(SLAError):
    kind = ErrorKind.GENERATION_ERROR


class DatabaseError(SLAError):
    kind = ErrorKind.DATABASE_ERROR


class NetworkError(SLAError):
    kind = ErrorKind.NETWORK_ERROR


class RateLimitError(SLAError):
    kind = ErrorKind.RATE_LIMIT_ERROR

    def __init__(self, operation: str, retry_after: float | None = None, **kwargs: Any) -> None:
        detail = f"Retry after {retry_after} seconds" if retry_after else "Rate limit exceeded"
        super().__init__(f"Rate limit exceeded for {operation}", detail=detail, **kwargs)
        self.retry_after = retry_after

    @property
    def retry_delay(self) -> float:
        return self.retry_after if self.retry_after else RETRY_DELAYS[self.kind]


class ConfigurationError(SLAError):
    """Startup or environment misconfiguration. Fatal."""

    kind = ErrorKind.CONFIGURATION_ERROR


def map_database_error(code: str | None, message: str, detail: str | None = None) -> SLAError:
    """Translate a PostgREST/Postgres error code into the taxonomy.

    Used by persistence adapters so that callers only ever see SLAError.
    """
    match code:
        case "PGRST116":
            return NotFoundError("Requested resource", detail=detail)
        case "PGRST301":
            return DataValidationError(
                "Insufficient permissions for this operation",
                code="PERMISSION_DENIED",
            )
        case "23505":
            return DuplicateRecordError(detail or "Resource already exists or violates unique constraint")
        case "23503":
            return DataValidationError(detail or "Foreign key constraint violation")
        case "23514":
            return DataValidationError(detail or "Check constraint violation")
        case _:
            return DatabaseError("Database operation failed", detail=detail or message)


@contextmanager
def with_error_context(operation: str, **context: Any) -> Iterator[ErrorContext]:
    """Attach an ErrorContext to any error raised inside the block.

    SLAErrors are re-raised with the context attached; anything else is
    wrapped in a GenerationError. Both are logged with the context.
    """
    extra = context.pop("extra", {})
    error_context = ErrorContext(operation=operation, extra=extra, **context)
    try:
        yield error_context
    except SLAError as e:
        e.with_context(error_context)
        logger.error(f"{operation} failed: {e.message}", extra={"sla_error": e.to_dict()})
        raise
    except Exception as e:
        logger.error(f"{operation} failed unexpectedly: {e}", exc_info=True)
        raise GenerationError(
            f"{operation} failed", detail=str(e), context=error_context
        ) from e
