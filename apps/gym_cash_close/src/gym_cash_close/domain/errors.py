"""Domain exceptions used across API and services."""

from __future__ import annotations

from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any


def compose_error_message(*, cause: str, action: str) -> str:
    """Build a user-facing error message with cause and corrective action."""

    return f"Cause: {cause} Action: {action}"


@dataclass(slots=True)
class DomainError(Exception):
    """Base exception for predictable domain failures."""

    code: str
    message: str
    status_code: int
    details: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message


class InvalidRequestError(DomainError):
    """Raised when user sends semantically invalid input."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="VALIDATION_ERROR",
            message=message
            or compose_error_message(
                cause="Request data violates cash close rules.",
                action="Adjust the input fields and try again.",
            ),
            status_code=HTTPStatus.BAD_REQUEST,
            details=details or {},
        )


class OpenPeriodConflictError(DomainError):
    """Raised when the single-open-period invariant cannot be satisfied."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="OPEN_PERIOD_EXISTS",
            message=message
            or compose_error_message(
                cause="More than one open cash period was found.",
                action=(
                    "Close or repair the duplicated open periods manually "
                    "before retrying."
                ),
            ),
            status_code=HTTPStatus.CONFLICT,
            details=details or {},
        )


class CloseEndBeforePeriodStartError(DomainError):
    """Raised when a close end time precedes the open period start."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="CLOSE_END_BEFORE_PERIOD_START",
            message=message
            or compose_error_message(
                cause="Close end time is earlier than the open period start.",
                action="Send an end_at at or after the period start_at.",
            ),
            status_code=HTTPStatus.BAD_REQUEST,
            details=details or {},
        )


class SchemaMismatchError(DomainError):
    """Raised when a required storage construct is missing or unreadable."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="DB_SCHEMA_MISMATCH",
            message=message
            or compose_error_message(
                cause="The database schema does not match the running service.",
                action="Apply pending migrations and retry.",
            ),
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
            details=details or {},
        )


class StorageError(DomainError):
    """Generic storage failure fallback."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="DB_ERROR",
            message=message
            or compose_error_message(
                cause="A database operation failed.",
                action="Retry later or contact support if the error persists.",
            ),
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
            details=details or {},
        )


class PeriodNotFoundError(DomainError):
    """Raised when a cash period id cannot be resolved."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="PERIOD_NOT_FOUND",
            message=message
            or compose_error_message(
                cause="Cash period was not found.",
                action="Check the period id and retry.",
            ),
            status_code=HTTPStatus.NOT_FOUND,
            details=details or {},
        )


class PeriodNotClosedError(DomainError):
    """Raised when an operation requires a closed period."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="PERIOD_NOT_CLOSED",
            message=message
            or compose_error_message(
                cause="The cash period is still open.",
                action="Close the period before exporting or adjusting it.",
            ),
            status_code=HTTPStatus.CONFLICT,
            details=details or {},
        )


class SnapshotFormatError(SchemaMismatchError):
    """Raised when a stored close snapshot cannot be read back."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message
            or compose_error_message(
                cause="Stored cash close snapshot is malformed or too new.",
                action="Upgrade the service or repair the stored snapshot.",
            ),
            details=details,
        )
