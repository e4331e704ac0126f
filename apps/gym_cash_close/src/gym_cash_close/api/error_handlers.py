"""Global API exception handlers aligned with contract response shape."""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any, cast

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from gym_cash_close.db.models.cash_period import SINGLE_OPEN_INDEX_NAME
from gym_cash_close.domain.errors import (
    DomainError,
    OpenPeriodConflictError,
    SchemaMismatchError,
    StorageError,
    compose_error_message,
)

logger = logging.getLogger(__name__)

SCHEMA_MISMATCH_MARKERS = (
    "no such table",
    "no such column",
    "has no column named",
    "does not exist",
    "undefinedtable",
    "undefinedcolumn",
)
SINGLE_OPEN_MARKERS = (
    SINGLE_OPEN_INDEX_NAME,
    "unique constraint failed: cash_periods.status",
)
RETRYABLE_MARKERS = (
    "could not serialize",
    "serializationfailure",
    "deadlock detected",
    "database is locked",
)


def _error_payload(code: str, message: str, details: dict[str, Any]) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "code": code,
        "message": message,
    }
    if details:
        payload["details"] = details
    return payload


def _driver_text(exc: SQLAlchemyError) -> str:
    origin = getattr(exc, "orig", None)
    parts = [str(origin) if origin is not None else str(exc)]
    if origin is not None:
        parts.append(type(origin).__name__)
    return " ".join(parts).lower()


def map_cash_close_error(exc: Exception) -> DomainError:
    """Translate any failure raised while serving cash close requests."""

    if isinstance(exc, DomainError):
        return exc
    if not isinstance(exc, SQLAlchemyError):
        return StorageError(details={"error_type": type(exc).__name__})

    text = _driver_text(exc)
    if any(marker in text for marker in SCHEMA_MISMATCH_MARKERS):
        return SchemaMismatchError(details={"error_type": type(exc).__name__})
    if isinstance(exc, IntegrityError) and any(
        marker in text for marker in SINGLE_OPEN_MARKERS
    ):
        return OpenPeriodConflictError(
            message=compose_error_message(
                cause="Another open cash period was created concurrently.",
                action="Reload the current period and retry.",
            ),
            details={"retryable": True},
        )
    if isinstance(exc, OperationalError) and any(
        marker in text for marker in RETRYABLE_MARKERS
    ):
        return OpenPeriodConflictError(
            message=compose_error_message(
                cause="The cash close transaction conflicted with another one.",
                action="Retry the request.",
            ),
            details={"retryable": True},
        )
    return StorageError(details={"error_type": type(exc).__name__})


def respond_with_cash_close_error(exc: Exception) -> JSONResponse:
    error = map_cash_close_error(exc)
    return JSONResponse(
        status_code=error.status_code,
        content=_error_payload(error.code, error.message, error.details),
    )


async def handle_domain_error(_: Request, exc: DomainError) -> JSONResponse:
    """Serialize domain error to contract-compliant response."""

    return respond_with_cash_close_error(exc)


async def handle_storage_error(_: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Classify driver failures into schema, conflict or generic storage errors."""

    logger.exception("storage_error", extra={"error_type": type(exc).__name__})
    return respond_with_cash_close_error(exc)


async def handle_validation_error(
    _: Request, exc: RequestValidationError
) -> JSONResponse:
    """Map request validation failures to HTTP 400 contract."""

    return JSONResponse(
        status_code=HTTPStatus.BAD_REQUEST,
        content=_error_payload(
            code="VALIDATION_ERROR",
            message=compose_error_message(
                cause="Request payload validation failed.",
                action="Fix the invalid fields and send the request again.",
            ),
            details={"errors": jsonable_encoder(exc.errors())},
        ),
    )


async def handle_unexpected_error(_: Request, exc: Exception) -> JSONResponse:
    """Serialize unexpected failures with generic message."""

    logger.exception("unexpected_error", extra={"error_type": type(exc).__name__})
    return JSONResponse(
        status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
        content=_error_payload(
            code="INTERNAL_SERVER_ERROR",
            message=compose_error_message(
                cause="An unexpected internal error occurred.",
                action="Retry later or contact support if the error persists.",
            ),
            details={"error_type": type(exc).__name__},
        ),
    )


def register_error_handlers(app: FastAPI) -> None:
    """Attach all global handlers to the FastAPI application."""

    app.add_exception_handler(DomainError, cast(Any, handle_domain_error))
    app.add_exception_handler(
        RequestValidationError, cast(Any, handle_validation_error)
    )
    app.add_exception_handler(SQLAlchemyError, cast(Any, handle_storage_error))
    app.add_exception_handler(Exception, handle_unexpected_error)
