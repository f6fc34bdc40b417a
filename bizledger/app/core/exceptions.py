"""
Application exceptions and the global handlers that render them.

Every error response has the shape {error_code, message, details}, except
the backfill fetch failure, which the backfill endpoint renders itself as
{"error": message}.
"""

import logging
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from typing import Any, Dict, Optional

logger = logging.getLogger("bizledger.errors")


class AppException(Exception):

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class AuthenticationError(AppException):
    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, "ERR_AUTH_001", status.HTTP_401_UNAUTHORIZED)


class InsufficientPermissionsError(AppException):
    def __init__(self, message: str = "Insufficient permissions", details: Dict[str, Any] = None):
        super().__init__(message, "ERR_PERM_001", status.HTTP_403_FORBIDDEN, details)


class ResourceNotFoundError(AppException):
    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} with ID {resource_id} not found" if resource_id else f"{resource} not found"
        super().__init__(
            message, "ERR_NOT_FOUND_001", status.HTTP_404_NOT_FOUND,
            {"resource": resource, "id": resource_id},
        )


# Ledger errors

class InvalidEventError(AppException):
    """A business event whose amount cannot be posted (missing, non-finite, zero or negative)."""

    def __init__(self, source_type: str, source_id: Any, reason: str):
        super().__init__(
            f"Invalid {source_type} {source_id}: {reason}",
            "ERR_LEDGER_001",
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            {"source_type": source_type, "source_id": source_id},
        )


class DuplicateLedgerEntryError(AppException):
    """The store already holds an entry for this (transaction_id, source_type)."""

    def __init__(self, transaction_id: str, source_type: str):
        self.transaction_id = transaction_id
        self.source_type = source_type
        super().__init__(
            "Entry already exists",
            "ERR_LEDGER_002",
            status.HTTP_409_CONFLICT,
            {"transaction_id": transaction_id, "source_type": source_type},
        )


class EntryAlreadyReversedError(AppException):
    def __init__(self, entry_id: str, message: str = "Entry has already been reversed"):
        super().__init__(message, "ERR_LEDGER_003", status.HTTP_409_CONFLICT, {"entry_id": entry_id})


class BackfillFetchError(AppException):
    """
    The candidate query for one source type failed, aborting the run.

    Records handled before the failure stay posted and logged;
    `partial_result` holds their counters.
    """

    def __init__(self, source_type: str, message: str, partial_result: Optional[Any] = None):
        self.source_type = source_type
        self.partial_result = partial_result
        super().__init__(
            message, "ERR_LEDGER_004", status.HTTP_500_INTERNAL_SERVER_ERROR,
            {"source_type": source_type},
        )


# Global Exception Handlers

HTTP_ERROR_CODES = {
    400: "ERR_BAD_REQUEST",
    401: "ERR_UNAUTHORIZED",
    403: "ERR_FORBIDDEN",
    404: "ERR_NOT_FOUND",
    405: "ERR_METHOD_NOT_ALLOWED",
    409: "ERR_CONFLICT",
    500: "ERR_INTERNAL_SERVER",
}


def _error_response(status_code: int, error_code: str, message: Any, details: Dict[str, Any] = None, headers=None):
    return JSONResponse(
        status_code=status_code,
        content={"error_code": error_code, "message": message, "details": details or {}},
        headers=headers,
    )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.error_code, request.method, request.url.path, exc.message)
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
    return _error_response(exc.status_code, exc.error_code, exc.message, exc.details, headers)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return _error_response(
        exc.status_code,
        HTTP_ERROR_CODES.get(exc.status_code, "ERR_UNKNOWN"),
        exc.detail,
        headers=getattr(exc, "headers", None),
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    # ctx may hold the raw exception instance
    return [
        {key: value for key, value in error.items() if key != "ctx"}
        for error in exc.errors()
    ]


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "ERR_VALIDATION",
        "Validation error",
        {"errors": jsonable_errors(exc)},
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception on %s %s: %s", request.method, request.url.path, exc)
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "ERR_INTERNAL_SERVER",
        "An internal server error occurred",
    )
