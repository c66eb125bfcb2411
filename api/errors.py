"""
API Error Handling

Standardized error handling for the API. Domain exceptions keep their
error code on the wire; the HTTP status is derived from the code.
"""

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from api.models.responses import ErrorResponse, ErrorDetail
from core.schemas.errors import ErrorCodes, MerkleVaultException


logger = logging.getLogger(__name__)


STATUS_BY_CODE: dict[str, int] = {
    ErrorCodes.NOT_FOUND: 404,
    ErrorCodes.BATCH_CONFLICT: 409,
    ErrorCodes.ROOT_MISMATCH: 422,
    ErrorCodes.EMPTY_INPUT: 400,
    ErrorCodes.INDEX_OUT_OF_RANGE: 400,
    ErrorCodes.INVALID_DIGEST: 400,
    ErrorCodes.INVALID_PROOF: 400,
    ErrorCodes.INVALID_REQUEST: 400,
    ErrorCodes.UNSUPPORTED_HASH_ALGORITHM: 400,
    ErrorCodes.INTEGRITY_MISMATCH: 500,
    ErrorCodes.STORAGE_ERROR: 500,
}


class APIError(Exception):
    """Base API error with structured response."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(
            ok=False,
            error=ErrorDetail(
                code=self.code,
                message=self.message,
                details=self.details,
            ),
        )


class InvalidRequestError(APIError):
    """Invalid request parameters."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            code=ErrorCodes.INVALID_REQUEST,
            message=message,
            status_code=400,
            details=details,
        )


def status_for(exc: MerkleVaultException) -> int:
    return STATUS_BY_CODE.get(exc.code, 500)


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Handle APIError exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response().model_dump(),
    )


async def domain_error_handler(request: Request, exc: MerkleVaultException) -> JSONResponse:
    """Handle MerkleVaultException and its subclasses."""
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} -> {exc.code}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.code}: {exc.message}")

    error = exc.to_error_model()
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            ok=False,
            error=ErrorDetail(
                code=error.code,
                message=error.message,
                details=error.details,
                retryable=error.retryable,
            ),
        ).model_dump(),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies as INVALID_REQUEST."""
    errors = [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    error = InvalidRequestError("Malformed request", details={"errors": errors})
    return await api_error_handler(request, error)


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            ok=False,
            error=ErrorDetail(
                code="INTERNAL_ERROR",
                message="An unexpected error occurred",
                details={"type": type(exc).__name__},
            ),
        ).model_dump(),
    )
