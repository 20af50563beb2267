"""Mapping of service error kinds to HTTP responses.

- ApiError           -> remote status code, remote body echoed
- NetworkError       -> 503 Service Unavailable
- ValidationError    -> 400 Bad Request (also request body validation)
- everything else    -> 500 Internal Server Error
"""

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from network_token.api.models import ErrorResponseJSON
from network_token.models.exceptions import (
    ApiError,
    KeyMaterialError,
    NetworkError,
    NetworkTokenError,
    OrchestrationError,
    PersistenceError,
    SigningError,
    ValidationError,
)

logger = structlog.get_logger(__name__)

_INTERNAL_ERROR_KINDS = {
    KeyMaterialError: "key_material_error",
    SigningError: "signing_error",
    PersistenceError: "persistence_error",
    OrchestrationError: "orchestration_error",
}


def _error_response(status_code: int, body: ErrorResponseJSON) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


async def handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
    # Remote status codes outside the valid HTTP range are reported as 502
    status_code = exc.status_code if 400 <= exc.status_code <= 599 else status.HTTP_502_BAD_GATEWAY
    return _error_response(
        status_code,
        ErrorResponseJSON(error="api_error", detail=exc.response_body, status_code=exc.status_code),
    )


async def handle_network_error(request: Request, exc: NetworkError) -> JSONResponse:
    return _error_response(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        ErrorResponseJSON(error="network_error", detail="Tokenization API unavailable"),
    )


async def handle_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        ErrorResponseJSON(error="validation_error", detail=str(exc)),
    )


async def handle_request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    # Drop "input" so a rejected account number is never echoed back
    errors = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", "")}
        for error in exc.errors()
    ]
    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        ErrorResponseJSON(error="validation_error", detail=errors),
    )


async def handle_internal_error(request: Request, exc: NetworkTokenError) -> JSONResponse:
    kind = next(
        (name for cls, name in _INTERNAL_ERROR_KINDS.items() if isinstance(exc, cls)),
        "internal_error",
    )
    logger.error("request_failed", path=request.url.path, error_type=type(exc).__name__)
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        ErrorResponseJSON(error=kind, detail="Internal server error"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the error kind -> HTTP status mapping on an application."""
    app.add_exception_handler(ApiError, handle_api_error)
    app.add_exception_handler(NetworkError, handle_network_error)
    app.add_exception_handler(ValidationError, handle_validation_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    # Most specific handler wins, so this only catches the remaining kinds
    app.add_exception_handler(NetworkTokenError, handle_internal_error)
