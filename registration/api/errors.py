"""Exception handlers rendering every failure as an ErrorResponse body."""

import logging
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from registration.services.errors import AccountLocked, ServiceError

logger = logging.getLogger(__name__)


def error_body(
    status_code: int,
    error: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    body: dict[str, Any] = {
        "timestamp": datetime.now(UTC).isoformat(),
        "status": status_code,
        "error": error,
        "message": message,
    }
    if details:
        body["details"] = details
    return body


def _field_name(loc: tuple) -> str:
    # ("body", "email") -> "email"; ("body",) -> "body"
    parts = [str(part) for part in loc if part != "body"]
    return ".".join(parts) or "body"


def register_exception_handlers(app: FastAPI) -> None:
    """Install handlers for service errors, request validation and the unexpected."""

    @app.exception_handler(ServiceError)
    async def handle_service_error(request: Request, exc: ServiceError) -> JSONResponse:
        logger.warning(f"{exc.error} on {request.method} {request.url.path}: {exc.message}")
        headers = None
        if exc.status_code == 401:
            headers = {"WWW-Authenticate": "Bearer"}
        elif isinstance(exc, AccountLocked) and exc.locked_until is not None:
            retry_after = (exc.locked_until - datetime.now(UTC)).total_seconds()
            headers = {"Retry-After": str(max(1, int(retry_after)))}
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.status_code, exc.error, exc.message, exc.details),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        details = {
            _field_name(tuple(err.get("loc", ()))): err.get("msg", "Invalid value")
            for err in exc.errors()
        }
        logger.warning(f"Validation failed on {request.method} {request.url.path}: {details}")
        return JSONResponse(
            status_code=400,
            content=error_body(400, "Validation Failed", "Invalid input data", details),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unexpected error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=500,
            content=error_body(
                500,
                "Internal Server Error",
                "An unexpected error occurred. Please try again later.",
            ),
        )
