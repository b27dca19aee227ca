"""
Exception handlers that render every failure into the shared envelope:

    {"success": false, "error": "<title>", "message": "<detail>", "details": ...}

Domain exceptions carry their own status. Request validation failures become
400 and list every violated rule. Unexpected errors are 500 and only reveal
their message and traceback in development.
"""

import traceback
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from bookit.core.config import get_settings
from bookit.core.exceptions import DomainError, StoreError
from bookit.core.logging import get_logger
from bookit.core.metrics import record_store_error

logger = get_logger(__name__)


def error_envelope(
    error: str,
    message: Optional[str] = None,
    details: Optional[Any] = None,
    **extra: Any,
) -> dict:
    body: dict[str, Any] = {"success": False, "error": error}
    if message is not None:
        body["message"] = message
    if details is not None:
        body["details"] = details
    body.update(extra)
    return body


def _format_validation_error(error: dict) -> str:
    location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
    field = ".".join(location)
    message = error.get("msg", "Invalid value")
    return f"{field}: {message}" if field else message


def domain_error_response(exc: DomainError) -> JSONResponse:
    return JSONResponse(
        error_envelope(exc.error, exc.message, exc.details),
        status_code=exc.status_code,
    )


def register_error_handlers(app: FastAPI) -> None:
    settings = get_settings()

    @app.exception_handler(DomainError)
    async def handle_domain_error(request: Request, exc: DomainError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("request_error", code=exc.code, message=exc.message)
        return domain_error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = [_format_validation_error(error) for error in exc.errors()]
        return JSONResponse(
            error_envelope("Validation failed", "; ".join(details), details),
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    @app.exception_handler(SQLAlchemyError)
    async def handle_store_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        store_error = StoreError.from_exception(exc)
        record_store_error(store_error.sqlstate)
        logger.error("store_error", sqlstate=store_error.sqlstate, error=str(exc))
        return domain_error_response(store_error)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.detail in ("Not Found", "Method Not Allowed"):
            body = error_envelope("Route not found", f"Cannot {request.method} {request.url.path}")
        else:
            body = error_envelope(str(exc.detail))
        return JSONResponse(body, status_code=exc.status_code, headers=exc.headers)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("unhandled_error", error=str(exc))
        if settings.is_development:
            body = error_envelope(
                "Internal server error",
                str(exc),
                stack=traceback.format_exception(type(exc), exc, exc.__traceback__),
            )
        else:
            body = error_envelope("Internal server error")
        return JSONResponse(body, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
