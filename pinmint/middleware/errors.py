"""Error handling middleware."""

from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.status import (
    HTTP_404_NOT_FOUND,
    HTTP_422_UNPROCESSABLE_ENTITY,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from pinmint.core.errors import ContentNotFound, TokenNotFound, ValidationError
from pinmint.core.logging import get_logger

logger = get_logger(__name__)

# Checked in order; None means use the exception's own status_code
ERROR_MAPPING: list[tuple[type[Exception], int | None]] = [
    (StarletteHTTPException, None),
    (RequestValidationError, HTTP_422_UNPROCESSABLE_ENTITY),
    (TokenNotFound, HTTP_404_NOT_FOUND),
    (ContentNotFound, HTTP_404_NOT_FOUND),
    (ValidationError, HTTP_422_UNPROCESSABLE_ENTITY),
    (KeyError, HTTP_404_NOT_FOUND),
    (ValueError, HTTP_422_UNPROCESSABLE_ENTITY),
]


def _status_for(exc: Exception) -> int:
    for exc_type, status_code in ERROR_MAPPING:
        if isinstance(exc, exc_type):
            if status_code is None:
                return int(getattr(exc, "status_code", HTTP_500_INTERNAL_SERVER_ERROR))
            return status_code
    return HTTP_500_INTERNAL_SERVER_ERROR


def _detail_for(exc: Exception) -> str:
    if isinstance(exc, StarletteHTTPException):
        return str(exc.detail)
    if isinstance(exc, RequestValidationError):
        return "; ".join(
            f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
            for error in exc.errors()
        )
    if isinstance(exc, KeyError):
        return f"'{exc.args[0]}'" if exc.args else str(exc)
    message = getattr(exc, "message", None)
    if isinstance(message, str):
        return message
    return str(exc.args[0] if exc.args else exc)


def error_response(
    request: Request, error_type: str, detail: str, status_code: int
) -> JSONResponse:
    """Build the JSON error envelope and log it."""
    correlation_id = getattr(request.state, "correlation_id", None)
    logger.error(
        "request_error",
        error_type=error_type,
        error_message=detail,
        status_code=status_code,
        path=request.url.path,
        method=request.method,
    )
    response = JSONResponse(
        status_code=status_code,
        content={
            "error": error_type,
            "message": detail,
            "status_code": status_code,
            "correlation_id": correlation_id if correlation_id else "unknown",
        },
    )
    if correlation_id:
        response.headers["X-Request-ID"] = correlation_id
    return response


async def handle_exception(request: Request, exc: Exception) -> JSONResponse:
    """Exception handler returning the JSON error envelope."""
    return error_response(
        request, exc.__class__.__name__, _detail_for(exc), _status_for(exc)
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Route framework and pipeline exceptions through the error envelope."""
    for exc_type in (
        StarletteHTTPException,
        RequestValidationError,
        TokenNotFound,
        ContentNotFound,
        ValidationError,
    ):
        app.add_exception_handler(exc_type, handle_exception)


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Turns unhandled exceptions and plain-text error responses into JSON."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            response = await call_next(request)
        except Exception as exc:
            return await handle_exception(request, exc)

        # CORS preflight and JSON bodies (error envelopes, ErrorResult) pass through
        if request.method == "OPTIONS" or response.status_code < 400:
            return response
        if response.headers.get("content-type", "").startswith("application/json"):
            return response

        exc = HTTPException(status_code=response.status_code, detail=_reason(response))
        return await handle_exception(request, exc)


def _reason(response: Response) -> str:
    messages = {404: "Not Found", 405: "Method Not Allowed"}
    return messages.get(response.status_code, "Error")
